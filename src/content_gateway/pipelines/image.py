from __future__ import annotations

import logging
from typing import Any, List

from ..errors import UpstreamModelError
from ..llm.client import ContentPart, GenerativeModel
from ..llm.responses import extract_inline_image, inline_image_from_data_url
from ..models.account import BrandContext
from ..models.request import GenerationPayload
from ..prompts.images import (
    build_smart_image_prompt,
    build_standalone_image_prompt,
    resolve_aspect_ratio,
)


logger = logging.getLogger(__name__)


class ImagePipeline:
    """
    Image generation. Both variants return the first inline image of the
    model response as a ``data:`` URI and fail when the model answers
    without one, rather than passing text back as if it were an image.
    """

    def __init__(self, model: GenerativeModel) -> None:
        self._model = model

    async def generate_smart(self, payload: GenerationPayload, brand: BrandContext) -> str:
        platform = payload.platform or payload.options.get("platform")
        aspect_ratio = resolve_aspect_ratio(payload.aspect_ratio, platform)
        prompt = build_smart_image_prompt(
            topic=payload.topic or "",
            aspect_ratio=aspect_ratio,
            tones=payload.tones,
            brand=brand,
            has_reference=payload.has_image,
        )

        parts: List[ContentPart] = [prompt]
        if payload.image:
            parts.append(inline_image_from_data_url(payload.image))

        response = await self._model.generate_image(parts, aspect_ratio=aspect_ratio)
        return self._require_image(response, "smartImage")

    async def generate_standalone(self, payload: GenerationPayload, brand: BrandContext) -> str:
        prompt = build_standalone_image_prompt(payload.topic or "", brand)
        response = await self._model.generate_image([prompt])
        return self._require_image(response, "image")

    @staticmethod
    def _require_image(response: Any, request_type: str) -> str:
        data_url = extract_inline_image(response)
        if data_url is None:
            logger.error("Model returned no image part for %s", request_type)
            raise UpstreamModelError("No image returned by the model")
        return data_url
