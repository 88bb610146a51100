from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..errors import UpstreamModelError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InlineImage:
    mime_type: str
    data: bytes


ContentPart = Union[str, InlineImage]


class GenerativeModel(ABC):
    """
    The generative model as the pipelines see it: a prompt made of text and
    inline-image parts goes in; text, or a raw response to scan for image
    parts, comes out. One instance is shared by all requests.
    """

    @abstractmethod
    async def generate_text(self, parts: Sequence[ContentPart]) -> str: ...

    @abstractmethod
    async def generate_image(
        self, parts: Sequence[ContentPart], aspect_ratio: Optional[str] = None
    ) -> Any: ...


class GeminiModel(GenerativeModel):
    """
    Gemini via google-genai. No retries and no per-call timeout: a call runs
    until it returns or the platform deadline kills the request.
    """

    def __init__(
        self,
        api_key: Optional[str],
        text_model: str,
        image_model: str,
        client: Optional[genai.Client] = None,
    ) -> None:
        self._client = client or genai.Client(api_key=api_key)
        self._text_model = text_model
        self._image_model = image_model

    @staticmethod
    def _to_parts(parts: Sequence[ContentPart]) -> List[types.Part]:
        converted: List[types.Part] = []
        for part in parts:
            if isinstance(part, InlineImage):
                converted.append(types.Part.from_bytes(data=part.data, mime_type=part.mime_type))
            else:
                converted.append(types.Part(text=part))
        return converted

    async def generate_text(self, parts: Sequence[ContentPart]) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self._text_model,
                contents=self._to_parts(parts),
            )
        except genai_errors.APIError as exc:
            logger.error("Text generation failed on %s: %s", self._text_model, exc)
            raise UpstreamModelError(f"Text generation failed: {exc}") from exc
        return getattr(response, "text", None) or ""

    async def generate_image(
        self, parts: Sequence[ContentPart], aspect_ratio: Optional[str] = None
    ) -> Any:
        config = types.GenerateContentConfig(
            response_modalities=["IMAGE"],
            image_config=types.ImageConfig(aspect_ratio=aspect_ratio) if aspect_ratio else None,
        )
        try:
            return await self._client.aio.models.generate_content(
                model=self._image_model,
                contents=self._to_parts(parts),
                config=config,
            )
        except genai_errors.APIError as exc:
            logger.error("Image generation failed on %s: %s", self._image_model, exc)
            raise UpstreamModelError(f"Image generation failed: {exc}") from exc
