from __future__ import annotations

import logging
from typing import List, Optional

from ..errors import UpstreamModelError
from ..llm.client import ContentPart, GenerativeModel
from ..llm.responses import inline_image_from_data_url, strip_code_fences
from ..models.account import BrandContext
from ..models.request import GenerationPayload
from ..prompts.compiler import PromptContext, compile_prompt


logger = logging.getLogger(__name__)


class TextPipeline:
    """Prompt-template generation for every text-bearing request type."""

    def __init__(self, model: GenerativeModel) -> None:
        self._model = model

    async def generate(
        self,
        request_type: Optional[str],
        payload: GenerationPayload,
        brand: BrandContext,
    ) -> str:
        prompt = compile_prompt(request_type, PromptContext.from_payload(payload, brand))

        parts: List[ContentPart] = [prompt]
        if payload.image:
            parts.append(inline_image_from_data_url(payload.image))

        text = strip_code_fences(await self._model.generate_text(parts))
        if not text:
            raise UpstreamModelError(f"Model returned no text for {request_type}")
        logger.debug("Generated %d characters for %s", len(text), request_type)
        return text
