from __future__ import annotations

import logging
from typing import Any, Dict, Union

from ..errors import PayloadValidationError, UnknownType
from ..llm.responses import parse_data_url
from ..models.account import BrandContext
from ..models.request import GenerationRequest
from ..prompts.compiler import has_prompt
from .dialogue import DialoguePipeline
from .image import ImagePipeline
from .text import TextPipeline


logger = logging.getLogger(__name__)

# Types that build their prompt from structured payload fields rather than
# from a topic or an image.
NO_INPUT_TYPES = frozenset(
    {
        "dynamicGuide",
        "finalGuide",
        "dynamicGuideIterative",
        "generateRoadmapBatch",
        "generatePillars",
        "generateChecklist",
        "payForGuideReset",
    }
)

GUIDE_RESET_RESULT = {"success": True, "message": "Guide reset funded successfully."}

DispatchResult = Union[str, Dict[str, Any]]


class PipelineDispatcher:
    """Per-type input checks and routing to the generation pipelines."""

    def __init__(
        self,
        text: TextPipeline,
        images: ImagePipeline,
        dialogue: DialoguePipeline,
    ) -> None:
        self._text = text
        self._images = images
        self._dialogue = dialogue

    def validate(self, request: GenerationRequest) -> None:
        """
        Runs before any credits are deducted. Raises PayloadValidationError
        with an echo of what was received.
        """
        payload = request.payload
        if request.type not in NO_INPUT_TYPES and not payload.topic and not payload.image:
            raise PayloadValidationError(
                "Topic or image is required.",
                debug=self._debug(request),
            )
        if payload.image:
            try:
                parse_data_url(payload.image)
            except ValueError as exc:
                raise PayloadValidationError(
                    "Image must be a base64-encoded data URL.",
                    debug=self._debug(request),
                ) from exc

    async def dispatch(self, request: GenerationRequest, brand: BrandContext) -> DispatchResult:
        request_type = request.type
        payload = request.payload
        logger.debug("Dispatching %s", request_type)

        if request_type == "image":
            return await self._images.generate_standalone(payload, brand)
        if request_type == "smartImage":
            return await self._images.generate_smart(payload, brand)
        if request_type == "dynamicGuideIterative":
            return await self._dialogue.next_turn(payload, brand)
        if request_type == "payForGuideReset":
            return dict(GUIDE_RESET_RESULT)
        if has_prompt(request_type):
            return await self._text.generate(request_type, payload, brand)
        raise UnknownType(request_type)

    @staticmethod
    def _debug(request: GenerationRequest) -> Dict[str, Any]:
        return {"receivedType": request.type, "receivedBody": request.payload.debug_echo()}
