from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


MAX_TONES = 3


def num_variations(options: Mapping[str, Any]) -> int:
    """Requested ``numVariations`` as an int of at least 1. Prompt and price both use it."""
    try:
        value = int(options.get("numVariations") or 1)
    except (TypeError, ValueError):
        return 1
    return max(value, 1)


class Identity(BaseModel):
    """Verified caller identity. ``email``/``name`` only seed a new account."""

    uid: str
    email: Optional[str] = None
    name: Optional[str] = None


class GenerationPayload(BaseModel):
    """
    Caller-supplied generation inputs. Unknown keys are kept so type-specific
    builders can read fields this model does not name.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    topic: Optional[str] = None
    prompt: Optional[str] = None
    tones: List[str] = Field(default_factory=list)
    options: Dict[str, Any] = Field(default_factory=dict)
    image: Optional[str] = None
    platform: Optional[str] = None
    aspect_ratio: Optional[str] = Field(default=None, alias="aspectRatio")
    face_position: Optional[str] = Field(default=None, alias="facePosition")
    core_data: Dict[str, Any] = Field(default_factory=dict, alias="coreData")
    history: List[Any] = Field(default_factory=list)
    json_schema: Optional[Any] = Field(default=None, alias="schema")
    form_data: Dict[str, Any] = Field(default_factory=dict, alias="formData")
    dynamic_answers: Dict[str, Any] = Field(default_factory=dict, alias="dynamicAnswers")
    use_brand_data: bool = Field(default=True, alias="useBrandData")
    start_step: Optional[int] = Field(default=None, alias="startStep")
    end_step: Optional[int] = Field(default=None, alias="endStep")
    total_steps: Optional[int] = Field(default=None, alias="totalSteps")
    previous_steps: List[Any] = Field(default_factory=list, alias="previousSteps")

    @property
    def has_image(self) -> bool:
        return bool(self.image)

    def debug_echo(self) -> Dict[str, Any]:
        """Payload as received, with inline image data left out."""
        data = self.model_dump(by_alias=True, exclude_defaults=True)
        if data.get("image"):
            data["image"] = "<omitted>"
        return data


class GenerationRequest(BaseModel):
    type: Optional[str] = None
    payload: GenerationPayload = Field(default_factory=GenerationPayload)
