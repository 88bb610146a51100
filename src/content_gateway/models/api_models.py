from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class GenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    result: Any
    credits_deducted: int = Field(default=0, alias="creditsDeducted")
    remaining_credits: Optional[int] = Field(default=None, alias="remainingCredits")


class ErrorResponse(BaseModel):
    error: str
    debug: Optional[dict] = None
