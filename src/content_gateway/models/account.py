from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field

from .base import DBSerializableModel


DEFAULT_STARTING_CREDITS = 10
DEFAULT_PLAN = "free"


class Account(DBSerializableModel):
    """
    Per-user credit and brand record, stored at ``brands/{uid}``.

    The gateway only ever creates the document (lazily, on the first metered
    request) and moves credits between ``credits`` and ``credits_used``.
    Brand fields are written by the profile collaborators and read here for
    prompt personalization. Keys this model does not name (logo, guide
    progress and the like) are kept so a read-modify-write round trip never
    drops them.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    collection_name: ClassVar[str] = "brands"

    id: str = Field(alias="uid")
    email: Optional[str] = None
    brand_name: Optional[str] = Field(default=None, alias="brandName")
    credits: int = DEFAULT_STARTING_CREDITS
    credits_used: int = Field(default=0, alias="creditsUsed")
    plan: str = DEFAULT_PLAN
    onboarded: bool = False
    industry: Optional[str] = None
    tone: Optional[str] = None
    target_audience: Optional[str] = Field(default=None, alias="targetAudience")
    created_at: datetime = Field(default_factory=datetime.utcnow, alias="createdAt")

    @classmethod
    def provision(
        cls, uid: str, email: Optional[str] = None, name: Optional[str] = None
    ) -> "Account":
        """Default account granted to a first-time user."""
        return cls(
            uid=uid,
            email=email,
            brand_name=name,
            credits=DEFAULT_STARTING_CREDITS,
            credits_used=0,
            plan=DEFAULT_PLAN,
            onboarded=False,
        )


class BrandContext(BaseModel):
    """
    Subset of the account used to personalize prompts. Empty when the caller
    opts out of brand data or the lookup fails.
    """

    name: Optional[str] = None
    industry: Optional[str] = None
    tone: Optional[str] = None
    audience: Optional[str] = None

    @classmethod
    def from_account(cls, account: Account) -> "BrandContext":
        return cls(
            name=account.brand_name,
            industry=account.industry,
            tone=account.tone,
            audience=account.target_audience,
        )

    @property
    def is_empty(self) -> bool:
        return not any((self.name, self.industry, self.tone, self.audience))
