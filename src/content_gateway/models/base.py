from __future__ import annotations

from typing import Any, ClassVar, Dict

from pydantic import BaseModel, ConfigDict


class DBSerializableModel(BaseModel):
    """
    Base Pydantic model that knows how to serialize itself for DB persistence.

    Field aliases are the stored (camelCase) names, so documents written by
    other collaborators of the same collection round-trip unchanged.
    """

    model_config = ConfigDict(populate_by_name=True)

    # Logical collection / table name; subclasses should override
    collection_name: ClassVar[str]

    def serialize_for_db(self) -> Dict[str, Any]:
        """
        Convert to a dict suitable for DB persistence.

        This is the single place to control how models are stored;
        DB adapters can still post-process this if needed.
        """
        return self.model_dump(by_alias=True, exclude_none=True)
