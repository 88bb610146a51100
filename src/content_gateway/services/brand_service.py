from __future__ import annotations

import logging
from typing import Optional

from ..cache.base import AsyncCacheBackend
from ..db.base import BaseDBManager
from ..models.account import BrandContext


logger = logging.getLogger(__name__)


class BrandService:
    """
    Loads the brand context used to personalize prompts.

    A failed lookup never fails the request: the prompt is simply built
    without personalization.
    """

    def __init__(
        self,
        db: BaseDBManager,
        cache: Optional[AsyncCacheBackend] = None,
        ttl_seconds: int = 300,
    ) -> None:
        self._db = db
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    async def get_brand_context(self, uid: str) -> BrandContext:
        async def load() -> BrandContext:
            account = await self._db.get_account(uid)
            return BrandContext.from_account(account) if account else BrandContext()

        try:
            if self._cache is None:
                return await load()
            return await self._cache.get_or_load(
                self._brand_cache_key(uid), load, ttl_seconds=self._ttl_seconds
            )
        except Exception:
            logger.warning("Brand context lookup failed for %s; continuing without it", uid, exc_info=True)
            return BrandContext()

    async def invalidate(self, uid: str) -> None:
        """Drop the cached context after the profile collaborators edit the brand."""
        if self._cache is not None:
            await self._cache.delete(self._brand_cache_key(uid))

    @staticmethod
    def _brand_cache_key(uid: str) -> str:
        return f"brand:user:{uid}:context"
