from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, TypeVar


T = TypeVar("T")


class AsyncCacheBackend(ABC):
    """
    Async cache for read-mostly lookups such as the brand context used in
    prompt personalization. Never used for balances: credit reads always go
    through a store transaction.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]: ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[T]],
        ttl_seconds: Optional[int] = None,
    ) -> T:
        """Cached value for ``key``, loading and storing it on a miss."""
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await loader()
        await self.set(key, value, ttl_seconds=ttl_seconds)
        return value
