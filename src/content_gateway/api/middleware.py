"""
Allow-all CORS for the browser clients.

Preflight ``OPTIONS`` requests are answered here with ``204 No Content`` and
never reach the router; every other response gets the allow-origin header.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Sequence

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


logger = logging.getLogger(__name__)


class CorsMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: Any,
        *,
        allow_origin: str = "*",
        allow_methods: Sequence[str] = ("GET", "POST", "OPTIONS"),
        allow_headers: Sequence[str] = ("Authorization", "Content-Type", "X-Request-Id"),
        max_age: int = 3600,
    ) -> None:
        super().__init__(app)
        self.allow_origin = allow_origin
        self.allow_methods = ", ".join(allow_methods)
        self.allow_headers = ", ".join(allow_headers)
        self.max_age = max_age

    def _preflight_headers(self, requested_headers: Optional[str]) -> Dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.allow_origin,
            "Access-Control-Allow-Methods": self.allow_methods,
            "Access-Control-Allow-Headers": requested_headers or self.allow_headers,
            "Access-Control-Max-Age": str(self.max_age),
        }

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Any]
    ) -> Response:
        if request.method == "OPTIONS":
            logger.debug("Answering preflight for %s", request.url.path)
            return Response(
                status_code=204,
                headers=self._preflight_headers(
                    request.headers.get("Access-Control-Request-Headers")
                ),
            )

        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = self.allow_origin
        return response
