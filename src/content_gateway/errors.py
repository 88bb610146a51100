from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    INVALID_ARGUMENT = "invalid_argument"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    NOT_FOUND = "not_found"
    UPSTREAM = "upstream"
    INTERNAL = "internal"


class GatewayError(Exception):
    """
    Base of every failure the gateway reports to a caller.

    Each subclass carries its kind and HTTP status; the API layer is the only
    place that turns one into a response body.
    """

    kind: Optional[ErrorKind] = ErrorKind.INTERNAL
    status_code: int = 500
    public_message: Optional[str] = None

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.public_message or self.message}


class AuthError(GatewayError):
    kind = ErrorKind.UNAUTHENTICATED
    status_code = 401

    def __init__(self, message: str = "unauthenticated: You must be logged in.") -> None:
        super().__init__(message)


class PayloadValidationError(GatewayError):
    kind = ErrorKind.INVALID_ARGUMENT
    status_code = 400

    def __init__(self, message: str, debug: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.debug = debug or {}

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, "debug": self.debug}


class QuotaExceeded(GatewayError):
    kind = ErrorKind.RESOURCE_EXHAUSTED
    status_code = 429

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"Insufficient credits. You need {required} credits but have {available}."
        )
        self.required = required
        self.available = available


class UnknownType(GatewayError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, request_type: Optional[str]) -> None:
        super().__init__(f"Invalid prompt type: {request_type}")
        self.request_type = request_type


class UpstreamModelError(GatewayError):
    kind = ErrorKind.UPSTREAM
    status_code = 500
    public_message = "Content generation failed. Please try again."


class LedgerError(GatewayError):
    kind = ErrorKind.INTERNAL
    status_code = 500
    public_message = "Internal server error."
