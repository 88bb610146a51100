from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..errors import GatewayError
from ..models.api_models import ErrorResponse, GenerateResponse
from ..services.gateway import ContentGateway


logger = logging.getLogger(__name__)

router = APIRouter(tags=["generation"])

INTERNAL_ERROR_BODY = {"error": "Internal server error."}

ERROR_RESPONSES = {status: {"model": ErrorResponse} for status in (400, 401, 404, 429, 500)}


def get_gateway(request: Request) -> ContentGateway:
    return request.app.state.gateway


@router.post("/generateContent", response_model=GenerateResponse, responses=ERROR_RESPONSES)
async def generate_content(request: Request) -> JSONResponse:
    """
    The single generation endpoint. The body is read raw because callers send
    both ``{type, payload}`` and the ``{data: {...}}`` callable envelope.
    """
    correlation_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
    body = await request.body()

    try:
        response = await get_gateway(request).generate(
            body,
            request.headers.get("Authorization"),
            correlation_id=correlation_id,
        )
    except GatewayError as exc:
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "generateContent failed with %s: %s",
            exc.kind.value if exc.kind else "error",
            exc.message,
            extra={"correlation_id": correlation_id},
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())
    except Exception:
        logger.exception(
            "Unhandled error in generateContent",
            extra={"correlation_id": correlation_id},
        )
        return JSONResponse(status_code=500, content=INTERNAL_ERROR_BODY)

    return JSONResponse(content=response.model_dump(by_alias=True))
