from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from ..errors import PayloadValidationError
from ..models.request import MAX_TONES, GenerationPayload, GenerationRequest


logger = logging.getLogger(__name__)


TOPIC_MAX_LENGTH = 5000
PROMPT_MAX_LENGTH = 3000

# Older clients send these at the payload root instead of inside ``options``.
ROOT_OPTION_KEYS = (
    "numOutputs",
    "numIdeas",
    "length",
    "language",
    "includeHashtags",
    "includeEmojis",
    "outputSize",
    "videoLength",
    "numVariations",
)

_HTML_TAG = re.compile(r"<[^>]*>")


def decode_body(body: Any) -> Optional[Dict[str, Any]]:
    """
    Decode a request body given as a parsed mapping, a JSON string or raw
    bytes. Anything undecodable yields ``None``; validation downstream
    rejects the empty request.
    """
    data: Any
    if isinstance(body, Mapping):
        data = dict(body)
    elif isinstance(body, str):
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            logger.warning("Could not parse request body string as JSON")
            return None
    elif isinstance(body, (bytes, bytearray, memoryview)):
        try:
            data = json.loads(bytes(body).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("Could not parse request body bytes as JSON")
            return None
    else:
        return None

    if not isinstance(data, dict):
        return None

    # Legacy callable-style envelope: {"data": {"type": ..., "payload": ...}}
    if isinstance(data.get("data"), dict) and not data.get("type"):
        data = data["data"]
    return data


def sanitize_text(value: Any, field_name: str, max_length: int) -> str:
    """Reject non-strings and over-long input, then strip HTML tags."""
    if not isinstance(value, str):
        raise PayloadValidationError(f"{field_name} must be a string")
    if len(value) > max_length:
        raise PayloadValidationError(
            f"{field_name} exceeds maximum length of {max_length} characters"
        )
    return _HTML_TAG.sub("", value).strip()


def _coerce_tones(tones: Any) -> list:
    if not tones:
        return []
    if isinstance(tones, str):
        tones = [tones]
    if not isinstance(tones, list):
        raise PayloadValidationError("tones must be a list of strings")
    cleaned = [str(t).strip() for t in tones if str(t).strip()]
    if len(cleaned) > MAX_TONES:
        logger.info("Dropping %d tones beyond the first %d", len(cleaned) - MAX_TONES, MAX_TONES)
    return cleaned[:MAX_TONES]


def normalize_body(body: Any) -> GenerationRequest:
    data = decode_body(body) or {}

    raw_type = data.get("type")
    request_type = str(raw_type) if raw_type is not None else None

    raw_payload = data.get("payload")
    payload: Dict[str, Any] = dict(raw_payload) if isinstance(raw_payload, dict) else {}

    if payload.get("options") is None:
        payload["options"] = {
            key: payload[key] for key in ROOT_OPTION_KEYS if payload.get(key) is not None
        }

    try:
        if payload.get("topic"):
            payload["topic"] = sanitize_text(payload["topic"], "topic", TOPIC_MAX_LENGTH)
        if payload.get("prompt"):
            payload["prompt"] = sanitize_text(payload["prompt"], "prompt", PROMPT_MAX_LENGTH)
        payload["tones"] = _coerce_tones(payload.get("tones"))
    except PayloadValidationError as exc:
        exc.debug = {"receivedType": request_type}
        raise

    try:
        parsed = GenerationPayload.model_validate(payload)
    except ValidationError as exc:
        raise PayloadValidationError(
            "Invalid payload",
            debug={
                "receivedType": request_type,
                "errors": [
                    {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
                    for err in exc.errors()
                ],
            },
        ) from exc

    return GenerationRequest(type=request_type, payload=parsed)
