from __future__ import annotations

import base64
import binascii
import re
from typing import Any, Optional, Tuple

from .client import InlineImage


_DATA_URL = re.compile(r"^data:(?P<mime>[\w/+.-]+)?;base64,(?P<data>.*)$", re.DOTALL)

DEFAULT_IMAGE_MIME = "image/jpeg"


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json / ```) the model wraps output in."""
    return text.replace("```json", "").replace("```", "").strip()


def parse_data_url(value: str) -> Tuple[str, bytes]:
    """
    Split a base64 image given either as a ``data:`` URL or as bare base64.
    Bare payloads are assumed to be JPEG, which is what browsers upload.
    """
    if not value:
        raise ValueError("Image data is empty")
    mime_type = DEFAULT_IMAGE_MIME
    b64 = value
    match = _DATA_URL.match(value.strip())
    if match:
        mime_type = match.group("mime") or DEFAULT_IMAGE_MIME
        b64 = match.group("data")
    try:
        data = base64.b64decode(b64, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image data is not valid base64") from exc
    if not data:
        raise ValueError("Image data is empty")
    return mime_type, data


def inline_image_from_data_url(value: str) -> InlineImage:
    mime_type, data = parse_data_url(value)
    return InlineImage(mime_type=mime_type, data=data)


def to_data_url(data: bytes | str, mime_type: str = "image/png") -> str:
    b64 = data if isinstance(data, str) else base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{b64}"


def extract_inline_image(response: Any) -> Optional[str]:
    """
    First inline image in the model response as a ``data:`` URI, scanning
    candidates in order and each candidate's parts in order. ``None`` when the
    model returned no image at all (e.g. a text-only refusal).
    """
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and getattr(inline, "data", None):
                return to_data_url(inline.data, getattr(inline, "mime_type", None) or "image/png")
    return None
