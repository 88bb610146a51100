"""Circular face overlay onto a base image.

Standalone primitive: the smart-image pipeline leaves identity blending to the
model, so nothing on the request path calls this today.
"""

from __future__ import annotations

import io
from enum import Enum
from typing import Tuple, Union

from PIL import Image, ImageDraw, ImageOps


FACE_SCALE = 0.35
BORDER = 8
MARGIN = 30
BORDER_COLOR = (255, 255, 255, 255)


class FacePosition(str, Enum):
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"


def face_size_for(base_height: int) -> int:
    return round(base_height * FACE_SCALE)


def overlay_origin(
    base_size: Tuple[int, int], face_size: int, position: Union[FacePosition, str]
) -> Tuple[int, int]:
    """Top-left corner of the bordered overlay, ``MARGIN`` px from the edges."""
    position = FacePosition(position)
    width, height = base_size
    side = face_size + 2 * BORDER
    left = MARGIN if position in (FacePosition.TOP_LEFT, FacePosition.BOTTOM_LEFT) else width - side - MARGIN
    top = MARGIN if position in (FacePosition.TOP_LEFT, FacePosition.TOP_RIGHT) else height - side - MARGIN
    return left, top


def circular_face(face: Image.Image, face_size: int) -> Image.Image:
    """Cover-fit to a square, mask to a circle, then pad with a white border."""
    fitted = ImageOps.fit(face.convert("RGBA"), (face_size, face_size), method=Image.Resampling.LANCZOS)

    mask = Image.new("L", (face_size, face_size), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, face_size - 1, face_size - 1), fill=255)
    fitted.putalpha(mask)

    side = face_size + 2 * BORDER
    bordered = Image.new("RGBA", (side, side), BORDER_COLOR)
    bordered.paste(fitted, (BORDER, BORDER))
    return bordered


def composite(base: bytes, face: bytes, position: Union[FacePosition, str]) -> bytes:
    """Overlay ``face`` onto ``base`` at one of the four corners; returns PNG bytes.

    Raises ValueError for an unknown position and PIL.UnidentifiedImageError
    when either input is not an image.
    """
    base_image = Image.open(io.BytesIO(base)).convert("RGBA")
    face_image = Image.open(io.BytesIO(face))

    face_size = face_size_for(base_image.height)
    overlay = circular_face(face_image, face_size)
    base_image.alpha_composite(overlay, dest=overlay_origin(base_image.size, face_size, position))

    out = io.BytesIO()
    base_image.save(out, format="PNG")
    return out.getvalue()
