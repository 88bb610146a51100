from __future__ import annotations

import io

import pytest
from PIL import Image

from content_gateway.imaging.compositor import (
    BORDER,
    MARGIN,
    composite,
    face_size_for,
    overlay_origin,
)

RED = (255, 0, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)


def _close(actual, expected, tolerance=2):
    return all(abs(a - e) <= tolerance for a, e in zip(actual, expected))


def _png(size, color) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", size, color).save(out, format="PNG")
    return out.getvalue()


@pytest.fixture
def base() -> bytes:
    return _png((400, 300), RED)


@pytest.fixture
def face() -> bytes:
    # non-square on purpose: cover-fit crops it
    return _png((100, 150), BLUE)


def test_face_size_is_35_percent_of_base_height():
    assert face_size_for(300) == 105
    assert face_size_for(1080) == 378


@pytest.mark.parametrize(
    "position, expected",
    [
        ("top-left", (30, 30)),
        ("top-right", (400 - 121 - 30, 30)),
        ("bottom-left", (30, 300 - 121 - 30)),
        ("bottom-right", (400 - 121 - 30, 300 - 121 - 30)),
    ],
)
def test_overlay_origin(position, expected):
    assert overlay_origin((400, 300), 105, position) == expected


def test_composite_top_left(base, face):
    result = Image.open(io.BytesIO(composite(base, face, "top-left")))

    assert result.format == "PNG"
    assert result.size == (400, 300)
    pixels = result.convert("RGB")
    # circle center
    assert _close(pixels.getpixel((MARGIN + BORDER + 52, MARGIN + BORDER + 52)), BLUE)
    # white border band
    assert pixels.getpixel((MARGIN + 2, MARGIN + 60)) == WHITE
    # square corner outside the circle shows the base
    assert pixels.getpixel((MARGIN + BORDER + 1, MARGIN + BORDER + 1)) == RED
    # untouched base
    assert pixels.getpixel((200, 150)) == RED


def test_composite_bottom_right(base, face):
    result = Image.open(io.BytesIO(composite(base, face, "bottom-right"))).convert("RGB")

    left, top = overlay_origin((400, 300), 105, "bottom-right")
    assert _close(result.getpixel((left + 60, top + 60)), BLUE)
    assert result.getpixel((MARGIN + 60, MARGIN + 60)) == RED


def test_unknown_position_is_rejected(base, face):
    with pytest.raises(ValueError):
        composite(base, face, "center")
