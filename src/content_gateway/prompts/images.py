from __future__ import annotations

import re
from typing import Optional, Sequence, Tuple

from ..models.account import BrandContext
from .compiler import brand_instruction, tone_instruction


DEFAULT_ASPECT_RATIO = "1:1"

# Checked in order; the first rule with a matching keyword wins. Vertical
# formats come first so "youtube shorts" resolves to 9:16.
PLATFORM_ASPECT_RATIOS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("story", "tiktok", "reel", "short"), "9:16"),
    (("youtube", "twitter"), "16:9"),
)

PERSON_KEYWORDS = frozenset({"people", "person", "man", "woman", "guy", "girl"})

_WORD = re.compile(r"[a-z]+")


def resolve_aspect_ratio(explicit: Optional[str], platform: Optional[str]) -> str:
    """
    An explicit ratio other than the default always wins; otherwise the
    ratio is inferred from platform keywords.
    """
    if explicit and explicit != DEFAULT_ASPECT_RATIO:
        return explicit
    platform_text = (platform or "").lower()
    for keywords, ratio in PLATFORM_ASPECT_RATIOS:
        if any(keyword in platform_text for keyword in keywords):
            return ratio
    return DEFAULT_ASPECT_RATIO


def mentions_person(topic: Optional[str]) -> bool:
    """Whole-word scan of the topic for tokens that refer to a person."""
    words = _WORD.findall((topic or "").lower())
    return any(word in PERSON_KEYWORDS for word in words)


def build_smart_image_prompt(
    topic: str,
    aspect_ratio: str,
    tones: Sequence[str] = (),
    brand: Optional[BrandContext] = None,
    has_reference: bool = False,
) -> str:
    lines = [
        f'Create a single, high-impact social media image about: "{topic}".',
        f"Aspect ratio: {aspect_ratio}.",
        tone_instruction(tones),
    ]
    brand_line = brand_instruction(brand) if brand else ""
    if brand_line:
        lines.append(brand_line)

    if has_reference and not mentions_person(topic):
        lines.extend(
            [
                "A reference photo of a person is attached.",
                "Place the EXACT person from the reference image on the left 30-40% of the frame.",
                "Preserve their facial identity precisely: same face, features, skin tone and hair.",
                "The rest of the frame shows the topic as a clean, eye-catching scene.",
                "Do NOT create a collage. Do NOT show multiple variations or panels.",
                "Do NOT add any text, captions or watermarks.",
                "Do NOT use cartoon, illustration or anime styling: keep it photorealistic.",
            ]
        )
    elif has_reference:
        lines.append("Use the attached image as the visual reference for the scene.")

    lines.append("Return only the image.")
    return "\n".join(lines)


def build_standalone_image_prompt(topic: str, brand: Optional[BrandContext] = None) -> str:
    brand = brand or BrandContext()
    lines = [
        f'Generate a professional, eye-catching social media image about: "{topic}".',
        "Style: clean composition, vibrant colors, high detail, no text.",
    ]
    if not brand.is_empty:
        lines.append(
            f"It is for {brand.name or 'a brand'}"
            + (f" in the {brand.industry} industry" if brand.industry else "")
            + (f", aimed at {brand.audience}" if brand.audience else "")
            + "."
        )
    return "\n".join(lines)
