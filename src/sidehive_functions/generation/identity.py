"""
SideHive Functions - Brand identity extras.

Tagline, short bio, palette and a simple SVG mark for the top-ranked name.
Model-written SVG is sanitized; anything unusable falls back to a monogram.
"""

import html
import logging
import re

from pydantic import BaseModel, Field

from sidehive.catalog import Audience, Vibe, describe
from sidehive_functions.generation.normalize import Brief
from sidehive_functions.llm import call_llm

logger = logging.getLogger(__name__)

MAX_SVG_LENGTH = 20_000

DEFAULT_COLORS = ["#2563eb", "#0f172a", "#f8fafc"]

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


class BrandExtras(BaseModel):
    tagline: str
    bio: str
    colors: list[str] = Field(default_factory=list)
    logo_svg: str = ""


def placeholder_svg(name: str, color: str = DEFAULT_COLORS[0]) -> str:
    """Monogram mark used whenever a generated logo is unusable."""
    initials = "".join(word[0] for word in name.split()[:2] if word).upper() or "SH"
    return (
        '<svg viewBox="0 0 320 80" width="320" height="80" xmlns="http://www.w3.org/2000/svg">'
        f'<rect width="320" height="80" rx="12" fill="{color}"/>'
        '<text x="160" y="52" text-anchor="middle" fill="white" '
        'font-family="Arial, sans-serif" font-size="32" font-weight="bold">'
        f"{html.escape(initials)}</text></svg>"
    )


def sanitize_svg(svg: str, *, fallback_name: str = "") -> str:
    """Strip scripts, event handlers and external references from an SVG."""
    cleaned = re.sub(r"<script[^>]*>[\s\S]*?</script>", "", svg or "", flags=re.IGNORECASE)
    cleaned = re.sub(r"<foreignObject[^>]*>[\s\S]*?</foreignObject>", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"\son\w+\s*=\s*(\"[^\"]*\"|'[^']*')", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"javascript:", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"(xlink:)?href\s*=\s*(\"[^\"]*\"|'[^']*')", "", cleaned, flags=re.IGNORECASE)

    if "<svg" not in cleaned or "</svg>" not in cleaned or len(cleaned) > MAX_SVG_LENGTH:
        logger.info("Generated SVG unusable, using monogram placeholder")
        return placeholder_svg(fallback_name)
    return cleaned.strip()


def clean_colors(colors: list[str]) -> list[str]:
    valid = [c for c in colors if _HEX_COLOR.match(c or "")]
    return valid[:5] if valid else list(DEFAULT_COLORS)


SYSTEM_PROMPT = """You write brand starter kits for small businesses.

Return:
- tagline: under 8 words, no hype
- bio: 2-3 sentences in first person plural, warm and specific
- colors: 3 hex colors (#rrggbb) that suit the tone
- logo_svg: a simple flat SVG mark (viewBox 0 0 320 80), no scripts, no external images
"""


async def generate_brand_extras(brief: Brief, business_name: str) -> dict:
    """Tagline, bio, colors and sanitized SVG for a chosen name."""
    user_prompt = "\n".join([
        f"Business name: {business_name}",
        f"Business idea: {brief.idea}",
        f"Audience: {', '.join(describe(brief.audiences, Audience))}",
        f"Tone: {', '.join(describe(brief.vibes, Vibe))}",
    ])
    extras = await call_llm(
        response_model=BrandExtras,
        system_prompt=SYSTEM_PROMPT,
        user_prompt=user_prompt,
        operation="identity",
    )
    colors = clean_colors(extras.colors)
    return {
        "tagline": extras.tagline,
        "bio": extras.bio,
        "colors": colors,
        "logo_svg": sanitize_svg(extras.logo_svg, fallback_name=business_name),
    }
