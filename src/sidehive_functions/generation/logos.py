"""
SideHive Functions - Logo generation.

Each batch asks the image model for N variations of one style. Anything
that does not come back as an image data URL is replaced by a monogram
placeholder so the client never shows an empty slot.
"""

import asyncio
import base64
import logging

from sidehive.catalog import LOGO_STYLE_META, LogoStyle
from sidehive.core.ensure import EnsureResult, ensure_n_valid
from sidehive_functions.generation.identity import placeholder_svg
from sidehive_functions.llm import generate_image

logger = logging.getLogger(__name__)

BATCH_SIZE = 4


def build_logo_prompt(business_name: str, style: LogoStyle, variation: int) -> str:
    style_desc = LOGO_STYLE_META[style].description
    return (
        f'Create a simple, clean logo mark for "{business_name}". Style: {style_desc}. '
        f"Design variation {variation}. Minimalist, scalable, works well at small sizes. "
        "No text in the logo, just the icon/mark. Flat design, vector style. Transparent background."
    )


def placeholder_logo(business_name: str) -> str:
    svg = placeholder_svg(business_name)
    return "data:image/svg+xml;base64," + base64.b64encode(svg.encode("utf-8")).decode("ascii")


def is_image_data_url(value: str) -> bool:
    return isinstance(value, str) and value.startswith("data:image/") and ";base64," in value


async def generate_logos(
    business_name: str,
    style: LogoStyle,
    *,
    count: int = BATCH_SIZE,
    first_variation: int = 1,
) -> EnsureResult[str]:
    """`count` logo data URLs for one style."""
    next_variation = first_variation

    async def generate(needed: int, accepted: list[str]) -> list[str]:
        nonlocal next_variation
        variations = range(next_variation, next_variation + needed)
        next_variation += needed
        results = await asyncio.gather(
            *(generate_image(build_logo_prompt(business_name, style, v)) for v in variations),
            return_exceptions=True,
        )
        images = []
        for result in results:
            if isinstance(result, BaseException):
                logger.warning(f"Logo variation failed: {result}")
                continue
            images.append(result)
        if not images and not accepted:
            # Every call in the first round failed: surface the first error
            first_error = next(r for r in results if isinstance(r, BaseException))
            raise first_error
        return images

    def check(image: str, accepted: list[str]) -> str | None:
        return None if is_image_data_url(image) else "not_an_image"

    return await ensure_n_valid(
        generate,
        count=count,
        check=check,
        fallback=lambda index, items: placeholder_logo(business_name),
        # Data URLs can be megabytes; dedupe on a prefix plus length
        key=lambda image: f"{image[-64:]}:{len(image)}",
    )
