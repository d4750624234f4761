"""
SideHive Functions - Product idea generation.

Preview products for the storefront, each a thing someone can buy or book.
"""

import logging
import uuid
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from sidehive_functions.llm import call_llm

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 60


class ProductFormat(str, Enum):
    DIGITAL_GUIDE = "Digital Guide"
    TEMPLATE_PACK = "Template Pack"
    WORKSHOP = "Workshop"
    MEMBERSHIP = "Membership"
    ONE_ON_ONE = "1:1 Service"
    GROUP_PROGRAM = "Group Program"
    CHALLENGE = "Challenge"
    COACHING_PACK = "Coaching Pack"
    COURSE = "Course"
    TOOLKIT = "Toolkit"


class ProductIdea(BaseModel):
    id: str = ""
    title: str
    format: ProductFormat
    description: str

    @field_validator("title")
    @classmethod
    def _clip_title(cls, value: str) -> str:
        value = value.strip()
        if len(value) > MAX_TITLE_LENGTH:
            value = value[: MAX_TITLE_LENGTH - 1].rstrip() + "…"
        return value


class ProductIdeas(BaseModel):
    products: list[ProductIdea] = Field(default_factory=list)


def build_system_prompt(max_ideas: int, exclude_ids: list[str]) -> str:
    formats = ", ".join(f.value for f in ProductFormat)
    lines = [
        "You are generating preview product ideas for a storefront. The user already has a monetizable idea.",
        "Return concise, revenue-ready ideas that map directly to the user's description.",
        "",
        "Rules:",
        "- Do NOT include prices, emojis, or hashtags.",
        "- Each idea must feel like a thing someone can purchase or book.",
        "- Description must be 1-2 sentences, outcomes-first, then what's inside/how it works.",
        "- Names should be specific and brand-neutral (avoid puns and hype).",
        f"- Titles are {MAX_TITLE_LENGTH} characters max.",
        f"- Format is one of: {formats}.",
        f"- Generate exactly {max_ideas} unique product ideas.",
    ]
    if exclude_ids:
        lines.append(f"- Do NOT generate ideas similar to these IDs: {', '.join(exclude_ids)}")
    return "\n".join(lines)


def build_user_prompt(idea_text: str, audience_tags: list[str], tone_tags: list[str], max_ideas: int) -> str:
    lines = [f'Generate {max_ideas} revenue-ready product ideas for this business concept: "{idea_text}"']
    if audience_tags:
        lines.append(f"Target audience: {', '.join(audience_tags)}")
    if tone_tags:
        lines.append(f"Tone preferences: {', '.join(tone_tags)}")
    return "\n".join(lines)


async def generate_product_ideas(
    idea_text: str,
    *,
    audience_tags: list[str] | None = None,
    tone_tags: list[str] | None = None,
    max_ideas: int = 4,
    exclude_ids: list[str] | None = None,
) -> list[dict]:
    """Up to `max_ideas` products with unique ids, none of them excluded."""
    exclude = set(exclude_ids or [])
    result = await call_llm(
        response_model=ProductIdeas,
        system_prompt=build_system_prompt(max_ideas, sorted(exclude)),
        user_prompt=build_user_prompt(idea_text, audience_tags or [], tone_tags or [], max_ideas),
        operation="product_ideas",
    )

    products = []
    seen_ids: set[str] = set()
    for idea in result.products:
        if idea.id in exclude:
            continue
        if not idea.id or idea.id in seen_ids:
            idea.id = str(uuid.uuid4())
        seen_ids.add(idea.id)
        products.append(idea.model_dump(mode="json"))
        if len(products) >= max_ideas:
            break

    if len(products) < max_ideas:
        logger.info(f"Product ideas: got {len(products)}/{max_ideas}")
    return products
