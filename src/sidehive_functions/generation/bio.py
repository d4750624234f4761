"""
SideHive Functions - Short business bio.

One bio per call. The attempt number is echoed back; the client stops
asking after the third.
"""

from pydantic import BaseModel

from sidehive.catalog import Audience, Vibe, describe
from sidehive_functions.generation.normalize import Brief
from sidehive_functions.llm import call_llm

MAX_ATTEMPTS = 3


class BioDraft(BaseModel):
    bio: str


SYSTEM_PROMPT = """You write the short "about" blurb for a small business storefront.

2-3 sentences, first person plural, warm and specific. No hype, no emojis,
no hashtags. Mention who it helps and what they get.
"""


def build_user_prompt(brief: Brief, business_name: str, attempt: int) -> str:
    lines = [
        f"Business name: {business_name}",
        f"Business idea: {brief.idea}",
        f"Audience: {', '.join(describe(brief.audiences, Audience))}",
        f"Tone: {', '.join(describe(brief.vibes, Vibe))}",
    ]
    about = brief.about_you
    if about.expertise:
        lines.append(f"Founder expertise: {about.expertise}")
    if about.motivation:
        lines.append(f"Why they started: {about.motivation}")
    if attempt > 1:
        lines.append("Take a noticeably different angle from a typical first draft.")
    return "\n".join(lines)


async def generate_bio(brief: Brief, business_name: str, *, attempt: int = 1) -> dict:
    draft = await call_llm(
        response_model=BioDraft,
        system_prompt=SYSTEM_PROMPT,
        user_prompt=build_user_prompt(brief, business_name, attempt),
        operation="bio",
    )
    return {
        "bio": draft.bio.strip(),
        "attempt": attempt,
        "locked": attempt >= MAX_ATTEMPTS,
    }
