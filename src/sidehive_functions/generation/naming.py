"""
SideHive Functions - Business name generation.

Candidates from the model are filtered (cliché denylist, filler words,
alliteration, word-count range, descriptive-mode single words, anything
already rejected, banned or visible), scored, ranked, and topped up with
the ensure-N combinator until the batch is full or a placeholder fills in.
"""

import logging
import re
from dataclasses import dataclass

from pydantic import BaseModel, Field

from sidehive.catalog import Audience, NamingMode, Vibe, describe
from sidehive.core.ensure import EnsureResult, ensure_n_valid
from sidehive_functions.generation.normalize import Brief
from sidehive_functions.llm import call_llm

logger = logging.getLogger(__name__)

BATCH_SIZE = 6

# Corporate/cliché vocabulary never allowed in a name
BASE_BANNED_WORDS = {
    "magic", "haven", "corner", "solutions", "group", "hub", "studio", "edge",
    "peak", "core", "nexus", "spark", "sphere", "venture", "genesis", "blueprint",
    "capital", "pro", "plus", "global", "elite", "pylon", "pith", "apex", "zenith",
    "paradigm", "synergy", "leverage", "pivot", "disrupt", "quantum", "matrix",
    "vortex", "cipher", "prism",
}

FILLER_WORDS = {"hq", "house", "palace", "funhouse", "co", "corp", "llc"}

COMMON_WORDS = {"the", "and", "for", "with", "your", "our", "my"}

GENERIC_WORDS = {"company", "business", "service", "shop", "store"}

ARCHETYPES = [
    "Professional & Trustworthy",
    "Creative & Visionary",
    "Playful & Memorable",
    "Personalized",
]

FALLBACK_NAMES = [
    "Kindred Path",
    "Brightfold",
    "Open Lantern",
    "Tallwater",
    "Fieldnote",
    "Northmeadow",
    "Honest Compass",
    "Willowmark",
]


class NameIdea(BaseModel):
    """One name as the model proposes it."""
    name: str
    tagline: str = ""
    archetype: str = ""


class NameIdeas(BaseModel):
    names: list[NameIdea] = Field(default_factory=list)


@dataclass
class NameScore:
    brevity: int
    distinctiveness: int
    relevance: int

    @property
    def total(self) -> int:
        return self.brevity + self.distinctiveness + self.relevance


# =============================================================================
# Filtering & scoring
# =============================================================================


def tokenize(name: str) -> list[str]:
    """Whitespace-delimited words, as the user sees them."""
    return [word for word in re.split(r"\s+", name.strip()) if word]


def _bare(word: str) -> str:
    return re.sub(r"[^\w']", "", word).lower()


def is_alliterative(words: list[str]) -> bool:
    initials = [_bare(w)[:1] for w in words if _bare(w)]
    return len(initials) >= 2 and len(set(initials)) == 1


def check_name(
    name: str,
    *,
    mode: NamingMode,
    banned_words: set[str],
    rejected_names: set[str],
    visible_names: set[str],
) -> str | None:
    """
    Rejection reason for a candidate name, or None if it passes.

    `banned_words`, `rejected_names` and `visible_names` are lower-cased.
    """
    words = tokenize(name)
    if not words:
        return "empty"

    key = " ".join(words).lower()
    if key in rejected_names:
        return "previously_rejected"
    if key in visible_names:
        return "duplicate"

    max_words = 3 if mode == NamingMode.PERSONAL else 2
    if len(words) > max_words:
        return "too_many_words"

    for word in words:
        bare = _bare(word)
        if bare.endswith("'s"):
            bare = bare[:-2]
        if bare in banned_words:
            return f"banned_word:{bare}"
        if bare in BASE_BANNED_WORDS:
            return f"cliche:{bare}"
        if bare in FILLER_WORDS:
            return f"filler:{bare}"

    if is_alliterative(words):
        return "alliteration"

    if mode == NamingMode.DESCRIPTIVE and len(words) == 1:
        return "invented_single_word"

    return None


def score_name(name: str) -> NameScore:
    words = [_bare(w) for w in tokenize(name)]
    brevity = 5 if len(words) == 1 else 4 if len(words) == 2 else 3
    distinctiveness = 2 if any(w in COMMON_WORDS for w in words) else 5
    relevance = 2 if any(w in GENERIC_WORDS for w in words) else 5
    return NameScore(brevity=brevity, distinctiveness=distinctiveness, relevance=relevance)


def rank_names(ideas: list[NameIdea]) -> list[NameIdea]:
    """Highest total score first; ties keep generation order."""
    return sorted(ideas, key=lambda idea: score_name(idea.name).total, reverse=True)


def analyze_rejected_patterns(rejected_names: list[str]) -> list[str]:
    """Plain-language guidance derived from what the user turned down."""
    guidance = []
    if any("'s" in name.lower() for name in rejected_names):
        guidance.append("Avoid possessive names (no \"'s\").")
    if any(len(tokenize(name)) > 2 for name in rejected_names):
        guidance.append("Keep names to one or two words.")
    return guidance


def to_name_option(idea: NameIdea) -> dict:
    score = score_name(idea.name)
    return {
        "name": " ".join(tokenize(idea.name)),
        "tagline": idea.tagline,
        "archetype": idea.archetype or ARCHETYPES[0],
        "score": {
            "brevity": score.brevity,
            "distinctiveness": score.distinctiveness,
            "relevance": score.relevance,
            "total": score.total,
        },
    }


# =============================================================================
# Prompts
# =============================================================================

SYSTEM_PROMPT = """You name small businesses started by everyday people.

Rules:
- One or two words (up to three only when built on the founder's name).
- No alliteration. No possessives.
- Never use corporate filler: HQ, House, Palace, Funhouse, Studio, Co., Corp., LLC.
- Never use tired startup vocabulary (Hub, Edge, Spark, Nexus, Apex, Quantum and the like).
- Each name comes with a short tagline (under 8 words) and one archetype from:
  Professional & Trustworthy, Creative & Visionary, Playful & Memorable, Personalized.
"""


def build_user_prompt(brief: Brief, count: int, exclude: list[str]) -> str:
    vibes = ", ".join(describe(brief.vibes, Vibe))
    audiences = ", ".join(describe(brief.audiences, Audience))
    lines = [
        f"Business idea: {brief.idea}",
        f"Audience: {audiences}",
        f"Tone: {vibes}",
        f"Generate exactly {count} distinct names.",
    ]

    about = brief.about_you
    if brief.naming_mode == NamingMode.PERSONAL:
        parts = [
            part for part, include in (
                (about.first_name, about.include_first_name),
                (about.last_name, about.include_last_name),
            )
            if include and part
        ]
        if parts:
            lines.append(f"Build every name around the founder's name: {' '.join(parts)}.")
    elif brief.naming_mode == NamingMode.DESCRIPTIVE:
        lines.append("Use real words that describe what the business does; no coined words.")
    else:
        lines.append("Brandable names are welcome, including coined words.")

    if about.expertise:
        lines.append(f"Founder expertise: {about.expertise}")

    banned = sorted({w for w in brief.banned_words if w})
    if banned:
        lines.append(f"Do not use these words: {', '.join(banned)}")
    if brief.rejected_names:
        lines.append(f"The user rejected: {', '.join(brief.rejected_names)}")
    lines.extend(analyze_rejected_patterns(brief.rejected_names))
    if exclude:
        lines.append(f"Already shown, do not repeat: {', '.join(exclude)}")
    return "\n".join(lines)


# =============================================================================
# Generation
# =============================================================================


def _fallback_name(check_reason):
    def fallback(index: int, items: list[NameIdea]) -> NameIdea:
        used = {" ".join(tokenize(i.name)).lower() for i in items}
        for candidate in FALLBACK_NAMES:
            if candidate.lower() not in used and check_reason(candidate) is None:
                return NameIdea(name=candidate, tagline="A fresh start", archetype=ARCHETYPES[0])
        return NameIdea(name=f"{FALLBACK_NAMES[0]} {index + 2}", tagline="A fresh start", archetype=ARCHETYPES[0])

    return fallback


async def generate_names(
    brief: Brief,
    *,
    count: int = BATCH_SIZE,
    visible_names: list[str] | None = None,
) -> EnsureResult[NameIdea]:
    """Generate `count` valid, ranked names."""
    banned = {_bare(w) for w in brief.banned_words if _bare(w)}
    rejected = {" ".join(tokenize(n)).lower() for n in brief.rejected_names}
    visible = {" ".join(tokenize(n)).lower() for n in (visible_names or [])}

    async def generate(needed: int, accepted: list[NameIdea]) -> list[NameIdea]:
        exclude = list(visible_names or []) + [idea.name for idea in accepted]
        # Ask for a couple extra; filtering usually drops some
        result = await call_llm(
            response_model=NameIdeas,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=build_user_prompt(brief, needed + 2, exclude),
            operation="names",
        )
        return result.names

    def check(idea: NameIdea, accepted: list[NameIdea]) -> str | None:
        return check_name(
            idea.name,
            mode=brief.naming_mode,
            banned_words=banned,
            rejected_names=rejected,
            visible_names=visible,
        )

    result = await ensure_n_valid(
        generate,
        count=count,
        check=check,
        fallback=_fallback_name(lambda name: check(NameIdea(name=name), [])),
        key=lambda idea: " ".join(tokenize(idea.name)),
        rank=rank_names,
    )
    if result.rejected:
        logger.info(f"Filtered {len(result.rejected)} names: {[reason for _, reason in result.rejected]}")
    return result
