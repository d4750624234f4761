"""
SideHive - Option catalogs.

Vibes, audiences, logo styles and naming modes are closed enums, each with
a metadata table. The tables are checked for exhaustiveness at import time
so adding an enum member without metadata fails loudly.
"""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class OptionMeta:
    """Display and prompt metadata for one option."""
    label: str
    description: str
    icon: str = ""


class Vibe(str, Enum):
    PROFESSIONAL = "professional"
    PLAYFUL = "playful"
    BOLD = "bold"
    VISIONARY = "visionary"
    FRIENDLY = "friendly"
    EDUCATIONAL = "educational"
    INSPIRATIONAL = "inspirational"


class Audience(str, Enum):
    PARENTS = "parents"
    LEARNERS = "learners"
    ENTREPRENEURS = "entrepreneurs"
    PROFESSIONALS = "professionals"
    CREATORS = "creators"
    LOCAL = "local"
    GLOBAL = "global"
    HOBBYISTS = "hobbyists"
    EVERYONE = "everyone"


class LogoStyle(str, Enum):
    MODERN = "modern"
    PLAYFUL = "playful"
    BOLD = "bold"
    PROFESSIONAL = "professional"
    ICON = "icon"
    RETRO = "retro"
    GRADIENT = "gradient"


class NamingMode(str, Enum):
    """How business names are built."""
    INVENTED = "invented"  # brandable, may be a coined word
    DESCRIPTIVE = "descriptive"  # real words that say what it does
    PERSONAL = "personal"  # built on the founder's name


VIBE_META: dict[Vibe, OptionMeta] = {
    Vibe.PROFESSIONAL: OptionMeta("Professional", "Clear, credible, trustworthy", "💼"),
    Vibe.PLAYFUL: OptionMeta("Playful", "Fun, energetic, approachable", "😊"),
    Vibe.BOLD: OptionMeta("Bold", "Confident, impactful, daring", "⚡"),
    Vibe.VISIONARY: OptionMeta("Visionary", "Future-focused, innovative", "🚀"),
    Vibe.FRIENDLY: OptionMeta("Friendly", "Warm, welcoming, personal", "❤️"),
    Vibe.EDUCATIONAL: OptionMeta("Educational", "Informative, clear, helpful", "📖"),
    Vibe.INSPIRATIONAL: OptionMeta("Inspirational", "Motivating, uplifting, empowering", "💡"),
}

AUDIENCE_META: dict[Audience, OptionMeta] = {
    Audience.PARENTS: OptionMeta("Parents & Families", "Busy parents juggling it all", "👶"),
    Audience.LEARNERS: OptionMeta("Learners & Students", "People eager to grow", "🎓"),
    Audience.ENTREPRENEURS: OptionMeta("Entrepreneurs & Side-Hustlers", "Building their dreams", "💼"),
    Audience.PROFESSIONALS: OptionMeta("Working Professionals", "Career-focused achievers", "🎯"),
    Audience.CREATORS: OptionMeta("Creators & Influencers", "Content creators & artists", "🎨"),
    Audience.LOCAL: OptionMeta("Local Community", "Your neighbors & local area", "📍"),
    Audience.GLOBAL: OptionMeta("Global Audience", "Anyone, anywhere", "🌍"),
    Audience.HOBBYISTS: OptionMeta("Hobbyists / Special Interests", "Passionate enthusiasts", "❤️"),
    Audience.EVERYONE: OptionMeta("Everyone", "No specific audience", "👥"),
}

LOGO_STYLE_META: dict[LogoStyle, OptionMeta] = {
    LogoStyle.MODERN: OptionMeta("Modern", "modern minimalist, clean lines, simple geometric shapes"),
    LogoStyle.PLAYFUL: OptionMeta("Playful", "playful and colorful, fun shapes, vibrant colors"),
    LogoStyle.BOLD: OptionMeta("Bold", "bold typography-focused, strong letterforms"),
    LogoStyle.PROFESSIONAL: OptionMeta("Professional", "clean professional, corporate, trustworthy"),
    LogoStyle.ICON: OptionMeta("Icon", "icon-based, symbolic, memorable mark"),
    LogoStyle.RETRO: OptionMeta("Retro", "retro vintage style, nostalgic aesthetic"),
    LogoStyle.GRADIENT: OptionMeta("Gradient", "dynamic gradient, modern colorful transitions"),
}

NAMING_MODE_META: dict[NamingMode, OptionMeta] = {
    NamingMode.INVENTED: OptionMeta("Brandable", "Short, memorable, may be a coined word"),
    NamingMode.DESCRIPTIVE: OptionMeta("Descriptive", "Real words that say what the business does"),
    NamingMode.PERSONAL: OptionMeta("Personal", "Built around the founder's own name"),
}


def _check_exhaustive(enum_cls: type[Enum], table: dict) -> None:
    missing = [member.value for member in enum_cls if member not in table]
    if missing:
        raise RuntimeError(f"{enum_cls.__name__} members without metadata: {missing}")


_TABLES: dict[type[Enum], dict] = {
    Vibe: VIBE_META,
    Audience: AUDIENCE_META,
    LogoStyle: LOGO_STYLE_META,
    NamingMode: NAMING_MODE_META,
}

for _enum_cls, _table in _TABLES.items():
    _check_exhaustive(_enum_cls, _table)


def get_options(enum_cls: type[Enum]) -> list[dict]:
    """Options for a catalog as [{id, label, description, icon}]."""
    table = _TABLES[enum_cls]
    return [
        {"id": member.value, "label": meta.label, "description": meta.description, "icon": meta.icon}
        for member, meta in table.items()
    ]


def describe(values: list[str], enum_cls: type[Enum]) -> list[str]:
    """Labels for known values; unknown free-text values pass through."""
    table = _TABLES[enum_cls]
    labels = []
    for value in values:
        try:
            labels.append(table[enum_cls(value)].label)
        except ValueError:
            labels.append(value)
    return labels
