"""
SideHive Functions - Onboarding input normalization.

Accepts both the current request shape and the legacy one
(`audience`/`tone`/camelCase keys), fills defaults, and reports which
defaults were applied so prompts and logs can tell real input from filler.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sidehive.catalog import NamingMode
from sidehive.core.errors import ValidationFailedError

logger = logging.getLogger(__name__)

DEFAULT_AUDIENCE = "General"
DEFAULT_VIBE = "friendly"

# Legacy camelCase keys -> current keys
_KEY_ALIASES = {
    "aboutYou": "about_you",
    "bannedWords": "banned_words",
    "rejectedNames": "rejected_names",
    "excludeNames": "exclude_names",
    "namingPreference": "naming_mode",
    "namingMode": "naming_mode",
    "firstName": "first_name",
    "lastName": "last_name",
    "includeFirstName": "include_first_name",
    "includeLastName": "include_last_name",
    "experience": "expertise",
}


def _rename_keys(data: dict) -> dict:
    return {_KEY_ALIASES.get(k, k): v for k, v in data.items()}


class AboutYou(BaseModel):
    first_name: str = ""
    last_name: str = ""
    expertise: str = ""
    motivation: str = ""
    include_first_name: bool = False
    include_last_name: bool = False

    @model_validator(mode="before")
    @classmethod
    def _legacy_keys(cls, data: Any) -> Any:
        return _rename_keys(data) if isinstance(data, dict) else data


class BriefInput(BaseModel):
    """Fields shared by every generation request that works from the brief."""

    model_config = ConfigDict(extra="ignore")

    idea: str = ""
    audiences: list[str] = Field(default_factory=list)
    vibes: list[str] = Field(default_factory=list)
    products: list[dict] = Field(default_factory=list)
    about_you: AboutYou | None = None
    naming_mode: NamingMode = NamingMode.INVENTED
    banned_words: list[str] = Field(default_factory=list)
    rejected_names: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _backwards_compat(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = _rename_keys(data)

        if not data.get("audiences") and data.get("audience"):
            data["audiences"] = [data["audience"]]
        if not data.get("vibes"):
            legacy_vibe = data.get("tone") or data.get("styleCategory")
            if legacy_vibe:
                data["vibes"] = [legacy_vibe]

        # Flat legacy about-you fields
        if data.get("about_you") is None and any(k in data for k in ("first_name", "last_name", "expertise")):
            data["about_you"] = {
                key: data[key]
                for key in ("first_name", "last_name", "expertise", "motivation",
                            "include_first_name", "include_last_name")
                if key in data
            }

        # Older clients sent "business" for invented names
        if data.get("naming_mode") == "business":
            data["naming_mode"] = NamingMode.INVENTED.value
        return data


@dataclass
class Brief:
    """Normalized brief used to build prompts and filters."""
    idea: str
    audiences: list[str]
    vibes: list[str]
    products: list[dict]
    about_you: AboutYou
    naming_mode: NamingMode
    banned_words: list[str]
    rejected_names: list[str]
    applied_defaults: list[str] = field(default_factory=list)


def require_fields(data: BriefInput, *names: str) -> None:
    """Raise ValidationFailedError listing every missing required field."""
    field_errors: dict[str, list[str]] = {}
    for name in names:
        value = getattr(data, name)
        if isinstance(value, str):
            value = value.strip()
        if not value:
            field_errors[name] = ["This field is required."]
    if field_errors:
        raise ValidationFailedError("Missing required fields", field_errors=field_errors)


def normalize_brief(data: BriefInput) -> Brief:
    """Apply defaults and fold unchecked name parts into banned words."""
    applied_defaults: list[str] = []

    audiences = [a for a in data.audiences if a.strip()]
    if not audiences:
        audiences = [DEFAULT_AUDIENCE]
        applied_defaults.append("audiences")

    vibes = [v for v in data.vibes if v.strip()]
    if not vibes:
        vibes = [DEFAULT_VIBE]
        applied_defaults.append("vibes")

    if not data.products:
        applied_defaults.append("products")

    about_you = data.about_you
    if about_you is None:
        about_you = AboutYou()
        applied_defaults.append("about_you")

    banned_words = list(data.banned_words)
    if not about_you.include_first_name and about_you.first_name:
        banned_words.extend(re.split(r"\s+", about_you.first_name.strip()))
    if not about_you.include_last_name and about_you.last_name:
        banned_words.extend(re.split(r"\s+", about_you.last_name.strip()))

    if applied_defaults:
        logger.debug(f"Applied defaults: {applied_defaults}")

    return Brief(
        idea=data.idea.strip(),
        audiences=audiences,
        vibes=vibes,
        products=list(data.products),
        about_you=about_you,
        naming_mode=data.naming_mode,
        banned_words=banned_words,
        rejected_names=list(data.rejected_names),
        applied_defaults=applied_defaults,
    )
