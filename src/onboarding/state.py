"""
Onboarding State Management.

The form state is the single record every step renders from. It is only
changed through FlowController.advance(), which writes it to durable
storage first and syncs it to the server in the background.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
import json


class OnboardingStep(Enum):
    """Onboarding flow steps, in order."""
    IDEA = "idea"                    # Step 1: what the business is
    PRODUCTS = "products"            # Step 2: pick preview products
    ABOUT_YOU = "about_you"          # Step 3: founder details
    VIBE_AUDIENCE = "vibe_audience"  # Step 4: tone + audience tags
    IDENTITY = "identity"            # Step 5: name negotiation
    LOGO = "logo"                    # Step 6: logo negotiation + bio
    COMPLETE = "complete"            # Done


STEP_ORDER = list(OnboardingStep)


@dataclass
class AboutYouForm:
    first_name: str = ""
    last_name: str = ""
    expertise: str = ""
    motivation: str = ""
    include_first_name: bool = False
    include_last_name: bool = False


@dataclass
class BusinessIdentity:
    """What the user confirmed in the identity and logo steps."""
    name: str = ""
    tagline: str = ""
    bio: str = ""
    bio_locked: bool = False
    logo_url: str = ""
    logo_style: str = ""
    colors: list[str] = field(default_factory=list)


@dataclass
class OnboardingFormState:
    """
    Partial, progressively filled onboarding record.

    Serialized verbatim into the session payload (`context.form`).
    """
    idea: str = ""
    idea_source: str = "typed"  # "typed" | "suggested"
    products: list[dict] = field(default_factory=list)
    about_you: AboutYouForm = field(default_factory=AboutYouForm)
    vibes: list[str] = field(default_factory=list)
    audiences: list[str] = field(default_factory=list)
    naming_mode: str = "invented"
    identity: BusinessIdentity = field(default_factory=BusinessIdentity)

    # Accumulated across name negotiation
    banned_words: list[str] = field(default_factory=list)
    rejected_names: list[str] = field(default_factory=list)

    email: str = ""
    display_name: str = ""

    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        """Set timestamps if not provided."""
        now = datetime.now(timezone.utc).isoformat()
        if not self.created_at:
            self.created_at = now
        if not self.updated_at:
            self.updated_at = now

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc).isoformat()

    @property
    def is_empty(self) -> bool:
        return not (self.idea or self.products or self.identity.name)

    def brief(self) -> dict:
        """Request body fields shared by the generation functions."""
        return {
            "idea": self.idea,
            "audiences": list(self.audiences),
            "vibes": list(self.vibes),
            "products": list(self.products),
            "about_you": asdict(self.about_you),
            "naming_mode": self.naming_mode,
            "banned_words": list(self.banned_words),
            "rejected_names": list(self.rejected_names),
        }

    def to_dict(self) -> dict:
        """Serialize state to dict for JSON storage."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "OnboardingFormState":
        """Deserialize state from dict. Unknown keys are ignored."""
        data = {k: v for k, v in (data or {}).items() if k in cls.__dataclass_fields__}

        if isinstance(data.get("about_you"), dict):
            about = data["about_you"]
            data["about_you"] = AboutYouForm(**{k: v for k, v in about.items() if k in AboutYouForm.__dataclass_fields__})
        if isinstance(data.get("identity"), dict):
            ident = data["identity"]
            data["identity"] = BusinessIdentity(**{k: v for k, v in ident.items() if k in BusinessIdentity.__dataclass_fields__})

        return cls(**data)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> "OnboardingFormState":
        return cls.from_dict(json.loads(json_str))


def get_next_step(step: OnboardingStep) -> OnboardingStep:
    """The step after `step` (COMPLETE stays COMPLETE)."""
    index = STEP_ORDER.index(step)
    return STEP_ORDER[min(index + 1, len(STEP_ORDER) - 1)]


def parse_step(value: str | None) -> OnboardingStep:
    """Step from its stored value; unknown or missing values restart at IDEA."""
    try:
        return OnboardingStep(value)
    except ValueError:
        return OnboardingStep.IDEA
