"""Generation logic behind the AI-backed functions."""

from sidehive_functions.generation.bio import generate_bio
from sidehive_functions.generation.identity import generate_brand_extras, sanitize_svg
from sidehive_functions.generation.logos import generate_logos
from sidehive_functions.generation.naming import generate_names
from sidehive_functions.generation.normalize import BriefInput, normalize_brief, require_fields
from sidehive_functions.generation.product_ideas import generate_product_ideas

__all__ = [
    "BriefInput",
    "generate_bio",
    "generate_brand_extras",
    "generate_logos",
    "generate_names",
    "generate_product_ideas",
    "normalize_brief",
    "require_fields",
    "sanitize_svg",
]
