"""
SideHive Functions - Per-operation model configuration.
"""

from typing import TypedDict


class ModelConfig(TypedDict, total=False):
    """Configuration for model calls."""

    model: str
    temperature: float


# Name generation wants variety; product ideas and bios stay closer to the brief
OPERATION_CONFIGS: dict[str, ModelConfig] = {
    "names": {"model": "gpt-4.1-mini", "temperature": 0.9},
    "identity": {"model": "gpt-4.1-mini", "temperature": 0.8},
    "product_ideas": {"model": "gpt-4.1-mini", "temperature": 0.7},
    "bio": {"model": "gpt-4.1-mini", "temperature": 0.7},
}

DEFAULT_CONFIG: ModelConfig = {"model": "gpt-4.1-mini", "temperature": 0.5}

IMAGE_MODEL = "gpt-image-1"


def get_operation_config(operation: str) -> ModelConfig:
    """Config for an operation (a copy, safe to mutate)."""
    return dict(OPERATION_CONFIGS.get(operation, DEFAULT_CONFIG))
