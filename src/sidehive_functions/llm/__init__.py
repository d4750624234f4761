"""
SideHive Functions - LLM access.
"""

from sidehive_functions.llm.client import call_llm, generate_image

__all__ = ["call_llm", "generate_image"]
