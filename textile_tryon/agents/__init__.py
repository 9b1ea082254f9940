"""Prompt agents for the try-on pipeline."""

from .prompt_generator import DrapingStyle, TryOnPromptGenerator, build_prompt, classify_category

__all__ = [
    "DrapingStyle",
    "TryOnPromptGenerator",
    "build_prompt",
    "classify_category",
]
