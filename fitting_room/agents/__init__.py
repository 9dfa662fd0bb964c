"""Prompt builders for the Gemini calls."""

from .tryon_prompts import build_size_prompt, build_tryon_prompt

__all__ = [
    "build_size_prompt",
    "build_tryon_prompt",
]
