"""Persona catalog and prompt construction."""

from .presets import Persona, PresetExpert, PRESET_EXPERTS, DEFAULT_FACILITATOR, default_personas
from .prompts import PromptBuilder, LANGUAGE_MAP

__all__ = [
    "Persona",
    "PresetExpert",
    "PRESET_EXPERTS",
    "DEFAULT_FACILITATOR",
    "default_personas",
    "PromptBuilder",
    "LANGUAGE_MAP",
]
