"""Expert casting: choose two contrasting experts for a topic."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from ..personas.presets import PRESET_EXPERTS, PresetExpert
from ..personas.prompts import PromptBuilder
from ..providers.base import BaseProvider

logger = logging.getLogger(__name__)

AUTO = "auto"

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class CastingResult:
    """The experts chosen for a debate."""
    expert_a: PresetExpert
    expert_b: PresetExpert
    reasoning: Optional[str] = None
    fell_back: bool = False


def _lookup(expert_id: str, presets: Sequence[PresetExpert]) -> Optional[PresetExpert]:
    for expert in presets:
        if expert.id == expert_id:
            return expert
    return None


def _resolve(expert_id: str, presets: Sequence[PresetExpert]) -> Optional[PresetExpert]:
    if expert_id == AUTO:
        return None
    expert = _lookup(expert_id, presets)
    if expert is not None:
        return expert
    raise ValueError(f"Unknown expert: {expert_id}")


async def cast_experts(
    provider: BaseProvider,
    topic: str,
    expert_a_id: str = AUTO,
    expert_b_id: str = AUTO,
    presets: Sequence[PresetExpert] = PRESET_EXPERTS,
    model: Optional[str] = None,
    prompt_builder: Optional[PromptBuilder] = None,
) -> CastingResult:
    """
    Fill the expert slots for a new debate.

    Manual ids are looked up directly. "auto" slots are chosen by the
    model; if the call fails or the reply is unusable they fall back to
    the first two catalog experts.
    """
    expert_a = _resolve(expert_a_id, presets)
    expert_b = _resolve(expert_b_id, presets)
    if expert_a is not None and expert_b is not None:
        return CastingResult(expert_a=expert_a, expert_b=expert_b)

    prompts = prompt_builder or PromptBuilder()
    reasoning = None
    fell_back = False

    try:
        reply = await provider.complete(
            "You cast debates. Reply with JSON only.",
            prompts.build_casting_prompt(topic, presets),
            model=model,
        )
        match = _JSON_OBJECT.search(reply)
        if not match:
            raise ValueError("Casting reply contained no JSON object")

        cast = json.loads(match.group(0))
        reasoning = cast.get("reasoning")
        if expert_a is None:
            expert_a = _lookup(cast.get("expertAId", ""), presets)
        if expert_b is None:
            expert_b = _lookup(cast.get("expertBId", ""), presets)
    except Exception as e:
        logger.warning(f"Casting failed, falling back to defaults: {e}")
        fell_back = True

    if expert_a is None:
        expert_a = presets[0]
        fell_back = True
    if expert_b is None:
        expert_b = presets[1]
        fell_back = True

    logger.info(f"Cast {expert_a.name} vs {expert_b.name} for {topic!r}")
    return CastingResult(expert_a=expert_a, expert_b=expert_b, reasoning=reasoning, fell_back=fell_back)
