"""Built-in persona catalog."""

from dataclasses import dataclass, asdict
from typing import Dict, List, Optional

from ..db.models import Speaker


@dataclass(frozen=True)
class Persona:
    """A persona cast into a debate role."""
    name: str
    description: str
    visual_tag: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PresetExpert(Persona):
    """A catalog expert, selectable by id."""
    id: str = ""


PRESET_EXPERTS: List[PresetExpert] = [
    PresetExpert(
        id="analyst",
        name="The Analyst",
        description="Logical, data-driven, and focused on deconstructing arguments to find core truths.",
        visual_tag="🦄",
    ),
    PresetExpert(
        id="visionary",
        name="The Visionary",
        description="Intuitive, holistic, and focused on connecting disparate ideas to see the big picture.",
        visual_tag="🐉",
    ),
    PresetExpert(
        id="skeptic",
        name="The Skeptic",
        description="Questions every assumption, demands evidence, and plays devil's advocate.",
        visual_tag="🤔",
    ),
    PresetExpert(
        id="historian",
        name="The Historian",
        description="Contextualizes the topic by drawing parallels to past events and human history.",
        visual_tag="📜",
    ),
    PresetExpert(
        id="ethicist",
        name="The Ethicist",
        description="Evaluates the moral implications, fairness, and human impact of the topic.",
        visual_tag="⚖️",
    ),
    PresetExpert(
        id="realist",
        name="The Realist",
        description="Pragmatic, grounded, and focused on practical implementation and constraints.",
        visual_tag="🛠️",
    ),
    PresetExpert(
        id="futurist",
        name="The Futurist",
        description="Speculates on long-term consequences, technological trends, and future scenarios.",
        visual_tag="🚀",
    ),
    PresetExpert(
        id="philosopher",
        name="The Philosopher",
        description="Examines the fundamental nature of the topic, questioning definitions and existence.",
        visual_tag="🦉",
    ),
]

DEFAULT_FACILITATOR = Persona(
    name="The Guide",
    description="A wise moderator who guides the group past surface-level answers to deeper understanding.",
    visual_tag="🐼",
)


def default_personas() -> Dict[Speaker, Persona]:
    """The cast used when a session is created without choices."""
    return {
        Speaker.FACILITATOR: DEFAULT_FACILITATOR,
        Speaker.EXPERT_A: PRESET_EXPERTS[0],
        Speaker.EXPERT_B: PRESET_EXPERTS[1],
    }
