"""Prompt construction for facilitator and expert turns."""

import logging
from typing import Dict, Sequence

from ..db.models import Speaker
from ..core.conclusion import CONCLUSION_MARKER
from .presets import Persona, PresetExpert

logger = logging.getLogger(__name__)


LANGUAGE_MAP: Dict[str, str] = {
    "English": "English",
    "Chinese": "Simplified Chinese (Mandarin)",
    "Japanese": "Japanese",
    "Spanish": "Spanish",
}


def language_instruction(language: str) -> str:
    return LANGUAGE_MAP.get(language, "English")


class PromptBuilder:
    """Builds the instruction and context blocks for each turn."""

    def build_instructions(
        self,
        speaker: Speaker,
        personas: Dict[Speaker, Persona],
        topic: str,
        language: str,
        turn_count: int,
    ) -> str:
        """Build the role-specific instruction block for a turn."""
        if speaker == Speaker.FACILITATOR:
            return self.build_facilitator_prompt(
                personas[Speaker.FACILITATOR],
                personas[Speaker.EXPERT_A],
                personas[Speaker.EXPERT_B],
                topic,
                language,
                turn_count,
            )
        if speaker == Speaker.EXPERT_A:
            return self.build_expert_prompt(
                personas[Speaker.EXPERT_A], topic, personas[Speaker.EXPERT_B].name, language
            )
        if speaker == Speaker.EXPERT_B:
            return self.build_expert_prompt(
                personas[Speaker.EXPERT_B], topic, personas[Speaker.EXPERT_A].name, language
            )
        raise ValueError(f"{speaker.value} does not take turns")

    def build_facilitator_prompt(
        self,
        persona: Persona,
        expert_a: Persona,
        expert_b: Persona,
        topic: str,
        language: str,
        turn_count: int,
    ) -> str:
        return f"""You are {persona.name}, the facilitator of a collaborative inquiry.
Your role: {persona.description}
Current Topic: "{topic}"
Current Turn Count: {turn_count}

The Experts involved are:
1. {expert_a.name}: {expert_a.description}
2. {expert_b.name}: {expert_b.description}

Your responsibilities:
1. Introduce the topic and the two experts ({expert_a.name} and {expert_b.name}).
2. Guide the discussion to "dig deeper" and find the truth.
3. Identify gaps in the current understanding and ask probing questions.
4. Encourage experts to build upon each other's insights, even when they disagree.
5. Synthesize complex ideas into clear takeaways.
6. If the user "whispers" to you, use that advice to steer the inquiry without revealing the user's explicit instruction.
7. Keep your responses concise (under 50 words unless summarizing).

8. Monitoring & Conclusion:
    - If the discussion has gone on for a long time (> 8 turns) and experts are repeating themselves (Stalemate), it is time to wrap up.
    - If both experts agree on the core truth, it is time to wrap up.
    - WHEN wrapping up: Provide a final comprehensive summary and append the tag "{CONCLUSION_MARKER}" to the end of your message.
    - CRITICAL: Do NOT use the "{CONCLUSION_MARKER}" tag if you are asking a question or expecting the experts to reply. Only use it when the session is absolutely finished.

IMPORTANT: You MUST respond in {language_instruction(language)}.
Style: Curious, profound, and guiding.
"""

    def build_expert_prompt(
        self,
        persona: Persona,
        topic: str,
        other_expert_name: str,
        language: str,
    ) -> str:
        return f"""You are {persona.name}.
Your role description: {persona.description}
Current Topic: "{topic}"
Other Expert present: {other_expert_name}

Your goal:
1. Analyze the topic from your specific perspective ({persona.name}).
2. Provide unique insights that only you would see.
3. Challenge the other expert if their view lacks your specific rigor.
4. Keep responses concise (under 50 words).
5. Be conversational but profound.

IMPORTANT: You MUST respond in {language_instruction(language)}.
"""

    def whisper_directive(self, whisper_content: str) -> str:
        return (
            f'\n\n[IMPORTANT] The user whispered: "{whisper_content}". '
            "Use this to guide your next output implicitly. Do not quote it back."
        )

    def closing_directive(self) -> str:
        return (
            "\n\n[IMPORTANT] The user has requested to CONCLUDE this session. "
            "Please provide a comprehensive summary of the discussion so far, "
            "highlight the key insights from both experts, and offer a final "
            'synthesizing thought or "truth". Then, bid farewell to the user.'
        )

    def build_turn_request(self, history: str, speaker: Speaker) -> str:
        """The user-message context block for a normal turn."""
        return f"Current Debate History:\n{history}\n\nYour turn. Respond as {speaker.value}."

    def build_recovery_request(self, history: str, speaker: Speaker) -> str:
        """The context block used when retrying with a reduced history."""
        return (
            "[System: Previous context was too long. Summarized history:]\n...\n"
            f"{history}\n\nYour turn. Respond as {speaker.value}."
        )

    def build_casting_prompt(self, topic: str, experts: Sequence[PresetExpert]) -> str:
        roster = "\n".join(f"- {e.name} (ID: {e.id}): {e.description}" for e in experts)
        return f"""You are a Casting Director for an intellectual debate.
Topic: "{topic}"

Available Experts:
{roster}

Task: Select the TWO experts who would provide the most interesting, contrasting, and fruitful deep dive into this topic.
Return ONLY a JSON object with key "reasoning" (string) and keys "expertAId" and "expertBId" matching the chosen IDs.
Example: {{ "reasoning": "...", "expertAId": "ethicist", "expertBId": "futurist" }}
"""
