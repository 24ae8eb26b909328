"""Turn-taking rules for facilitated debates."""

import logging
from typing import Dict, Optional, Sequence, Any

from ..db.models import Speaker

logger = logging.getLogger(__name__)


# Strict rotation. Human interjections are answered by the facilitator only.
TRANSITIONS: Dict[Optional[Speaker], Speaker] = {
    None: Speaker.FACILITATOR,
    Speaker.FACILITATOR: Speaker.EXPERT_A,
    Speaker.EXPERT_A: Speaker.EXPERT_B,
    Speaker.EXPERT_B: Speaker.FACILITATOR,
    Speaker.HUMAN: Speaker.FACILITATOR,
}


def last_turn_speaker(transcript: Sequence[Any]) -> Optional[Speaker]:
    """
    Find the speaker the rotation is keyed off.

    Walks the transcript newest to oldest, skipping system notices and
    messages produced by a closing turn. Returns None when nothing
    qualifies.
    """
    for message in reversed(transcript):
        if message.speaker == Speaker.SYSTEM or message.is_closing:
            continue
        return Speaker(message.speaker)
    return None


def next_speaker(transcript: Sequence[Any]) -> Speaker:
    """Return who speaks next for the given transcript."""
    speaker = TRANSITIONS[last_turn_speaker(transcript)]
    logger.debug(f"Next speaker: {speaker.value}")
    return speaker
