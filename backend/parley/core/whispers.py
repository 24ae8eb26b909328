"""Lookup of pending human whispers."""

from typing import Optional, Sequence, Any

from ..db.models import Speaker


def is_pending_whisper(message: Any) -> bool:
    return (
        message.speaker == Speaker.HUMAN
        and bool(message.is_private)
        and not message.is_handled
    )


def find_pending_whisper(transcript: Sequence[Any]) -> Optional[Any]:
    """
    Return the most recent unhandled whisper, or None.

    Only one whisper is acted on per facilitator turn. Older pending
    whispers surface one per turn once the newer ones are handled.
    """
    for message in reversed(transcript):
        if is_pending_whisper(message):
            return message
    return None
