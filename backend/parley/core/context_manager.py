"""Context window trimming and transcript formatting."""

import logging
import math
from typing import List, Optional, Sequence, TypeVar, Any

from ..config import settings
from ..db.models import Speaker

logger = logging.getLogger(__name__)

T = TypeVar("T")


def estimate_tokens(text: str) -> int:
    """Coarse token estimate: four characters per token, rounded up."""
    return math.ceil(len(text) / 4)


def trim_context(transcript: Sequence[T], budget: Optional[int] = None) -> List[T]:
    """
    Keep the newest messages whose estimated size fits the budget.

    The budget defaults to the configured context budget.

    Walks newest to oldest and stops at the first message that would
    push the running total over the budget; everything older is
    dropped whole. The result is a contiguous suffix of the transcript
    in original order.
    """
    if budget is None:
        budget = settings.context_budget

    kept: List[T] = []
    tokens_used = 0

    for message in reversed(transcript):
        tokens = estimate_tokens(message.content)
        if tokens_used + tokens > budget:
            break
        tokens_used += tokens
        kept.append(message)

    kept.reverse()

    if len(kept) < len(transcript):
        logger.debug(
            f"Context trimmed to {len(kept)}/{len(transcript)} messages "
            f"({tokens_used}/{budget} tokens)"
        )
    return kept


def format_transcript(messages: Sequence[Any]) -> str:
    """Render messages as the plain-text history block sent to the model.

    Private messages (whispers) and system notices are never included.
    """
    return "\n\n".join(
        f"{Speaker(m.speaker).value.upper()}: {m.content}"
        for m in messages
        if not m.is_private and m.speaker != Speaker.SYSTEM
    )


def build_context(transcript: Sequence[Any], budget: Optional[int] = None) -> str:
    """Trim then format in one step."""
    return format_transcript(trim_context(transcript, budget))
