"""Detection of the facilitator's end-of-discussion marker."""

from typing import Tuple

CONCLUSION_MARKER = "[CONCLUDED]"


def detect_conclusion(text: str) -> Tuple[str, bool]:
    """
    Split raw model output into visible content and a concluded flag.

    Best effort: the marker is a plain string, so a model quoting it
    verbatim also ends the discussion.
    """
    concluded = CONCLUSION_MARKER in text
    if not concluded:
        return text.strip(), False
    return text.replace(CONCLUSION_MARKER, "").strip(), True
