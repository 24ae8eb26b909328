"""Tests for whisper lookup, conclusion detection and failure classification."""

import pytest

from parley.core.conclusion import CONCLUSION_MARKER, detect_conclusion
from parley.core.exceptions import RecoverableTransportError, TerminalTransportError
from parley.core.recovery import FailureKind, classify_failure, to_transport_error
from parley.core.whispers import find_pending_whisper, is_pending_whisper
from parley.db.models import Speaker
from parley.providers.base import ProviderError


class TestFindPendingWhisper:
    """Tests for find_pending_whisper."""

    def test_none_when_empty(self):
        assert find_pending_whisper([]) is None

    def test_newest_unhandled_wins(self, transcript_message):
        w1 = transcript_message(Speaker.HUMAN, "W1", is_private=True, id=1)
        w2 = transcript_message(Speaker.HUMAN, "W2", is_private=True, id=2)
        transcript = [transcript_message(Speaker.FACILITATOR), w1, w2]
        assert find_pending_whisper(transcript) is w2

    def test_handled_whispers_skipped(self, transcript_message):
        w1 = transcript_message(Speaker.HUMAN, "W1", is_private=True)
        w2 = transcript_message(Speaker.HUMAN, "W2", is_private=True, is_handled=True)
        assert find_pending_whisper([w1, w2]) is w1

    def test_public_human_message_is_not_a_whisper(self, transcript_message):
        message = transcript_message(Speaker.HUMAN, "hello")
        assert not is_pending_whisper(message)
        assert find_pending_whisper([message]) is None


class TestDetectConclusion:
    """Tests for detect_conclusion."""

    def test_no_marker(self):
        assert detect_conclusion("  Let us continue.  ") == ("Let us continue.", False)

    def test_marker_stripped(self):
        text, concluded = detect_conclusion(f"Final summary. {CONCLUSION_MARKER}")
        assert concluded is True
        assert text == "Final summary."
        assert CONCLUSION_MARKER not in text

    def test_every_occurrence_removed(self):
        text, concluded = detect_conclusion(f"{CONCLUSION_MARKER} Done {CONCLUSION_MARKER}")
        assert concluded
        assert text == "Done"


class TestClassifyFailure:
    """Tests for failure classification."""

    @pytest.mark.parametrize("message", [
        "context length exceeded",
        "Gemini API Error (400): request too large",
        "Invalid ARGUMENT: contents too long",
        "Maximum CONTEXT window",
    ])
    def test_recoverable(self, message):
        assert classify_failure(Exception(message)) == FailureKind.RECOVERABLE

    @pytest.mark.parametrize("message", [
        "Gemini API Error (401): unauthorized",
        "rate limited",
        "connection reset",
    ])
    def test_terminal(self, message):
        assert classify_failure(Exception(message)) == FailureKind.TERMINAL

    def test_provider_error_status_in_text(self):
        error = ProviderError("Gemini API Error (400): bad", status_code=400)
        assert isinstance(to_transport_error(error), RecoverableTransportError)

    def test_terminal_wrapping(self):
        wrapped = to_transport_error(TimeoutError("timed out"))
        assert isinstance(wrapped, TerminalTransportError)
        assert str(wrapped) == "timed out"
