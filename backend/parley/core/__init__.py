# Core orchestration module. The orchestrator, driver and casting live in
# their own modules (parley.core.orchestrator etc.) and import the
# persona and store layers, so they are not re-exported here.
from .exceptions import (
    OrchestrationError,
    ConfigurationError,
    RecoverableTransportError,
    TerminalTransportError,
    StaleSessionError,
    SessionNotFound,
    InvalidTransition,
)
from .turn_manager import next_speaker, last_turn_speaker, TRANSITIONS
from .context_manager import estimate_tokens, trim_context, format_transcript, build_context
from .whispers import find_pending_whisper
from .conclusion import detect_conclusion, CONCLUSION_MARKER
from .recovery import classify_failure, FailureKind

__all__ = [
    "OrchestrationError",
    "ConfigurationError",
    "RecoverableTransportError",
    "TerminalTransportError",
    "StaleSessionError",
    "SessionNotFound",
    "InvalidTransition",
    "next_speaker",
    "last_turn_speaker",
    "TRANSITIONS",
    "estimate_tokens",
    "trim_context",
    "format_transcript",
    "build_context",
    "find_pending_whisper",
    "detect_conclusion",
    "CONCLUSION_MARKER",
    "classify_failure",
    "FailureKind",
]
