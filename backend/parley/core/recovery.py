"""Failure classification for model calls."""

import logging
from enum import Enum

from .exceptions import OrchestrationError, RecoverableTransportError, TerminalTransportError

logger = logging.getLogger(__name__)


# Substrings that indicate the request was too large for the model
OVERSIZED_REQUEST_SIGNATURES = ("400", "context", "argument")


class FailureKind(str, Enum):
    """How a failed model call should be handled."""
    RECOVERABLE = "recoverable"
    TERMINAL = "terminal"


def classify_failure(error: BaseException) -> FailureKind:
    """Classify a model-call failure from its description alone."""
    description = str(error).lower()
    if any(signature in description for signature in OVERSIZED_REQUEST_SIGNATURES):
        return FailureKind.RECOVERABLE
    return FailureKind.TERMINAL


def to_transport_error(error: BaseException) -> OrchestrationError:
    """Wrap a raw failure in the transport error type it classifies as."""
    if classify_failure(error) == FailureKind.RECOVERABLE:
        return RecoverableTransportError(str(error))
    return TerminalTransportError(str(error))
