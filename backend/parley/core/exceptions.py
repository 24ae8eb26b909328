"""Exception types raised by the turn orchestration layer."""


class OrchestrationError(Exception):
    """Base class for orchestration failures."""
    pass


class ConfigurationError(OrchestrationError):
    """Raised when the active provider has no credentials or is unknown."""
    pass


class RecoverableTransportError(OrchestrationError):
    """Raised when a model call failed with an oversized-context signature."""
    pass


class TerminalTransportError(OrchestrationError):
    """Raised when a model call failed and no recovery applies or recovery failed."""
    pass


class StaleSessionError(OrchestrationError):
    """Raised when a commit targets a session whose generation has moved on."""

    def __init__(self, session_id: int, expected: int, actual: int):
        super().__init__(
            f"Session {session_id} is at generation {actual}, response was for {expected}"
        )
        self.session_id = session_id
        self.expected = expected
        self.actual = actual


class SessionNotFound(OrchestrationError):
    """Raised when a session id does not exist in the store."""

    def __init__(self, session_id: int):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class InvalidTransition(OrchestrationError):
    """Raised when a control is not allowed from the current status."""
    pass
