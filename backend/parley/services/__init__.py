# Services module
from .session_store import SessionStore, SessionSnapshot, message_to_dict

__all__ = [
    "SessionStore",
    "SessionSnapshot",
    "message_to_dict",
]
