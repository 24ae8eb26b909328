# Database module
from .database import init_db, AsyncSessionLocal
from .models import (
    Base,
    SessionStatus,
    Speaker,
    PERSONA_ROLES,
    DebateSession,
    SessionPersona,
    Message,
    ArchivedSession,
    AuditLog,
)

__all__ = [
    "init_db",
    "AsyncSessionLocal",
    "Base",
    "SessionStatus",
    "Speaker",
    "PERSONA_ROLES",
    "DebateSession",
    "SessionPersona",
    "Message",
    "ArchivedSession",
    "AuditLog",
]
