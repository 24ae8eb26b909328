"""SQLAlchemy models for debate sessions, transcripts and archives."""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from enum import Enum

from .database import Base


class SessionStatus(str, Enum):
    """Lifecycle status of a debate session."""
    IDLE = "idle"
    DEBATING = "debating"
    PAUSED = "paused"
    ERROR = "error"
    COMPLETED = "completed"


class Speaker(str, Enum):
    """Who authored a transcript message."""
    FACILITATOR = "facilitator"
    EXPERT_A = "expert_a"
    EXPERT_B = "expert_b"
    HUMAN = "human"
    SYSTEM = "system"  # Visible notices only, never sent to the model


# Roles that carry a persona
PERSONA_ROLES = (Speaker.FACILITATOR, Speaker.EXPERT_A, Speaker.EXPERT_B)


class DebateSession(Base):
    """A facilitated debate between two experts."""
    __tablename__ = "debate_sessions"

    id = Column(Integer, primary_key=True, index=True)
    topic = Column(Text, nullable=False, default="")
    language = Column(String(50), nullable=False, default="English")
    provider = Column(String(50), nullable=False)
    model = Column(String(200), nullable=True)
    status = Column(SQLEnum(SessionStatus), default=SessionStatus.IDLE, nullable=False)
    turn_count = Column(Integer, default=0, nullable=False)
    generation = Column(Integer, default=1, nullable=False)  # Bumped on every start-over
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    personas = relationship("SessionPersona", back_populates="session", cascade="all, delete-orphan")
    messages = relationship(
        "Message",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="Message.id",
    )
    audit_logs = relationship("AuditLog", back_populates="session", cascade="all, delete-orphan")


class SessionPersona(Base):
    """The persona cast into one role of a session."""
    __tablename__ = "session_personas"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("debate_sessions.id", ondelete="CASCADE"), nullable=False)
    role = Column(SQLEnum(Speaker), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    visual_tag = Column(String(50), nullable=True)  # Icon or colour hint for the UI

    # Relationships
    session = relationship("DebateSession", back_populates="personas")


class Message(Base):
    """A transcript entry. Append-only; only is_handled ever changes."""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)  # Append sequence
    session_id = Column(Integer, ForeignKey("debate_sessions.id", ondelete="CASCADE"), nullable=False)
    speaker = Column(SQLEnum(Speaker), nullable=False)
    content = Column(Text, nullable=False)
    is_private = Column(Boolean, default=False, nullable=False)
    is_handled = Column(Boolean, default=False, nullable=False)
    is_closing = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    session = relationship("DebateSession", back_populates="messages")


class ArchivedSession(Base):
    """Immutable snapshot of a finished (or abandoned) debate."""
    __tablename__ = "archived_sessions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, nullable=False, index=True)
    generation = Column(Integer, nullable=False)
    topic = Column(Text, nullable=False, default="")
    language = Column(String(50), nullable=False, default="English")
    personas = Column(JSON, default=dict)
    messages = Column(JSON, default=list)
    archived_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class AuditLog(Base):
    """Lifecycle audit trail for sessions."""
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("debate_sessions.id", ondelete="CASCADE"), nullable=False)
    event_type = Column(String(100), nullable=False)
    actor = Column(String(255), nullable=True)  # "user", "orchestrator" or "system"
    details = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    session = relationship("DebateSession", back_populates="audit_logs")
