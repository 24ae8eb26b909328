"""Persistent session store backing the turn orchestrator."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.database import AsyncSessionLocal
from ..db.models import (
    DebateSession, SessionPersona, Message, ArchivedSession, AuditLog,
    SessionStatus, Speaker, PERSONA_ROLES,
)
from ..core.exceptions import SessionNotFound, StaleSessionError
from ..personas.presets import Persona, default_personas

logger = logging.getLogger(__name__)


@dataclass
class SessionSnapshot:
    """Point-in-time copy of everything a turn needs.

    Taken at the start of a turn; later edits to personas or config do
    not affect a turn already in progress.
    """
    session_id: int
    status: SessionStatus
    turn_count: int
    topic: str
    language: str
    provider: str
    model: Optional[str]
    generation: int
    personas: Dict[Speaker, Persona] = field(default_factory=dict)
    transcript: List[Message] = field(default_factory=list)


def message_to_dict(message: Message) -> Dict[str, Any]:
    return {
        "id": message.id,
        "speaker": Speaker(message.speaker).value,
        "content": message.content,
        "is_private": message.is_private,
        "is_handled": message.is_handled,
        "is_closing": message.is_closing,
        "created_at": message.created_at.isoformat() if message.created_at else None,
    }


class SessionStore:
    """
    Async SQLAlchemy store for debate sessions.

    Every method opens its own database session, so the orchestrator
    never holds rows across turns and always re-reads current state.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession] = AsyncSessionLocal):
        self.session_factory = session_factory

    async def _get_session(self, db: AsyncSession, session_id: int) -> DebateSession:
        result = await db.execute(
            select(DebateSession).where(DebateSession.id == session_id)
        )
        session = result.scalar_one_or_none()
        if not session:
            raise SessionNotFound(session_id)
        return session

    async def _check_generation(
        self,
        db: AsyncSession,
        session_id: int,
        generation: Optional[int],
    ) -> DebateSession:
        session = await self._get_session(db, session_id)
        if generation is not None and session.generation != generation:
            raise StaleSessionError(session_id, generation, session.generation)
        return session

    # Session lifecycle

    async def create_session(
        self,
        topic: str,
        provider: str,
        language: str = "English",
        model: Optional[str] = None,
        personas: Optional[Dict[Speaker, Persona]] = None,
    ) -> DebateSession:
        """Create a new idle session with its cast."""
        cast = default_personas()
        cast.update(personas or {})

        async with self.session_factory() as db:
            session = DebateSession(
                topic=topic,
                language=language,
                provider=provider,
                model=model,
                status=SessionStatus.IDLE,
                turn_count=0,
                generation=1,
            )
            db.add(session)
            await db.flush()

            for role in PERSONA_ROLES:
                persona = cast[role]
                db.add(SessionPersona(
                    session_id=session.id,
                    role=role,
                    name=persona.name,
                    description=persona.description,
                    visual_tag=persona.visual_tag,
                ))

            await db.commit()
            await db.refresh(session)

        logger.info(f"Created session {session.id} on topic {topic!r}")
        return session

    async def get_session(self, session_id: int) -> DebateSession:
        async with self.session_factory() as db:
            return await self._get_session(db, session_id)

    async def load_snapshot(self, session_id: int) -> SessionSnapshot:
        """Read status, config, cast and transcript in one go."""
        async with self.session_factory() as db:
            session = await self._get_session(db, session_id)

            personas_result = await db.execute(
                select(SessionPersona).where(SessionPersona.session_id == session_id)
            )
            personas = {
                Speaker(p.role): Persona(name=p.name, description=p.description, visual_tag=p.visual_tag)
                for p in personas_result.scalars().all()
            }

            messages_result = await db.execute(
                select(Message)
                .where(Message.session_id == session_id)
                .order_by(Message.id)
            )
            transcript = list(messages_result.scalars().all())

        return SessionSnapshot(
            session_id=session.id,
            status=SessionStatus(session.status),
            turn_count=session.turn_count,
            topic=session.topic,
            language=session.language,
            provider=session.provider,
            model=session.model,
            generation=session.generation,
            personas=personas,
            transcript=transcript,
        )

    async def get_transcript(self, session_id: int, include_private: bool = True) -> List[Message]:
        async with self.session_factory() as db:
            await self._get_session(db, session_id)
            query = select(Message).where(Message.session_id == session_id)
            if not include_private:
                query = query.where(Message.is_private.is_(False))
            result = await db.execute(query.order_by(Message.id))
            return list(result.scalars().all())

    # Writes used by the orchestrator

    async def append_message(
        self,
        session_id: int,
        speaker: Speaker,
        content: str,
        is_private: bool = False,
        is_closing: bool = False,
        generation: Optional[int] = None,
    ) -> Message:
        """Append a message. With a generation, refuse stale writes."""
        async with self.session_factory() as db:
            await self._check_generation(db, session_id, generation)
            message = Message(
                session_id=session_id,
                speaker=speaker,
                content=content,
                is_private=is_private,
                is_handled=False,
                is_closing=is_closing,
            )
            db.add(message)
            await db.commit()
            await db.refresh(message)
        return message

    async def mark_handled(self, message_id: int) -> bool:
        """Flip is_handled false to true. Returns False if already handled or gone."""
        async with self.session_factory() as db:
            result = await db.execute(select(Message).where(Message.id == message_id))
            message = result.scalar_one_or_none()
            if message is None or message.is_handled:
                return False
            message.is_handled = True
            await db.commit()
        return True

    async def set_status(
        self,
        session_id: int,
        status: SessionStatus,
        generation: Optional[int] = None,
    ) -> SessionStatus:
        """Set the status and return the previous one."""
        async with self.session_factory() as db:
            session = await self._check_generation(db, session_id, generation)
            previous = SessionStatus(session.status)
            session.status = status
            await db.commit()
        return previous

    async def increment_turn_count(self, session_id: int) -> int:
        async with self.session_factory() as db:
            session = await self._get_session(db, session_id)
            session.turn_count += 1
            turn_count = session.turn_count
            await db.commit()
        return turn_count

    async def reset_turn_count(self, session_id: int) -> None:
        async with self.session_factory() as db:
            session = await self._get_session(db, session_id)
            session.turn_count = 0
            await db.commit()

    # Setup edits (between turns)

    async def update_persona(self, session_id: int, role: Speaker, persona: Persona) -> None:
        if role not in PERSONA_ROLES:
            raise ValueError(f"{role.value} has no persona")

        async with self.session_factory() as db:
            await self._get_session(db, session_id)
            result = await db.execute(
                select(SessionPersona).where(
                    SessionPersona.session_id == session_id,
                    SessionPersona.role == role,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = SessionPersona(session_id=session_id, role=role)
                db.add(row)
            row.name = persona.name
            row.description = persona.description
            row.visual_tag = persona.visual_tag
            await db.commit()

    async def update_setup(
        self,
        session_id: int,
        topic: Optional[str] = None,
        language: Optional[str] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ) -> DebateSession:
        async with self.session_factory() as db:
            session = await self._get_session(db, session_id)
            if topic is not None:
                session.topic = topic
            if language is not None:
                session.language = language
            if provider is not None:
                session.provider = provider
            if model is not None:
                session.model = model
            await db.commit()
            await db.refresh(session)
        return session

    async def start_over(self, session_id: int) -> int:
        """Discard the transcript and return to idle under a new generation."""
        async with self.session_factory() as db:
            session = await self._get_session(db, session_id)
            await db.execute(delete(Message).where(Message.session_id == session_id))
            session.status = SessionStatus.IDLE
            session.turn_count = 0
            session.generation += 1
            generation = session.generation
            await db.commit()

        logger.info(f"Session {session_id} started over (generation {generation})")
        return generation

    # Archives

    async def archive(self, session_id: int, generation: Optional[int] = None) -> ArchivedSession:
        """Snapshot the session. Re-archiving the same generation updates it.

        With ``generation`` set, raises StaleSessionError if the session
        has started over since.
        """
        snapshot = await self.load_snapshot(session_id)
        if generation is not None and snapshot.generation != generation:
            raise StaleSessionError(session_id, generation, snapshot.generation)

        async with self.session_factory() as db:
            await self._check_generation(db, session_id, snapshot.generation)
            result = await db.execute(
                select(ArchivedSession).where(
                    ArchivedSession.session_id == session_id,
                    ArchivedSession.generation == snapshot.generation,
                )
            )
            archived = result.scalar_one_or_none()
            if archived is None:
                archived = ArchivedSession(session_id=session_id, generation=snapshot.generation)
                db.add(archived)

            archived.topic = snapshot.topic
            archived.language = snapshot.language
            archived.personas = {
                role.value: persona.to_dict() for role, persona in snapshot.personas.items()
            }
            archived.messages = [message_to_dict(m) for m in snapshot.transcript]
            await db.commit()
            await db.refresh(archived)

        logger.info(f"Archived session {session_id} as archive {archived.id}")
        return archived

    async def list_archives(self) -> List[ArchivedSession]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(ArchivedSession).order_by(ArchivedSession.id.desc())
            )
            return list(result.scalars().all())

    async def get_archive(self, archive_id: int) -> Optional[ArchivedSession]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(ArchivedSession).where(ArchivedSession.id == archive_id)
            )
            return result.scalar_one_or_none()

    async def delete_archive(self, archive_id: int) -> bool:
        async with self.session_factory() as db:
            result = await db.execute(
                delete(ArchivedSession).where(ArchivedSession.id == archive_id)
            )
            await db.commit()
            return result.rowcount > 0

    async def restore_archive(self, archive_id: int, session_id: int) -> int:
        """Load an archive into a session, paused, under a new generation."""
        archived = await self.get_archive(archive_id)
        if archived is None:
            raise LookupError(f"Archive {archive_id} not found")

        generation = await self.start_over(session_id)

        async with self.session_factory() as db:
            session = await self._get_session(db, session_id)
            session.topic = archived.topic
            session.language = archived.language
            session.status = SessionStatus.PAUSED

            for role_value, data in (archived.personas or {}).items():
                result = await db.execute(
                    select(SessionPersona).where(
                        SessionPersona.session_id == session_id,
                        SessionPersona.role == Speaker(role_value),
                    )
                )
                row = result.scalar_one_or_none()
                if row is not None:
                    row.name = data["name"]
                    row.description = data["description"]
                    row.visual_tag = data.get("visual_tag")

            for data in archived.messages or []:
                db.add(Message(
                    session_id=session_id,
                    speaker=Speaker(data["speaker"]),
                    content=data["content"],
                    is_private=data.get("is_private", False),
                    is_handled=data.get("is_handled", False),
                    is_closing=data.get("is_closing", False),
                ))

            await db.commit()

        logger.info(f"Restored archive {archive_id} into session {session_id}")
        return generation

    async def audit(
        self,
        session_id: int,
        event_type: str,
        actor: str = "orchestrator",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        async with self.session_factory() as db:
            db.add(AuditLog(
                session_id=session_id,
                event_type=event_type,
                actor=actor,
                details=details or {},
            ))
            await db.commit()
