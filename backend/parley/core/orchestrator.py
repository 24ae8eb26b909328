"""Turn orchestration engine for facilitated debates."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from ..config import settings
from ..db.models import Message, SessionStatus, Speaker, PERSONA_ROLES
from ..personas.prompts import PromptBuilder
from ..providers.base import BaseProvider
from ..providers.factory import get_provider
from ..services.session_store import SessionStore, SessionSnapshot, message_to_dict
from .conclusion import detect_conclusion
from .context_manager import build_context
from .exceptions import (
    ConfigurationError,
    InvalidTransition,
    RecoverableTransportError,
    StaleSessionError,
    TerminalTransportError,
)
from .recovery import to_transport_error
from .turn_manager import next_speaker
from .whispers import find_pending_whisper

logger = logging.getLogger(__name__)


EventSink = Callable[[str, Dict[str, Any]], Awaitable[None]]
ProviderFactory = Callable[[str], BaseProvider]


class OrchestratorEvent(str, Enum):
    """Events emitted while a session runs."""
    TURN_START = "turn_start"
    MESSAGE = "message"
    WHISPER_HANDLED = "whisper_handled"
    STATUS_CHANGE = "status_change"
    TURN_ERROR = "turn_error"
    TURN_DISCARDED = "turn_discarded"


@dataclass
class TurnResult:
    """Outcome of one turn."""
    speaker: Speaker
    turn_count: int
    status: Optional[SessionStatus]
    message_id: Optional[int] = None
    content: Optional[str] = None
    concluded: bool = False
    recovered: bool = False
    whisper_id: Optional[int] = None
    error: Optional[str] = None
    discarded: bool = False

    @property
    def succeeded(self) -> bool:
        return self.message_id is not None and self.error is None and not self.discarded

    def to_dict(self) -> Dict[str, Any]:
        return {
            "speaker": self.speaker.value,
            "turn_count": self.turn_count,
            "status": self.status.value if self.status else None,
            "message_id": self.message_id,
            "content": self.content,
            "concluded": self.concluded,
            "recovered": self.recovered,
            "whisper_id": self.whisper_id,
            "error": self.error,
            "discarded": self.discarded,
        }


class TurnOrchestrator:
    """
    Runs the debate for one session.

    Decides who speaks next, builds the bounded context, calls the
    model, recovers once from oversized requests, consumes at most one
    whisper per facilitator turn and detects the end of the discussion.

    Only one turn runs at a time. Calls that arrive while a turn is in
    flight are dropped, not queued. State is re-read from the store at
    the start of every turn and responses are committed only if the
    session generation has not changed meanwhile.
    """

    def __init__(
        self,
        session_id: int,
        store: Optional[SessionStore] = None,
        provider_factory: ProviderFactory = get_provider,
        on_event: Optional[EventSink] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        context_budget: Optional[int] = None,
        recovery_budget: Optional[int] = None,
    ):
        self.session_id = session_id
        self.store = store or SessionStore()
        self.provider_factory = provider_factory
        self.on_event = on_event
        self.prompts = prompt_builder or PromptBuilder()
        self.context_budget = settings.context_budget if context_budget is None else context_budget
        self.recovery_budget = (
            settings.recovery_context_budget if recovery_budget is None else recovery_budget
        )
        self._lock = asyncio.Lock()
        self._recovering = False

    @property
    def in_flight(self) -> bool:
        """Whether a turn is currently outstanding."""
        return self._lock.locked()

    # Controls

    async def start(self) -> Optional[TurnResult]:
        """Start an idle session and run the opening facilitator turn."""
        if self._lock.locked():
            logger.debug(f"Start dropped for session {self.session_id}: turn in flight")
            return None

        async with self._lock:
            snapshot = await self.store.load_snapshot(self.session_id)
            if snapshot.status != SessionStatus.IDLE:
                raise InvalidTransition(f"Cannot start a session that is {snapshot.status.value}")

            await self.store.reset_turn_count(self.session_id)
            await self._set_status(SessionStatus.DEBATING)
            await self.store.audit(self.session_id, "discussion_start", actor="user")
            logger.info(f"Discussion started for session {self.session_id}")

            snapshot = await self.store.load_snapshot(self.session_id)
            return await self._process_turn(snapshot, Speaker.FACILITATOR, is_closing=False)

    async def pause(self) -> SessionStatus:
        """Pause a running debate. An in-flight turn still completes."""
        snapshot = await self.store.load_snapshot(self.session_id)
        if snapshot.status != SessionStatus.DEBATING:
            raise InvalidTransition(f"Cannot pause a session that is {snapshot.status.value}")

        await self._set_status(SessionStatus.PAUSED)
        await self.store.audit(self.session_id, "pause", actor="user")
        return SessionStatus.PAUSED

    async def resume(self) -> SessionStatus:
        """Resume a paused debate, or retry after an error."""
        snapshot = await self.store.load_snapshot(self.session_id)
        if snapshot.status not in (SessionStatus.PAUSED, SessionStatus.ERROR):
            raise InvalidTransition(f"Cannot resume a session that is {snapshot.status.value}")

        await self._set_status(SessionStatus.DEBATING)
        await self.store.audit(
            self.session_id, "resume", actor="user", details={"from": snapshot.status.value}
        )
        return SessionStatus.DEBATING

    async def submit_whisper(self, content: str) -> Message:
        """
        Record a private note for the facilitator.

        A running or paused debate is (re)started so the facilitator can
        react on its next turn.
        """
        content = content.strip()
        if not content:
            raise ValueError("Whisper content is empty")

        message = await self.store.append_message(
            self.session_id, Speaker.HUMAN, content, is_private=True
        )
        await self._emit(OrchestratorEvent.MESSAGE, message_to_dict(message))
        await self.store.audit(
            self.session_id, "whisper", actor="user", details={"message_id": message.id}
        )

        session = await self.store.get_session(self.session_id)
        if session.status in (SessionStatus.DEBATING, SessionStatus.PAUSED):
            await self._set_status(SessionStatus.DEBATING)

        logger.info(f"Whisper {message.id} submitted to session {self.session_id}")
        return message

    async def advance(self) -> Optional[TurnResult]:
        """
        Run the next turn if the debate is running.

        No-op when the session is not debating or a turn is already in
        flight.
        """
        if self._lock.locked():
            logger.debug(f"Advance dropped for session {self.session_id}: turn in flight")
            return None

        async with self._lock:
            snapshot = await self.store.load_snapshot(self.session_id)
            if snapshot.status != SessionStatus.DEBATING:
                logger.debug(
                    f"Advance ignored for session {self.session_id}: status {snapshot.status.value}"
                )
                return None

            speaker = next_speaker(snapshot.transcript)
            return await self._process_turn(snapshot, speaker, is_closing=False)

    async def conclude(self) -> Optional[TurnResult]:
        """Ask the facilitator for a closing summary and complete the session."""
        if self._lock.locked():
            logger.debug(f"Conclude dropped for session {self.session_id}: turn in flight")
            return None

        async with self._lock:
            snapshot = await self.store.load_snapshot(self.session_id)
            if snapshot.status in (SessionStatus.IDLE, SessionStatus.COMPLETED):
                raise InvalidTransition(f"Cannot conclude a session that is {snapshot.status.value}")

            await self._set_status(SessionStatus.DEBATING)
            await self.store.audit(self.session_id, "conclude", actor="user")
            return await self._process_turn(snapshot, Speaker.FACILITATOR, is_closing=True)

    async def process_turn(self, speaker: Speaker, is_closing: bool = False) -> Optional[TurnResult]:
        """Run a single turn for an explicit speaker, regardless of status."""
        if speaker not in PERSONA_ROLES:
            raise ValueError(f"{speaker.value} does not take turns")
        if is_closing and speaker != Speaker.FACILITATOR:
            raise ValueError("Only the facilitator can give the closing turn")

        if self._lock.locked():
            logger.debug(f"Turn dropped for session {self.session_id}: turn in flight")
            return None

        async with self._lock:
            snapshot = await self.store.load_snapshot(self.session_id)
            return await self._process_turn(snapshot, speaker, is_closing=is_closing)

    async def start_over(self, archive: bool = False) -> int:
        """
        Discard the transcript and return to idle.

        Does not wait for an in-flight turn; its response is discarded
        when it tries to commit against the new generation.
        """
        if archive:
            snapshot = await self.store.load_snapshot(self.session_id)
            if snapshot.transcript:
                await self.store.archive(self.session_id)

        generation = await self.store.start_over(self.session_id)
        await self.store.audit(
            self.session_id, "start_over", actor="user", details={"generation": generation}
        )
        await self._emit(OrchestratorEvent.STATUS_CHANGE, {
            "new_status": SessionStatus.IDLE.value,
            "generation": generation,
        })
        return generation

    # Turn processing

    async def _process_turn(
        self,
        snapshot: SessionSnapshot,
        speaker: Speaker,
        is_closing: bool,
    ) -> TurnResult:
        turn_count = await self.store.increment_turn_count(self.session_id)
        await self._emit(OrchestratorEvent.TURN_START, {
            "speaker": speaker.value,
            "turn_count": turn_count,
            "is_closing": is_closing,
        })
        logger.info(
            f"Session {self.session_id} turn {turn_count}: {speaker.value}"
            f"{' (closing)' if is_closing else ''}"
        )

        try:
            provider = self._resolve_provider(snapshot)
        except ConfigurationError as e:
            logger.error(f"Configuration error for session {self.session_id}: {e}")
            return await self._fail_turn(
                snapshot, speaker, turn_count, str(e),
                notice=f"System: {e}. Please configure settings.",
            )

        instructions = self.prompts.build_instructions(
            speaker, snapshot.personas, snapshot.topic, snapshot.language, turn_count
        )

        whisper = find_pending_whisper(snapshot.transcript) if speaker == Speaker.FACILITATOR else None
        if whisper is not None:
            instructions += self.prompts.whisper_directive(whisper.content)

        if is_closing:
            instructions += self.prompts.closing_directive()

        recovered = False
        try:
            history = build_context(snapshot.transcript, self.context_budget)
            raw = await self._call_model(
                provider, instructions, self.prompts.build_turn_request(history, speaker), snapshot
            )
        except Exception as exc:
            try:
                raw = await self._recover(exc, provider, instructions, snapshot, speaker)
                recovered = True
            except TerminalTransportError as terminal:
                logger.error(
                    f"Turn {turn_count} failed for session {self.session_id}: {terminal}",
                    exc_info=True,
                )
                return await self._fail_turn(
                    snapshot, speaker, turn_count, str(terminal),
                    notice=f'System Error: {terminal}. Use "Start Over" if stuck.',
                )

        return await self._commit_turn(
            snapshot, speaker, turn_count, raw, whisper, is_closing, recovered
        )

    def _resolve_provider(self, snapshot: SessionSnapshot) -> BaseProvider:
        try:
            provider = self.provider_factory(snapshot.provider)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        if not provider.is_available():
            raise ConfigurationError(f"API Key missing for {snapshot.provider}")
        return provider

    async def _call_model(
        self,
        provider: BaseProvider,
        instructions: str,
        context_block: str,
        snapshot: SessionSnapshot,
    ) -> str:
        return await provider.complete(
            instructions,
            context_block,
            model=snapshot.model,
            temperature=settings.model_temperature,
            max_tokens=settings.model_max_tokens,
        )

    async def _recover(
        self,
        exc: Exception,
        provider: BaseProvider,
        instructions: str,
        snapshot: SessionSnapshot,
        speaker: Speaker,
    ) -> str:
        """Retry once with a much smaller history, for oversized requests only."""
        error = to_transport_error(exc)
        if not isinstance(error, RecoverableTransportError) or self._recovering:
            raise TerminalTransportError(str(exc)) from exc

        logger.warning(
            f"Model call failed for session {self.session_id} ({exc}); "
            f"retrying with a {self.recovery_budget}-token history"
        )
        self._recovering = True
        try:
            history = build_context(snapshot.transcript, self.recovery_budget)
            return await self._call_model(
                provider, instructions, self.prompts.build_recovery_request(history, speaker), snapshot
            )
        except Exception as retry_exc:
            logger.error(f"Recovery failed for session {self.session_id}: {retry_exc}")
            raise TerminalTransportError(str(exc)) from retry_exc
        finally:
            self._recovering = False

    async def _commit_turn(
        self,
        snapshot: SessionSnapshot,
        speaker: Speaker,
        turn_count: int,
        raw: str,
        whisper: Optional[Message],
        is_closing: bool,
        recovered: bool,
    ) -> TurnResult:
        content, marker_found = detect_conclusion(raw)
        concluded = marker_found and speaker == Speaker.FACILITATOR

        try:
            message = await self.store.append_message(
                self.session_id,
                speaker,
                content,
                is_closing=is_closing,
                generation=snapshot.generation,
            )
        except StaleSessionError as e:
            return await self._discard_turn(speaker, turn_count, e)

        await self._emit(OrchestratorEvent.MESSAGE, message_to_dict(message))

        whisper_id = None
        if whisper is not None and await self.store.mark_handled(whisper.id):
            whisper_id = whisper.id
            await self._emit(OrchestratorEvent.WHISPER_HANDLED, {"message_id": whisper.id})

        if is_closing or concluded:
            status = SessionStatus.COMPLETED
            try:
                await self._set_status(status, generation=snapshot.generation)
                await self.store.archive(self.session_id, generation=snapshot.generation)
            except StaleSessionError as e:
                return await self._discard_turn(speaker, turn_count, e)
            await self.store.audit(self.session_id, "discussion_complete", details={
                "turn_count": turn_count,
                "closing": is_closing,
                "concluded": concluded,
            })
            logger.info(f"Discussion completed for session {self.session_id}")
        else:
            status = SessionStatus((await self.store.get_session(self.session_id)).status)

        return TurnResult(
            speaker=speaker,
            turn_count=turn_count,
            status=status,
            message_id=message.id,
            content=content,
            concluded=concluded or is_closing,
            recovered=recovered,
            whisper_id=whisper_id,
        )

    async def _fail_turn(
        self,
        snapshot: SessionSnapshot,
        speaker: Speaker,
        turn_count: int,
        error: str,
        notice: str,
    ) -> TurnResult:
        try:
            message = await self.store.append_message(
                self.session_id, Speaker.SYSTEM, notice, generation=snapshot.generation
            )
            await self._emit(OrchestratorEvent.MESSAGE, message_to_dict(message))
            await self._set_status(SessionStatus.ERROR, generation=snapshot.generation)
        except StaleSessionError as e:
            logger.warning(f"Discarding error notice: {e}")
            return TurnResult(
                speaker=speaker, turn_count=turn_count, status=None, error=error, discarded=True
            )

        await self.store.audit(self.session_id, "turn_error", details={
            "speaker": speaker.value,
            "turn_count": turn_count,
            "error": error,
        })
        await self._emit(OrchestratorEvent.TURN_ERROR, {
            "speaker": speaker.value,
            "turn_count": turn_count,
            "error": error,
        })
        return TurnResult(
            speaker=speaker, turn_count=turn_count, status=SessionStatus.ERROR, error=error
        )

    async def _discard_turn(
        self, speaker: Speaker, turn_count: int, reason: StaleSessionError
    ) -> TurnResult:
        logger.warning(f"Discarding {speaker.value} response: {reason}")
        await self._emit(OrchestratorEvent.TURN_DISCARDED, {
            "speaker": speaker.value,
            "turn_count": turn_count,
        })
        return TurnResult(speaker=speaker, turn_count=turn_count, status=None, discarded=True)

    # Helpers

    async def _set_status(self, status: SessionStatus, generation: Optional[int] = None):
        previous = await self.store.set_status(self.session_id, status, generation=generation)
        if previous != status:
            logger.info(f"Session {self.session_id}: {previous.value} -> {status.value}")
            await self._emit(OrchestratorEvent.STATUS_CHANGE, {
                "old_status": previous.value,
                "new_status": status.value,
            })

    async def _emit(self, event: OrchestratorEvent, data: Dict[str, Any]):
        if self.on_event is not None:
            await self.on_event(event.value, data)


# Orchestrator registry
_orchestrators: Dict[int, TurnOrchestrator] = {}


def get_orchestrator(session_id: int, **kwargs) -> TurnOrchestrator:
    """Get or create the orchestrator for a session."""
    if session_id not in _orchestrators:
        _orchestrators[session_id] = TurnOrchestrator(session_id, **kwargs)
    return _orchestrators[session_id]


def remove_orchestrator(session_id: int):
    """Remove an orchestrator from the registry."""
    if session_id in _orchestrators:
        del _orchestrators[session_id]
