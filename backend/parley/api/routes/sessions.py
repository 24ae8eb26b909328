"""Session API routes: setup, controls and transcript."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ...config import settings
from ...core.autoplay import get_driver, remove_driver
from ...core.casting import AUTO, cast_experts
from ...core.orchestrator import ProviderFactory, TurnOrchestrator, TurnResult, remove_orchestrator
from ...db.models import SessionStatus, Speaker, PERSONA_ROLES
from ...personas.presets import Persona
from ...services.session_store import SessionStore
from .dependencies import get_provider_factory, get_store, orchestrator_for

router = APIRouter()


# Request/Response Models

class PersonaPayload(BaseModel):
    """A persona for one debate role."""
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    visual_tag: Optional[str] = None


class CreateSessionRequest(BaseModel):
    """Request to set up a new debate."""
    topic: str = Field(..., min_length=1)
    language: str = "English"
    provider: Optional[str] = None
    model: Optional[str] = None
    expert_a: str = AUTO  # Catalog id or "auto"
    expert_b: str = AUTO
    facilitator: Optional[PersonaPayload] = None


class UpdateSetupRequest(BaseModel):
    """Setup edits applied between turns."""
    topic: Optional[str] = Field(None, min_length=1)
    language: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None


class WhisperRequest(BaseModel):
    """A private note for the facilitator."""
    content: str = Field(..., min_length=1)


class ResetRequest(BaseModel):
    """Start-over options."""
    archive: bool = True


class SessionPersonaResponse(BaseModel):
    """Persona in a session response."""
    role: Speaker
    name: str
    description: str
    visual_tag: Optional[str]


class SessionResponse(BaseModel):
    """Session state response."""
    id: int
    topic: str
    language: str
    provider: str
    model: Optional[str]
    status: SessionStatus
    turn_count: int
    generation: int
    in_flight: bool = False
    personas: List[SessionPersonaResponse] = []
    casting_reasoning: Optional[str] = None


class MessageResponse(BaseModel):
    """Message response."""
    id: int
    speaker: Speaker
    content: str
    is_private: bool
    is_handled: bool
    is_closing: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class TurnResponse(BaseModel):
    """Outcome of a control that may run a turn."""
    ran: bool
    status: Optional[SessionStatus] = None
    turn: Optional[Dict[str, Any]] = None


# Helpers

async def build_session_response(
    store: SessionStore,
    session_id: int,
    orchestrator: Optional[TurnOrchestrator] = None,
    casting_reasoning: Optional[str] = None,
) -> SessionResponse:
    snapshot = await store.load_snapshot(session_id)
    return SessionResponse(
        id=snapshot.session_id,
        topic=snapshot.topic,
        language=snapshot.language,
        provider=snapshot.provider,
        model=snapshot.model,
        status=snapshot.status,
        turn_count=snapshot.turn_count,
        generation=snapshot.generation,
        in_flight=orchestrator.in_flight if orchestrator else False,
        personas=[
            SessionPersonaResponse(role=role, **persona.to_dict())
            for role, persona in snapshot.personas.items()
        ],
        casting_reasoning=casting_reasoning,
    )


def turn_response(result: Optional[TurnResult]) -> TurnResponse:
    if result is None:
        return TurnResponse(ran=False)
    return TurnResponse(ran=True, status=result.status, turn=result.to_dict())


async def ensure_autoplay(orchestrator: TurnOrchestrator):
    """Keep the auto-play driver ticking while the session debates."""
    if not settings.autoplay:
        return
    session = await orchestrator.store.get_session(orchestrator.session_id)
    if session.status == SessionStatus.DEBATING:
        get_driver(orchestrator).start()


# Routes

@router.post("/", response_model=SessionResponse)
async def create_session(
    request: CreateSessionRequest,
    store: SessionStore = Depends(get_store),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    """Create a debate, casting "auto" expert slots with the model."""
    provider_name = request.provider or settings.default_provider

    try:
        provider = provider_factory(provider_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        casting = await cast_experts(
            provider,
            request.topic,
            expert_a_id=request.expert_a,
            expert_b_id=request.expert_b,
            model=request.model,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    personas = {
        Speaker.EXPERT_A: casting.expert_a,
        Speaker.EXPERT_B: casting.expert_b,
    }
    if request.facilitator:
        personas[Speaker.FACILITATOR] = Persona(**request.facilitator.model_dump())

    session = await store.create_session(
        topic=request.topic,
        provider=provider_name,
        language=request.language,
        model=request.model,
        personas=personas,
    )
    return await build_session_response(store, session.id, casting_reasoning=casting.reasoning)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: int,
    store: SessionStore = Depends(get_store),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    """Get the current state of a debate."""
    orchestrator = orchestrator_for(session_id, store, provider_factory)
    return await build_session_response(store, session_id, orchestrator)


@router.get("/{session_id}/messages", response_model=List[MessageResponse])
async def get_session_messages(
    session_id: int,
    include_private: bool = Query(False),
    store: SessionStore = Depends(get_store),
):
    """Get the transcript. Whispers are hidden unless asked for."""
    messages = await store.get_transcript(session_id, include_private=include_private)
    return [MessageResponse.model_validate(m) for m in messages]


@router.patch("/{session_id}", response_model=SessionResponse)
async def update_setup(
    session_id: int,
    request: UpdateSetupRequest,
    store: SessionStore = Depends(get_store),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    """Change topic, language or model. Takes effect from the next turn."""
    if request.provider is not None:
        try:
            provider_factory(request.provider)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    await store.update_setup(session_id, **request.model_dump(exclude_unset=True))
    return await build_session_response(store, session_id)


@router.put("/{session_id}/personas/{role}", response_model=SessionResponse)
async def update_persona(
    session_id: int,
    role: Speaker,
    request: PersonaPayload,
    store: SessionStore = Depends(get_store),
):
    """Recast one role. Takes effect from the next turn."""
    if role not in PERSONA_ROLES:
        raise HTTPException(status_code=400, detail=f"{role.value} has no persona")

    await store.update_persona(session_id, role, Persona(**request.model_dump()))
    return await build_session_response(store, session_id)


@router.post("/{session_id}/start", response_model=TurnResponse)
async def start_session(
    session_id: int,
    store: SessionStore = Depends(get_store),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    """Start the debate with the facilitator's opening turn."""
    orchestrator = orchestrator_for(session_id, store, provider_factory)
    result = await orchestrator.start()
    await ensure_autoplay(orchestrator)
    return turn_response(result)


@router.post("/{session_id}/pause", response_model=TurnResponse)
async def pause_session(
    session_id: int,
    store: SessionStore = Depends(get_store),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    orchestrator = orchestrator_for(session_id, store, provider_factory)
    status = await orchestrator.pause()
    return TurnResponse(ran=False, status=status)


@router.post("/{session_id}/resume", response_model=TurnResponse)
async def resume_session(
    session_id: int,
    store: SessionStore = Depends(get_store),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    orchestrator = orchestrator_for(session_id, store, provider_factory)
    status = await orchestrator.resume()
    await ensure_autoplay(orchestrator)
    return TurnResponse(ran=False, status=status)


@router.post("/{session_id}/next", response_model=TurnResponse)
async def next_turn(
    session_id: int,
    store: SessionStore = Depends(get_store),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    """Manually step one turn."""
    orchestrator = orchestrator_for(session_id, store, provider_factory)
    return turn_response(await orchestrator.advance())


@router.post("/{session_id}/conclude", response_model=TurnResponse)
async def conclude_session(
    session_id: int,
    store: SessionStore = Depends(get_store),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    """Have the facilitator close the debate with a summary."""
    orchestrator = orchestrator_for(session_id, store, provider_factory)
    return turn_response(await orchestrator.conclude())


@router.post("/{session_id}/whisper", response_model=MessageResponse)
async def whisper(
    session_id: int,
    request: WhisperRequest,
    store: SessionStore = Depends(get_store),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    """Send a private note to the facilitator."""
    orchestrator = orchestrator_for(session_id, store, provider_factory)
    try:
        message = await orchestrator.submit_whisper(request.content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await ensure_autoplay(orchestrator)
    return MessageResponse.model_validate(message)


@router.post("/{session_id}/reset", response_model=SessionResponse)
async def reset_session(
    session_id: int,
    request: ResetRequest = ResetRequest(),
    store: SessionStore = Depends(get_store),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    """Start over: optionally archive, then clear the transcript."""
    orchestrator = orchestrator_for(session_id, store, provider_factory)
    await orchestrator.start_over(archive=request.archive)
    remove_driver(session_id)
    remove_orchestrator(session_id)
    return await build_session_response(store, session_id)
