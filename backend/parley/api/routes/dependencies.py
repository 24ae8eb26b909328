"""Shared FastAPI dependencies."""

from ...core.orchestrator import TurnOrchestrator, ProviderFactory, get_orchestrator
from ...providers.factory import get_provider
from ...services.session_store import SessionStore
from ..websocket.events import make_event_sink


def get_store() -> SessionStore:
    """The session store used by the routes."""
    return SessionStore()


def get_provider_factory() -> ProviderFactory:
    """How routes obtain model providers."""
    return get_provider


def orchestrator_for(
    session_id: int,
    store: SessionStore,
    provider_factory: ProviderFactory,
) -> TurnOrchestrator:
    return get_orchestrator(
        session_id,
        store=store,
        provider_factory=provider_factory,
        on_event=make_event_sink(session_id),
    )
