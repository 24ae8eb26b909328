"""Archive API routes: browse, delete and restore finished debates."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ...core.orchestrator import remove_orchestrator
from ...core.autoplay import remove_driver
from ...services.session_store import SessionStore
from .dependencies import get_store

router = APIRouter()


class ArchiveSummary(BaseModel):
    """Archive list entry."""
    id: int
    session_id: int
    generation: int
    topic: str
    language: str
    archived_at: Optional[datetime]

    class Config:
        from_attributes = True


class ArchiveDetail(ArchiveSummary):
    """Full archive, including the cast and transcript."""
    personas: Dict[str, Any]
    messages: List[Dict[str, Any]]


class RestoreRequest(BaseModel):
    """Which session to load the archive into."""
    session_id: int


@router.get("/", response_model=List[ArchiveSummary])
async def list_archives(store: SessionStore = Depends(get_store)):
    """List archived debates, newest first."""
    archives = await store.list_archives()
    return [ArchiveSummary.model_validate(a) for a in archives]


@router.get("/{archive_id}", response_model=ArchiveDetail)
async def get_archive(archive_id: int, store: SessionStore = Depends(get_store)):
    archived = await store.get_archive(archive_id)
    if not archived:
        raise HTTPException(status_code=404, detail="Archive not found")
    return ArchiveDetail.model_validate(archived)


@router.delete("/{archive_id}")
async def delete_archive(archive_id: int, store: SessionStore = Depends(get_store)):
    if not await store.delete_archive(archive_id):
        raise HTTPException(status_code=404, detail="Archive not found")
    return {"status": "deleted", "archive_id": archive_id}


@router.post("/{archive_id}/restore")
async def restore_archive(
    archive_id: int,
    request: RestoreRequest,
    store: SessionStore = Depends(get_store),
):
    """Load an archive into a session. The session is left paused."""
    try:
        generation = await store.restore_archive(archive_id, request.session_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    # Any turn still in flight belongs to the previous generation
    remove_driver(request.session_id)
    remove_orchestrator(request.session_id)

    return {
        "status": "restored",
        "archive_id": archive_id,
        "session_id": request.session_id,
        "generation": generation,
    }
