from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from typing import List, Optional

from db.store import CardStore
from models.settings import StudySettings
from models.study import ReviewResult, SessionState, SessionStep, StudyMode, StudyScope
from utils.clock import Clock
from utils.session import (
    ReviewSession,
    SessionStateError,
    discard_session,
    get_session,
    register_session,
)
from .deps import get_clock, get_settings, get_store

router = APIRouter()


class SessionStart(BaseModel):
    mode: StudyMode = StudyMode.BY_DOCUMENT
    chapter: Optional[str] = None
    card_ids: List[str] = Field(default_factory=list)
    include_new: bool = True


class ContinueChoice(BaseModel):
    accept: bool


class SessionResponse(BaseModel):
    session_id: Optional[str] = None
    step: SessionStep


def _respond(session_id: str, step: SessionStep) -> SessionResponse:
    if step.state == SessionState.DONE:
        discard_session(session_id)
        return SessionResponse(session_id=None, step=step)
    return SessionResponse(session_id=session_id, step=step)


def _lookup(session_id: str) -> ReviewSession:
    session = get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.post("/sessions", response_model=SessionResponse)
async def start_review(
    payload: SessionStart,
    store: CardStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
    settings: StudySettings = Depends(get_settings),
):
    """Start a review session and return the first card to present."""
    if payload.mode in (StudyMode.BY_DOCUMENT, StudyMode.BY_SUBJECT) and not payload.chapter:
        raise HTTPException(status_code=400, detail="An active chapter is required for this mode")
    scope = StudyScope(chapter=payload.chapter, card_ids=payload.card_ids, include_new=payload.include_new)
    session = ReviewSession(store, clock, settings, payload.mode, scope)
    step = session.start()
    if step.state == SessionState.DONE:
        return SessionResponse(session_id=None, step=step)
    return SessionResponse(session_id=register_session(session), step=step)


@router.post("/sessions/{session_id}/result", response_model=SessionResponse)
async def submit_result(session_id: str, result: ReviewResult):
    """Apply the reader's answer to the presented card and move the session on."""
    session = _lookup(session_id)
    try:
        step = session.next_step(result)
    except SessionStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _respond(session_id, step)


@router.post("/sessions/{session_id}/continue", response_model=SessionResponse)
async def continue_review(session_id: str, choice: ContinueChoice):
    session = _lookup(session_id)
    try:
        step = session.continue_session(choice.accept)
    except SessionStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _respond(session_id, step)
