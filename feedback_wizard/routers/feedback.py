"""Feedback survey wizard endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Response
from datetime import timedelta
from functools import lru_cache
from typing import Any, Dict
import logging

from feedback_wizard.config import get_settings
from feedback_wizard.models.feedback import (
    FieldValuesUpdate,
    NotificationOut,
    SubmissionResultOut,
    SurveySchemaOut,
    WizardView,
)
from feedback_wizard.models.schema import FormState
from feedback_wizard.models.submission import Failure
from feedback_wizard.services.feedback_schema import FEEDBACK_SCHEMA
from feedback_wizard.services.persistence_service import build_persistence_service
from feedback_wizard.services.sentiment_service import build_sentiment_service
from feedback_wizard.services.session_store import WizardSession, WizardSessionStore
from feedback_wizard.services.submission import SubmissionOrchestrator
from feedback_wizard.services.wizard import UnknownFieldError, WizardError, WizardStateMachine

logger = logging.getLogger(__name__)
router = APIRouter()


@lru_cache()
def get_state_machine() -> WizardStateMachine:
    return WizardStateMachine(FEEDBACK_SCHEMA)


@lru_cache()
def get_session_store() -> WizardSessionStore:
    ttl_minutes = get_settings().session_ttl_minutes
    return WizardSessionStore(ttl=timedelta(minutes=ttl_minutes) if ttl_minutes > 0 else None)


@lru_cache()
def get_orchestrator() -> SubmissionOrchestrator:
    settings = get_settings()
    return SubmissionOrchestrator(
        build_persistence_service(settings),
        build_sentiment_service(settings)
    )


def _load_session(session_id: str, store: WizardSessionStore) -> WizardSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _ensure_idle(session: WizardSession) -> None:
    if session.in_flight:
        raise HTTPException(status_code=409, detail="A submission is already in progress")


def _to_view(session: WizardSession, machine: WizardStateMachine) -> WizardView:
    state = session.state
    return WizardView(
        session_id=session.id,
        phase=state.phase.value,
        current_step=state.step,
        total_steps=machine.total_steps,
        in_flight=session.in_flight,
        values=state.form.to_record(),
        errors=state.validation.messages() if state.validation else {},
        first_invalid_field=state.first_invalid_field,
        result=SubmissionResultOut.from_result(state.result) if state.result else None,
        notifications=[NotificationOut(**notice) for notice in session.notifications.drain()]
    )


@router.get("/schema", response_model=SurveySchemaOut)
async def get_schema(machine: WizardStateMachine = Depends(get_state_machine)):
    """Describe the survey steps and fields"""
    return SurveySchemaOut.from_schema(machine.schema)


@router.post("/sessions", response_model=WizardView, status_code=201)
async def start_session(
    machine: WizardStateMachine = Depends(get_state_machine),
    store: WizardSessionStore = Depends(get_session_store)
):
    """Start a new wizard session at step 1 with default answers"""
    session = store.create(machine)
    return _to_view(session, machine)


@router.get("/sessions/{session_id}", response_model=WizardView)
async def get_session(
    session_id: str,
    machine: WizardStateMachine = Depends(get_state_machine),
    store: WizardSessionStore = Depends(get_session_store)
):
    session = _load_session(session_id, store)
    return _to_view(session, machine)


@router.delete("/sessions/{session_id}")
async def discard_session(
    session_id: str,
    store: WizardSessionStore = Depends(get_session_store)
):
    session = _load_session(session_id, store)
    _ensure_idle(session)
    store.discard(session_id)
    return {"success": True}


@router.patch("/sessions/{session_id}/values", response_model=WizardView)
async def update_values(
    session_id: str,
    update: FieldValuesUpdate,
    machine: WizardStateMachine = Depends(get_state_machine),
    store: WizardSessionStore = Depends(get_session_store)
):
    """Record user edits to the current answers"""
    session = _load_session(session_id, store)
    _ensure_idle(session)
    try:
        session.state = machine.edit(session.state, update.values)
    except UnknownFieldError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except WizardError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _to_view(session, machine)


@router.post("/sessions/{session_id}/advance", response_model=WizardView)
async def advance(
    session_id: str,
    machine: WizardStateMachine = Depends(get_state_machine),
    store: WizardSessionStore = Depends(get_session_store)
):
    """Move to the next step if the current one validates"""
    session = _load_session(session_id, store)
    _ensure_idle(session)
    session.state = machine.advance(session.state)
    return _to_view(session, machine)


@router.post("/sessions/{session_id}/retreat", response_model=WizardView)
async def retreat(
    session_id: str,
    machine: WizardStateMachine = Depends(get_state_machine),
    store: WizardSessionStore = Depends(get_session_store)
):
    session = _load_session(session_id, store)
    _ensure_idle(session)
    session.state = machine.retreat(session.state)
    return _to_view(session, machine)


@router.post("/sessions/{session_id}/submit", response_model=WizardView)
async def submit_session(
    session_id: str,
    machine: WizardStateMachine = Depends(get_state_machine),
    store: WizardSessionStore = Depends(get_session_store),
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator)
):
    """
    Validate every answer and, when valid, persist and analyze the feedback.

    Only honoured on the last step; elsewhere the session is returned unchanged.
    """
    session = _load_session(session_id, store)
    _ensure_idle(session)

    session.in_flight = True
    try:
        session.state = await machine.submit(session.state, orchestrator, notifier=session.notifications)
    finally:
        session.in_flight = False

    return _to_view(session, machine)


@router.post("/sessions/{session_id}/reset", response_model=WizardView)
async def reset_session(
    session_id: str,
    machine: WizardStateMachine = Depends(get_state_machine),
    store: WizardSessionStore = Depends(get_session_store)
):
    """Clear every answer and return to step 1"""
    session = _load_session(session_id, store)
    _ensure_idle(session)
    session.state = machine.reset(session.state)
    session.notifications.drain()
    return _to_view(session, machine)


@router.post("", response_model=SubmissionResultOut)
async def submit_feedback(
    record: Dict[str, Any],
    response: Response,
    machine: WizardStateMachine = Depends(get_state_machine),
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator)
):
    """Submit a complete feedback record in one request (PUBLIC endpoint)"""
    form = FormState.from_record(machine.schema, record)
    validation = machine.validator.validate_all(form)
    if not validation.is_valid:
        raise HTTPException(
            status_code=422,
            detail={
                "errors": validation.messages(),
                "first_invalid_field": validation.first_invalid_field
            }
        )

    result = await orchestrator.submit(form.freeze())
    if isinstance(result, Failure):
        response.status_code = 502
    return SubmissionResultOut.from_result(result)
