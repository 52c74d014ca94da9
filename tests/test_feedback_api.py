import asyncio
from datetime import timedelta

import pytest

from feedback_wizard.models.submission import AnalysisError, PersistError
from feedback_wizard.routers.feedback import submit_session
from feedback_wizard.services.session_store import WizardSessionStore
from feedback_wizard.services.submission import NOT_SAVED_MESSAGE, SAVED_NOT_ANALYZED_MESSAGE
from feedback_wizard.services.wizard import Phase

from conftest import STEP_ANSWERS


def start(client):
    response = client.post("/api/feedback/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


def fill_to_last_step(client, session_id):
    for ordinal in range(1, 6):
        client.patch(f"/api/feedback/sessions/{session_id}/values", json={"values": STEP_ANSWERS[ordinal]})
        view = client.post(f"/api/feedback/sessions/{session_id}/advance").json()
        assert view["current_step"] == ordinal + 1, view["errors"]
    client.patch(f"/api/feedback/sessions/{session_id}/values", json={"values": STEP_ANSWERS[6]})


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_schema_describes_steps_and_fields(client):
    body = client.get("/api/feedback/schema").json()

    assert body["total_steps"] == 6
    assert body["steps"][0]["fields"] == ["organizationName", "personName", "role", "otherRole"]
    role = next(f for f in body["fields"] if f["id"] == "role")
    assert role["type"] == "enum"
    assert "Other" in role["options"]
    other_role = next(f for f in body["fields"] if f["id"] == "otherRole")
    assert other_role["conditionally_required"] is True


def test_new_session_starts_with_defaults(client):
    view = client.get(f"/api/feedback/sessions/{start(client)}").json()

    assert view["phase"] == "step"
    assert view["current_step"] == 1
    assert view["values"]["overallExperience"] == 0
    assert view["values"]["services_adFilm"] is False
    assert view["errors"] == {}


def test_advance_reports_first_invalid_field(client):
    session_id = start(client)

    view = client.post(f"/api/feedback/sessions/{session_id}/advance").json()

    assert view["current_step"] == 1
    assert view["first_invalid_field"] == "organizationName"
    assert view["errors"]["role"] == "Please select your role."


def test_unknown_fields_are_rejected(client):
    session_id = start(client)

    response = client.patch(f"/api/feedback/sessions/{session_id}/values", json={"values": {"nope": 1}})

    assert response.status_code == 422


def test_unknown_session_is_404(client):
    assert client.get("/api/feedback/sessions/missing").status_code == 404
    assert client.post("/api/feedback/sessions/missing/advance").status_code == 404


def test_retreat_keeps_answers(client):
    session_id = start(client)
    fill_to_last_step(client, session_id)

    view = client.post(f"/api/feedback/sessions/{session_id}/retreat").json()

    assert view["current_step"] == 5
    assert view["values"]["otherComments"] == STEP_ANSWERS[6]["otherComments"]


def test_submit_before_last_step_does_nothing(client, persistence):
    session_id = start(client)

    view = client.post(f"/api/feedback/sessions/{session_id}/submit").json()

    assert view["phase"] == "step"
    assert view["current_step"] == 1
    assert persistence.records == []


def test_full_wizard_submission(client, persistence, analyzer):
    session_id = start(client)
    fill_to_last_step(client, session_id)

    view = client.post(f"/api/feedback/sessions/{session_id}/submit").json()

    assert view["phase"] == "submitted"
    assert view["result"]["kind"] == "success"
    assert view["result"]["saved"] is True
    assert view["result"]["analysis"]["sentiment"] == "positive"
    assert view["notifications"][0]["kind"] == "success"
    assert len(persistence.records) == 1
    assert persistence.records[0]["personName"] == "Jordan Lee"

    # notices are delivered once
    assert client.get(f"/api/feedback/sessions/{session_id}").json()["notifications"] == []

    # a submitted form is read-only
    response = client.patch(f"/api/feedback/sessions/{session_id}/values", json={"values": {"personName": "X"}})
    assert response.status_code == 409


def test_persist_failure_is_reported(client, persistence, analyzer):
    persistence.error = PersistError("quota exceeded")
    session_id = start(client)
    fill_to_last_step(client, session_id)

    view = client.post(f"/api/feedback/sessions/{session_id}/submit").json()

    assert view["result"] == {
        "kind": "failure",
        "saved": False,
        "analysis": None,
        "error": "quota exceeded",
        "stage": "persist",
    }
    assert view["notifications"] == [{"kind": "error", "message": NOT_SAVED_MESSAGE}]
    assert analyzer.texts == []


def test_analysis_failure_is_partial_success(client, analyzer):
    analyzer.error = AnalysisError("classifier offline")
    session_id = start(client)
    fill_to_last_step(client, session_id)

    view = client.post(f"/api/feedback/sessions/{session_id}/submit").json()

    assert view["result"]["kind"] == "success_no_analysis"
    assert view["result"]["saved"] is True
    assert view["result"]["analysis"] is None
    assert view["result"]["error"] == "classifier offline"
    assert view["notifications"] == [{"kind": "success", "message": SAVED_NOT_ANALYZED_MESSAGE}]


def test_reset_allows_resubmission(client, persistence):
    persistence.error = PersistError("quota exceeded")
    session_id = start(client)
    fill_to_last_step(client, session_id)
    client.post(f"/api/feedback/sessions/{session_id}/submit")

    view = client.post(f"/api/feedback/sessions/{session_id}/reset").json()
    assert view["phase"] == "step"
    assert view["current_step"] == 1
    assert view["result"] is None
    assert view["values"]["organizationName"] == ""

    persistence.error = None
    fill_to_last_step(client, session_id)
    view = client.post(f"/api/feedback/sessions/{session_id}/submit").json()
    assert view["result"]["kind"] == "success"
    assert len(persistence.records) == 2


def test_session_actions_are_blocked_while_in_flight(client):
    from feedback_wizard.main import app
    from feedback_wizard.routers.feedback import get_session_store

    session_id = start(client)
    store = app.dependency_overrides[get_session_store]()
    store.get(session_id).in_flight = True

    for action in ("advance", "retreat", "submit", "reset"):
        assert client.post(f"/api/feedback/sessions/{session_id}/{action}").status_code == 409
    assert client.delete(f"/api/feedback/sessions/{session_id}").status_code == 409

    store.get(session_id).in_flight = False
    assert client.delete(f"/api/feedback/sessions/{session_id}").status_code == 200
    assert client.get(f"/api/feedback/sessions/{session_id}").status_code == 404


def test_one_shot_submission(client, persistence, valid_answers):
    response = client.post("/api/feedback", json=valid_answers)

    assert response.status_code == 200
    assert response.json()["kind"] == "success"
    assert persistence.records[0]["role"] == "CEO"
    assert persistence.records[0]["otherRole"] == ""


def test_one_shot_submission_validates_everything(client, persistence, valid_answers):
    response = client.post("/api/feedback", json={**valid_answers, "role": "Other"})

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == {
        "otherRole": "Please specify your role if 'Other' is selected."
    }
    assert persistence.records == []


def test_one_shot_persist_failure_is_bad_gateway(client, persistence, valid_answers):
    persistence.error = PersistError("Failed to save data to Google Sheet")

    response = client.post("/api/feedback", json=valid_answers)

    assert response.status_code == 502
    assert response.json()["error"] == "Failed to save data to Google Sheet"


class CrashingOrchestrator:
    async def submit(self, form, notifier=None):
        raise RuntimeError("worker crashed")


def test_crashed_submission_leaves_session_editable(machine):
    store = WizardSessionStore()
    session = store.create(machine)
    for ordinal in range(1, 6):
        session.state = machine.advance(machine.edit(session.state, STEP_ANSWERS[ordinal]))
    session.state = machine.edit(session.state, STEP_ANSWERS[6])

    with pytest.raises(RuntimeError):
        asyncio.run(submit_session(session.id, machine=machine, store=store, orchestrator=CrashingOrchestrator()))

    assert session.in_flight is False
    assert session.state.phase is Phase.STEP
    assert session.state.result is None
    assert not session.state.form.locked


def test_session_store_ttl_comes_from_settings(monkeypatch):
    from feedback_wizard.config import Settings
    from feedback_wizard.routers import feedback

    monkeypatch.setattr(feedback, "get_settings", lambda: Settings(session_ttl_minutes=15))
    feedback.get_session_store.cache_clear()
    try:
        assert feedback.get_session_store().ttl == timedelta(minutes=15)
    finally:
        feedback.get_session_store.cache_clear()
