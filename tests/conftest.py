import pytest
from fastapi.testclient import TestClient

from feedback_wizard.models.submission import AnalysisOutcome
from feedback_wizard.services.feedback_schema import FEEDBACK_SCHEMA
from feedback_wizard.services.notification_service import NotificationSink
from feedback_wizard.services.persistence_service import PersistenceService
from feedback_wizard.services.sentiment_service import SentimentAnalysisService
from feedback_wizard.services.wizard import WizardStateMachine


class FakePersistence(PersistenceService):
    def __init__(self, error=None):
        self.error = error
        self.records = []

    async def save(self, record):
        self.records.append(record)
        if self.error is not None:
            raise self.error


class FakeAnalyzer(SentimentAnalysisService):
    def __init__(self, outcome=None, error=None):
        self.outcome = outcome or AnalysisOutcome(sentiment="positive", topic="Teamwork", confidence=0.92)
        self.error = error
        self.texts = []

    async def analyze(self, text):
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        return self.outcome


class RecordingSink(NotificationSink):
    def __init__(self):
        self.notices = []

    def notify(self, kind, message):
        self.notices.append((kind, message))


class BrokenSink(NotificationSink):
    def notify(self, kind, message):
        raise RuntimeError("toast service down")


STEP_ANSWERS = {
    1: {
        "organizationName": "Acme Corp",
        "personName": "Jordan Lee",
        "role": "CEO",
    },
    2: {
        "overallExperience": 5,
        "impactAssessment": "Positive",
        "qualityOfService": 4,
        "deliveryTime": 4,
    },
    3: {
        "brandStrategyAlignment": "4",
        "services_graphicDesign": True,
        "businessGoalsAlignment": "5",
        "deadlineAdherence": "3",
    },
    4: {
        "feedbackIncorporation": "yes",
        "digitalMarketingResults": "4",
        "contentCreationRating": "5",
    },
    5: {
        "teamResponseTime": "4",
        "workingRelationship": "Very collaborative and responsive team.",
    },
    6: {
        "likelihoodToContinue": "Very Likely",
        "likelihoodToRecommend": "Likely",
        "otherComments": "Keep up the great work on video content!",
    },
}


def all_answers():
    answers = {}
    for step_answers in STEP_ANSWERS.values():
        answers.update(step_answers)
    return answers


@pytest.fixture
def machine():
    return WizardStateMachine(FEEDBACK_SCHEMA)


@pytest.fixture
def valid_answers():
    return all_answers()


@pytest.fixture
def persistence():
    return FakePersistence()


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def client(persistence, analyzer):
    from feedback_wizard.main import app
    from feedback_wizard.routers.feedback import get_orchestrator, get_session_store
    from feedback_wizard.services.session_store import WizardSessionStore
    from feedback_wizard.services.submission import SubmissionOrchestrator

    store = WizardSessionStore()
    orchestrator = SubmissionOrchestrator(persistence, analyzer)
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def broken_sink():
    return BrokenSink()
