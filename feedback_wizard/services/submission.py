"""Two-phase submission: persist the record, then analyze it"""
from enum import Enum
from typing import Optional, Sequence, Tuple
import logging

from feedback_wizard.models.schema import FormState
from feedback_wizard.models.submission import (
    AnalysisError,
    Failure,
    PersistError,
    SubmissionResult,
    Success,
    SuccessNoAnalysis,
)
from feedback_wizard.services.feedback_schema import ANALYSIS_TEXT_FIELDS, NO_FEEDBACK_TEXT
from feedback_wizard.services.notification_service import (
    LoggingNotificationSink,
    NotificationSink,
    notify_safely,
)
from feedback_wizard.services.persistence_service import PersistenceService
from feedback_wizard.services.sentiment_service import SentimentAnalysisService

logger = logging.getLogger(__name__)

SAVED_AND_ANALYZED_MESSAGE = (
    "Feedback Submitted! Thank you for your valuable input. "
    "Your feedback has been recorded and analyzed."
)
SAVED_NOT_ANALYZED_MESSAGE = "Your feedback has been saved, but analysis is currently unavailable."
NOT_SAVED_MESSAGE = "Your feedback was not saved. Please try again."


class SubmissionPhase(str, Enum):
    IDLE = "idle"
    PERSISTING = "persisting"
    FAILED = "failed"
    ANALYZING = "analyzing"
    SUCCEEDED = "succeeded"
    SUCCEEDED_DEGRADED = "succeeded_degraded"


def build_feedback_text(
    form: FormState,
    text_fields: Sequence[Tuple[str, str]] = ANALYSIS_TEXT_FIELDS,
    placeholder: str = NO_FEEDBACK_TEXT
) -> str:
    """Join the labelled free-text answers that are not empty strings, separated by blank lines"""
    parts = []
    for field_id, label in text_fields:
        value = form.raw(field_id)
        if isinstance(value, str) and value:
            parts.append(f"{label}: {value}")
    return "\n\n".join(parts) or placeholder


class SubmissionOrchestrator:
    """
    Drives Persist then Analyze and folds both outcomes into one result.

    Persist runs exactly once per call. Analyze runs only after a successful
    Persist, and its failure never turns a stored record into a Failure.
    """

    def __init__(
        self,
        persistence: PersistenceService,
        analyzer: SentimentAnalysisService,
        notifier: Optional[NotificationSink] = None,
        text_fields: Sequence[Tuple[str, str]] = ANALYSIS_TEXT_FIELDS,
        placeholder: str = NO_FEEDBACK_TEXT
    ):
        self.persistence = persistence
        self.analyzer = analyzer
        self.notifier = notifier or LoggingNotificationSink()
        self.text_fields = text_fields
        self.placeholder = placeholder

    async def submit(self, form: FormState, notifier: Optional[NotificationSink] = None) -> SubmissionResult:
        sink = notifier or self.notifier
        phase = SubmissionPhase.IDLE

        phase = self._enter(phase, SubmissionPhase.PERSISTING)
        try:
            await self.persistence.save(form.to_record())
        except PersistError as e:
            return self._fail(phase, sink, e.message)
        except Exception as e:
            logger.error(f"Unexpected persistence failure: {e}")
            return self._fail(phase, sink, str(e) or "An unexpected error occurred")

        phase = self._enter(phase, SubmissionPhase.ANALYZING)
        text = build_feedback_text(form, self.text_fields, self.placeholder)
        try:
            outcome = await self.analyzer.analyze(text)
        except AnalysisError as e:
            return self._degrade(phase, sink, e.message)
        except Exception as e:
            logger.error(f"Unexpected analysis failure: {e}")
            return self._degrade(phase, sink, str(e) or "An unexpected error occurred")

        self._enter(phase, SubmissionPhase.SUCCEEDED)
        notify_safely(sink, "success", SAVED_AND_ANALYZED_MESSAGE)
        return Success(analysis=outcome)

    def _fail(self, phase: SubmissionPhase, sink: NotificationSink, message: str) -> Failure:
        self._enter(phase, SubmissionPhase.FAILED)
        logger.error(f"Submission not saved: {message}")
        notify_safely(sink, "error", NOT_SAVED_MESSAGE)
        return Failure(message=message, stage="persist")

    def _degrade(self, phase: SubmissionPhase, sink: NotificationSink, message: str) -> SuccessNoAnalysis:
        self._enter(phase, SubmissionPhase.SUCCEEDED_DEGRADED)
        logger.warning(f"Submission saved without analysis: {message}")
        notify_safely(sink, "success", SAVED_NOT_ANALYZED_MESSAGE)
        return SuccessNoAnalysis(error=message)

    @staticmethod
    def _enter(current: SubmissionPhase, target: SubmissionPhase) -> SubmissionPhase:
        logger.debug(f"Submission {current.value} -> {target.value}")
        return target
