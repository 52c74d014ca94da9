"""Multi-step survey wizard state machine"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping, Optional, TYPE_CHECKING
import logging

from feedback_wizard.models.schema import FormState, SurveySchema, ValidationResult, coerce_value
from feedback_wizard.models.submission import SubmissionResult
from feedback_wizard.services.schema_validator import SchemaValidator

if TYPE_CHECKING:
    from feedback_wizard.services.notification_service import NotificationSink
    from feedback_wizard.services.submission import SubmissionOrchestrator

logger = logging.getLogger(__name__)


class WizardError(RuntimeError):
    """A transition was requested that the current phase does not allow"""


class UnknownFieldError(WizardError):
    def __init__(self, field_ids):
        self.field_ids = sorted(field_ids)
        super().__init__(f"Unknown field(s): {', '.join(self.field_ids)}")


class Phase(str, Enum):
    STEP = "step"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class WizardState:
    """
    Immutable snapshot of a wizard session.

    `validation` holds the most recent Advance/Submit check so the caller can
    highlight errors; `result` is set once the session reaches SUBMITTED.
    """
    form: FormState
    phase: Phase = Phase.STEP
    step: int = 1
    validation: Optional[ValidationResult] = None
    result: Optional[SubmissionResult] = None

    @property
    def first_invalid_field(self) -> Optional[str]:
        return self.validation.first_invalid_field if self.validation else None


class WizardStateMachine:
    """
    Pure transitions over WizardState values.

    Every method returns a new state; transitions that do not apply to the
    current phase or step return the state unchanged.
    """

    def __init__(self, schema: SurveySchema, validator: Optional[SchemaValidator] = None):
        self.schema = schema
        self.validator = validator or SchemaValidator(schema)

    @property
    def total_steps(self) -> int:
        return self.schema.total_steps

    def start(self) -> WizardState:
        return WizardState(form=FormState.initial(self.schema))

    def edit(self, state: WizardState, values: Mapping[str, Any]) -> WizardState:
        """Apply user edits; errors already on display are re-checked against the new values"""
        unknown = [field_id for field_id in values if not self.schema.has_field(field_id)]
        if unknown:
            raise UnknownFieldError(unknown)
        if state.phase is not Phase.STEP:
            raise WizardError(f"Cannot edit answers while {state.phase.value}")

        updates = {
            field_id: coerce_value(self.schema.field(field_id).type, raw)
            for field_id, raw in values.items()
        }
        form = state.form.with_values(updates)

        validation = None
        if state.validation is not None:
            validation = self.validator.validate(state.validation.errors.keys(), form)
        return replace(state, form=form, validation=validation)

    def advance(self, state: WizardState) -> WizardState:
        if state.phase is not Phase.STEP or state.step >= self.total_steps:
            return state

        validation = self.validator.validate_step(state.step, state.form)
        if not validation.is_valid:
            logger.info(f"Step {state.step} blocked on {validation.first_invalid_field}")
            return replace(state, validation=validation)

        return replace(state, step=state.step + 1, validation=None)

    def retreat(self, state: WizardState) -> WizardState:
        if state.phase is not Phase.STEP or state.step <= 1:
            return state
        return replace(state, step=state.step - 1, validation=None)

    def begin_submit(self, state: WizardState) -> WizardState:
        """Validate the whole form from the last step and freeze it on success"""
        if state.phase is not Phase.STEP or state.step != self.total_steps:
            return state

        validation = self.validator.validate_all(state.form)
        if not validation.is_valid:
            logger.info(f"Submit blocked on {validation.first_invalid_field}")
            return replace(state, validation=validation)

        return replace(state, phase=Phase.SUBMITTING, form=state.form.freeze(), validation=validation)

    def finish_submit(self, state: WizardState, result: SubmissionResult) -> WizardState:
        if state.phase is not Phase.SUBMITTING:
            raise WizardError(f"No submission in progress (phase is {state.phase.value})")
        return replace(state, phase=Phase.SUBMITTED, result=result)

    async def submit(
        self,
        state: WizardState,
        orchestrator: "SubmissionOrchestrator",
        notifier: Optional["NotificationSink"] = None,
    ) -> WizardState:
        """Run Submit end to end; returns the SUBMITTED state, or the unchanged/blocked state"""
        pending = self.begin_submit(state)
        if pending.phase is not Phase.SUBMITTING:
            return pending

        result = await orchestrator.submit(pending.form, notifier=notifier)
        return self.finish_submit(pending, result)

    def reset(self, state: WizardState) -> WizardState:
        return self.start()
