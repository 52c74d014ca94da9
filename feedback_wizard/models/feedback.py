"""Feedback wizard API models"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from feedback_wizard.models.schema import SurveySchema
from feedback_wizard.models.submission import AnalysisOutcome, SubmissionResult, Success, SuccessNoAnalysis


class FieldValuesUpdate(BaseModel):
    """User edits to one or more answers"""
    values: Dict[str, Any] = Field(..., description="Field id -> new raw value")


class FieldSchemaOut(BaseModel):
    id: str
    type: str
    label: str
    required: bool
    conditionally_required: bool = False
    options: List[str] = []


class StepSchemaOut(BaseModel):
    ordinal: int
    title: str
    fields: List[str]


class SurveySchemaOut(BaseModel):
    """Survey layout for clients rendering the wizard"""
    total_steps: int
    steps: List[StepSchemaOut]
    fields: List[FieldSchemaOut]

    @classmethod
    def from_schema(cls, schema: SurveySchema) -> "SurveySchemaOut":
        return cls(
            total_steps=schema.total_steps,
            steps=[
                StepSchemaOut(ordinal=step.ordinal, title=step.title, fields=list(step.field_ids))
                for step in schema.steps
            ],
            fields=[
                FieldSchemaOut(
                    id=spec.id,
                    type=spec.type.value,
                    label=spec.label,
                    required=spec.required,
                    conditionally_required=spec.required_when is not None,
                    options=list(spec.options)
                )
                for spec in schema.fields
            ]
        )


class SubmissionResultOut(BaseModel):
    """Discriminated submission outcome; `kind` tells the client which fields are set"""
    kind: str
    saved: bool
    analysis: Optional[AnalysisOutcome] = None
    error: Optional[str] = None
    stage: Optional[str] = None

    @classmethod
    def from_result(cls, result: SubmissionResult) -> "SubmissionResultOut":
        if isinstance(result, Success):
            return cls(kind=result.kind, saved=True, analysis=result.analysis)
        if isinstance(result, SuccessNoAnalysis):
            return cls(kind=result.kind, saved=True, error=result.error)
        return cls(kind=result.kind, saved=False, error=result.message, stage=result.stage)


class NotificationOut(BaseModel):
    kind: str
    message: str


class WizardView(BaseModel):
    """Wizard session as seen by the client"""
    session_id: str
    phase: str
    current_step: int
    total_steps: int
    in_flight: bool = False
    values: Dict[str, Any]
    errors: Dict[str, str] = {}
    first_invalid_field: Optional[str] = None
    result: Optional[SubmissionResultOut] = None
    notifications: List[NotificationOut] = []
