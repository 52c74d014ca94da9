"""Submission outcomes and collaborator errors"""
from dataclasses import dataclass
from typing import ClassVar, Literal, Union

from pydantic import BaseModel, Field, field_validator


class AnalysisOutcome(BaseModel):
    """Sentiment/topic classification of the free-text answers"""
    sentiment: Literal["positive", "neutral", "negative"]
    topic: str
    confidence: float = Field(..., ge=0.0, le=1.0)

    @field_validator("sentiment", mode="before")
    @classmethod
    def normalize_sentiment(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class SubmissionError(Exception):
    """Failure reported by an external collaborator"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PersistError(SubmissionError):
    """The record could not be stored"""


class AnalysisError(SubmissionError):
    """The stored record could not be classified"""


@dataclass(frozen=True)
class Success:
    analysis: AnalysisOutcome
    kind: ClassVar[str] = "success"


@dataclass(frozen=True)
class SuccessNoAnalysis:
    error: str
    kind: ClassVar[str] = "success_no_analysis"


@dataclass(frozen=True)
class Failure:
    message: str
    stage: str = "persist"
    kind: ClassVar[str] = "failure"


SubmissionResult = Union[Success, SuccessNoAnalysis, Failure]
