"""
Domain models for daily health tasks.

These models represent the core business concepts and are framework-agnostic.
Tasks and outcomes are immutable; the only mutable state in the workflow lives
in the task store and the review flow.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class TaskCategory(str, Enum):
    """How a task must be reviewed before it counts as complete."""

    SIMPLE = "simple"
    QUESTIONNAIRE = "questionnaire"
    HEALTH_REVIEW = "health_review"


class ReviewKind(str, Enum):
    """The embedded step a task requires."""

    NONE = "none"
    QUESTIONNAIRE = "questionnaire"
    HEALTH_DASHBOARD = "health_dashboard"


class CompletionState(str, Enum):
    NOT_STARTED = "not_started"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"


class OutcomeKind(str, Enum):
    """Result kinds a review step can report."""

    ANSWERED = "answered"
    SKIPPED = "skipped"
    DASHBOARD_FINISHED = "dashboard_finished"
    CONFIRMED = "confirmed"


class MetricType(str, Enum):
    """Health measurements shown on the dashboard."""

    STEPS = "steps"
    HEART_RATE = "heart_rate"
    SLEEP_HOURS = "sleep_hours"


class QuestionnaireItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    link_id: str = Field(min_length=1)
    text: str
    required: bool = True


class Questionnaire(BaseModel):
    """Embedded review payload for questionnaire tasks."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str
    items: tuple[QuestionnaireItem, ...] = ()

    def missing_answers(self, answers: dict[str, str]) -> list[str]:
        """Return the link ids of required items without a non-blank answer."""
        return [
            item.link_id
            for item in self.items
            if item.required and not str(answers.get(item.link_id, "")).strip()
        ]


class DailySchedule(BaseModel):
    model_config = ConfigDict(frozen=True)

    hour: int = Field(ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)


class Task(BaseModel):
    """A unit of work the user can complete, optionally gated by a review step."""

    model_config = ConfigDict(frozen=True)  # Fixed for the lifetime of a run

    id: str = Field(min_length=1, description="Unique task identifier")
    title: str
    instructions: str = "Complete this task as instructed."
    category: TaskCategory = TaskCategory.SIMPLE
    questionnaire: Questionnaire | None = None
    schedule: DailySchedule | None = None

    @model_validator(mode="after")
    def questionnaire_matches_category(self) -> "Task":
        if self.category == TaskCategory.QUESTIONNAIRE and self.questionnaire is None:
            raise ValueError("questionnaire tasks require a questionnaire payload")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def required_review(self) -> ReviewKind:
        if self.category == TaskCategory.QUESTIONNAIRE:
            return ReviewKind.QUESTIONNAIRE
        if self.category == TaskCategory.HEALTH_REVIEW:
            return ReviewKind.HEALTH_DASHBOARD
        return ReviewKind.NONE


class ReviewOutcome(BaseModel):
    """Transient result of an embedded review; never persisted."""

    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    answers: dict[str, str] = Field(default_factory=dict)
    received_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def answered(cls, answers: dict[str, str]) -> "ReviewOutcome":
        return cls(kind=OutcomeKind.ANSWERED, answers=answers)

    @classmethod
    def skipped(cls) -> "ReviewOutcome":
        return cls(kind=OutcomeKind.SKIPPED)


class SleepSample(BaseModel):
    """One sleep interval recorded by the health store."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def end_not_before_start(self) -> "SleepSample":
        if self.end < self.start:
            raise ValueError("sleep sample ends before it starts")
        return self

    @property
    def hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600


class AuthorizationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    granted: bool
    error: str | None = None


class MetricsSnapshot(BaseModel):
    """
    Today's metrics as last fetched.

    A ``None`` value means the metric is unavailable; ``errors`` carries the
    reason for each unavailable metric.
    """

    model_config = ConfigDict(frozen=True)

    steps: float | None = None
    heart_rate: float | None = None
    sleep_hours: float | None = None
    errors: dict[MetricType, str] = Field(default_factory=dict)
    captured_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def value(self, metric: MetricType) -> float | None:
        return getattr(self, metric.value)

    @property
    def available(self) -> list[MetricType]:
        return [m for m in MetricType if self.value(m) is not None]
