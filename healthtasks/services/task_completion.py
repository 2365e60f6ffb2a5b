"""
Task completion workflow.

A task opened from the schedule gets a ``TaskReviewFlow``, a small state
machine that runs whatever review step the task's category requires:

    NOT_STARTED -> IN_REVIEW -> COMPLETED      (questionnaire, health review)
    NOT_STARTED -> COMPLETED                   (simple)

Completion is committed to the ``TaskStore`` and announced to listeners.
A failed write is reported as a warning and never reverts the completion.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from healthtasks.domain.errors import (
    IncompleteReviewError,
    InvalidTransitionError,
    PersistenceError,
)
from healthtasks.domain.models import (
    CompletionState,
    OutcomeKind,
    ReviewKind,
    ReviewOutcome,
    Task,
)
from healthtasks.services.task_catalog import TaskCatalog
from healthtasks.services.task_store import TaskStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TaskCompletedEvent:
    """Announces a completed task to the UI layer."""

    task_id: str
    outcome: OutcomeKind
    persisted: bool
    completed_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class CompletionResult:
    task_id: str
    state: CompletionState
    persisted: bool
    newly_completed: bool
    warning: str | None = None


CompletionListener = Callable[[TaskCompletedEvent], None]


class TaskReviewFlow:
    """State machine for one opened task. Create through ``TaskCompletionService.open``."""

    def __init__(
        self, task: Task, service: "TaskCompletionService", state: CompletionState
    ) -> None:
        self.task = task
        self._service = service
        self._state = state
        self.dashboard_displayed = False
        self.result: CompletionResult | None = None
        if state == CompletionState.COMPLETED:
            self.result = CompletionResult(
                task_id=task.id, state=state, persisted=True, newly_completed=False
            )

    @property
    def state(self) -> CompletionState:
        return self._state

    @property
    def required_review(self) -> ReviewKind:
        return self.task.required_review

    @property
    def is_completed(self) -> bool:
        return self._state == CompletionState.COMPLETED

    def _require(self, state: CompletionState, action: str) -> None:
        if self._state != state:
            raise InvalidTransitionError(self.task.id, self._state.value, action)

    def _require_review(self, kind: ReviewKind, action: str) -> None:
        if self.required_review != kind:
            raise InvalidTransitionError(
                self.task.id, f"{self._state.value} ({self.required_review.value} review)", action
            )

    def begin_review(self) -> None:
        """Present the questionnaire or the health dashboard."""
        self._require(CompletionState.NOT_STARTED, "begin review of")
        if self.required_review == ReviewKind.NONE:
            raise InvalidTransitionError(self.task.id, self._state.value, "review simple")
        self._state = CompletionState.IN_REVIEW
        self.dashboard_displayed = False
        self._service.logger.info(
            "task_review_started", task_id=self.task.id, review=self.required_review.value
        )

    def confirm(self) -> CompletionResult:
        """Single confirmation action for simple tasks."""
        self._require_review(ReviewKind.NONE, "confirm")
        self._require(CompletionState.NOT_STARTED, "confirm")
        return self._complete(ReviewOutcome(kind=OutcomeKind.CONFIRMED))

    def submit(self, outcome: ReviewOutcome) -> CompletionResult | None:
        """
        Deliver the questionnaire outcome.

        Only an answered questionnaire completes the task. A skipped one
        leaves the questionnaire open in IN_REVIEW for another attempt.
        """
        self._require_review(ReviewKind.QUESTIONNAIRE, "submit questionnaire for")
        self._require(CompletionState.IN_REVIEW, "submit questionnaire for")

        if outcome.kind == OutcomeKind.SKIPPED:
            self._service.logger.info("task_review_skipped", task_id=self.task.id)
            return None
        if outcome.kind != OutcomeKind.ANSWERED:
            raise InvalidTransitionError(
                self.task.id, self._state.value, f"submit a '{outcome.kind.value}' outcome for"
            )

        questionnaire = self.task.questionnaire
        if questionnaire is not None:
            missing = questionnaire.missing_answers(outcome.answers)
            if missing:
                raise IncompleteReviewError(self.task.id, missing)

        return self._complete(outcome)

    def mark_dashboard_displayed(self) -> None:
        """Record that the health dashboard was shown. Does not complete the task."""
        self._require_review(ReviewKind.HEALTH_DASHBOARD, "display dashboard for")
        self._require(CompletionState.IN_REVIEW, "display dashboard for")
        self.dashboard_displayed = True

    def finish_review(self) -> CompletionResult:
        """Explicit "Finish Review" action on the health dashboard."""
        self._require_review(ReviewKind.HEALTH_DASHBOARD, "finish review of")
        self._require(CompletionState.IN_REVIEW, "finish review of")
        if not self.dashboard_displayed:
            raise InvalidTransitionError(
                self.task.id, "in_review (dashboard not displayed)", "finish review of"
            )
        return self._complete(ReviewOutcome(kind=OutcomeKind.DASHBOARD_FINISHED))

    def _complete(self, outcome: ReviewOutcome) -> CompletionResult:
        self._state = CompletionState.COMPLETED
        self.result = self._service._commit(self.task, outcome)
        return self.result


class TaskCompletionService:
    """
    Decides the completion path for a task and commits the result.

    Holds no long-lived state of its own: completion lives in the TaskStore.
    """

    def __init__(self, store: TaskStore, catalog: TaskCatalog | None = None) -> None:
        self.store = store
        self.catalog = catalog
        self._listeners: list[CompletionListener] = []
        self.logger = logger.bind(component="task_completion_service")

    def add_listener(self, listener: CompletionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: CompletionListener) -> None:
        self._listeners.remove(listener)

    def open(self, task: Task) -> TaskReviewFlow:
        """Open a task. Already-completed tasks short-circuit to COMPLETED."""
        if self.store.is_complete(task.id):
            self.logger.info("task_opened_completed", task_id=task.id)
            return TaskReviewFlow(task, self, CompletionState.COMPLETED)

        self.logger.info(
            "task_opened", task_id=task.id, review=task.required_review.value
        )
        return TaskReviewFlow(task, self, CompletionState.NOT_STARTED)

    def open_by_id(self, task_id: str) -> TaskReviewFlow:
        if self.catalog is None:
            raise RuntimeError("TaskCompletionService has no catalog to resolve task ids")
        return self.open(self.catalog.get(task_id))

    def _commit(self, task: Task, outcome: ReviewOutcome) -> CompletionResult:
        warning: str | None = None
        persisted = True
        newly_completed = True
        try:
            newly_completed = self.store.mark_complete(task.id)
        except PersistenceError as e:
            # Completion stands for this session even though it was not saved.
            persisted = False
            warning = str(e)
            self.logger.warning("completion_not_persisted", task_id=task.id, error=warning)

        result = CompletionResult(
            task_id=task.id,
            state=CompletionState.COMPLETED,
            persisted=persisted,
            newly_completed=newly_completed,
            warning=warning,
        )
        self.logger.info(
            "task_completed",
            task_id=task.id,
            outcome=outcome.kind.value,
            persisted=persisted,
            newly_completed=newly_completed,
        )
        event = TaskCompletedEvent(task_id=task.id, outcome=outcome.kind, persisted=persisted)
        self._dispatch(event)
        return result

    def _dispatch(self, event: TaskCompletedEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                self.logger.error(
                    "completion_listener_failed", error=str(e), task_id=event.task_id
                )
