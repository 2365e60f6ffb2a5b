"""
The set of configured daily tasks and their reminders.

Tasks are defined once at startup. Reminder scheduling is best-effort: if the
scheduler is missing or fails, the catalog records an error view state and
the tasks remain usable without reminders.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

import structlog

from healthtasks.domain.errors import ConfigurationError, UnknownTaskError
from healthtasks.domain.models import DailySchedule, Task, TaskCategory

logger = structlog.get_logger(__name__)

HEALTH_DATA_CHECK_ID = "health-data-check"

REMINDER_TITLE = "Task Reminder"


def health_data_check_task() -> Task:
    return Task(
        id=HEALTH_DATA_CHECK_ID,
        title="Health Data Check",
        instructions="Review your Health Dashboard to track your progress for the day.",
        category=TaskCategory.HEALTH_REVIEW,
        schedule=DailySchedule(hour=18, minute=0),
    )


def default_tasks() -> list[Task]:
    return [health_data_check_task()]


class ReminderScheduler(Protocol):
    """Fire-and-forget scheduling of a recurring local alert."""

    def schedule_recurring_alert(
        self, identifier: str, title: str, body: str, hour: int, minute: int
    ) -> None: ...


class CompletionLookup(Protocol):
    def is_complete(self, task_id: str) -> bool: ...


@dataclass(frozen=True)
class ViewState:
    """Idle, or an error message the UI shows without blocking."""

    error: ConfigurationError | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class ScheduleEntry:
    task: Task
    completed: bool

    @property
    def action_label(self) -> str:
        return "Completed" if self.completed else "Start"


def reminder_body(task: Task) -> str:
    return f"Don't forget to complete your task: {task.title}!"


class TaskCatalog:
    """Registry of the tasks offered today."""

    def __init__(self, tasks: Iterable[Task] | None = None) -> None:
        self._tasks: dict[str, Task] = {}
        self.view_state = ViewState()
        self.logger = logger.bind(component="task_catalog")
        for task in default_tasks() if tasks is None else tasks:
            self.add_task(task)

    def add_task(self, task: Task) -> None:
        """Create or replace a task definition."""
        replaced = task.id in self._tasks
        self._tasks[task.id] = task
        self.logger.info("task_registered", task_id=task.id, replaced=replaced)

    def get(self, task_id: str) -> Task:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise UnknownTaskError(f"no task with id '{task_id}'") from None

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def configure(self, reminders: ReminderScheduler | None) -> ViewState:
        """
        Schedule a daily reminder for every task that has a schedule.

        Never raises: problems are reported through ``view_state``.
        """
        if reminders is None:
            self.view_state = ViewState(
                error=ConfigurationError("Scheduler dependency not available.")
            )
            self.logger.warning("reminder_scheduler_unavailable")
            return self.view_state

        try:
            for task in self._tasks.values():
                if task.schedule is None:
                    continue
                reminders.schedule_recurring_alert(
                    identifier=task.id,
                    title=REMINDER_TITLE,
                    body=reminder_body(task),
                    hour=task.schedule.hour,
                    minute=task.schedule.minute,
                )
        except Exception as e:
            self.view_state = ViewState(
                error=ConfigurationError("Failed to create or update scheduled tasks.")
            )
            self.logger.warning("reminder_scheduling_failed", error=str(e))
            return self.view_state

        self.view_state = ViewState()
        self.logger.info("task_catalog_configured", task_count=len(self._tasks))
        return self.view_state

    def todays_schedule(self, completion: CompletionLookup) -> list[ScheduleEntry]:
        """Today's tasks in schedule order, each with its completion flag."""

        def sort_key(task: Task) -> tuple[int, int, str]:
            if task.schedule is None:
                return (24, 0, task.id)
            return (task.schedule.hour, task.schedule.minute, task.id)

        return [
            ScheduleEntry(task=task, completed=completion.is_complete(task.id))
            for task in sorted(self._tasks.values(), key=sort_key)
        ]
