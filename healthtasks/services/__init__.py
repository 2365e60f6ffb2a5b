"""
Core services for the application.

This package contains the task store, the completion workflow, health metric
retrieval and the dashboard view model.
"""

from .dashboard import HealthDashboard, ReportExporter
from .health_metrics import HealthDataSource, HealthMetricsProvider, Result
from .health_tasks_app import AuthorizationPrompt, HealthTasksApp
from .task_catalog import ReminderScheduler, ScheduleEntry, TaskCatalog
from .task_completion import (
    CompletionResult,
    TaskCompletedEvent,
    TaskCompletionService,
    TaskReviewFlow,
)
from .task_store import (
    CompletionRepository,
    DefaultsCompletionRepository,
    KeyValueStore,
    TaskStore,
)

__all__ = [
    "AuthorizationPrompt",
    "CompletionRepository",
    "CompletionResult",
    "DefaultsCompletionRepository",
    "HealthDashboard",
    "HealthDataSource",
    "HealthMetricsProvider",
    "HealthTasksApp",
    "KeyValueStore",
    "ReminderScheduler",
    "ReportExporter",
    "Result",
    "ScheduleEntry",
    "TaskCatalog",
    "TaskCompletedEvent",
    "TaskCompletionService",
    "TaskReviewFlow",
    "TaskStore",
]
