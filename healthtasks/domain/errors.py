"""
Error taxonomy for the health-task workflow.

None of these is fatal to the process. Expected failures (a metric fetch, a
report export) travel inside ``Result`` values; misuse of the review state
machine raises.
"""


class HealthTasksError(Exception):
    """Base class for all workflow errors."""


class AuthorizationDeniedError(HealthTasksError):
    """Access to health data was refused by the user or the platform."""


class MetricFetchError(HealthTasksError):
    """A single metric query failed or timed out."""

    def __init__(self, metric: str, reason: str) -> None:
        super().__init__(f"{metric}: {reason}")
        self.metric = metric
        self.reason = reason


class PersistenceError(HealthTasksError):
    """The completion record could not be written to durable storage."""


class ConfigurationError(HealthTasksError):
    """A required collaborator was unavailable at startup."""


class ExportError(HealthTasksError):
    """A report document could not be produced."""


class UnknownTaskError(HealthTasksError, KeyError):
    """No task with the given identifier is configured."""


class InvalidTransitionError(HealthTasksError):
    """The requested action is not allowed in the flow's current state."""

    def __init__(self, task_id: str, state: str, action: str) -> None:
        super().__init__(f"cannot {action} task '{task_id}' while {state}")
        self.task_id = task_id
        self.state = state
        self.action = action


class IncompleteReviewError(HealthTasksError):
    """A questionnaire was submitted without answers to its required items."""

    def __init__(self, task_id: str, missing: list[str]) -> None:
        super().__init__(f"task '{task_id}' is missing answers for: {', '.join(missing)}")
        self.task_id = task_id
        self.missing = missing
