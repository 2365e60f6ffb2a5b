"""
Composition root for the health-task workflow.

Wires the catalog, task store, completion service, health metrics and report
export together from ``AppConfig``. Platform collaborators are injected, so
the same service runs against the simulated adapters, real integrations or
test doubles.
"""

from dataclasses import dataclass

import structlog

from healthtasks.config import AppConfig, get_config
from healthtasks.domain.errors import AuthorizationDeniedError
from healthtasks.domain.models import ReviewKind
from healthtasks.services.dashboard import HealthDashboard, ReportExporter
from healthtasks.services.health_metrics import HealthDataSource, HealthMetricsProvider
from healthtasks.services.task_catalog import (
    ReminderScheduler,
    ScheduleEntry,
    TaskCatalog,
    ViewState,
)
from healthtasks.services.task_completion import TaskCompletionService, TaskReviewFlow
from healthtasks.services.task_store import (
    CompletionRepository,
    DefaultsCompletionRepository,
    KeyValueStore,
    TaskStore,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AuthorizationPrompt:
    """Outcome of a health access request as the UI presents it."""

    granted: bool
    title: str = ""
    message: str = ""
    retry_allowed: bool = False
    error: AuthorizationDeniedError | None = None


class HealthTasksApp:
    """
    Orchestrates the daily task workflow:
    1. Load completion state
    2. Register tasks and reminders
    3. Open tasks and run their review step
    4. Serve the health dashboard and report export
    """

    def __init__(
        self,
        health_source: HealthDataSource,
        defaults: KeyValueStore | None = None,
        repository: CompletionRepository | None = None,
        reminders: ReminderScheduler | None = None,
        exporter: ReportExporter | None = None,
        catalog: TaskCatalog | None = None,
        config: AppConfig | None = None,
    ) -> None:
        self.config = config or get_config()
        self.logger = logger.bind(component="health_tasks_app")
        self.reminders = reminders if self.config.reminders.enabled else None
        self.exporter = exporter
        self.health_permissions_granted = False

        self._init_task_store(defaults, repository)
        self._init_catalog(catalog)
        self._init_health_metrics(health_source)

    def _init_task_store(
        self, defaults: KeyValueStore | None, repository: CompletionRepository | None
    ) -> None:
        if repository is None:
            if defaults is None:
                raise ValueError("a defaults store or a completion repository is required")
            repository = DefaultsCompletionRepository(
                defaults,
                key=self.config.storage.completed_tasks_key,
                day_scoped=self.config.storage.day_scoped,
            )
        self.task_store = TaskStore(repository)
        self.logger.info("task_store_initialized", day_scoped=self.config.storage.day_scoped)

    def _init_catalog(self, catalog: TaskCatalog | None) -> None:
        self.catalog = catalog or TaskCatalog()
        self.completion = TaskCompletionService(self.task_store, self.catalog)
        self.logger.info("task_catalog_initialized", task_count=len(self.catalog.tasks))

    def _init_health_metrics(self, health_source: HealthDataSource) -> None:
        self.health = HealthMetricsProvider(
            health_source, timeout_seconds=self.config.health.fetch_timeout_seconds
        )
        self.logger.info("health_metrics_initialized")

    def start(self) -> ViewState:
        """Load persisted completions and schedule reminders. Never raises."""
        self.task_store.load()
        view_state = self.catalog.configure(self.reminders)
        self.logger.info("app_started", configuration_error=view_state.is_error)
        return view_state

    def schedule(self) -> list[ScheduleEntry]:
        return self.catalog.todays_schedule(self.task_store)

    def open_task(self, task_id: str) -> TaskReviewFlow:
        return self.completion.open_by_id(task_id)

    async def authorize_health_access(self) -> AuthorizationPrompt:
        result = await self.health.request_authorization()
        if result.granted:
            self.health_permissions_granted = True
            return AuthorizationPrompt(granted=True)

        if result.error:
            title, message = "Permission Error", result.error
        else:
            title = "Permission Denied"
            message = "Health permissions were not granted. Please enable them in settings."
        self.logger.warning("health_access_denied", error=result.error)
        return AuthorizationPrompt(
            granted=False,
            title=title,
            message=message,
            retry_allowed=True,
            error=AuthorizationDeniedError(message),
        )

    def dashboard(self, flow: TaskReviewFlow | None = None) -> HealthDashboard:
        """
        Build a dashboard. Given a health-review flow, displaying the dashboard
        and pressing "Finish Review" drive that flow.
        """
        if flow is None:
            return HealthDashboard(self.health, exporter=self.exporter)
        if flow.required_review != ReviewKind.HEALTH_DASHBOARD:
            raise ValueError(f"task '{flow.task.id}' does not require a dashboard review")
        return HealthDashboard(
            self.health,
            exporter=self.exporter,
            on_displayed=flow.mark_dashboard_displayed,
            on_finish=flow.finish_review,
        )
