"""
Health dashboard view model.

Holds what the dashboard displays and owns its lifecycle: opening starts a
background fetch, closing cancels it so late results never touch a disposed
dashboard. Each metric updates independently as its fetch finishes.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

import structlog

from healthtasks.domain.errors import ExportError
from healthtasks.domain.models import MetricsSnapshot, MetricType
from healthtasks.services.health_metrics import HealthMetricsProvider, Result

logger = structlog.get_logger(__name__)

UNAVAILABLE = "unavailable"


class ReportExporter(Protocol):
    """Renders a metrics snapshot to a document and returns its location."""

    def export(self, snapshot: MetricsSnapshot) -> Path: ...


class MetricStatus(str, Enum):
    LOADING = "loading"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ManualRange:
    """Bounds and step size of a manual adjustment stepper."""

    minimum: float
    maximum: float
    step: float

    def clamp(self, value: float) -> float:
        stepped = round(value / self.step) * self.step
        return min(self.maximum, max(self.minimum, stepped))


MANUAL_RANGES: dict[MetricType, ManualRange] = {
    MetricType.STEPS: ManualRange(0, 100_000, 1000),
    MetricType.HEART_RATE: ManualRange(0, 200, 1),
    MetricType.SLEEP_HOURS: ManualRange(0, 24, 0.5),
}


def format_metric(metric: MetricType, value: float | None) -> str:
    if value is None:
        return UNAVAILABLE
    if metric == MetricType.STEPS:
        return f"{int(value)}"
    if metric == MetricType.HEART_RATE:
        return f"{int(value)} bpm"
    return f"{value:.1f} hrs"


class HealthDashboard:
    """
    State behind the health dashboard screen.

    ``on_displayed`` runs when the dashboard opens and ``on_finish`` when the
    user presses "Finish Review"; a health-review task wires both to its
    review flow.
    """

    def __init__(
        self,
        provider: HealthMetricsProvider,
        exporter: ReportExporter | None = None,
        on_displayed: Callable[[], Any] | None = None,
        on_finish: Callable[[], Any] | None = None,
    ) -> None:
        self.provider = provider
        self.exporter = exporter
        self.on_displayed = on_displayed
        self.on_finish = on_finish
        self.values: dict[MetricType, float | None] = {m: None for m in MetricType}
        self.status: dict[MetricType, MetricStatus] = {m: MetricStatus.LOADING for m in MetricType}
        self.errors: dict[MetricType, str] = {}
        self.displayed = False
        self.disposed = False
        self._refresh_task: asyncio.Task[MetricsSnapshot] | None = None
        self.logger = logger.bind(component="health_dashboard")

    def open(self) -> asyncio.Task[MetricsSnapshot]:
        """Show the dashboard and start fetching today's metrics."""
        if self.disposed:
            raise RuntimeError("dashboard has been closed")
        if not self.displayed:
            if self.on_displayed is not None:
                self.on_displayed()
            self.displayed = True
            self.logger.info("dashboard_displayed")
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self.refresh(), name="dashboard-refresh")
        return self._refresh_task

    async def refresh(self) -> MetricsSnapshot:
        for metric in MetricType:
            self.status[metric] = MetricStatus.LOADING
        await self.provider.fetch_today(on_update=self._apply)
        return self.snapshot()

    def _apply(self, metric: MetricType, result: Result[float]) -> None:
        if self.disposed:
            return
        if result.is_ok():
            self.values[metric] = result.unwrap()
            self.status[metric] = MetricStatus.AVAILABLE
            self.errors.pop(metric, None)
        else:
            self.values[metric] = None
            self.status[metric] = MetricStatus.UNAVAILABLE
            self.errors[metric] = str(result.unwrap_err())

    async def close(self) -> None:
        """Tear down: cancel any in-flight fetch and ignore later results."""
        self.disposed = True
        task, self._refresh_task = self._refresh_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                self.logger.info("dashboard_fetch_cancelled")
        self.logger.info("dashboard_closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator["HealthDashboard"]:
        """Open for the duration of the block; always closes."""
        self.open()
        try:
            yield self
        finally:
            await self.close()

    async def wait_until_loaded(self) -> MetricsSnapshot:
        if self._refresh_task is not None:
            return await self._refresh_task
        return self.snapshot()

    def adjust(self, metric: MetricType, value: float) -> float:
        """Manual override from the adjustment steppers."""
        adjusted = MANUAL_RANGES[metric].clamp(value)
        self.values[metric] = adjusted
        self.status[metric] = MetricStatus.AVAILABLE
        self.errors.pop(metric, None)
        return adjusted

    def display_values(self) -> dict[MetricType, str]:
        return {
            metric: (
                MetricStatus.LOADING.value
                if self.status[metric] == MetricStatus.LOADING
                else format_metric(metric, self.values[metric])
            )
            for metric in MetricType
        }

    def snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            steps=self.values[MetricType.STEPS],
            heart_rate=self.values[MetricType.HEART_RATE],
            sleep_hours=self.values[MetricType.SLEEP_HOURS],
            errors=dict(self.errors),
        )

    def finish_review(self) -> Any:
        """Explicit completion action of the review."""
        self.logger.info("dashboard_review_finished")
        if self.on_finish is None:
            return None
        return self.on_finish()

    def share_report(self) -> Result[Path]:
        if self.exporter is None:
            return Result.err(ExportError("no report exporter configured"))
        try:
            path = self.exporter.export(self.snapshot())
        except Exception as e:
            self.logger.warning("report_export_failed", error=str(e))
            return Result.err(e if isinstance(e, ExportError) else ExportError(str(e)))
        self.logger.info("report_exported", path=str(path))
        return Result.ok(path)
