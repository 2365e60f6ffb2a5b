"""
Health metrics retrieval for the dashboard.

Key patterns:
- Protocol-based dependency injection for the platform health store
- Generic Result type for expected per-metric failures
- Structured concurrency with asyncio.TaskGroup, one task per metric
- Application-level timeouts, since platform queries may never complete
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Generic, Protocol, TypeVar

import structlog

from healthtasks.domain.errors import MetricFetchError
from healthtasks.domain.models import (
    AuthorizationResult,
    MetricsSnapshot,
    MetricType,
    SleepSample,
)

logger = structlog.get_logger(__name__)

# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")


class Result(Generic[ValueT]):
    """
    Explicit error handling without exceptions for expected failures.

    A metric that cannot be read is normal operation for the dashboard, so
    fetches hand back a Result instead of raising.
    """

    def __init__(self, value: ValueT | None = None, error: Exception | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: Exception | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: Exception) -> "Result[ValueT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> Exception:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error

    def __repr__(self) -> str:
        if self._error is not None:
            return f"Result.err({self._error!r})"
        return f"Result.ok({self._value!r})"


class HealthDataSource(Protocol):
    """
    Read-only access to the device health store.

    All queries cover the current day, from local midnight until now.
    """

    async def request_authorization(self) -> AuthorizationResult: ...

    async def fetch_step_count(self) -> float:
        """Cumulative step count for today."""
        ...

    async def fetch_heart_rate(self) -> float:
        """Discrete average heart rate for today, in beats per minute."""
        ...

    async def fetch_sleep_samples(self) -> list[SleepSample]:
        """Sleep intervals recorded today."""
        ...


MetricUpdateHandler = Callable[[MetricType, Result[float]], None]


def total_sleep_hours(samples: list[SleepSample]) -> float:
    return sum((sample.hours for sample in samples), 0.0)


class HealthMetricsProvider:
    """
    Fetches today's steps, heart rate and sleep hours.

    The three queries are independent: each runs as its own task with its own
    timeout, and one failing never blocks the others.
    """

    def __init__(self, source: HealthDataSource, timeout_seconds: float = 10.0) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.source = source
        self.timeout_seconds = timeout_seconds
        self.logger = logger.bind(component="health_metrics_provider")

    async def request_authorization(self) -> AuthorizationResult:
        try:
            result = await asyncio.wait_for(
                self.source.request_authorization(), timeout=self.timeout_seconds
            )
        except TimeoutError:
            self.logger.warning("authorization_timeout", timeout_seconds=self.timeout_seconds)
            return AuthorizationResult(granted=False, error="Authorization request timed out")
        except Exception as e:
            self.logger.warning("authorization_failed", error=str(e))
            return AuthorizationResult(granted=False, error=str(e))

        self.logger.info("authorization_completed", granted=result.granted)
        return result

    def _query_for(self, metric: MetricType) -> Callable[[], Awaitable[float]]:
        if metric == MetricType.STEPS:
            return self.source.fetch_step_count
        if metric == MetricType.HEART_RATE:
            return self.source.fetch_heart_rate

        async def sleep_hours() -> float:
            return total_sleep_hours(await self.source.fetch_sleep_samples())

        return sleep_hours

    async def fetch_metric(self, metric: MetricType) -> Result[float]:
        """Fetch one metric, converting failures and timeouts into ``Result.err``."""
        query = self._query_for(metric)
        try:
            value = await asyncio.wait_for(query(), timeout=self.timeout_seconds)
        except TimeoutError:
            self.logger.warning(
                "metric_fetch_timeout", metric=metric.value, timeout_seconds=self.timeout_seconds
            )
            return Result.err(MetricFetchError(metric.value, "timed out"))
        except Exception as e:
            self.logger.warning("metric_fetch_failed", metric=metric.value, error=str(e))
            return Result.err(MetricFetchError(metric.value, str(e)))

        self.logger.debug("metric_fetched", metric=metric.value, value=value)
        return Result.ok(float(value))

    async def fetch_today(self, on_update: MetricUpdateHandler | None = None) -> MetricsSnapshot:
        """
        Fetch all three metrics concurrently and merge whatever succeeded.

        ``on_update`` is called as each metric finishes, in completion order.
        Cancelling the caller cancels every in-flight query.
        """
        start_time = time.perf_counter()
        results: dict[MetricType, Result[float]] = {}

        async def fetch_and_report(metric: MetricType) -> None:
            result = await self.fetch_metric(metric)
            results[metric] = result
            if on_update is not None:
                on_update(metric, result)

        async with asyncio.TaskGroup() as task_group:
            for metric in MetricType:
                task_group.create_task(fetch_and_report(metric), name=f"fetch-{metric.value}")

        snapshot = MetricsSnapshot(
            **{m.value: r.unwrap_or(None) for m, r in results.items()},  # type: ignore[arg-type]
            errors={
                metric: str(result.unwrap_err())
                for metric, result in results.items()
                if result.is_err()
            },
        )

        self.logger.info(
            "metrics_fetch_completed",
            available=[m.value for m in snapshot.available],
            failed=[m.value for m in snapshot.errors],
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return snapshot
