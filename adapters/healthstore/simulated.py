"""
Simulated device health store.

Stands in for the platform health database when running on a machine without
one. Values are plausible for a single day and each query has a small chance
of failing, so the dashboard's degraded paths get exercised too.
"""

import asyncio
import random
from datetime import datetime, timedelta

import structlog

from healthtasks.domain.models import AuthorizationResult, SleepSample

logger = structlog.get_logger(__name__)


class SimulatedHealthStore:
    """Implements ``HealthDataSource`` with random data for the current day."""

    def __init__(
        self,
        failure_rate: float = 0.05,
        authorize: bool = True,
        max_delay_seconds: float = 0.3,
    ) -> None:
        """Initialize the simulated store.

        Args:
            failure_rate: Probability that any single query raises
            authorize: Whether authorization requests are granted
            max_delay_seconds: Upper bound of the simulated query latency
        """
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        self.failure_rate = failure_rate
        self.authorize = authorize
        self.max_delay_seconds = max_delay_seconds
        self.logger = logger.bind(source="simulated_health_store")

    async def _simulate_query(self, name: str) -> None:
        await asyncio.sleep(random.uniform(0.0, self.max_delay_seconds))
        if random.random() < self.failure_rate:
            raise ConnectionError(f"Health store query '{name}' failed")

    async def request_authorization(self) -> AuthorizationResult:
        await asyncio.sleep(random.uniform(0.0, self.max_delay_seconds))
        self.logger.info("authorization_requested", granted=self.authorize)
        return AuthorizationResult(granted=self.authorize)

    async def fetch_step_count(self) -> float:
        await self._simulate_query("step_count")
        return float(random.randint(500, 15_000))

    async def fetch_heart_rate(self) -> float:
        await self._simulate_query("heart_rate")
        return round(random.uniform(55.0, 95.0), 1)

    async def fetch_sleep_samples(self) -> list[SleepSample]:
        await self._simulate_query("sleep_analysis")
        midnight = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
        samples = []
        start = midnight + timedelta(minutes=random.randint(0, 90))
        for _ in range(random.randint(1, 3)):
            end = start + timedelta(minutes=random.randint(60, 180))
            samples.append(SleepSample(start=start, end=end))
            start = end + timedelta(minutes=random.randint(5, 30))
        return samples
