"""
In-process reminder scheduler.

Keeps one recurring daily alert per identifier (re-scheduling replaces it) and
works out when each alert fires next. Delivery is a log event, which is all a
headless process can do with a local notification.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ScheduledAlert:
    identifier: str
    title: str
    body: str
    hour: int
    minute: int

    def next_fire_at(self, now: datetime) -> datetime:
        candidate = now.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate


class InProcessReminderScheduler:
    """Implements ``ReminderScheduler`` for a single process."""

    def __init__(self) -> None:
        self.alerts: dict[str, ScheduledAlert] = {}
        self.logger = logger.bind(component="reminder_scheduler")

    def schedule_recurring_alert(
        self, identifier: str, title: str, body: str, hour: int, minute: int
    ) -> None:
        if not 0 <= hour <= 23 or not 0 <= minute <= 59:
            raise ValueError(f"invalid reminder time {hour:02d}:{minute:02d}")
        self.alerts[identifier] = ScheduledAlert(identifier, title, body, hour, minute)
        self.logger.info("reminder_scheduled", identifier=identifier, hour=hour, minute=minute)

    def cancel(self, identifier: str) -> None:
        self.alerts.pop(identifier, None)

    def due(self, since: datetime, until: datetime) -> list[ScheduledAlert]:
        """Alerts whose next firing after ``since`` falls at or before ``until``."""
        return sorted(
            (alert for alert in self.alerts.values() if alert.next_fire_at(since) <= until),
            key=lambda alert: alert.next_fire_at(since),
        )

    def deliver_due(self, since: datetime, until: datetime) -> list[ScheduledAlert]:
        delivered = self.due(since, until)
        for alert in delivered:
            self.logger.info(
                "reminder_delivered",
                identifier=alert.identifier,
                title=alert.title,
                body=alert.body,
            )
        return delivered
