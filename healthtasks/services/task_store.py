"""
Durable record of completed tasks.

The record is a set of task identifiers persisted as a JSON array under a
single key of a key-value store. The store is injected, so tests can use an
in-memory double and production uses the JSON defaults file in
``adapters.storage``.
"""

import threading
from collections.abc import Callable
from datetime import date
from typing import Any, Protocol

import structlog

from healthtasks.config import COMPLETED_TASKS_KEY
from healthtasks.domain.errors import PersistenceError

logger = structlog.get_logger(__name__)


class KeyValueStore(Protocol):
    """Minimal durable key-value contract (a "defaults" store)."""

    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class CompletionRepository(Protocol):
    """Explicit load/save contract for the completion record."""

    def load(self) -> list[str] | None:
        """Return the persisted identifiers, or None if nothing was ever saved."""
        ...

    def save(self, task_ids: list[str]) -> None: ...

    def current_day(self) -> str | None:
        """ISO date the record belongs to, or None for a record that never rolls over."""
        ...


class DefaultsCompletionRepository:
    """
    Completion record kept in a key-value store under ``completedTasks``.

    With ``day_scoped`` enabled the identifiers are also written together with
    the date under ``completedTasksDay`` as ``{"day": ..., "ids": [...]}``.
    That single value is what a day-scoped load reads, so the list and its
    date are always written in one step. A record from an earlier day loads
    as empty.
    """

    def __init__(
        self,
        defaults: KeyValueStore,
        key: str = COMPLETED_TASKS_KEY,
        day_scoped: bool = False,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.defaults = defaults
        self.key = key
        self.day_key = f"{key}Day"
        self.day_scoped = day_scoped
        self._today = today

    def current_day(self) -> str | None:
        return self._today().isoformat() if self.day_scoped else None

    def load(self) -> list[str] | None:
        if not self.day_scoped:
            return self.defaults.get(self.key)
        record = self.defaults.get(self.day_key)
        if not isinstance(record, dict) or record.get("day") != self.current_day():
            return None
        return record.get("ids")

    def save(self, task_ids: list[str]) -> None:
        if self.day_scoped:
            self.defaults.set(self.day_key, {"day": self.current_day(), "ids": list(task_ids)})
        self.defaults.set(self.key, task_ids)


class TaskStore:
    """
    Owns the set of completed task identifiers.

    Every write persists the full set while holding a lock, so completions
    racing from different flows never lose each other's updates. After a
    failed write the record is marked dirty and the next ``mark_complete``
    writes the full set again, even for an id that is already complete.
    For a day-scoped repository the set empties itself when the day changes.
    """

    def __init__(self, repository: CompletionRepository) -> None:
        self.repository = repository
        self._completed: set[str] = set()
        self._day: str | None = None
        self._dirty = False
        self._lock = threading.Lock()
        self.logger = logger.bind(component="task_store")

    def _roll_over(self) -> None:
        # Caller holds the lock.
        day = self.repository.current_day()
        if day == self._day:
            return
        if self._completed:
            self.logger.info(
                "completion_record_rolled_over",
                previous_day=self._day,
                day=day,
                dropped=len(self._completed),
            )
        self._completed = set()
        self._dirty = False
        self._day = day

    def load(self) -> set[str]:
        """Read the persisted record. Missing or corrupt storage loads as empty."""
        try:
            raw = self.repository.load()
        except Exception as e:
            self.logger.warning("completion_record_unreadable", error=str(e))
            raw = None

        if raw is None:
            loaded: set[str] = set()
        elif isinstance(raw, list | tuple | set):
            loaded = {item for item in raw if isinstance(item, str)}
            if len(loaded) != len(raw):
                self.logger.warning(
                    "completion_record_entries_dropped", dropped=len(raw) - len(loaded)
                )
        else:
            self.logger.warning("completion_record_malformed", type=type(raw).__name__)
            loaded = set()

        with self._lock:
            self._completed = loaded
            self._day = self.repository.current_day()
            self._dirty = False
        self.logger.info("completion_record_loaded", count=len(loaded))
        return set(loaded)

    def is_complete(self, task_id: str) -> bool:
        with self._lock:
            self._roll_over()
            return task_id in self._completed

    def completed_ids(self) -> frozenset[str]:
        with self._lock:
            self._roll_over()
            return frozenset(self._completed)

    def mark_complete(self, task_id: str) -> bool:
        """
        Insert ``task_id`` and persist the whole record.

        Returns False when the task was already complete. Nothing is written
        then, unless an earlier write failed and the record is still dirty.
        Raises PersistenceError if the write fails; the in-memory record keeps
        the insert either way.
        """
        if not task_id:
            raise ValueError("task_id is required")

        with self._lock:
            self._roll_over()
            newly_completed = task_id not in self._completed
            if not newly_completed and not self._dirty:
                return False
            self._completed.add(task_id)
            snapshot = sorted(self._completed)
            try:
                self.repository.save(snapshot)
            except Exception as e:
                self._dirty = True
                self.logger.error("completion_persist_failed", task_id=task_id, error=str(e))
                raise PersistenceError(f"could not persist completion of '{task_id}': {e}") from e
            self._dirty = False

        self.logger.info(
            "task_marked_complete",
            task_id=task_id,
            total=len(snapshot),
            newly_completed=newly_completed,
        )
        return newly_completed

    def clear(self) -> None:
        """Forget every completion, in memory and in storage."""
        with self._lock:
            self._completed = set()
            self._day = self.repository.current_day()
            try:
                self.repository.save([])
            except Exception as e:
                self._dirty = True
                raise PersistenceError(f"could not clear completion record: {e}") from e
            self._dirty = False
        self.logger.info("completion_record_cleared")
