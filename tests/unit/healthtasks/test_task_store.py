"""
Tests for the completion record in `healthtasks/services/task_store.py`.

Covers:
- load() on empty, missing, corrupt and mixed storage
- mark_complete idempotency and durability across a simulated restart
- persistence failures keep the in-memory completion and are retried
- concurrent completions from several threads
- optional day scoping of the record, including a day change mid-session
"""

import threading
from datetime import date

import pytest
from fakes import BrokenRepository, InMemoryDefaults
from hypothesis import given
from hypothesis import strategies as st

from healthtasks.domain.errors import PersistenceError
from healthtasks.services.task_store import DefaultsCompletionRepository, TaskStore

task_ids = st.text(min_size=1, max_size=40)


def _restart(defaults: InMemoryDefaults, **repo_kwargs) -> TaskStore:
    """A fresh store over the same backing data, as after a process restart."""
    store = TaskStore(DefaultsCompletionRepository(defaults, **repo_kwargs))
    store.load()
    return store


class TestLoad:
    def test_empty_storage_loads_empty_set(self, defaults: InMemoryDefaults) -> None:
        store = TaskStore(DefaultsCompletionRepository(defaults))

        assert store.load() == set()
        assert not store.is_complete("health-data-check")

    def test_persisted_identifiers_are_loaded(self) -> None:
        defaults = InMemoryDefaults({"completedTasks": ["health-data-check"]})

        store = _restart(defaults)

        assert store.is_complete("health-data-check")
        assert store.completed_ids() == frozenset({"health-data-check"})

    def test_non_string_entries_are_dropped(self) -> None:
        defaults = InMemoryDefaults({"completedTasks": ["a", 3, None, "b"]})

        assert _restart(defaults).completed_ids() == frozenset({"a", "b"})

    @pytest.mark.parametrize("raw", ["health-data-check", 42, {"a": 1}])
    def test_malformed_record_loads_empty(self, raw: object) -> None:
        defaults = InMemoryDefaults({"completedTasks": raw})

        assert _restart(defaults).completed_ids() == frozenset()

    def test_unreadable_repository_loads_empty(self) -> None:
        store = TaskStore(BrokenRepository())

        assert store.load() == set()


class TestMarkComplete:
    def test_mark_complete_persists_full_set(
        self, store: TaskStore, defaults: InMemoryDefaults
    ) -> None:
        assert store.mark_complete("a") is True
        assert store.mark_complete("b") is True

        assert sorted(defaults.data["completedTasks"]) == ["a", "b"]

    def test_second_mark_is_a_no_op(self, store: TaskStore, defaults: InMemoryDefaults) -> None:
        store.mark_complete("a")
        writes = defaults.write_count

        assert store.mark_complete("a") is False
        assert defaults.write_count == writes

    def test_empty_task_id_rejected(self, store: TaskStore) -> None:
        with pytest.raises(ValueError):
            store.mark_complete("")

    def test_persistence_failure_keeps_in_memory_completion(self) -> None:
        defaults = InMemoryDefaults(fail_writes=True)
        store = _restart(defaults)

        with pytest.raises(PersistenceError, match="disk full"):
            store.mark_complete("health-data-check")

        assert store.is_complete("health-data-check")
        assert "completedTasks" not in defaults.data

    def test_write_is_retried_once_storage_recovers(self) -> None:
        defaults = InMemoryDefaults(fail_writes=True)
        store = _restart(defaults)
        with pytest.raises(PersistenceError):
            store.mark_complete("health-data-check")

        defaults.fail_writes = False

        assert store.mark_complete("health-data-check") is False
        assert defaults.data["completedTasks"] == ["health-data-check"]
        assert _restart(defaults).is_complete("health-data-check")

    def test_no_extra_write_once_record_is_clean(self) -> None:
        defaults = InMemoryDefaults(fail_writes=True)
        store = _restart(defaults)
        with pytest.raises(PersistenceError):
            store.mark_complete("a")
        defaults.fail_writes = False
        store.mark_complete("a")
        writes = defaults.write_count

        assert store.mark_complete("a") is False
        assert defaults.write_count == writes

    @given(ids=st.lists(task_ids, min_size=1, max_size=20))
    def test_completion_survives_restart(self, ids: list[str]) -> None:
        defaults = InMemoryDefaults()
        store = _restart(defaults)
        for task_id in ids:
            store.mark_complete(task_id)

        reloaded = _restart(defaults)

        for task_id in ids:
            assert store.is_complete(task_id)
            assert reloaded.is_complete(task_id)

    @given(task_id=task_ids)
    def test_marking_twice_equals_marking_once(self, task_id: str) -> None:
        once, twice = InMemoryDefaults(), InMemoryDefaults()
        _restart(once).mark_complete(task_id)
        store = _restart(twice)
        store.mark_complete(task_id)
        store.mark_complete(task_id)

        assert once.data == twice.data
        assert twice.data["completedTasks"] == [task_id]

    def test_concurrent_completions_are_not_lost(
        self, store: TaskStore, defaults: InMemoryDefaults
    ) -> None:
        ids = [f"task-{i}" for i in range(50)]
        barrier = threading.Barrier(len(ids))

        def complete(task_id: str) -> None:
            barrier.wait()
            store.mark_complete(task_id)

        threads = [threading.Thread(target=complete, args=(task_id,)) for task_id in ids]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(defaults.data["completedTasks"]) == sorted(ids)
        assert _restart(defaults).completed_ids() == frozenset(ids)

    def test_clear_forgets_everything(self, store: TaskStore, defaults: InMemoryDefaults) -> None:
        store.mark_complete("a")

        store.clear()

        assert not store.is_complete("a")
        assert defaults.data["completedTasks"] == []


class TestDayScoping:
    def test_record_from_previous_day_loads_empty(self) -> None:
        defaults = InMemoryDefaults()
        yesterday = _restart(defaults, day_scoped=True, today=lambda: date(2026, 10, 18))
        yesterday.mark_complete("health-data-check")

        today = _restart(defaults, day_scoped=True, today=lambda: date(2026, 10, 19))

        assert not today.is_complete("health-data-check")
        assert defaults.data["completedTasksDay"] == {
            "day": "2026-10-18",
            "ids": ["health-data-check"],
        }

    def test_record_from_same_day_is_kept(self) -> None:
        defaults = InMemoryDefaults()
        clock = lambda: date(2026, 10, 19)  # noqa: E731
        _restart(defaults, day_scoped=True, today=clock).mark_complete("health-data-check")

        assert _restart(defaults, day_scoped=True, today=clock).is_complete("health-data-check")

    def test_unscoped_record_never_rolls_over(self) -> None:
        defaults = InMemoryDefaults(
            {"completedTasks": ["health-data-check"], "completedTasksDay": "2001-01-01"}
        )

        assert _restart(defaults).is_complete("health-data-check")

    def test_day_change_without_restart_empties_record(self) -> None:
        defaults = InMemoryDefaults()
        day = [date(2026, 10, 18)]
        store = _restart(defaults, day_scoped=True, today=lambda: day[0])
        store.mark_complete("drink-water")
        store.mark_complete("health-data-check")

        day[0] = date(2026, 10, 19)

        assert not store.is_complete("health-data-check")
        assert store.completed_ids() == frozenset()
        assert store.mark_complete("drink-water") is True
        assert defaults.data["completedTasksDay"] == {"day": "2026-10-19", "ids": ["drink-water"]}
        reloaded = _restart(defaults, day_scoped=True, today=lambda: day[0])
        assert reloaded.completed_ids() == frozenset({"drink-water"})

    def test_day_and_ids_are_written_together(self) -> None:
        class PlainKeyWriteFails(InMemoryDefaults):
            def set(self, key: str, value) -> None:
                if key == "completedTasks":
                    raise OSError("crashed mid-save")
                super().set(key, value)

        defaults = PlainKeyWriteFails()
        clock = lambda: date(2026, 10, 19)  # noqa: E731
        with pytest.raises(PersistenceError):
            _restart(defaults, day_scoped=True, today=clock).mark_complete("health-data-check")

        assert _restart(defaults, day_scoped=True, today=clock).is_complete("health-data-check")

    def test_bare_day_string_loads_empty_when_scoped(self) -> None:
        defaults = InMemoryDefaults(
            {"completedTasks": ["health-data-check"], "completedTasksDay": "2026-10-19"}
        )

        store = _restart(defaults, day_scoped=True, today=lambda: date(2026, 10, 19))

        assert store.completed_ids() == frozenset()
