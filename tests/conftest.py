"""Shared fixtures: real workflow objects wired to in-memory doubles."""

from datetime import datetime

import pytest
from fakes import InMemoryDefaults, ScriptedHealthSource

from healthtasks.config import AppConfig
from healthtasks.domain.models import (
    Questionnaire,
    QuestionnaireItem,
    SleepSample,
    Task,
    TaskCategory,
)
from healthtasks.services.task_catalog import TaskCatalog, health_data_check_task
from healthtasks.services.task_completion import TaskCompletionService
from healthtasks.services.task_store import DefaultsCompletionRepository, TaskStore


@pytest.fixture
def defaults() -> InMemoryDefaults:
    return InMemoryDefaults()


@pytest.fixture
def store(defaults: InMemoryDefaults) -> TaskStore:
    task_store = TaskStore(DefaultsCompletionRepository(defaults))
    task_store.load()
    return task_store


@pytest.fixture
def simple_task() -> Task:
    return Task(id="drink-water", title="Drink Water", category=TaskCategory.SIMPLE)


@pytest.fixture
def questionnaire_task() -> Task:
    return Task(
        id="mood-survey",
        title="Mood Survey",
        category=TaskCategory.QUESTIONNAIRE,
        questionnaire=Questionnaire(
            id="mood",
            title="How are you today?",
            items=(
                QuestionnaireItem(link_id="mood", text="Rate your mood"),
                QuestionnaireItem(link_id="notes", text="Anything else?", required=False),
            ),
        ),
    )


@pytest.fixture
def health_task() -> Task:
    return health_data_check_task()


@pytest.fixture
def catalog(simple_task: Task, questionnaire_task: Task, health_task: Task) -> TaskCatalog:
    return TaskCatalog([simple_task, questionnaire_task, health_task])


@pytest.fixture
def service(store: TaskStore, catalog: TaskCatalog) -> TaskCompletionService:
    return TaskCompletionService(store, catalog)


@pytest.fixture
def sleep_samples() -> list[SleepSample]:
    return [
        SleepSample(start=datetime(2026, 10, 19, 0, 30), end=datetime(2026, 10, 19, 4, 30)),
        SleepSample(start=datetime(2026, 10, 19, 4, 45), end=datetime(2026, 10, 19, 7, 45)),
    ]


@pytest.fixture
def health_source(sleep_samples: list[SleepSample]) -> ScriptedHealthSource:
    return ScriptedHealthSource(steps=8421.0, heart_rate=71.6, sleep_samples=sleep_samples)


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig.model_validate(
        {
            "environment": "development",
            "storage": {"defaults_path": str(tmp_path / "defaults.json")},
            "health": {"fetch_timeout_seconds": 0.5},
            "export": {"output_dir": str(tmp_path / "reports")},
        }
    )
