"""
Tests for configuration management in `healthtasks/config.py`.

Covers:
- Environment parsing and debug defaults
- Logging level coercion to the expected Literal
- Boolean flag parsing
- get_config cache behavior
- AppConfig validation (debug only allowed in development)
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
import structlog

from healthtasks.config import (
    AppConfig,
    ExportConfig,
    HealthDataConfig,
    LoggingConfig,
    StorageConfig,
    configure_logging,
    get_config,
    load_config_from_env,
)


@pytest.fixture(autouse=True)
def clear_config_cache() -> Iterator[None]:
    """Ensure get_config cache is cleared before and after each test."""
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "ENVIRONMENT",
        "LOG_LEVEL",
        "DEFAULTS_PATH",
        "DAY_SCOPED_COMPLETION",
        "HEALTH_FETCH_TIMEOUT_SECONDS",
        "REMINDERS_ENABLED",
        "EXPORT_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


def test_load_config_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "dev")

    config = load_config_from_env()

    assert config.environment == "development"
    assert config.debug is True
    assert config.logging.format == "console"
    assert config.storage.completed_tasks_key == "completedTasks"
    assert config.storage.day_scoped is False
    assert config.reminders.enabled is True
    assert config.health.fetch_timeout_seconds == 10.0
    assert config.export.filename == "HealthReport.pdf"


def test_production_uses_json_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "prod")

    config = load_config_from_env()

    assert config.environment == "production"
    assert config.debug is False
    assert config.logging.format == "json"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")
    monkeypatch.setenv("DEFAULTS_PATH", str(tmp_path / "d.json"))
    monkeypatch.setenv("DAY_SCOPED_COMPLETION", "yes")
    monkeypatch.setenv("HEALTH_FETCH_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("REMINDERS_ENABLED", "off")
    monkeypatch.setenv("EXPORT_DIR", str(tmp_path))

    config = load_config_from_env()

    assert config.storage.defaults_path == str(tmp_path / "d.json")
    assert config.storage.day_scoped is True
    assert config.health.fetch_timeout_seconds == 2.5
    assert config.reminders.enabled is False
    assert config.export.output_dir == str(tmp_path)


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    assert load_config_from_env().logging.level == "INFO"

    monkeypatch.setenv("LOG_LEVEL", "warning")
    assert load_config_from_env().logging.level == "WARNING"


def test_get_config_cache() -> None:
    assert get_config() is get_config()


def test_invalid_values_rejected() -> None:
    with pytest.raises(ValueError):
        HealthDataConfig(fetch_timeout_seconds=0)
    with pytest.raises(ValueError):
        StorageConfig(defaults_path="  ")
    with pytest.raises(ValueError):
        ExportConfig(filename="report.txt")


def test_app_config_debug_only_in_dev_validation() -> None:
    with pytest.raises(ValueError, match="debug mode is only allowed"):
        AppConfig(environment="production", debug=True)


def test_configure_logging_selects_renderer() -> None:
    try:
        configure_logging(LoggingConfig(level="DEBUG", format="console"))
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

        configure_logging(LoggingConfig(level="INFO", format="json"))
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
    finally:
        structlog.reset_defaults()
