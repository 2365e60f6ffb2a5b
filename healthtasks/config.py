"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Everything overridable from the environment or a .env file
"""

import logging
import os
import tempfile
from functools import lru_cache
from typing import Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()

COMPLETED_TASKS_KEY = "completedTasks"


class StorageConfig(BaseModel):
    """Where completion state is persisted."""

    defaults_path: str = Field(
        default="./healthtasks_defaults.json", description="Path to the key-value defaults file"
    )
    completed_tasks_key: str = Field(
        default=COMPLETED_TASKS_KEY, description="Key holding the completed task identifiers"
    )
    day_scoped: bool = Field(
        default=False, description="Forget completions recorded on a previous day"
    )

    @field_validator("defaults_path")
    def validate_path(cls, v):
        if not v or not v.strip():
            raise ValueError("defaults path must not be empty")
        return v


class HealthDataConfig(BaseModel):
    """Health data access settings."""

    fetch_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Timeout for each individual metric fetch"
    )


class ReminderConfig(BaseModel):
    enabled: bool = Field(default=True, description="Schedule daily task reminders")


class ExportConfig(BaseModel):
    """Report export settings."""

    output_dir: str = Field(
        default_factory=tempfile.gettempdir, description="Directory for exported reports"
    )
    filename: str = Field(default="HealthReport.pdf", description="Report file name")

    @field_validator("filename")
    def validate_filename(cls, v):
        if not v.lower().endswith(".pdf"):
            raise ValueError("report filename must end with .pdf")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    storage: StorageConfig = Field(default_factory=StorageConfig)
    health: HealthDataConfig = Field(default_factory=HealthDataConfig)
    reminders: ReminderConfig = Field(default_factory=ReminderConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    storage_config = StorageConfig(
        defaults_path=os.getenv("DEFAULTS_PATH", "./healthtasks_defaults.json"),
        day_scoped=_parse_bool(os.getenv("DAY_SCOPED_COMPLETION"), False),
    )

    health_config = HealthDataConfig(
        fetch_timeout_seconds=float(os.getenv("HEALTH_FETCH_TIMEOUT_SECONDS", "10.0")),
    )

    reminder_config = ReminderConfig(
        enabled=_parse_bool(os.getenv("REMINDERS_ENABLED"), True),
    )

    export_config = ExportConfig(
        output_dir=os.getenv("EXPORT_DIR") or tempfile.gettempdir(),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        storage=storage_config,
        health=health_config,
        reminders=reminder_config,
        export=export_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def configure_logging(config: LoggingConfig) -> None:
    """Install the structlog processor chain for the configured level and format."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, config.level))
    logging.getLogger().setLevel(getattr(logging, config.level))

    renderer: structlog.types.Processor = (
        structlog.dev.ConsoleRenderer()
        if config.format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
