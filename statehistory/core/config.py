"""Configuration module for the state history engine."""

from __future__ import annotations

import importlib
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from statehistory.core.exceptions import ConfigurationError

load_dotenv()

DEFAULT_HISTORY_MODEL = "statehistory.models.state_history.ModelState"
_PREFIX_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    ENV: str
    DATABASE_URL: str
    USE_CURRENT_COLUMNS: bool
    CURRENT_COLUMN_PREFIX: str
    LOG_FALLBACK_WARNINGS: bool
    HISTORY_MODEL: str
    LOG_LEVEL: str
    LOG_FILE: str

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    def current_column(self, field: str) -> str:
        return f"{self.CURRENT_COLUMN_PREFIX}{field}"

    def history_model(self) -> type:
        """Import the configured history record class."""
        module_name, _, class_name = self.HISTORY_MODEL.rpartition(".")
        if not module_name:
            raise ConfigurationError(f"STATE_HISTORY_MODEL must be a dotted path, got '{self.HISTORY_MODEL}'.")
        try:
            model_cls = getattr(importlib.import_module(module_name), class_name)
        except (ImportError, AttributeError) as exc:
            raise ConfigurationError(f"STATE_HISTORY_MODEL '{self.HISTORY_MODEL}' could not be imported.") from exc
        if not hasattr(model_cls, "__table__"):
            raise ConfigurationError(f"STATE_HISTORY_MODEL '{self.HISTORY_MODEL}' is not a mapped class.")
        return model_cls


def build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()

    config = Config(
        APP_NAME="statehistory",
        ENV=resolved_env,
        DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./statehistory.db"),
        USE_CURRENT_COLUMNS=_as_bool(os.getenv("STATE_HISTORY_USE_CURRENT_COLUMNS"), default=True),
        CURRENT_COLUMN_PREFIX=os.getenv("STATE_HISTORY_CURRENT_PREFIX", "current_"),
        LOG_FALLBACK_WARNINGS=_as_bool(os.getenv("STATE_HISTORY_LOG_FALLBACK_WARNINGS"), default=True),
        HISTORY_MODEL=os.getenv("STATE_HISTORY_MODEL", DEFAULT_HISTORY_MODEL),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", ""),
    )
    _validate_config(config)
    return config


def _validate_database_url(database_url: str) -> None:
    parsed = urlparse(database_url)
    if parsed.scheme not in {"sqlite", "postgresql", "postgresql+psycopg2"}:
        raise ConfigurationError("DATABASE_URL must use sqlite:// or postgresql:// style URL.")
    if parsed.scheme.startswith("postgresql") and not parsed.hostname:
        raise ConfigurationError("PostgreSQL DATABASE_URL is missing hostname.")


def _validate_config(config: Config) -> None:
    _validate_database_url(config.DATABASE_URL)

    if not _PREFIX_PATTERN.match(config.CURRENT_COLUMN_PREFIX):
        raise ConfigurationError("STATE_HISTORY_CURRENT_PREFIX must be a non-empty column name prefix.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.is_production and config.DATABASE_URL.startswith("sqlite:///./"):
        raise ConfigurationError("Production DATABASE_URL points at the local development SQLite file.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return build_config(env)
