"""Startup validation and bootstrap helpers."""

from __future__ import annotations

import logging

from statehistory.core.config import get_config
from statehistory.core.logging_config import configure_logging
from statehistory.database.db import verify_database_connection
from statehistory.database.init_db import init_db

logger = logging.getLogger(__name__)


def validate_startup_config() -> None:
    """Fail-fast config and connectivity checks."""
    config = get_config()
    config.history_model()
    if not verify_database_connection():
        raise RuntimeError("Database connectivity check failed.")

    if not config.USE_CURRENT_COLUMNS:
        logger.info(
            "startup.current_columns.disabled",
            extra={"event": "startup.current_columns.disabled"},
        )

    logger.info(
        "startup.config.validated",
        extra={
            "event": "startup.config.validated",
            "env": config.ENV,
            "database_url_scheme": config.DATABASE_URL.split("://", 1)[0],
            "history_model": config.HISTORY_MODEL,
        },
    )


def bootstrap(create_tables: bool = True) -> None:
    """Initialize logging, validate runtime configuration and create history tables."""
    configure_logging()
    validate_startup_config()
    if create_tables:
        init_db()
