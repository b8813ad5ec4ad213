"""Create the state history tables."""

from __future__ import annotations

import logging

from sqlalchemy import Engine, inspect

from statehistory.database.db import get_engine
from statehistory.models import Base

logger = logging.getLogger(__name__)


def init_db(engine: Engine | None = None) -> list[str]:
    """Create missing engine-owned tables and return the ones that were created."""
    engine = engine or get_engine()
    existing = set(inspect(engine).get_table_names())
    Base.metadata.create_all(bind=engine)
    created = sorted(set(Base.metadata.tables) - existing)
    logger.info("database.init_db.completed", extra={"event": "database.init_db.completed", "created_tables": created})
    return created
