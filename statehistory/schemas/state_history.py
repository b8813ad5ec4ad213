"""Read schemas for state history rows."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StateHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, protected_namespaces=())

    id: int
    model_type: str
    model_id: int
    field: str
    from_state: str | None = Field(default=None, serialization_alias="from")
    to_state: str = Field(serialization_alias="to")
    meta: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
