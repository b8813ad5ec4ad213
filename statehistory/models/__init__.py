"""SQLAlchemy models owned by the state history engine."""

from statehistory.models.base import Base, TimestampMixin, utcnow
from statehistory.models.state_history import ModelState

__all__ = [
    "Base",
    "ModelState",
    "TimestampMixin",
    "utcnow",
]
