"""State history (audit log) model module."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Index, Integer, String
from sqlalchemy.orm import Mapped, Query, Session, mapped_column

from statehistory.models.base import Base, TimestampMixin


class ModelState(Base, TimestampMixin):
    """One executed transition of one field on one owning row.

    Rows are append-only: the engine inserts them inside the same transaction
    as the value change and never updates or deletes them.
    """

    __tablename__ = "model_states"
    __table_args__ = (Index("idx_model_states_owner_field", "model_type", "model_id", "field"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    model_type: Mapped[str] = mapped_column(String(191), nullable=False)
    model_id: Mapped[int] = mapped_column(Integer, nullable=False)
    field: Mapped[str] = mapped_column(String(191), nullable=False)
    from_state: Mapped[str | None] = mapped_column("from", String(191), nullable=True)
    to_state: Mapped[str] = mapped_column("to", String(191), nullable=False)
    meta: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ModelState {self.model_type}#{self.model_id} {self.field}: "
            f"{self.from_state!r} -> {self.to_state!r}>"
        )

    @classmethod
    def for_owner(cls, session: Session, model_type: str, model_id: Any, field: str) -> Query:
        """Query history rows for one owner and field, newest first."""
        return (
            session.query(cls)
            .filter(cls.model_type == model_type, cls.model_id == model_id, cls.field == field)
            .order_by(cls.created_at.desc(), cls.id.desc())
        )

    @classmethod
    def latest_for(cls, session: Session, model_type: str, model_id: Any, field: str) -> "ModelState | None":
        return cls.for_owner(session, model_type, model_id, field).first()
