"""Column introspection helpers for mapped host models."""

from __future__ import annotations

import enum
from typing import Any

from sqlalchemy import Enum as SAEnum
from sqlalchemy import inspect
from sqlalchemy.exc import NoInspectionAvailable


def model_type_for(model: Any) -> str:
    """Polymorphic type discriminator stored on history rows.

    Module-qualified so that same-named classes in different modules keep
    separate history streams.
    """
    cls = model if isinstance(model, type) else type(model)
    return f"{cls.__module__}.{cls.__qualname__}"


def model_key_for(model: Any) -> Any:
    """Primary key value of a mapped instance (single-column keys)."""
    identity = inspect(model).identity
    if identity:
        return identity[0]
    return getattr(model, "id", None)


def has_column(model: Any, column: str) -> bool:
    """Whether the model's mapped class exposes ``column`` as a column attribute."""
    cls = model if isinstance(model, type) else type(model)
    try:
        mapper = inspect(cls)
    except NoInspectionAvailable:
        return False
    return column in mapper.column_attrs.keys()


def persisted_value(model: Any, attribute: str) -> Any:
    """Return the value last loaded from or flushed to storage.

    Unflushed assignments on a persistent instance are ignored; instances that
    were never persisted report their in-memory value. Unmapped attributes
    report ``None``.
    """
    state = inspect(model)
    if not state.persistent:
        return getattr(model, attribute, None)
    if attribute not in state.attrs:
        return None

    history = state.attrs[attribute].load_history()
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return None


def column_enum_class(model: Any, column: str) -> type[enum.Enum] | None:
    """Enum class declared by the mapped column's ``sqlalchemy.Enum`` type, if any."""
    cls = model if isinstance(model, type) else type(model)
    table = getattr(cls, "__table__", None)
    if table is None or column not in table.c:
        return None
    column_type = table.c[column].type
    if isinstance(column_type, SAEnum):
        return column_type.enum_class
    return None


def column_value(model: Any, column: str, token: str | None) -> Any:
    """Convert a state token into what the column stores (enum member or string)."""
    enum_cls = column_enum_class(model, column)
    if enum_cls is None or token is None:
        return token
    return enum_cls(token)
