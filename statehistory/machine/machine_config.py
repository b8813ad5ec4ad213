"""Per-field state machine declarations and their normalized form."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from statehistory.core.exceptions import ConfigurationError
from statehistory.database.schema import column_enum_class, model_type_for
from statehistory.machine.contracts import Effect, Guard, as_effect, as_guard
from statehistory.machine.state_machine import StateMachine


@dataclass(frozen=True)
class StateMachineConfig:
    """Normalized declaration for one state field.

    ``cast_from`` / ``cast_to`` are enum classes used to turn stored tokens
    back into members; either may be ``None``.
    """

    machine_class: type[StateMachine]
    cast_from: type[enum.Enum] | None = None
    cast_to: type[enum.Enum] | None = None
    guards: tuple[Guard, ...] = ()
    effects: tuple[Effect, ...] = ()

    @classmethod
    def parse(cls, declarations: Mapping[str, Any], field: str, model: Any = None) -> "StateMachineConfig":
        """Normalize the declaration for ``field``.

        Accepts a bare ``StateMachine`` subclass (cast inferred from the
        model's mapped column) or a mapping with a required ``machine`` key and
        optional ``cast``, ``guards`` and ``effects`` keys.
        """
        model_type = model_type_for(model) if model is not None else None
        declaration = declarations.get(field) if isinstance(declarations, Mapping) else None

        if _is_machine_class(declaration):
            cast_type = column_enum_class(model, field) if model is not None else None
            return cls(declaration, cast_type, cast_type)

        if isinstance(declaration, Mapping):
            machine = declaration.get("machine")
            if not _is_machine_class(machine):
                raise ConfigurationError(field=field, value=machine if "machine" in declaration else declaration, model_type=model_type)
            cast_type = declaration.get("cast")
            if cast_type is not None and not (isinstance(cast_type, type) and issubclass(cast_type, enum.Enum)):
                raise ConfigurationError(
                    f"Invalid cast for state field '{field}'"
                    f"{f' for {model_type}' if model_type else ''}: expected an Enum class, "
                    f"got {type(cast_type).__name__}.",
                    field=field,
                    value=cast_type,
                    model_type=model_type,
                )
            try:
                guards = tuple(as_guard(guard) for guard in declaration.get("guards") or ())
                effects = tuple(as_effect(effect) for effect in declaration.get("effects") or ())
            except TypeError as exc:
                raise ConfigurationError(str(exc), field=field, value=declaration, model_type=model_type) from exc
            return cls(machine, cast_type, cast_type, guards, effects)

        raise ConfigurationError(field=field, value=declaration, model_type=model_type)

    @property
    def has_casts(self) -> bool:
        return self.cast_from is not None or self.cast_to is not None

    def cast_type(self, side: str) -> type[enum.Enum] | None:
        if side == "from":
            return self.cast_from
        if side == "to":
            return self.cast_to
        return None

    def build_machine(self) -> StateMachine:
        return self.machine_class()


def _is_machine_class(value: Any) -> bool:
    return isinstance(value, type) and issubclass(value, StateMachine)

