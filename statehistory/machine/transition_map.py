"""Allowed-edge graph between state tokens."""

from __future__ import annotations

import enum
from typing import Any

from statehistory.machine.state_machine import state_value


class TransitionMap:
    """Directed edges between state tokens, with creation and wildcard edges.

    ``None`` is the source token for a model that has no state yet. Tokens are
    opaque strings; enum members are accepted anywhere and reduced to their
    values.
    """

    def __init__(self) -> None:
        self._transitions: dict[str | None, set[str]] = {}
        self._any_to_states: set[str] = set()

    @classmethod
    def build(cls, states: type[enum.Enum] | None = None) -> "TransitionMap":
        """Start an empty map; ``states`` names the enum the edges are drawn from."""
        return cls()

    def allow(self, from_state: Any, to_state: Any) -> "TransitionMap":
        self._transitions.setdefault(state_value(from_state), set()).add(self._target(to_state))
        return self

    def allow_from_null(self, to_state: Any) -> "TransitionMap":
        self._transitions.setdefault(None, set()).add(self._target(to_state))
        return self

    def allow_any_to(self, to_state: Any) -> "TransitionMap":
        self._any_to_states.add(self._target(to_state))
        return self

    def is_allowed(self, from_state: Any, to_state: Any) -> bool:
        to_value = state_value(to_state)
        if to_value is None:
            return False
        if to_value in self._any_to_states:
            return True
        return to_value in self._transitions.get(state_value(from_state), ())

    def allowed_targets(self, from_state: Any) -> set[str]:
        from_value = state_value(from_state)
        allowed = set(self._any_to_states)
        allowed.update(self._transitions.get(from_value, ()))
        return allowed

    get_allowed_transitions = allowed_targets

    @property
    def transitions(self) -> dict[str | None, frozenset[str]]:
        return {source: frozenset(targets) for source, targets in self._transitions.items()}

    @property
    def any_to_states(self) -> frozenset[str]:
        return frozenset(self._any_to_states)

    @staticmethod
    def _target(to_state: Any) -> str:
        value = state_value(to_state)
        if value is None:
            raise ValueError("A transition target must be a concrete state, not None.")
        return value
