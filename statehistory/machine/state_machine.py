"""State machine contract and state token normalization."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from statehistory.machine.transition_map import TransitionMap


def state_value(state: Any) -> str | None:
    """Normalize an enum member or raw token into its string token."""
    if state is None:
        return None
    if isinstance(state, enum.Enum):
        return str(state.value)
    return str(state)


class StateMachine(ABC):
    """Transition rules for one state set.

    Subclasses only describe their edges in ``transition_map``. The map is
    built on first use and kept for the life of the machine instance.
    """

    _map: "TransitionMap | None" = None

    @abstractmethod
    def transition_map(self) -> "TransitionMap":
        """Build the transition map for this state set."""
        raise NotImplementedError

    def get_transition_map(self) -> "TransitionMap":
        if self._map is None:
            self._map = self.transition_map()
        return self._map

    def can_transition(self, from_state: Any, to_state: Any) -> bool:
        return self.get_transition_map().is_allowed(from_state, to_state)

    def get_allowed_transitions(self, from_state: Any) -> set[str]:
        return self.get_transition_map().allowed_targets(from_state)
