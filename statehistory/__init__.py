"""State machines with an append-only transition history for SQLAlchemy models."""

from statehistory.core.exceptions import (
    ConfigurationError,
    InvalidTransitionError,
    NoStateMachineConfiguredError,
    StateHistoryException,
    TransitionBlockedError,
)
from statehistory.machine import (
    Effect,
    EventDispatcher,
    Guard,
    HasState,
    StateMachine,
    StateMachineConfig,
    StateManager,
    StateTransitioned,
    StateTransitioning,
    TransitionMap,
)
from statehistory.models import ModelState

__version__ = "1.0.0"

__all__ = [
    "ConfigurationError",
    "Effect",
    "EventDispatcher",
    "Guard",
    "HasState",
    "InvalidTransitionError",
    "ModelState",
    "NoStateMachineConfiguredError",
    "StateHistoryException",
    "StateMachine",
    "StateMachineConfig",
    "StateManager",
    "StateTransitioned",
    "StateTransitioning",
    "TransitionBlockedError",
    "TransitionMap",
]
