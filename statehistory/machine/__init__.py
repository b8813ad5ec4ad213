"""Transition maps, state machines and the transition orchestrator."""

from statehistory.machine.contracts import CallableEffect, CallableGuard, Effect, Guard
from statehistory.machine.events import EventDispatcher, StateTransitioned, StateTransitioning, dispatcher
from statehistory.machine.has_state import HasState
from statehistory.machine.machine_config import StateMachineConfig
from statehistory.machine.manager import StateManager
from statehistory.machine.state_machine import StateMachine, state_value
from statehistory.machine.transition_map import TransitionMap

__all__ = [
    "CallableEffect",
    "CallableGuard",
    "Effect",
    "EventDispatcher",
    "Guard",
    "HasState",
    "StateMachine",
    "StateMachineConfig",
    "StateManager",
    "StateTransitioned",
    "StateTransitioning",
    "TransitionMap",
    "dispatcher",
    "state_value",
]
