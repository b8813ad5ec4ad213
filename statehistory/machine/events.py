"""Transition notifications and the in-process dispatcher that carries them."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from statehistory.core.logging import LogContext, build_log_event
from statehistory.database.schema import model_type_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateTransitionEvent:
    model: Any
    field: str
    from_state: str | None
    to_state: str
    meta: dict[str, Any] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)

    name = "state_history.event"

    def log_context(self) -> LogContext:
        return LogContext(
            model_type=model_type_for(self.model),
            model_id=str(getattr(self.model, "id", None)),
            field=self.field,
            from_state=self.from_state,
            to_state=self.to_state,
        )


@dataclass(frozen=True)
class StateTransitioning(StateTransitionEvent):
    """Published after guards pass, before the transaction opens."""

    name = "state_history.transitioning"


@dataclass(frozen=True)
class StateTransitioned(StateTransitionEvent):
    """Published after the transition has committed."""

    name = "state_history.transitioned"


Listener = Callable[[StateTransitionEvent], Any]


class EventDispatcher:
    """Fire-and-forget publisher: listener failures are logged, never raised."""

    def __init__(self) -> None:
        self._listeners: dict[type, list[Listener]] = defaultdict(list)

    def listen(self, event_type: type[StateTransitionEvent], listener: Listener) -> Listener:
        self._listeners[event_type].append(listener)
        return listener

    def forget(self, event_type: type[StateTransitionEvent], listener: Listener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def dispatch(self, event: StateTransitionEvent) -> None:
        logger.debug(event.name, extra=build_log_event(event.name, event.log_context()))
        for event_type, listeners in list(self._listeners.items()):
            if not isinstance(event, event_type):
                continue
            for listener in list(listeners):
                try:
                    listener(event)
                except Exception:
                    logger.exception(
                        "state_history.event.listener_failed",
                        extra={
                            "event": "state_history.event.listener_failed",
                            "event_name": event.name,
                            "listener": getattr(listener, "__qualname__", repr(listener)),
                        },
                    )


dispatcher = EventDispatcher()
