"""Custom exceptions for the state history engine."""

from __future__ import annotations

from typing import Any

NEW_MODEL_LABEL = "null (new model)"


def _model_info(model_type: str | None) -> str:
    return f" for {model_type}" if model_type else ""


def _from_text(from_state: str | None) -> str:
    return from_state if from_state is not None else NEW_MODEL_LABEL


class StateHistoryException(Exception):
    """Base exception for the state history engine."""

    pass


class ConfigurationError(StateHistoryException):
    """Raised when configuration or a state machine declaration is invalid."""

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: Any = None,
        model_type: str | None = None,
    ) -> None:
        self.field = field
        self.value = value
        self.model_type = model_type
        if message is None:
            message = (
                f"Invalid state machine configuration for field '{field}'{_model_info(model_type)}. "
                f"Expected a StateMachine class or a mapping with a 'machine' key, got {type(value).__name__}."
            )
        super().__init__(message)


class NoStateMachineConfiguredError(ConfigurationError):
    """Raised when a field has no state machine declared on its model."""

    def __init__(self, field: str, model_type: str | None = None) -> None:
        super().__init__(
            f"No state machine configured for field '{field}'{_model_info(model_type)}.",
            field=field,
            model_type=model_type,
        )


class InvalidTransitionError(StateHistoryException):
    """Raised when the state machine does not allow the requested edge."""

    def __init__(
        self,
        from_state: str | None,
        to_state: str,
        field: str,
        model_type: str | None = None,
    ) -> None:
        self.from_state = from_state
        self.to_state = to_state
        self.field = field
        self.model_type = model_type
        super().__init__(
            f"Invalid state transition from '{_from_text(from_state)}' to '{to_state}' "
            f"for field '{field}'{_model_info(model_type)}. "
            "This transition is not allowed by the state machine."
        )


class TransitionBlockedError(StateHistoryException):
    """Raised when a guard vetoes a transition."""

    def __init__(
        self,
        from_state: str | None,
        to_state: str,
        field: str,
        guard: Any,
        model_type: str | None = None,
        reason: str | None = None,
    ) -> None:
        self.from_state = from_state
        self.to_state = to_state
        self.field = field
        self.guard = guard
        self.guard_name = guard_name(guard)
        self.model_type = model_type
        self.reason = reason
        reason_info = f": {reason}" if reason else ""
        super().__init__(
            f"State transition from '{_from_text(from_state)}' to '{to_state}' "
            f"for field '{field}'{_model_info(model_type)} was blocked by guard "
            f"{self.guard_name}{reason_info}."
        )


def guard_name(guard: Any) -> str:
    """Human-readable identity of a guard object or callable."""
    if guard is None:
        return "unknown"
    name = getattr(guard, "name", None)
    if isinstance(name, str) and name:
        return name
    if hasattr(guard, "__qualname__"):
        return guard.__qualname__
    return type(guard).__name__
