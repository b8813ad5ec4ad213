"""Guard and effect plugin contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any


class Guard(ABC):
    """Veto-capable check run before a transition is committed.

    Return ``False`` to block with no reason, or raise to block with one.
    """

    @abstractmethod
    def allows(
        self,
        model: Any,
        from_state: str | None,
        to_state: str,
        meta: dict[str, Any] | None = None,
        context: dict[str, Any] | None = None,
    ) -> bool:
        raise NotImplementedError


class Effect(ABC):
    """Reaction to a committed transition. Cannot veto."""

    @abstractmethod
    def execute(
        self,
        model: Any,
        from_state: str | None,
        to_state: str,
        meta: dict[str, Any] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        raise NotImplementedError


class CallableGuard(Guard):
    """Adapt a plain function with the ``allows`` signature."""

    def __init__(self, func: Callable[..., bool]) -> None:
        self.func = func
        self.name = getattr(func, "__qualname__", type(func).__name__)

    def allows(self, model, from_state, to_state, meta=None, context=None) -> bool:
        return bool(self.func(model, from_state, to_state, meta or {}, context or {}))


class CallableEffect(Effect):
    """Adapt a plain function with the ``execute`` signature."""

    def __init__(self, func: Callable[..., Any]) -> None:
        self.func = func
        self.name = getattr(func, "__qualname__", type(func).__name__)

    def execute(self, model, from_state, to_state, meta=None, context=None) -> None:
        self.func(model, from_state, to_state, meta or {}, context or {})


def as_guard(guard: Guard | Callable[..., bool]) -> Guard:
    if isinstance(guard, Guard):
        return guard
    if callable(guard):
        return CallableGuard(guard)
    raise TypeError(f"Guard must implement allows() or be callable, got {type(guard).__name__}.")


def as_effect(effect: Effect | Callable[..., Any]) -> Effect:
    if isinstance(effect, Effect):
        return effect
    if callable(effect):
        return CallableEffect(effect)
    raise TypeError(f"Effect must implement execute() or be callable, got {type(effect).__name__}.")
