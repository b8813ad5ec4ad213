"""Transition orchestration for one state machine."""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, object_session
from sqlalchemy.orm.exc import DetachedInstanceError

from statehistory.core.config import Config, get_config
from statehistory.core.exceptions import InvalidTransitionError, TransitionBlockedError
from statehistory.core.logging import LogContext, build_log_event
from statehistory.database.schema import column_value, has_column, model_key_for, model_type_for, persisted_value
from statehistory.machine.contracts import Effect, Guard, as_effect, as_guard
from statehistory.machine.events import EventDispatcher, StateTransitioned, StateTransitioning
from statehistory.machine.events import dispatcher as default_dispatcher
from statehistory.machine.machine_config import StateMachineConfig
from statehistory.machine.state_machine import StateMachine, state_value

logger = logging.getLogger(__name__)


class StateManager:
    """Validate, guard, persist and record transitions of a model field.

    A transition runs: resolve current state, no-op check, state machine
    check, guards, ``StateTransitioning``, then a savepoint in which the row is
    re-read, updated and a history row appended. After commit it publishes
    ``StateTransitioned`` and runs effects. If the savepoint or commit fails,
    the field is written back to its previous token and the error re-raised.
    """

    def __init__(
        self,
        state_machine: StateMachine,
        field_config: StateMachineConfig | None = None,
        guards: Iterable[Guard | Callable[..., bool]] = (),
        effects: Iterable[Effect | Callable[..., Any]] = (),
        *,
        config: Config | None = None,
        dispatcher: EventDispatcher | None = None,
        session: Session | None = None,
        autocommit: bool = True,
    ) -> None:
        self.state_machine = state_machine
        self.field_config = field_config
        self.config = config or get_config()
        self.dispatcher = dispatcher or default_dispatcher
        self.session = session
        self.autocommit = autocommit
        self.guards: list[Guard] = [as_guard(guard) for guard in guards]
        self.effects: list[Effect] = [as_effect(effect) for effect in effects]
        self._history_model = self.config.history_model()

    def add_guard(self, guard: Guard | Callable[..., bool]) -> "StateManager":
        self.guards.append(as_guard(guard))
        return self

    def add_effect(self, effect: Effect | Callable[..., Any]) -> "StateManager":
        self.effects.append(as_effect(effect))
        return self

    def can_transition(self, from_state: Any, to_state: Any) -> bool:
        return self.state_machine.can_transition(state_value(from_state), state_value(to_state))

    def get_allowed_transitions(self, from_state: Any) -> set[str]:
        return self.state_machine.get_allowed_transitions(state_value(from_state))

    def transition(
        self,
        model: Any,
        field: str,
        to: Any,
        meta: dict[str, Any] | None = None,
        context: dict[str, Any] | None = None,
    ) -> bool:
        session = self._session_for(model)
        meta = dict(meta or {})
        context = dict(context or {})
        model_type = model_type_for(model)
        to_value = state_value(to)
        column = self._current_column(model, field)
        from_value = self._read_state(model, field, column, session)

        if from_value == to_value:
            logger.debug(
                "state_history.transition.noop",
                extra=build_log_event("state_history.transition.noop", self._log_context(model, field, from_value, to_value)),
            )
            return True

        if not self.state_machine.can_transition(from_value, to_value):
            raise InvalidTransitionError(from_value, to_value, field, model_type)

        for guard in self.guards:
            if not guard.allows(model, from_value, to_value, meta, context):
                raise TransitionBlockedError(from_value, to_value, field, guard, model_type)

        self.dispatcher.dispatch(StateTransitioning(model, field, from_value, to_value, meta, context))

        try:
            with self._transaction(session):
                self._refresh(session, model)
                self._write_state(model, field, to_value, column)
                session.add(model)
                session.flush()
                self._record_state_change(session, model, field, from_value, to_value, meta)
                session.flush()
            if self.autocommit:
                self._commit(session)
        except Exception as exc:
            logger.warning(
                "state_history.transition.failed",
                extra=build_log_event(
                    "state_history.transition.failed",
                    self._log_context(model, field, from_value, to_value),
                    error=type(exc).__name__,
                ),
            )
            self._restore(session, model, field, from_value, column)
            raise

        logger.info(
            "state_history.transition.committed",
            extra=build_log_event("state_history.transition.committed", self._log_context(model, field, from_value, to_value)),
        )
        self.dispatcher.dispatch(StateTransitioned(model, field, from_value, to_value, meta, context))

        for effect in self.effects:
            effect.execute(model, from_value, to_value, meta, context)

        return True

    def get_current_state(self, model: Any, field: str, session: Session | None = None) -> str | None:
        """Current token: denormalized column if set, else latest history row."""
        return self._read_state(model, field, self._current_column(model, field), session)

    def _read_state(self, model: Any, field: str, column: str | None, session: Session | None) -> str | None:
        if column is not None:
            current = persisted_value(model, column)
            if current is not None:
                return state_value(current)

        key = model_key_for(model)
        if key is None:
            return None
        session = session or self._session_for(model)
        latest = self._history_model.latest_for(session, model_type_for(model), key, field)
        return latest.to_state if latest is not None else None

    def _current_column(self, model: Any, field: str) -> str | None:
        if not self.config.USE_CURRENT_COLUMNS:
            return None
        column = self.config.current_column(field)
        if has_column(model, column):
            return column
        if self.config.LOG_FALLBACK_WARNINGS:
            logger.warning(
                "state_history.current_column.missing",
                extra={
                    "event": "state_history.current_column.missing",
                    "model_type": model_type_for(model),
                    "column": column,
                    "field": field,
                },
            )
        return None

    @staticmethod
    def _write_state(model: Any, field: str, value: str | None, column: str | None) -> None:
        if column is not None:
            setattr(model, column, column_value(model, column, value))
        if has_column(model, field):
            setattr(model, field, column_value(model, field, value))

    def _record_state_change(
        self,
        session: Session,
        model: Any,
        field: str,
        from_value: str | None,
        to_value: str,
        meta: dict[str, Any],
    ) -> None:
        session.add(
            self._history_model(
                model_type=model_type_for(model),
                model_id=model_key_for(model),
                field=field,
                from_state=from_value,
                to_state=to_value,
                meta=meta,
            )
        )

    def _restore(
        self, session: Session, model: Any, field: str, from_value: str | None, column: str | None
    ) -> None:
        try:
            if session.in_transaction() and not session.get_transaction().is_active:
                session.rollback()
            self._write_state(model, field, from_value, column)
            session.add(model)
            if self.autocommit:
                self._commit(session)
            else:
                session.flush()
        except SQLAlchemyError:
            logger.exception(
                "state_history.restore.failed",
                extra=build_log_event("state_history.restore.failed", self._log_context(model, field, None, from_value)),
            )

    def _session_for(self, model: Any) -> Session:
        session = self.session or object_session(model)
        if session is None:
            raise DetachedInstanceError(
                f"{model_type_for(model)} instance is not bound to a Session; cannot transition its state."
            )
        return session

    @staticmethod
    @contextmanager
    def _transaction(session: Session) -> Generator[None, None, None]:
        with session.begin_nested():
            yield

    @staticmethod
    def _refresh(session: Session, model: Any) -> None:
        if inspect(model).persistent:
            session.refresh(model)
        else:
            session.add(model)
            session.flush()

    @staticmethod
    def _commit(session: Session) -> None:
        """Commit current transaction and rollback on failure."""
        try:
            session.commit()
        except Exception:
            session.rollback()
            raise

    @staticmethod
    def _log_context(model: Any, field: str, from_value: str | None, to_value: str | None) -> LogContext:
        return LogContext(
            model_type=model_type_for(model),
            model_id=str(getattr(model, "id", None)),
            field=field,
            from_state=from_value,
            to_state=to_value,
        )
