"""Declarative model mixin wiring state machines and history to fields."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Query, Session, object_session
from sqlalchemy.orm.exc import DetachedInstanceError

from statehistory.core.config import Config, get_config
from statehistory.core.exceptions import ConfigurationError, NoStateMachineConfiguredError
from statehistory.database.schema import column_value, has_column, model_key_for, model_type_for, persisted_value
from statehistory.machine.machine_config import StateMachineConfig
from statehistory.machine.manager import StateManager
from statehistory.machine.state_machine import state_value
from statehistory.schemas.state_history import StateHistoryRead

logger = logging.getLogger(__name__)


class HasState:
    """Mixin for mapped models with one or more state machine fields.

    Declare fields in ``__state_machines__``::

        class Article(HasState, Base):
            __state_machines__ = {
                "state": ArticleStateMachine,
                "payment_status": {"machine": PaymentMachine, "cast": PaymentStatus},
            }

    Declarations are parsed once, when the class is created.
    """

    __state_machines__ = {}
    __state_registry__ = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        declarations = cls.__dict__.get("__state_machines__")
        if declarations is None:
            return
        registry = dict(getattr(cls, "__state_registry__", {}))
        for field in declarations:
            registry[field] = StateMachineConfig.parse(declarations, field, cls)
        cls.__state_registry__ = registry

    @classmethod
    def state_config(cls, field: str) -> StateMachineConfig:
        try:
            return cls.__state_registry__[field]
        except KeyError:
            raise NoStateMachineConfiguredError(field, model_type_for(cls)) from None

    @classmethod
    def state_history_config(cls) -> Config:
        """Engine configuration used by this model; override to pin one."""
        return get_config()

    def state_manager(self, field: str) -> StateManager:
        field_config = self.state_config(field)
        return StateManager(
            field_config.build_machine(),
            field_config,
            guards=field_config.guards,
            effects=field_config.effects,
            config=self.state_history_config(),
        )

    def transition_to(
        self,
        field: str,
        to: Any,
        meta: dict[str, Any] | None = None,
        context: dict[str, Any] | None = None,
    ) -> bool:
        return self.state_manager(field).transition(self, field, to, meta, context)

    def states(self, field: str) -> Query:
        """History rows for ``field``, newest first."""
        history_model = self.state_history_config().history_model()
        return history_model.for_owner(self._state_session(), model_type_for(self), model_key_for(self), field)

    def latest_state(self, field: str) -> Any:
        return self.states(field).first()

    def state_timeline(self, field: str) -> list[StateHistoryRead]:
        """History rows for ``field`` as read schemas, oldest first."""
        return [StateHistoryRead.model_validate(row) for row in reversed(self.states(field).all())]

    def get_current_state(self, field: str) -> str | None:
        column = self._current_state_column(field)
        if column is not None:
            current = persisted_value(self, column)
            if current is not None:
                return state_value(current)

        if has_column(self, field):
            base_state = persisted_value(self, field)
            if base_state is not None:
                return state_value(base_state)

        if model_key_for(self) is None:
            return None
        latest = self.latest_state(field)
        return latest.to_state if latest is not None else None

    def get_current_state_casted(self, field: str) -> Any:
        raw_state = self.get_current_state(field)
        if raw_state is None:
            return None

        cast_type = self.state_config(field).cast_type("to")
        if cast_type is None:
            return raw_state
        try:
            return cast_type(raw_state)
        except ValueError:
            logger.warning(
                "state_history.cast.failed",
                extra={
                    "event": "state_history.cast.failed",
                    "model_type": model_type_for(self),
                    "field": field,
                    "value": raw_state,
                    "cast": cast_type.__name__,
                },
            )
            return raw_state

    def get_state(self, field: str) -> Any:
        return self.get_current_state_casted(field)

    def is_in_state(self, field: str, state: Any) -> bool:
        column = self.state_query_column(field)
        if has_column(self, column):
            current = state_value(persisted_value(self, column))
        else:
            current = self.get_current_state(field)
        return current is not None and current == state_value(state)

    def can_transition_to(self, field: str, to: Any) -> bool:
        return self.state_manager(field).can_transition(self.get_current_state(field), to)

    def get_allowed_transitions(self, field: str) -> set[str]:
        return self.state_manager(field).get_allowed_transitions(self.get_current_state(field))

    @classmethod
    def state_query_column(cls, field: str) -> str:
        """Column to filter on: ``current_<field>`` when available, else ``field``."""
        column = cls._current_state_column(field)
        return column if column is not None else field

    @classmethod
    def where_state(cls, field: str, state: Any):
        column_name = cls.state_query_column(field)
        if not has_column(cls, column_name):
            raise ConfigurationError(
                f"State field '{field}' for {model_type_for(cls)} has no mapped column to query; "
                "its state is kept in history only.",
                field=field,
                model_type=model_type_for(cls),
            )
        return getattr(cls, column_name) == column_value(cls, column_name, state_value(state))

    @classmethod
    def query_in_state(cls, session: Session, field: str, state: Any) -> Query:
        return session.query(cls).filter(cls.where_state(field, state))

    @classmethod
    def _current_state_column(cls, field: str) -> str | None:
        config = cls.state_history_config()
        if not config.USE_CURRENT_COLUMNS:
            return None
        column = config.current_column(field)
        return column if has_column(cls, column) else None

    def _state_session(self) -> Session:
        session = object_session(self)
        if session is None:
            raise DetachedInstanceError(f"{model_type_for(self)} instance is not bound to a Session.")
        return session
