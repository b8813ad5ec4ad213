from __future__ import annotations

import logging
from dataclasses import replace

import pytest
from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.orm.exc import DetachedInstanceError

from statehistory.core.exceptions import ConfigurationError, InvalidTransitionError
from statehistory.database.schema import model_type_for
from statehistory.machine import HasState
from statehistory.models import ModelState
from statehistory.schemas import StateHistoryRead
from tests import support
from tests.support import (
    Article,
    ArticleNoCurrent,
    ArticleState,
    ArticleStateMachine,
    FixtureBase,
    PaymentStatus,
)


class Order(HasState, FixtureBase):
    """Shares its class name with ``tests.support.Order``."""

    __tablename__ = "archived_orders"
    __state_machines__ = {"status": ArticleStateMachine}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)


def _article(session, **values) -> Article:
    article = Article(**values)
    session.add(article)
    session.commit()
    return article


def test_declarations_are_parsed_at_class_creation():
    state_config = Article.state_config("state")
    payment_config = Article.state_config("payment_status")

    assert state_config.machine_class is ArticleStateMachine
    assert state_config.cast_to is ArticleState
    assert payment_config.cast_to is PaymentStatus
    assert ArticleNoCurrent.state_config("state").cast_to is None


def test_transition_to_records_history_and_updates_columns(session):
    article = _article(session, title="Release notes")

    article.transition_to("state", ArticleState.DRAFT, {"editor": "alice"})
    article.transition_to("state", "review")

    assert article.current_state == "review"
    assert article.state is ArticleState.REVIEW
    assert [row.to_state for row in article.states("state").all()] == ["review", "draft"]
    assert article.latest_state("state").from_state == "draft"


def test_transition_to_rejects_edges_outside_the_machine(session):
    article = _article(session)
    article.transition_to("state", ArticleState.DRAFT)

    with pytest.raises(InvalidTransitionError, match="from 'draft' to 'archived' for field 'state' for tests.support.Article"):
        article.transition_to("state", ArticleState.ARCHIVED)

    assert article.get_current_state("state") == "draft"
    assert article.states("state").count() == 1


def test_two_fields_keep_independent_history_streams(session):
    article = _article(session)

    article.transition_to("state", ArticleState.DRAFT)
    article.transition_to("payment_status", PaymentStatus.PENDING)
    article.transition_to("payment_status", PaymentStatus.PAID)

    assert [row.to_state for row in article.states("state")] == ["draft"]
    assert [row.to_state for row in article.states("payment_status")] == ["paid", "pending"]
    assert article.get_current_state("state") == "draft"
    assert article.get_current_state("payment_status") == "paid"
    assert article.payment_status == "paid"


def test_history_is_scoped_to_the_owning_row(session):
    first = _article(session)
    second = _article(session)

    first.transition_to("state", ArticleState.DRAFT)
    second.transition_to("state", ArticleState.PUBLISHED)

    assert [row.to_state for row in first.states("state")] == ["draft"]
    assert [row.to_state for row in second.states("state")] == ["published"]


def test_state_timeline_is_oldest_first_and_serializable(session):
    article = _article(session)
    article.transition_to("state", ArticleState.DRAFT, {"editor": "alice"})
    article.transition_to("state", ArticleState.PUBLISHED)

    timeline = article.state_timeline("state")

    assert all(isinstance(entry, StateHistoryRead) for entry in timeline)
    assert [(entry.from_state, entry.to_state) for entry in timeline] == [(None, "draft"), ("draft", "published")]
    assert timeline[0].meta == {"editor": "alice"}
    dumped = timeline[1].model_dump(by_alias=True)
    assert dumped["from"] == "draft"
    assert dumped["to"] == "published"


def test_current_state_prefers_current_column_then_raw_field_then_history(session):
    article = _article(session, current_state="published", state=ArticleState.DRAFT)
    assert article.get_current_state("state") == "published"

    article.current_state = None
    session.commit()
    assert article.get_current_state("state") == "draft"

    article.state = None
    session.add(ModelState(model_type=model_type_for(Article), model_id=article.id, field="state", to_state="review"))
    session.commit()
    assert article.get_current_state("state") == "review"


def test_unflushed_assignment_does_not_change_current_state(session):
    article = _article(session, current_state="draft")
    assert article.current_state == "draft"

    article.current_state = "archived"

    assert article.get_current_state("state") == "draft"


def test_current_state_of_new_model_is_null(session):
    article = Article()
    session.add(article)

    assert article.get_current_state("state") is None
    assert article.get_current_state_casted("state") is None
    assert article.get_allowed_transitions("state") == {"draft", "published"}


def test_casted_state_uses_declared_enum(session):
    article = _article(session)
    article.transition_to("payment_status", PaymentStatus.PENDING)
    article.transition_to("state", ArticleState.DRAFT)

    assert article.get_current_state_casted("payment_status") is PaymentStatus.PENDING
    assert article.get_state("state") is ArticleState.DRAFT


def test_casted_state_falls_back_to_raw_value_for_unknown_tokens(session, caplog):
    article = _article(session, current_payment_status="legacy")

    with caplog.at_level(logging.WARNING, logger="statehistory.machine.has_state"):
        assert article.get_current_state_casted("payment_status") == "legacy"

    assert any(record.getMessage() == "state_history.cast.failed" for record in caplog.records)


def test_uncast_field_returns_raw_token(session):
    article = ArticleNoCurrent()
    session.add(article)
    session.commit()

    article.transition_to("state", ArticleState.DRAFT)

    assert article.get_current_state_casted("state") == "draft"


def test_is_in_state_checks_the_queryable_column(session):
    article = _article(session)
    article.transition_to("state", ArticleState.DRAFT)

    assert article.is_in_state("state", ArticleState.DRAFT) is True
    assert article.is_in_state("state", "draft") is True
    assert article.is_in_state("state", ArticleState.PUBLISHED) is False
    assert article.is_in_state("payment_status", PaymentStatus.PAID) is False


def test_can_transition_to_and_allowed_transitions_follow_current_state(session):
    article = _article(session)
    article.transition_to("state", ArticleState.DRAFT)

    assert article.can_transition_to("state", ArticleState.REVIEW) is True
    assert article.can_transition_to("state", ArticleState.ARCHIVED) is False
    assert article.get_allowed_transitions("state") == {"review", "published", "draft"}


def test_query_in_state_filters_on_current_column(session):
    draft = _article(session, title="draft one")
    published = _article(session, title="published one")
    draft.transition_to("state", ArticleState.DRAFT)
    published.transition_to("state", ArticleState.PUBLISHED)

    titles = [article.title for article in Article.query_in_state(session, "state", ArticleState.PUBLISHED)]

    assert titles == ["published one"]
    assert Article.state_query_column("state") == "current_state"


def test_query_in_state_uses_raw_field_without_current_column(session):
    article = ArticleNoCurrent()
    session.add(article)
    session.commit()
    article.transition_to("state", ArticleState.DRAFT)

    assert ArticleNoCurrent.state_query_column("state") == "state"
    assert ArticleNoCurrent.query_in_state(session, "state", ArticleState.DRAFT).count() == 1
    assert ArticleNoCurrent.query_in_state(session, "state", ArticleState.PUBLISHED).count() == 0


def test_history_only_mode_reads_raw_field_and_history(session, history_only_config, monkeypatch):
    monkeypatch.setattr(Article, "state_history_config", classmethod(lambda cls: history_only_config))
    article = _article(session, current_state="archived")

    article.transition_to("state", ArticleState.DRAFT)

    assert Article.state_query_column("state") == "state"
    assert article.get_current_state("state") == "draft"
    assert article.current_state == "archived"
    assert Article.query_in_state(session, "state", ArticleState.DRAFT).count() == 1


def test_custom_column_prefix(session, config, monkeypatch):
    prefixed = replace(config, CURRENT_COLUMN_PREFIX="cached_")
    monkeypatch.setattr(Article, "state_history_config", classmethod(lambda cls: prefixed))
    article = _article(session, current_state="published")

    assert Article.state_query_column("state") == "state"
    assert article.get_current_state("state") is None


def test_history_reads_require_a_session():
    with pytest.raises(DetachedInstanceError):
        Article().states("state")


def test_same_named_classes_keep_separate_history(session):
    live = support.Order(id=1)
    archived = Order(id=1)
    session.add_all([live, archived])
    session.commit()

    live.transition_to("status", ArticleState.DRAFT)

    assert model_type_for(live) != model_type_for(archived)
    assert [row.to_state for row in live.states("status")] == ["draft"]
    assert archived.states("status").all() == []
    assert archived.get_current_state("status") is None
    assert archived.can_transition_to("status", ArticleState.PUBLISHED) is True


def test_history_only_field_reads_state_from_history(session):
    order = support.Order(reference="A-1")
    session.add(order)
    session.commit()

    order.transition_to("status", ArticleState.DRAFT)

    assert order.get_current_state("status") == "draft"
    assert order.is_in_state("status", ArticleState.DRAFT) is True
    assert order.is_in_state("status", "published") is False
    assert order.state_query_column("status") == "status"


def test_history_only_field_cannot_be_queried_by_column(session):
    with pytest.raises(ConfigurationError, match="'status' for tests.support.Order has no mapped column"):
        support.Order.where_state("status", ArticleState.DRAFT)
    with pytest.raises(ConfigurationError):
        support.Order.query_in_state(session, "status", ArticleState.DRAFT)
