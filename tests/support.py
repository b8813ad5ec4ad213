"""Models and state machines shared by the test suite."""

from __future__ import annotations

import enum

from sqlalchemy import Enum, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from statehistory.machine import HasState, StateMachine, TransitionMap


class ArticleState(str, enum.Enum):
    DRAFT = "draft"
    REVIEW = "review"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class ArticleStateMachine(StateMachine):
    def transition_map(self) -> TransitionMap:
        return (
            TransitionMap.build(ArticleState)
            .allow_from_null(ArticleState.DRAFT)
            .allow_from_null(ArticleState.PUBLISHED)
            .allow(ArticleState.DRAFT, ArticleState.REVIEW)
            .allow(ArticleState.DRAFT, ArticleState.PUBLISHED)
            .allow(ArticleState.REVIEW, ArticleState.PUBLISHED)
            .allow(ArticleState.PUBLISHED, ArticleState.ARCHIVED)
            .allow_any_to(ArticleState.DRAFT)
        )


class PaymentStatusMachine(StateMachine):
    def transition_map(self) -> TransitionMap:
        return (
            TransitionMap.build(PaymentStatus)
            .allow_from_null(PaymentStatus.PENDING)
            .allow_from_null(PaymentStatus.PAID)
            .allow(PaymentStatus.PENDING, PaymentStatus.PAID)
            .allow(PaymentStatus.PENDING, PaymentStatus.FAILED)
            .allow(PaymentStatus.FAILED, PaymentStatus.PENDING)
            .allow(PaymentStatus.PAID, PaymentStatus.REFUNDED)
            .allow(PaymentStatus.REFUNDED, PaymentStatus.PENDING)
        )


class FixtureBase(DeclarativeBase):
    pass


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Article(HasState, FixtureBase):
    __tablename__ = "articles"
    __state_machines__ = {
        "state": ArticleStateMachine,
        "payment_status": {"machine": PaymentStatusMachine, "cast": PaymentStatus},
    }

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str | None] = mapped_column(String(191))
    state: Mapped[ArticleState | None] = mapped_column(
        Enum(ArticleState, native_enum=False, values_callable=_enum_values, length=191),
        nullable=True,
    )
    payment_status: Mapped[str | None] = mapped_column(String(191), nullable=True)
    current_state: Mapped[str | None] = mapped_column(String(191), nullable=True, index=True)
    current_payment_status: Mapped[str | None] = mapped_column(String(191), nullable=True, index=True)


class ArticleNoCurrent(HasState, FixtureBase):
    __tablename__ = "articles_no_current"
    __state_machines__ = {"state": ArticleStateMachine}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    state: Mapped[str | None] = mapped_column(String(191), nullable=True)


class Order(HasState, FixtureBase):
    """State kept in history only: ``status`` has no column of its own."""

    __tablename__ = "orders"
    __state_machines__ = {"status": ArticleStateMachine}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    reference: Mapped[str | None] = mapped_column(String(191))
