from datetime import datetime
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from gallery_billing.db.base import Base


def _uuid() -> str:
    return str(uuid4())


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(sa.Text, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(sa.Text, nullable=False)
    provider_payment_id: Mapped[str] = mapped_column(sa.Text, nullable=False, unique=True)
    plan_id: Mapped[str] = mapped_column(sa.Text, nullable=False)
    amount: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)  # minor units
    currency: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="USD")
    status: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="pending")
    failure_reason: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    meta: Mapped[dict] = mapped_column("metadata", sa.JSON, nullable=False, default=dict)
    completed_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), onupdate=sa.func.now()
    )

    __table_args__ = (
        sa.CheckConstraint(
            "status IN ('pending','completed','failed','refunded')",
            name="ck_payments_status",
        ),
        sa.Index("ix_payments_user_created", "user_id", "created_at"),
    )


class Subscription(Base):
    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(sa.Text, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(sa.Text, nullable=False, unique=True)
    plan_id: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="free")
    status: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="active")
    provider_subscription_id: Mapped[str | None] = mapped_column(sa.Text, nullable=True, unique=True)
    current_period_start: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    current_period_end: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    cancelled_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), onupdate=sa.func.now()
    )

    __table_args__ = (
        sa.CheckConstraint("status IN ('active','cancelled')", name="ck_subscriptions_status"),
        sa.Index("ix_subscriptions_period_end", "cancel_at_period_end", "current_period_end"),
    )


class PaymentHistory(Base):
    __tablename__ = "payment_history"

    id: Mapped[str] = mapped_column(sa.Text, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(sa.Text, nullable=False)
    amount: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    currency: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    status: Mapped[str] = mapped_column(sa.Text, nullable=False)
    payment_type: Mapped[str] = mapped_column(sa.Text, nullable=False)
    meta: Mapped[dict] = mapped_column("metadata", sa.JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())

    __table_args__ = (
        sa.CheckConstraint("payment_type IN ('subscription','refund')", name="ck_payment_history_type"),
        sa.Index("ix_payment_history_user_created", "user_id", "created_at"),
    )
