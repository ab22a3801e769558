"""Payment provider webhook events.

Each handler applies one event's writes to the session it is given; the
caller owns the transaction. Handlers are not idempotent: a redelivered
event re-applies its writes and appends another history row.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable

import sqlalchemy as sa
from sqlalchemy.orm import Session

from gallery_billing.core.security import now_utc
from gallery_billing.models.billing import Payment, PaymentHistory
from gallery_billing.schemas.billing import WebhookEventIn
from gallery_billing.services.plans import FREE_PLAN
from gallery_billing.services.subscriptions import (
    add_one_month,
    get_subscription_by_provider_id,
    get_subscription_for_user,
    parse_datetime,
    set_artwork_limit,
    upsert_subscription,
)

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_REASON = "Payment declined"
DEFAULT_CURRENCY = "USD"
DEFAULT_SUBSCRIPTION_PLAN = "artist"

PAYMENT_STATUS_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"completed", "failed"},
    "completed": {"refunded"},
    "failed": set(),
    "refunded": set(),
}


class PaymentEventName(str, enum.Enum):
    PAYMENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_FAILED = "payment_intent.failed"
    SUBSCRIPTION_CREATED = "subscription.created"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    SUBSCRIPTION_CANCELLED = "subscription.cancelled"
    REFUND_SUCCEEDED = "refund.succeeded"


class PaymentRecordNotFound(LookupError):
    pass


class SubscriptionTargetMissing(LookupError):
    pass


class InvalidPaymentTransition(ValueError):
    pass


def _metadata(data: dict) -> dict:
    meta = data.get("metadata")
    return meta if isinstance(meta, dict) else {}


def _minor_units(amount) -> int | None:
    if not amount:
        return None
    return int(round(float(amount) * 100))


def _find_payment(db: Session, provider_payment_id: str | None) -> Payment | None:
    if not provider_payment_id:
        return None
    return db.execute(
        sa.select(Payment).where(Payment.provider_payment_id == str(provider_payment_id))
    ).scalar_one_or_none()


def _transition(payment: Payment, new_status: str):
    if payment.status == new_status:
        return
    allowed = PAYMENT_STATUS_TRANSITIONS.get(payment.status, set())
    if new_status not in allowed:
        raise InvalidPaymentTransition(
            f"payment {payment.provider_payment_id}: {payment.status} -> {new_status} not allowed"
        )
    payment.status = new_status


def _record_history(db: Session, *, user_id: str, amount, currency, status: str, payment_type: str, meta: dict):
    db.add(
        PaymentHistory(
            user_id=user_id,
            amount=amount,
            currency=currency,
            status=status,
            payment_type=payment_type,
            meta=meta,
        )
    )


def handle_payment_succeeded(db: Session, data: dict):
    payment = _find_payment(db, data.get("id"))
    if payment is None:
        raise PaymentRecordNotFound("Payment record not found")

    now = now_utc()
    _transition(payment, "completed")
    payment.completed_at = now
    payment.meta = {"provider_response": {"status": data.get("status")}}

    upsert_subscription(
        db,
        user_id=payment.user_id,
        plan_id=payment.plan_id,
        status="active",
        current_period_start=now,
        current_period_end=add_one_month(now),
        cancelled_at=None,
        cancel_at_period_end=False,
    )
    set_artwork_limit(db, user_id=payment.user_id, plan_id=payment.plan_id)

    _record_history(
        db,
        user_id=payment.user_id,
        amount=_minor_units(data.get("amount")),
        currency=data.get("currency") or DEFAULT_CURRENCY,
        status="completed",
        payment_type="subscription",
        meta={"provider_payment_id": data.get("id"), "plan_id": payment.plan_id},
    )


def handle_payment_failed(db: Session, data: dict):
    last_attempt = data.get("last_payment_attempt")
    reason = (
        data.get("failure_reason")
        or (last_attempt.get("failure_reason") if isinstance(last_attempt, dict) else None)
        or DEFAULT_FAILURE_REASON
    )

    payment = _find_payment(db, data.get("id"))
    if payment is None:
        logger.warning("payment_intent.failed for unknown payment %s", data.get("id"))
        return

    _transition(payment, "failed")
    payment.failure_reason = reason

    _record_history(
        db,
        user_id=payment.user_id,
        amount=payment.amount,
        currency=payment.currency,
        status="failed",
        payment_type="subscription",
        meta={
            "provider_payment_id": data.get("id"),
            "plan_id": payment.plan_id,
            "failure_reason": data.get("failure_reason"),
        },
    )


def handle_subscription_created(db: Session, data: dict):
    meta = _metadata(data)
    user_id = meta.get("userId")
    if not user_id:
        raise SubscriptionTargetMissing("No user ID in subscription metadata")

    plan_id = meta.get("planId") or DEFAULT_SUBSCRIPTION_PLAN
    now = now_utc()
    upsert_subscription(
        db,
        user_id=str(user_id),
        plan_id=plan_id,
        status="active",
        provider_subscription_id=data.get("id"),
        current_period_start=parse_datetime(data.get("current_period_start")) or now,
        current_period_end=parse_datetime(data.get("current_period_end")) or add_one_month(now),
    )
    set_artwork_limit(db, user_id=str(user_id), plan_id=plan_id)


def handle_subscription_updated(db: Session, data: dict):
    meta = _metadata(data)
    provider_sub_id = data.get("id")
    period_end = parse_datetime(data.get("current_period_end"))

    sub = get_subscription_by_provider_id(db, str(provider_sub_id)) if provider_sub_id else None
    if sub is not None:
        previous_plan = sub.plan_id
        new_plan = meta.get("planId") or previous_plan
        sub.plan_id = new_plan
        sub.status = "cancelled" if data.get("status") == "cancelled" else "active"
        if period_end is not None:
            sub.current_period_end = period_end
        if new_plan != previous_plan:
            set_artwork_limit(db, user_id=sub.user_id, plan_id=new_plan)
        return

    user_id = meta.get("userId")
    new_plan = meta.get("planId")
    if not user_id or not new_plan:
        logger.info("subscription.updated for %s matched no subscription", provider_sub_id)
        return

    sub = get_subscription_for_user(db, str(user_id))
    if sub is None:
        logger.info("subscription.updated: user %s has no subscription row", user_id)
    else:
        sub.plan_id = new_plan
        if period_end is not None:
            sub.current_period_end = period_end
    set_artwork_limit(db, user_id=str(user_id), plan_id=new_plan)


def handle_subscription_cancelled(db: Session, data: dict):
    target_user_id = _metadata(data).get("userId")
    provider_sub_id = data.get("id")
    if provider_sub_id:
        sub = get_subscription_by_provider_id(db, str(provider_sub_id))
        if sub is not None:
            target_user_id = sub.user_id

    if not target_user_id:
        raise SubscriptionTargetMissing("Cannot identify user for cancelled subscription")

    sub = get_subscription_for_user(db, str(target_user_id))
    if sub is None:
        logger.info("subscription.cancelled: user %s has no subscription row", target_user_id)
        return
    # Access stays until current_period_end; downgrade_expired_subscriptions handles expiry.
    sub.status = "cancelled"
    sub.cancelled_at = now_utc()
    sub.cancel_at_period_end = True


def handle_refund_succeeded(db: Session, data: dict):
    original_payment_id = data.get("payment_intent_id") or _metadata(data).get("original_payment_id")
    if not original_payment_id:
        logger.warning("refund.succeeded %s carries no original payment id", data.get("id"))
        return

    payment = _find_payment(db, original_payment_id)
    if payment is None:
        logger.warning("refund.succeeded for unknown payment %s", original_payment_id)
        return

    now = now_utc()
    _transition(payment, "refunded")
    payment.refunded_at = now

    refunded = _minor_units(data.get("amount"))
    _record_history(
        db,
        user_id=payment.user_id,
        amount=refunded if refunded is not None else payment.amount,
        currency=payment.currency,
        status="completed",
        payment_type="refund",
        meta={"refund_id": data.get("id"), "original_payment_id": original_payment_id},
    )

    sub = get_subscription_for_user(db, payment.user_id)
    if sub is not None:
        sub.status = "cancelled"
        sub.plan_id = FREE_PLAN
        sub.cancelled_at = now
    set_artwork_limit(db, user_id=payment.user_id, plan_id=FREE_PLAN)


EventHandler = Callable[[Session, dict], None]

EVENT_HANDLERS: dict[PaymentEventName, EventHandler] = {
    PaymentEventName.PAYMENT_SUCCEEDED: handle_payment_succeeded,
    PaymentEventName.PAYMENT_FAILED: handle_payment_failed,
    PaymentEventName.SUBSCRIPTION_CREATED: handle_subscription_created,
    PaymentEventName.SUBSCRIPTION_UPDATED: handle_subscription_updated,
    PaymentEventName.SUBSCRIPTION_CANCELLED: handle_subscription_cancelled,
    PaymentEventName.REFUND_SUCCEEDED: handle_refund_succeeded,
}


def parse_event_name(name: str | None) -> PaymentEventName | None:
    try:
        return PaymentEventName(name)
    except ValueError:
        return None


def dispatch_payment_event(db: Session, event: WebhookEventIn) -> str:
    kind = parse_event_name(event.name)
    if kind is None:
        # Unknown event types are acknowledged so the provider can add new ones.
        logger.info("Ignoring webhook event %r", event.name)
        return "ignored"
    EVENT_HANDLERS[kind](db, event.data)
    db.flush()
    return "processed"
