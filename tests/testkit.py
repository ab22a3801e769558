from __future__ import annotations

import json
import time
from datetime import datetime, timedelta, timezone

from jose import jwt
import sqlalchemy as sa

from gallery_billing.core.config import settings
from gallery_billing.core.security import sign_webhook_payload
from gallery_billing.models import Payment, PaymentHistory, Profile, Subscription
from gallery_billing.services.payment_provider import PaymentIntent, PaymentIntentRequest, PaymentProviderError


class FakePaymentProvider:
    env = "demo"

    def __init__(self, *, fail_with: str | None = None, delay: float = 0.0):
        self.fail_with = fail_with
        self.delay = delay
        self.requests: list[PaymentIntentRequest] = []
        self.counter = 0

    def create_payment_intent(self, request: PaymentIntentRequest) -> PaymentIntent:
        self.requests.append(request)
        if self.delay:
            time.sleep(self.delay)
        if self.fail_with:
            raise PaymentProviderError(self.fail_with)
        self.counter += 1
        intent_id = f"int_test_{self.counter}"
        return PaymentIntent(id=intent_id, client_secret=f"{intent_id}_secret", raw={"id": intent_id})


def signed_headers(body: str, *, secret: str | None = None, timestamp: int | str | None = None) -> dict[str, str]:
    ts = str(timestamp if timestamp is not None else int(time.time()))
    return {
        "x-timestamp": ts,
        "x-signature": sign_webhook_payload(body, ts, secret or settings.AIRWALLEX_WEBHOOK_SECRET),
        "content-type": "application/json",
    }


def post_event(client, name: str, data: dict):
    body = json.dumps({"name": name, "data": data})
    return client.post("/payment-webhook", content=body, headers=signed_headers(body))


def access_token(user_id: str, *, email: str | None = None, expires_in: int = 3600) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "email": email or f"{user_id}@example.com",
        "aud": settings.SUPABASE_JWT_AUDIENCE,
        "role": "authenticated",
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm="HS256")


def seed_profile(db, user_id: str, *, artwork_limit: int = 3) -> Profile:
    row = Profile(id=user_id, email=f"{user_id}@example.com", artwork_limit=artwork_limit)
    db.add(row)
    db.commit()
    return row


def seed_payment(
    db,
    *,
    user_id: str,
    provider_payment_id: str,
    plan_id: str = "artist",
    status: str = "pending",
    amount: int = 1200,
) -> Payment:
    row = Payment(
        user_id=user_id,
        provider_payment_id=provider_payment_id,
        plan_id=plan_id,
        amount=amount,
        currency="USD",
        status=status,
    )
    db.add(row)
    db.commit()
    return row


def seed_subscription(db, *, user_id: str, plan_id: str, provider_subscription_id: str | None = None, **fields) -> Subscription:
    now = datetime.now(timezone.utc)
    values = {
        "status": "active",
        "current_period_start": now,
        "current_period_end": now + timedelta(days=30),
        "cancel_at_period_end": False,
    }
    values.update(fields)
    row = Subscription(
        user_id=user_id,
        plan_id=plan_id,
        provider_subscription_id=provider_subscription_id,
        **values,
    )
    db.add(row)
    db.commit()
    return row


def history_rows(db, user_id: str) -> list[PaymentHistory]:
    return list(
        db.execute(
            sa.select(PaymentHistory).where(PaymentHistory.user_id == user_id).order_by(PaymentHistory.created_at)
        ).scalars()
    )


def subscription_of(db, user_id: str) -> Subscription | None:
    return db.execute(sa.select(Subscription).where(Subscription.user_id == user_id)).scalar_one_or_none()


def count_rows(db, model) -> int:
    return db.execute(sa.select(sa.func.count()).select_from(model)).scalar_one()
