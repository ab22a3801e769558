from __future__ import annotations

import logging
from urllib import parse as urlparse

from sqlalchemy.orm import Session

from gallery_billing.core.config import checkout_redirect_origins, settings
from gallery_billing.core.security import now_ms
from gallery_billing.models.billing import Payment
from gallery_billing.services.hosted_auth import AuthUser
from gallery_billing.services.payment_provider import PaymentIntentRequest, PaymentProvider
from gallery_billing.services.plans import get_paid_plan

logger = logging.getLogger(__name__)

INVALID_PLAN = "Invalid plan ID"
INVALID_REDIRECT = "Invalid redirect URL"
CREDENTIALS_MISSING = "Payment provider credentials not configured"
INVALID_BODY = "Invalid request body"

# internal message -> (status, client-facing message)
SAFE_CHECKOUT_ERRORS: dict[str, tuple[int, str]] = {
    INVALID_PLAN: (400, INVALID_PLAN),
    INVALID_REDIRECT: (400, INVALID_REDIRECT),
    INVALID_BODY: (400, INVALID_BODY),
    CREDENTIALS_MISSING: (503, "Payment system unavailable"),
}


def safe_checkout_error(exc: Exception) -> tuple[int, str]:
    message = str(exc)
    return SAFE_CHECKOUT_ERRORS.get(message, (500, message))


def _origin_of(url: str) -> str | None:
    parsed = urlparse.urlsplit(url)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        return None
    return f"{parsed.scheme}://{parsed.netloc}".lower()


def is_allowed_redirect(url: str | None) -> bool:
    if not url:
        return True
    try:
        origin = _origin_of(url)
    except ValueError:
        return False
    if origin is None:
        return False
    return origin in {o.rstrip("/").lower() for o in checkout_redirect_origins()}


def _default_redirect(origin: str | None, path: str) -> str:
    allowed = checkout_redirect_origins()
    base = origin if origin and is_allowed_redirect(origin) else (allowed or [""])[0]
    return f"{base.rstrip('/')}{path}"


def create_checkout(
    db: Session,
    provider: PaymentProvider | None,
    *,
    user: AuthUser,
    plan_id: str | None,
    success_url: str | None,
    cancel_url: str | None,
    origin: str | None,
) -> dict:
    plan = get_paid_plan(plan_id)
    if plan is None:
        raise ValueError(INVALID_PLAN)
    if not is_allowed_redirect(success_url) or not is_allowed_redirect(cancel_url):
        raise ValueError(INVALID_REDIRECT)
    if provider is None:
        raise NotImplementedError(CREDENTIALS_MISSING)

    intent = provider.create_payment_intent(
        PaymentIntentRequest(
            amount=plan.major_amount,
            currency=plan.currency,
            merchant_order_id=f"sub_{user.id}_{now_ms()}",
            product_name=f"HiveMind AR {plan.name} Plan",
            metadata={"userId": user.id, "planId": plan.plan_id, "email": user.email},
            return_url=success_url or _default_redirect(origin, settings.CHECKOUT_SUCCESS_PATH),
            cancel_url=cancel_url or _default_redirect(origin, settings.CHECKOUT_CANCEL_PATH),
        )
    )

    db.add(
        Payment(
            user_id=user.id,
            provider_payment_id=intent.id,
            amount=plan.price,
            currency=plan.currency,
            plan_id=plan.plan_id,
            status="pending",
        )
    )
    db.flush()
    logger.info("Checkout created for user %s plan %s (intent %s)", user.id, plan.plan_id, intent.id)
    return {
        "clientSecret": intent.client_secret,
        "paymentIntentId": intent.id,
        "env": provider.env,
    }
