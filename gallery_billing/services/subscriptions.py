from __future__ import annotations

import calendar
import logging
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Session

from gallery_billing.core.security import now_utc
from gallery_billing.models.billing import Subscription
from gallery_billing.models.profile import Profile
from gallery_billing.services.plans import FREE_PLAN, artwork_limit_for_plan

logger = logging.getLogger(__name__)


def parse_datetime(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        txt = value.strip()
        if not txt:
            return None
        if txt.endswith("Z"):
            txt = txt[:-1] + "+00:00"
        dt = datetime.fromisoformat(txt)
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt
    return None


def add_one_month(value: datetime) -> datetime:
    year = value.year + (1 if value.month == 12 else 0)
    month = 1 if value.month == 12 else value.month + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def get_subscription_for_user(db: Session, user_id: str) -> Subscription | None:
    return db.execute(
        sa.select(Subscription).where(Subscription.user_id == user_id)
    ).scalar_one_or_none()


def get_subscription_by_provider_id(db: Session, provider_subscription_id: str) -> Subscription | None:
    return db.execute(
        sa.select(Subscription).where(Subscription.provider_subscription_id == provider_subscription_id)
    ).scalar_one_or_none()


def upsert_subscription(db: Session, *, user_id: str, **fields) -> Subscription:
    """Create or update the single subscription row for `user_id`."""
    sub = get_subscription_for_user(db, user_id)
    if sub is None:
        sub = Subscription(user_id=user_id, **fields)
        db.add(sub)
    else:
        for key, value in fields.items():
            setattr(sub, key, value)
    db.flush()
    return sub


def set_artwork_limit(db: Session, *, user_id: str, plan_id: str | None) -> int:
    limit = artwork_limit_for_plan(plan_id)
    result = db.execute(
        sa.update(Profile).where(Profile.id == user_id).values(artwork_limit=limit)
    )
    if result.rowcount == 0:
        logger.warning("No profile row for user %s; artwork limit not stored", user_id)
    return limit


def downgrade_expired_subscriptions(db: Session, *, now: datetime | None = None, limit: int = 500):
    """Move subscriptions cancelled at period end onto the free tier once the period is over."""
    cutoff = now or now_utc()
    rows = db.execute(
        sa.select(Subscription)
        .where(
            Subscription.cancel_at_period_end.is_(True),
            Subscription.current_period_end.is_not(None),
            Subscription.current_period_end <= cutoff,
            Subscription.plan_id != FREE_PLAN,
        )
        .order_by(Subscription.current_period_end.asc(), Subscription.id.asc())
        .limit(limit)
    ).scalars().all()

    downgraded = 0
    for sub in rows:
        sub.plan_id = FREE_PLAN
        sub.status = "cancelled"
        set_artwork_limit(db, user_id=sub.user_id, plan_id=FREE_PLAN)
        downgraded += 1
    db.flush()
    return {"checked": len(rows), "downgraded": downgraded}
