from __future__ import annotations

from dataclasses import dataclass

FREE_PLAN = "free"
UNLIMITED_ARTWORKS = -1

PLAN_ARTWORK_LIMITS: dict[str, int] = {
    FREE_PLAN: 3,
    "artist": 15,
    "established": 50,
    "professional": UNLIMITED_ARTWORKS,
}


@dataclass(frozen=True)
class PaidPlan:
    plan_id: str
    name: str
    price: int  # cents
    currency: str
    interval: str

    @property
    def artwork_limit(self) -> int:
        return artwork_limit_for_plan(self.plan_id)

    @property
    def major_amount(self) -> float:
        return self.price / 100


PAID_PLANS: dict[str, PaidPlan] = {
    "artist": PaidPlan("artist", "Artist", 1200, "USD", "month"),
    "established": PaidPlan("established", "Established", 1900, "USD", "month"),
    "professional": PaidPlan("professional", "Professional", 2900, "USD", "month"),
}


def artwork_limit_for_plan(plan_id: str | None) -> int:
    return PLAN_ARTWORK_LIMITS.get(plan_id or "", PLAN_ARTWORK_LIMITS[FREE_PLAN])


def get_paid_plan(plan_id: str | None) -> PaidPlan | None:
    if not plan_id:
        return None
    return PAID_PLANS.get(plan_id)
