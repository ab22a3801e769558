import pytest

from gallery_billing.services.plans import PAID_PLANS, artwork_limit_for_plan, get_paid_plan


@pytest.mark.parametrize(
    "plan_id,limit",
    [
        ("free", 3),
        ("artist", 15),
        ("established", 50),
        ("professional", -1),
        ("enterprise", 3),
        ("", 3),
        (None, 3),
    ],
)
def test_artwork_limit_for_plan(plan_id, limit):
    assert artwork_limit_for_plan(plan_id) == limit


def test_paid_plans_exclude_free():
    assert set(PAID_PLANS) == {"artist", "established", "professional"}
    assert get_paid_plan("free") is None
    assert get_paid_plan(None) is None


def test_paid_plan_prices():
    artist = get_paid_plan("artist")
    assert artist.price == 1200
    assert artist.major_amount == 12.0
    assert artist.currency == "USD"
    assert get_paid_plan("professional").artwork_limit == -1
