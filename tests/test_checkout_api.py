from __future__ import annotations

import asyncio
import time

import httpx
import pytest

from gallery_billing.api.deps import get_payment_provider
from gallery_billing.main import app
from gallery_billing.models import Payment
from tests.testkit import FakePaymentProvider, access_token, count_rows

USER = "5d7a1b3c-0000-4000-8000-0000000000cc"
ORIGIN = "https://hivemind-ar.vercel.app"


def _auth(user_id: str = USER) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token(user_id, email='artist@example.com')}", "Origin": ORIGIN}


def test_preflight(client):
    res = client.options("/create-checkout", headers={"Origin": "http://localhost:3000"})
    assert res.status_code == 200
    assert res.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert "x-signature" not in res.headers["access-control-allow-headers"]


def test_requires_authorization_header(client):
    res = client.post("/create-checkout", json={"planId": "artist"})
    assert res.status_code == 401
    assert res.json() == {"error": "Authorization required"}


def test_rejects_invalid_token(client):
    res = client.post("/create-checkout", json={"planId": "artist"}, headers={"Authorization": "Bearer nope"})
    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized"}


def test_rejects_expired_token(client):
    token = access_token(USER, expires_in=-60)
    res = client.post("/create-checkout", json={"planId": "artist"}, headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


@pytest.mark.parametrize("plan_id", [None, "free", "enterprise", ""])
def test_rejects_unknown_plan(client, plan_id):
    res = client.post("/create-checkout", json={"planId": plan_id}, headers=_auth())
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid plan ID"}


@pytest.mark.parametrize(
    "field,url",
    [
        ("successUrl", "https://evil.example.com/pages/subscriber/dashboard.html"),
        ("cancelUrl", "https://hivemind-ar.vercel.app.evil.com/x"),
        ("successUrl", "javascript:alert(1)"),
        ("cancelUrl", "not a url"),
        ("successUrl", "http://hivemind-ar.vercel.app/pages"),
    ],
)
def test_rejects_redirect_outside_allow_list(client, provider, field, url):
    res = client.post("/create-checkout", json={"planId": "artist", field: url}, headers=_auth())
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid redirect URL"}
    assert provider.requests == []


def test_missing_provider_credentials_is_503(client, db):
    app.dependency_overrides[get_payment_provider] = lambda: None
    res = client.post("/create-checkout", json={"planId": "artist"}, headers=_auth())
    assert res.status_code == 503
    assert res.json() == {"error": "Payment system unavailable"}
    assert count_rows(db, Payment) == 0


def test_invalid_body_is_400(client):
    res = client.post("/create-checkout", content="[1, 2", headers={**_auth(), "content-type": "application/json"})
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid request body"}


def test_creates_pending_payment(client, db, provider):
    res = client.post(
        "/create-checkout",
        json={"planId": "established", "successUrl": f"{ORIGIN}/done"},
        headers=_auth(),
    )

    assert res.status_code == 200
    assert res.json() == {
        "clientSecret": "int_test_1_secret",
        "paymentIntentId": "int_test_1",
        "env": "demo",
    }

    sent = provider.requests[0]
    assert sent.amount == 19.0
    assert sent.currency == "USD"
    assert sent.merchant_order_id.startswith(f"sub_{USER}_")
    assert sent.metadata == {"userId": USER, "planId": "established", "email": "artist@example.com"}
    assert sent.return_url == f"{ORIGIN}/done"
    assert sent.cancel_url == f"{ORIGIN}/pages/subscriber/upgrade.html?payment=cancelled"

    db.expire_all()
    payment = db.query(Payment).filter_by(provider_payment_id="int_test_1").one()
    assert payment.status == "pending"
    assert payment.user_id == USER
    assert payment.plan_id == "established"
    assert payment.amount == 1900


def test_provider_failure_passes_message_through(client, db):
    app.dependency_overrides[get_payment_provider] = lambda: FakePaymentProvider(fail_with="Airwallex auth failed: 401")
    res = client.post("/create-checkout", json={"planId": "artist"}, headers=_auth())
    assert res.status_code == 500
    assert res.json() == {"error": "Airwallex auth failed: 401"}
    assert count_rows(db, Payment) == 0


def test_slow_provider_does_not_stall_other_requests(client, db):
    app.dependency_overrides[get_payment_provider] = lambda: FakePaymentProvider(delay=1.0)

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            checkout = asyncio.create_task(ac.post("/create-checkout", json={"planId": "artist"}, headers=_auth()))
            await asyncio.sleep(0.3)
            started = time.perf_counter()
            health = await ac.get("/health")
            latency = time.perf_counter() - started
            return await checkout, health, latency

    checkout, health, latency = asyncio.run(scenario())

    assert health.status_code == 200
    assert latency < 0.5
    assert checkout.status_code == 200
    assert count_rows(db, Payment) == 1
