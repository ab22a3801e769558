from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Protocol
from urllib import error as urlerror
from urllib import request as urlrequest

from gallery_billing.core.config import settings

logger = logging.getLogger(__name__)

AIRWALLEX_PROD_URL = "https://api.airwallex.com"
AIRWALLEX_DEMO_URL = "https://api-demo.airwallex.com"


class PaymentProviderError(RuntimeError):
    pass


@dataclass(frozen=True)
class PaymentIntentRequest:
    amount: float  # major units
    currency: str
    merchant_order_id: str
    product_name: str
    metadata: dict = field(default_factory=dict)
    return_url: str | None = None
    cancel_url: str | None = None


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str | None
    raw: dict = field(default_factory=dict)


class PaymentProvider(Protocol):
    env: str

    def create_payment_intent(self, request: PaymentIntentRequest) -> PaymentIntent:
        ...


class _HttpStatusError(Exception):
    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}")


def _http_json_post(url: str, payload: dict | None, *, headers: dict[str, str], timeout: int) -> dict:
    req_headers = {"Content-Type": "application/json"}
    req_headers.update(headers)
    body = json.dumps(payload).encode("utf-8") if payload is not None else None
    req = urlrequest.Request(url=url, method="POST", data=body, headers=req_headers)
    try:
        with urlrequest.urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8")
    except urlerror.HTTPError as exc:
        raise _HttpStatusError(exc.code, exc.read().decode("utf-8", errors="replace")) from exc
    return json.loads(raw) if raw else {}


class AirwallexClient:
    def __init__(self, *, client_id: str, api_key: str, env: str = "demo", timeout: int = 20):
        self.client_id = client_id
        self.api_key = api_key
        self.env = env
        self.timeout = timeout
        self.base_url = AIRWALLEX_PROD_URL if env == "prod" else AIRWALLEX_DEMO_URL

    def authenticate(self) -> str:
        try:
            out = _http_json_post(
                f"{self.base_url}/api/v1/authentication/login",
                None,
                headers={"x-client-id": self.client_id, "x-api-key": self.api_key},
                timeout=self.timeout,
            )
        except _HttpStatusError as exc:
            logger.error("Airwallex auth failed: %s %s", exc.status, exc.body)
            raise PaymentProviderError(f"Airwallex auth failed: {exc.status}") from exc
        token = out.get("token")
        if not token:
            raise PaymentProviderError("Airwallex auth returned no token")
        return str(token)

    def create_payment_intent(self, request: PaymentIntentRequest) -> PaymentIntent:
        token = self.authenticate()
        payload = {
            "amount": request.amount,
            "currency": request.currency,
            "merchant_order_id": request.merchant_order_id,
            "order": {
                "type": "subscription",
                "products": [
                    {
                        "name": request.product_name,
                        "quantity": 1,
                        "unit_price": request.amount,
                        "type": "subscription",
                    }
                ],
            },
            "metadata": request.metadata,
            "return_url": request.return_url,
            "cancel_url": request.cancel_url,
        }
        try:
            out = _http_json_post(
                f"{self.base_url}/api/v1/pa/payment_intents/create",
                payload,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except _HttpStatusError as exc:
            logger.error("Payment intent failed: %s %s", exc.status, exc.body)
            raise PaymentProviderError(f"Payment intent failed: {exc.status}") from exc
        if not out.get("id"):
            raise PaymentProviderError("Payment intent response carried no id")
        return PaymentIntent(id=str(out["id"]), client_secret=out.get("client_secret"), raw=out)


def provider_from_settings() -> AirwallexClient | None:
    if not settings.AIRWALLEX_API_KEY or not settings.AIRWALLEX_CLIENT_ID:
        return None
    return AirwallexClient(
        client_id=settings.AIRWALLEX_CLIENT_ID,
        api_key=settings.AIRWALLEX_API_KEY,
        env=(settings.AIRWALLEX_ENV or "demo").strip().lower(),
        timeout=settings.AIRWALLEX_HTTP_TIMEOUT_SECONDS,
    )
