import hashlib
import hmac
import time
from datetime import datetime, timezone

from jose import jwt

from gallery_billing.core.config import settings

ALGO = "HS256"

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def now_ms() -> int:
    return int(time.time() * 1000)

def _as_bytes(value: bytes | str) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")

def sign_webhook_payload(body: bytes | str, timestamp: str | int, secret: str) -> str:
    # Provider scheme: hex(HMAC-SHA256(secret, "{timestamp}.{body}"))
    payload = f"{timestamp}.".encode("utf-8") + _as_bytes(body)
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()

def verify_webhook_signature(
    body: bytes | str,
    timestamp: str | None,
    signature: str | None,
    secret: str | None,
    *,
    max_age_seconds: int = 300,
    now_ms_value: int | None = None,
) -> bool:
    """Check an inbound webhook's signature and freshness.

    `timestamp` is unix seconds as sent in the header; the replay window is
    compared in milliseconds.
    """
    if not signature or not timestamp or not secret:
        return False
    try:
        timestamp_ms = int(timestamp) * 1000
    except (TypeError, ValueError):
        return False
    current = now_ms() if now_ms_value is None else now_ms_value
    if abs(current - timestamp_ms) > max_age_seconds * 1000:
        return False
    expected = sign_webhook_payload(body, timestamp, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))

def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=[ALGO],
        audience=settings.SUPABASE_JWT_AUDIENCE,
    )
