from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from urllib import error as urlerror
from urllib import request as urlrequest

from jose import JWTError

from gallery_billing.core.config import settings
from gallery_billing.core.security import decode_access_token

logger = logging.getLogger(__name__)

UNAUTHORIZED = "Unauthorized"


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str | None = None


def _http_json_get(url: str, *, headers: dict[str, str], timeout: int) -> dict:
    req = urlrequest.Request(url=url, method="GET", headers=headers)
    with urlrequest.urlopen(req, timeout=timeout) as resp:
        raw = resp.read().decode("utf-8")
    return json.loads(raw)


def _user_from_claims(token: str) -> AuthUser:
    try:
        claims = decode_access_token(token)
    except JWTError as exc:
        raise ValueError(UNAUTHORIZED) from exc
    sub = claims.get("sub")
    if not sub:
        raise ValueError(UNAUTHORIZED)
    return AuthUser(id=str(sub), email=claims.get("email"))


def _user_from_auth_api(token: str) -> AuthUser:
    base = (settings.SUPABASE_URL or "").strip().rstrip("/")
    try:
        out = _http_json_get(
            f"{base}/auth/v1/user",
            headers={
                "apikey": settings.SUPABASE_ANON_KEY or "",
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            timeout=settings.SUPABASE_HTTP_TIMEOUT_SECONDS,
        )
    except urlerror.HTTPError as exc:
        logger.info("Hosted auth rejected token (status=%s)", exc.code)
        raise ValueError(UNAUTHORIZED) from exc
    except (urlerror.URLError, TimeoutError, ValueError) as exc:
        logger.warning("Hosted auth request failed: %s", exc)
        raise ValueError(UNAUTHORIZED) from exc
    user_id = out.get("id") if isinstance(out, dict) else None
    if not user_id:
        raise ValueError(UNAUTHORIZED)
    return AuthUser(id=str(user_id), email=out.get("email"))


def resolve_user(token: str) -> AuthUser:
    """Return the hosted-auth user behind a bearer access token.

    Tokens are verified locally when the project's JWT secret is configured,
    otherwise the auth API is asked.
    """
    if not token:
        raise ValueError(UNAUTHORIZED)
    if settings.SUPABASE_JWT_SECRET:
        return _user_from_claims(token)
    if settings.SUPABASE_URL and settings.SUPABASE_ANON_KEY:
        return _user_from_auth_api(token)
    raise NotImplementedError("Hosted auth not configured")
