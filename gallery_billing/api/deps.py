import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gallery_billing.services.hosted_auth import AuthUser, resolve_user
from gallery_billing.services.payment_provider import PaymentProvider, provider_from_settings

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def get_current_user(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> AuthUser:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=401, detail="Authorization required")
    try:
        return resolve_user(creds.credentials)
    except NotImplementedError:
        logger.error("Hosted auth is not configured; set SUPABASE_JWT_SECRET or SUPABASE_URL/SUPABASE_ANON_KEY")
        raise HTTPException(status_code=503, detail="Authentication unavailable")
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthorized")


def get_payment_provider() -> PaymentProvider | None:
    return provider_from_settings()
