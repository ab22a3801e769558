from gallery_billing.core.config import cors_allowed_origins

BASE_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"
WEBHOOK_ALLOW_HEADERS = BASE_ALLOW_HEADERS + ", x-timestamp, x-signature"
ALLOW_METHODS = "POST, OPTIONS"

WEBHOOK_PATH = "/payment-webhook"


def allowed_origin_for(origin: str | None) -> str:
    allowed = cors_allowed_origins()
    if origin and origin in allowed:
        return origin
    # Server-to-server calls carry no Origin; browsers from elsewhere get the primary origin
    return allowed[0] if allowed else "*"


def cors_headers(origin: str | None, path: str) -> dict[str, str]:
    allow_headers = WEBHOOK_ALLOW_HEADERS if path.rstrip("/") == WEBHOOK_PATH else BASE_ALLOW_HEADERS
    return {
        "Access-Control-Allow-Origin": allowed_origin_for(origin),
        "Access-Control-Allow-Headers": allow_headers,
        "Access-Control-Allow-Methods": ALLOW_METHODS,
    }
