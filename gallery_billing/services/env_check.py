from __future__ import annotations

import re
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from gallery_billing.core.config import Settings

SUPABASE_URL_RE = re.compile(r"^https://[a-z0-9]+\.supabase\.co$")
PLACEHOLDER_MARKERS = ("YOURPROJECT", "YOUR_PROJECT", "YOUR_")


@dataclass(frozen=True)
class Finding:
    level: str  # ok|warning|error
    message: str


def _is_placeholder(value: str) -> bool:
    return any(marker in value for marker in PLACEHOLDER_MARKERS)


def check_hosted_backend(cfg: Settings) -> list[Finding]:
    out: list[Finding] = []
    url = (cfg.SUPABASE_URL or "").strip().rstrip("/")
    key = (cfg.SUPABASE_ANON_KEY or "").strip()

    if not url:
        out.append(Finding("error", "SUPABASE_URL not set"))
    elif _is_placeholder(url):
        out.append(Finding("error", "SUPABASE_URL has placeholder value"))
    elif not SUPABASE_URL_RE.match(url):
        out.append(Finding("warning", f"SUPABASE_URL format unusual: {url}"))
    else:
        ref = url.replace("https://", "").replace(".supabase.co", "")
        out.append(Finding("ok", f"SUPABASE_URL: OK (project: {ref})"))

    if not key:
        out.append(Finding("error", "SUPABASE_ANON_KEY not set"))
    elif _is_placeholder(key):
        out.append(Finding("error", "SUPABASE_ANON_KEY has placeholder value"))
    elif not key.startswith("eyJ"):
        # anon keys are JWTs
        out.append(Finding("error", f"SUPABASE_ANON_KEY has invalid format (starts with {key[:20]}...)"))
    else:
        out.append(Finding("ok", f"SUPABASE_ANON_KEY: OK (length: {len(key)})"))

    if not cfg.SUPABASE_JWT_SECRET:
        out.append(Finding("warning", "SUPABASE_JWT_SECRET not set; tokens are checked against the auth API"))
    return out


def check_payment_provider(cfg: Settings) -> list[Finding]:
    out: list[Finding] = []
    if not cfg.AIRWALLEX_API_KEY or not cfg.AIRWALLEX_CLIENT_ID:
        out.append(Finding("error", "AIRWALLEX_API_KEY / AIRWALLEX_CLIENT_ID not set; checkout answers 503"))
    else:
        out.append(Finding("ok", "Airwallex credentials present"))
    if (cfg.AIRWALLEX_ENV or "").strip().lower() not in {"demo", "prod"}:
        out.append(Finding("warning", f"AIRWALLEX_ENV '{cfg.AIRWALLEX_ENV}' is neither demo nor prod; demo API is used"))
    if not cfg.AIRWALLEX_WEBHOOK_SECRET:
        out.append(Finding("error", "AIRWALLEX_WEBHOOK_SECRET not set; every webhook fails"))
    else:
        out.append(Finding("ok", "Webhook secret present"))
    return out


def check_database(engine) -> list[Finding]:
    try:
        with engine.connect() as conn:
            conn.execute(sa.text("SELECT 1"))
    except SQLAlchemyError as exc:
        return [Finding("error", f"Database connection failed - {exc.__class__.__name__}")]
    return [Finding("ok", "Database reachable")]


def has_errors(findings: list[Finding]) -> bool:
    return any(f.level == "error" for f in findings)
