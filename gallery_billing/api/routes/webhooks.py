import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from gallery_billing.core.config import settings
from gallery_billing.core.security import verify_webhook_signature
from gallery_billing.db.session import get_db
from gallery_billing.schemas.billing import ErrorOut, WebhookAckOut, WebhookEventIn
from gallery_billing.services.payment_events import dispatch_payment_event

logger = logging.getLogger(__name__)

router = APIRouter()

PROCESSING_FAILED = "Webhook processing failed"


def _processing_failed() -> JSONResponse:
    return JSONResponse({"error": PROCESSING_FAILED}, status_code=500)


@router.post(
    "/payment-webhook",
    response_model=WebhookAckOut,
    responses={401: {"model": ErrorOut}, 500: {"model": ErrorOut}},
)
async def payment_webhook(request: Request, db: Session = Depends(get_db)):
    secret = settings.AIRWALLEX_WEBHOOK_SECRET
    if not secret:
        logger.error("AIRWALLEX_WEBHOOK_SECRET not configured; rejecting webhook")
        return _processing_failed()

    raw = await request.body()
    if not verify_webhook_signature(
        raw,
        request.headers.get("x-timestamp"),
        request.headers.get("x-signature"),
        secret,
        max_age_seconds=settings.WEBHOOK_MAX_AGE_SECONDS,
    ):
        logger.warning("Webhook signature rejected")
        raise HTTPException(401, "Invalid signature")

    event_name = None
    try:
        event = WebhookEventIn.model_validate_json(raw)
        event_name = event.name
        outcome = dispatch_payment_event(db, event)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Webhook processing failed (event=%r)", event_name)
        return _processing_failed()

    logger.info("Webhook %r %s", event.name, outcome)
    return WebhookAckOut()
