import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from gallery_billing.api.deps import get_current_user, get_payment_provider
from gallery_billing.db.session import get_db
from gallery_billing.schemas.billing import CheckoutCreateIn, CheckoutCreateOut, ErrorOut
from gallery_billing.services.checkout import INVALID_BODY, create_checkout, safe_checkout_error
from gallery_billing.services.hosted_auth import AuthUser
from gallery_billing.services.payment_provider import PaymentProvider

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/create-checkout",
    response_model=CheckoutCreateOut,
    responses={400: {"model": ErrorOut}, 401: {"model": ErrorOut}, 503: {"model": ErrorOut}},
)
async def create_checkout_session(
    request: Request,
    current: AuthUser = Depends(get_current_user),
    provider: PaymentProvider | None = Depends(get_payment_provider),
    db: Session = Depends(get_db),
):
    try:
        try:
            payload = CheckoutCreateIn.model_validate(await request.json())
        except (ValueError, ValidationError) as exc:
            raise ValueError(INVALID_BODY) from exc

        # provider round-trips block, keep them off the event loop
        out = await run_in_threadpool(
            create_checkout,
            db,
            provider,
            user=current,
            plan_id=payload.planId,
            success_url=payload.successUrl,
            cancel_url=payload.cancelUrl,
            origin=request.headers.get("origin"),
        )
        await run_in_threadpool(db.commit)
    except Exception as exc:
        db.rollback()
        status_code, message = safe_checkout_error(exc)
        if status_code >= 500:
            logger.exception("Checkout failed for user %s", current.id)
        raise HTTPException(status_code, message)
    return CheckoutCreateOut(**out)
