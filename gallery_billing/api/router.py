from fastapi import APIRouter
from gallery_billing.api.routes import checkout, webhooks

router = APIRouter()
router.include_router(webhooks.router, tags=["webhooks"])
router.include_router(checkout.router, tags=["checkout"])
