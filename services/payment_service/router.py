"""
Stripe webhook endpoint.

Authenticated only by the Stripe-Signature header, so it sits outside the
bearer-token routers. Once the signature verifies, the event is acknowledged
with `{"received": true}` unless order creation hit a transient failure, in
which case a 500 makes Stripe redeliver (creation is idempotent per
PaymentIntent).
"""
import structlog
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db

from .gateway import get_gateway
from .service import PaymentService

logger = structlog.get_logger(__name__)

router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "payment", "status": "running"}


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(default="", alias="stripe-signature"),
    db: AsyncSession = Depends(get_db),
):
    payload = await request.body()
    event = get_gateway().parse_event(payload, stripe_signature)
    try:
        await PaymentService.handle_event(db, event)
    except Exception:
        logger.exception("webhook_processing_failed", event_id=event.get("id"), event_type=event.get("type"))
        return JSONResponse(
            status_code=500,
            content={"received": False, "detail": "Order creation failed; the event will be retried"},
        )
    return {"received": True}
