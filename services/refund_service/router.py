from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.config.settings import settings
from shared.security import CurrentUser, limiter, require_admin

from .schemas import RefundRequest, RefundResponse
from .service import RefundService

# Only admins issue refunds
router = APIRouter(dependencies=[Depends(require_admin)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "refund", "status": "running"}


@router.post("/{order_id}", response_model=RefundResponse)
@limiter.limit(settings.REFUND_RATE_LIMIT)
async def refund_order(
    request: Request,                            # REQUIRED: slowapi needs this to check IP/Headers
    order_id: str,
    payload: RefundRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    outcome = await RefundService.refund(db, order_id, payload, processed_by=admin.email or admin.user_id)
    return RefundResponse(
        success=True,
        refund_id=outcome.refund_id,
        amount=outcome.amount,
        message=outcome.message,
        order_version=outcome.order.version,
        inventory_restored=outcome.inventory.ok,
    )
