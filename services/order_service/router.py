from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.config.settings import settings
from shared.security import CurrentUser, get_current_user, limiter, require_admin

from .schemas import OrderListResponse, OrderResponse, RestockResponse, StatusUpdateRequest
from .service import OrderService

# Customer routes: every caller must carry a valid bearer token
router = APIRouter(dependencies=[Depends(get_current_user)])
# Back-office routes
admin_router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "order", "status": "running"}


# --- CUSTOMER ---

@router.get("/", response_model=OrderListResponse)
async def list_my_orders(
    user: CurrentUser = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    return {"orders": await OrderService.list_customer_orders(db, user)}


@router.get("/{order_id}", response_model=OrderResponse)
async def get_my_order(
    order_id: str, user: CurrentUser = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    return await OrderService.get_customer_order(db, order_id, user)


@router.patch("/{order_id}/cancel", response_model=OrderResponse)
@limiter.limit(settings.CANCEL_RATE_LIMIT)
async def cancel_order(
    request: Request,                            # REQUIRED: slowapi needs this to check IP/Headers
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    outcome = await OrderService.cancel_order(db, order_id, user)
    return outcome.order


# --- ADMIN ---

@admin_router.get("", response_model=OrderListResponse, include_in_schema=False)
@admin_router.get("/", response_model=OrderListResponse)
async def list_recent_orders(db: AsyncSession = Depends(get_db)):
    return {"orders": await OrderService.list_recent_orders(db)}


@admin_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, db: AsyncSession = Depends(get_db)):
    return await OrderService.get_order(db, order_id)


@admin_router.patch("/{order_id}", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    payload: StatusUpdateRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.update_status(db, order_id, payload, admin)


@admin_router.post("/{order_id}/restock", response_model=RestockResponse)
async def restock_order(order_id: str, db: AsyncSession = Depends(get_db)):
    """Retries inventory restoration for an order; already restocked units are skipped."""
    restored = await OrderService.restore_inventory(db, order_id)
    return {
        "order_id": order_id,
        "restored": [
            {"item_id": r.item_id, "product_id": r.product_id, "quantity": r.quantity} for r in restored
        ],
    }
