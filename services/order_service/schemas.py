from datetime import datetime
from pydantic import BaseModel
from typing import Any, List, Optional

class OrderItemResponse(BaseModel):
    id: str
    product_id: str
    name: str
    unit_price_cents: int
    quantity: int
    color: Optional[Any] = None
    storage: Optional[Any] = None
    image_url: str = ""
    delivered: bool
    delivered_at: Optional[datetime] = None
    refunded_quantity: int
    refund_reason: str = ""
    last_refunded_at: Optional[datetime] = None
    restocked_quantity: int

    class Config:
        from_attributes = True

class RefundRecordResponse(BaseModel):
    id: str
    amount: float
    amount_cents: int
    reason: str
    stripe_reason: str = ""
    items: List[dict] = []
    processed_by: str
    created_at: datetime

    class Config:
        from_attributes = True

class OrderResponse(BaseModel):
    id: str
    order_number: str
    customer_id: str
    customer_name: str = ""
    customer_email: str = ""
    status: str
    payment_status: str
    payment_intent_id: Optional[str] = None
    currency: str
    subtotal_cents: int
    shipping_cost_cents: int
    tax_amount_cents: int
    tax_rate: float
    discount_cents: int
    total_cents: int
    refunded_amount_cents: int
    refunded_amount: float
    refunded: bool
    partially_refunded: bool
    shipping_method: Optional[str] = None
    shipping_address: Optional[dict] = None
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    order_date: datetime
    updated_at: datetime
    version: int
    items: List[OrderItemResponse] = []
    refunds: List[RefundRecordResponse] = []

    class Config:
        from_attributes = True

class OrderListResponse(BaseModel):
    orders: List[OrderResponse]

class StatusUpdateRequest(BaseModel):
    status: str
    item_id: Optional[str] = None

class RestockResponse(BaseModel):
    order_id: str
    restored: List[dict]
