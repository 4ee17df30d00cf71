from pydantic import BaseModel, Field
from typing import List, Optional

class RefundItemRequest(BaseModel):
    item_id: str
    quantity: int
    reason: Optional[str] = None

class RefundRequest(BaseModel):
    """Either itemized lines or a whole-order amount in major units; items win when both are given."""
    items: Optional[List[RefundItemRequest]] = None
    amount: Optional[float] = Field(default=None, description="Major units (dollars)")
    reason: Optional[str] = None
    expected_version: Optional[int] = Field(
        default=None, description="Order version the caller last saw; stale requests are rejected"
    )

class RefundResponse(BaseModel):
    success: bool
    refund_id: str
    amount: float
    message: str
    order_version: int
    inventory_restored: bool
