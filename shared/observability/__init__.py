from .setup import setup_observability
from .metrics import (
    ecomm_orders_created_total,
    ecomm_refunds_total,
    ecomm_refunded_cents_total,
    ecomm_cancellations_total,
    ecomm_best_effort_failures_total
)
