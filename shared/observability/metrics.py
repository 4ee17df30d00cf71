from prometheus_client import Counter

# Business Metrics
ecomm_orders_created_total = Counter(
    "ecomm_orders_created_total",
    "Orders created from payment events",
    ["outcome"] # Labels: 'created', 'duplicate', 'failed', 'rejected'
)

ecomm_refunds_total = Counter(
    "ecomm_refunds_total",
    "Refunds processed",
    ["mode", "outcome"] # mode: 'items', 'amount'; outcome: 'succeeded', 'rejected', 'processor_error'
)

ecomm_refunded_cents_total = Counter(
    "ecomm_refunded_cents_total",
    "Total money returned to customers, in minor units"
)

ecomm_cancellations_total = Counter(
    "ecomm_cancellations_total",
    "Orders cancelled",
    ["paid"] # Labels: 'true', 'false'
)

ecomm_best_effort_failures_total = Counter(
    "ecomm_best_effort_failures_total",
    "Swallowed failures of non-critical side effects",
    ["side_effect"] # Labels: 'inventory_restoration', 'cancellation_email', 'cart_clear'
)
