import structlog

from services.order_service.models import Order

logger = structlog.get_logger(__name__)


class NotificationService:
    """Customer notifications. Delivery is not wired up yet; messages are only logged."""

    @staticmethod
    async def send_cancellation_email(order: Order) -> str:
        # TODO: hand off to the transactional email provider once one is chosen
        logger.info(
            "cancellation_email",
            order_id=order.id,
            order_number=order.order_number,
            to=order.customer_email,
            refunded_amount=order.refunded_amount,
        )
        return order.customer_email
