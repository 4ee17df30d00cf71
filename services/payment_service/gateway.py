"""
Stripe access for the storefront.

Only two things cross this boundary: verifying and decoding webhook payloads,
and issuing refunds against a PaymentIntent. Both take and return plain
Python values so the rest of the code never handles Stripe objects. The
active gateway can be swapped with `set_gateway` (tests install a fake).
"""
import asyncio
import json
from dataclasses import dataclass

import stripe

from shared.config.settings import settings
from shared.errors import PaymentProcessorError, ValidationError

# Processor reason code sent with admin refunds
REFUND_REASON_CODE = "requested_by_customer"


@dataclass(frozen=True)
class ProcessorRefund:
    id: str
    amount_cents: int
    reason: str
    status: str


class StripeGateway:
    def __init__(self, api_key: str, webhook_secret: str):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def parse_event(self, payload: bytes, signature: str) -> dict:
        """Verify the Stripe-Signature header and return the decoded event."""
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"), signature, self.webhook_secret
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            raise ValidationError(f"Webhook Error: {e}")
        try:
            return json.loads(payload)
        except ValueError as e:
            raise ValidationError(f"Webhook Error: {e}")

    async def create_refund(
        self,
        payment_intent_id: str,
        amount_cents: int,
        metadata: dict,
        idempotency_key: str,
        reason: str = REFUND_REASON_CODE,
    ) -> ProcessorRefund:
        try:
            refund = await asyncio.to_thread(
                stripe.Refund.create,
                payment_intent=payment_intent_id,
                amount=amount_cents,
                reason=reason,
                metadata=metadata,
                idempotency_key=idempotency_key,
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            message = e.user_message or str(e) or "Unknown error"
            raise PaymentProcessorError(f"Failed to process refund with Stripe: {message}")
        return ProcessorRefund(
            id=refund["id"],
            amount_cents=refund["amount"],
            reason=refund.get("reason") or "",
            status=refund.get("status") or "",
        )


_gateway = None


def get_gateway():
    global _gateway
    if _gateway is None:
        _gateway = StripeGateway(settings.STRIPE_SECRET_KEY, settings.STRIPE_WEBHOOK_SECRET)
    return _gateway


def set_gateway(gateway) -> None:
    """Install a different gateway (None restores the Stripe default on next use)."""
    global _gateway
    _gateway = gateway
