"""Test doubles for the payment gateway and the notifier."""

import hashlib
import hmac
from typing import Any

from app.core.exceptions import GatewayError
from app.gateways.base import (
    GatewayType,
    PaymentGateway,
    PaymentInitialization,
    PaymentVerification,
    RefundResult,
    to_minor_units,
)
from app.services.notification_service import NotificationService

WEBHOOK_SECRET = "sk_test_webhook_secret"


def sign(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), payload, hashlib.sha512).hexdigest()


class FakeGateway(PaymentGateway):
    """In-memory gateway that records every call."""

    def __init__(self) -> None:
        self.initialized: list[dict[str, Any]] = []
        self.verify_calls: list[str] = []
        self.refunds: list[dict[str, Any]] = []
        self.verifications: dict[str, PaymentVerification] = {}
        self.fail_initialize = False
        self.fail_refund = False
        self.next_reference: str | None = None

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.PAYSTACK

    def generate_reference(self, prefix: str = "BKG") -> str:
        if self.next_reference:
            return self.next_reference
        return super().generate_reference(prefix)

    async def initialize_payment(self, email, amount_minor, reference, metadata=None, callback_url=None):
        if self.fail_initialize:
            raise GatewayError("Payment provider unreachable")
        self.initialized.append(
            {
                "email": email,
                "amount_minor": amount_minor,
                "reference": reference,
                "metadata": metadata,
                "callback_url": callback_url,
            }
        )
        return PaymentInitialization(
            authorization_url=f"https://checkout.paystack.com/{reference}",
            access_code="ac_test",
            reference=reference,
        )

    async def verify_payment(self, reference):
        self.verify_calls.append(reference)
        if reference not in self.verifications:
            raise GatewayError("Transaction reference not found")
        return self.verifications[reference]

    async def process_refund(self, reference, amount_minor, merchant_note=None, customer_note=None):
        if self.fail_refund:
            raise GatewayError("Refund could not be processed")
        self.refunds.append({"reference": reference, "amount_minor": amount_minor})
        return RefundResult(
            refund_id=f"rf_{len(self.refunds)}",
            status="pending",
            amount_minor=amount_minor,
            transaction_reference=reference,
        )

    def verify_webhook_signature(self, payload, signature):
        if not signature:
            return False
        return hmac.compare_digest(sign(payload), signature)


class RecordingNotifier(NotificationService):
    """Notifier that records emails instead of sending them."""

    def __init__(self, succeed: bool = True) -> None:
        super().__init__(api_key="")
        self.sent: list[dict[str, Any]] = []
        self.succeed = succeed

    async def send(self, to, subject, template_data):
        self.sent.append({"to": to, "subject": subject, **template_data})
        return self.succeed

    def of_type(self, notification_type: str) -> list[dict[str, Any]]:
        return [n for n in self.sent if n.get("type") == notification_type]


def successful_payment(booking, **overrides) -> PaymentVerification:
    """Gateway view of a payment that settles ``booking`` in full."""
    values = {
        "reference": booking.payment_reference,
        "status": "success",
        "amount_minor": to_minor_units(booking.total_price),
        "currency": booking.currency,
        "channel": "card",
    }
    values.update(overrides)
    return PaymentVerification(**values)
