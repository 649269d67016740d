"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
Amounts crossing this boundary are in minor currency units (kobo).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from app.utils.booking_number import generate_payment_reference

MINOR_UNITS_PER_MAJOR = 100


class GatewayType(str, Enum):
    """Supported payment gateways."""

    PAYSTACK = "paystack"


class GatewayPaymentStatus(str, Enum):
    """Transaction status as reported by the provider."""

    SUCCESS = "success"
    FAILED = "failed"
    ABANDONED = "abandoned"
    PENDING = "pending"


@dataclass
class PaymentInitialization:
    """Result of creating a hosted checkout."""

    authorization_url: str
    access_code: str
    reference: str


@dataclass
class PaymentVerification:
    """Authoritative state of a transaction on the provider side."""

    reference: str
    status: str
    amount_minor: int
    currency: str = "NGN"
    paid_at: datetime | None = None
    channel: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_successful(self) -> bool:
        return self.status == GatewayPaymentStatus.SUCCESS.value


@dataclass
class RefundResult:
    """Result of a refund operation."""

    refund_id: str
    status: str
    amount_minor: int
    transaction_reference: str | None = None
    raw_response: dict | None = None


def to_minor_units(amount: Decimal | int | float | str) -> int:
    """Convert a major-unit amount to integer minor units, rounding half up."""
    scaled = Decimal(str(amount)) * MINOR_UNITS_PER_MAJOR
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount_minor: int) -> Decimal:
    """Convert integer minor units to a major-unit Decimal."""
    return (Decimal(amount_minor) / MINOR_UNITS_PER_MAJOR).quantize(Decimal("0.01"))


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def initialize_payment(
        self,
        email: str,
        amount_minor: int,
        reference: str,
        metadata: dict[str, Any] | None = None,
        callback_url: str | None = None,
    ) -> PaymentInitialization:
        """Create a hosted checkout for a booking.

        Args:
            email: Payer email
            amount_minor: Amount in kobo
            reference: Our payment reference (idempotency key)
            metadata: Booking details echoed back by the provider
            callback_url: Where the provider redirects after checkout

        Returns:
            PaymentInitialization with the checkout URL

        Raises:
            GatewayError: On any provider or transport failure
        """
        pass

    @abstractmethod
    async def verify_payment(self, reference: str) -> PaymentVerification:
        """Fetch the authoritative status of a transaction.

        Raises:
            GatewayError: On any provider or transport failure
        """
        pass

    @abstractmethod
    async def process_refund(
        self,
        reference: str,
        amount_minor: int,
        merchant_note: str | None = None,
        customer_note: str | None = None,
    ) -> RefundResult:
        """Refund part or all of a settled transaction.

        Raises:
            GatewayError: On any provider or transport failure
        """
        pass

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        """Check a webhook signature against the raw request body."""
        pass

    def generate_reference(self, prefix: str = "BKG") -> str:
        """Unique payment reference for a new transaction."""
        return generate_payment_reference(prefix)

    async def aclose(self) -> None:
        """Release any network resources held by the adapter."""
        return None
