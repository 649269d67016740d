"""Payment webhook Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PaystackWebhookData(BaseModel):
    """The ``data`` object of a Paystack webhook event.

    Only the fields reconciliation reads are declared; everything else
    Paystack sends is kept.
    """

    model_config = ConfigDict(extra="allow")

    reference: str | None = None
    transaction_reference: str | None = None
    status: str | None = None
    amount: int | None = None
    currency: str | None = None
    channel: str | None = None
    paid_at: str | None = None
    gateway_response: str | None = None
    metadata: dict[str, Any] | str | None = None

    @property
    def effective_reference(self) -> str | None:
        """Reference of the original charge (refund events carry it separately)."""
        return self.transaction_reference or self.reference


class PaystackWebhookEvent(BaseModel):
    """A signed Paystack webhook event."""

    model_config = ConfigDict(extra="allow")

    event: str
    data: PaystackWebhookData = Field(default_factory=PaystackWebhookData)


class WebhookAck(BaseModel):
    message: str
