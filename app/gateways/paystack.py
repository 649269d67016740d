"""Paystack payment gateway adapter.

Documentation: https://paystack.com/docs/api/
"""

import hashlib
import hmac
import logging
from typing import Any

import httpx

from app.config import settings
from app.core.exceptions import GatewayError
from app.gateways.base import (
    GatewayType,
    PaymentGateway,
    PaymentInitialization,
    PaymentVerification,
    RefundResult,
)
from app.utils.time import parse_iso_datetime

logger = logging.getLogger(__name__)


class PaystackGateway(PaymentGateway):
    """Paystack payment gateway implementation."""

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        currency: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.secret_key = secret_key or settings.paystack_secret_key
        self.base_url = (base_url or settings.paystack_base_url).rstrip("/")
        self.currency = currency or settings.paystack_currency
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.paystack_timeout_seconds,
            transport=transport,
            headers={
                "Authorization": f"Bearer {self.secret_key}",
                "Content-Type": "application/json",
            },
        )

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.PAYSTACK

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and unwrap Paystack's ``{status, message, data}`` envelope."""
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Paystack {method} {path} timed out: {e}")
            raise GatewayError("Payment provider timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Paystack {method} {path} transport error: {e}")
            raise GatewayError("Payment provider unreachable") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            message = body.get("message") if isinstance(body, dict) else None
            logger.error(f"Paystack {method} {path} returned {response.status_code}: {message}")
            raise GatewayError(message or f"Payment provider returned {response.status_code}")

        if not isinstance(body, dict) or not body.get("status"):
            message = body.get("message") if isinstance(body, dict) else None
            logger.error(f"Paystack {method} {path} rejected request: {message}")
            raise GatewayError(message or "Payment provider rejected the request")

        return body.get("data") or {}

    async def initialize_payment(
        self,
        email: str,
        amount_minor: int,
        reference: str,
        metadata: dict[str, Any] | None = None,
        callback_url: str | None = None,
    ) -> PaymentInitialization:
        """Create a Paystack hosted checkout."""
        payload: dict[str, Any] = {
            "email": email,
            "amount": amount_minor,
            "reference": reference,
            "currency": self.currency,
            "metadata": metadata or {},
        }
        if callback_url:
            payload["callback_url"] = callback_url

        data = await self._request("POST", "/transaction/initialize", json=payload)
        return PaymentInitialization(
            authorization_url=data.get("authorization_url", ""),
            access_code=data.get("access_code", ""),
            reference=data.get("reference", reference),
        )

    async def verify_payment(self, reference: str) -> PaymentVerification:
        """Verify a transaction by reference."""
        data = await self._request("GET", f"/transaction/verify/{reference}")
        return PaymentVerification(
            reference=data.get("reference", reference),
            status=data.get("status", ""),
            amount_minor=int(data.get("amount") or 0),
            currency=data.get("currency") or self.currency,
            paid_at=parse_iso_datetime(data.get("paid_at") or data.get("paidAt")),
            channel=data.get("channel"),
            metadata=data.get("metadata") or {},
        )

    async def process_refund(
        self,
        reference: str,
        amount_minor: int,
        merchant_note: str | None = None,
        customer_note: str | None = None,
    ) -> RefundResult:
        """Issue a refund against a settled transaction."""
        payload: dict[str, Any] = {
            "transaction": reference,
            "amount": amount_minor,
            "currency": self.currency,
        }
        if merchant_note:
            payload["merchant_note"] = merchant_note
        if customer_note:
            payload["customer_note"] = customer_note

        data = await self._request("POST", "/refund", json=payload)
        transaction = data.get("transaction")
        transaction_reference = (
            transaction.get("reference") if isinstance(transaction, dict) else None
        )
        return RefundResult(
            refund_id=str(data.get("id", "")),
            status=data.get("status", ""),
            amount_minor=int(data.get("amount") or amount_minor),
            transaction_reference=transaction_reference or reference,
            raw_response=data,
        )

    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        """Compare the HMAC-SHA512 of the raw body with ``x-paystack-signature``."""
        if not signature:
            return False
        expected = hmac.new(
            self.secret_key.encode(),
            payload,
            hashlib.sha512,
        ).hexdigest()
        return hmac.compare_digest(expected, signature)

    async def aclose(self) -> None:
        await self._client.aclose()

