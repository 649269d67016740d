"""Webhook endpoints for payment gateways."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import ValidationError as PydanticValidationError

from app.api.deps import DbSession, ReconciliationServiceDep, get_payment_gateway
from app.gateways.base import PaymentGateway
from app.schemas.payment import PaystackWebhookEvent, WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/paystack", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def paystack_webhook(
    request: Request,
    db: DbSession,
    reconciliation: ReconciliationServiceDep,
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
    x_paystack_signature: str | None = Header(None, alias="x-paystack-signature"),
) -> WebhookAck:
    """Handle Paystack webhook events.

    Answers 400 only when the signature is missing or wrong. Once the event
    is authenticated the response is always 200, so Paystack does not keep
    retrying an event we failed to process; failures are logged instead.
    """
    # Get raw body for signature verification
    payload = await request.body()

    if not x_paystack_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing signature",
        )
    if not gateway.verify_webhook_signature(payload, x_paystack_signature):
        logger.warning("Rejected Paystack webhook with invalid signature")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature",
        )

    try:
        event = PaystackWebhookEvent.model_validate_json(payload)
    except PydanticValidationError as e:
        logger.error(f"Unparseable Paystack webhook payload: {e}")
        return WebhookAck(message="Webhook received with errors")

    try:
        await reconciliation.handle_webhook_event(db, event)
    except Exception as e:
        await db.rollback()
        logger.exception(f"Error processing Paystack {event.event} webhook: {e}")
        return WebhookAck(message="Webhook received with errors")

    return WebhookAck(message="Webhook received")
