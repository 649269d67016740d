import json

from app.domain.booking_state import BookingStatus
from app.domain.payment_state import PaymentStatus
from app.gateways.base import to_minor_units
from app.services.booking_service import load_booking
from app.services.reconciliation_service import ReconciliationService
from tests.fakes import sign

WEBHOOK_URL = "/api/v1/webhooks/paystack"


def charge_success(booking, **overrides) -> bytes:
    data = {
        "reference": booking.payment_reference,
        "status": "success",
        "amount": to_minor_units(booking.total_price),
        "currency": "NGN",
        "channel": "card",
        "paid_at": "2026-10-19T09:30:00.000Z",
    }
    data.update(overrides)
    return json.dumps({"event": "charge.success", "data": data}).encode()


async def test_missing_signature_is_rejected(api_client, make_booking):
    booking = await make_booking()

    response = await api_client.post(WEBHOOK_URL, content=charge_success(booking))

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing signature"


async def test_invalid_signature_is_rejected(db, api_client, make_booking):
    booking = await make_booking()
    payload = charge_success(booking)

    response = await api_client.post(
        WEBHOOK_URL,
        content=payload,
        headers={"x-paystack-signature": sign(payload, secret="sk_test_someone_else")},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid signature"
    assert (await load_booking(db, booking.id)).status == BookingStatus.PENDING


async def test_signed_charge_success_confirms_booking(db, api_client, notifier, make_booking):
    booking = await make_booking()
    payload = charge_success(booking)

    response = await api_client.post(
        WEBHOOK_URL, content=payload, headers={"x-paystack-signature": sign(payload)}
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Webhook received"}
    stored = await load_booking(db, booking.id)
    assert stored.status == BookingStatus.CONFIRMED
    assert stored.payment_status == PaymentStatus.SUCCESSFUL
    assert stored.payment_method == "card"
    assert len(notifier.of_type("booking_confirmed")) == 1


async def test_redelivered_event_is_acknowledged_once(db, api_client, notifier, make_booking):
    booking = await make_booking()
    payload = charge_success(booking)
    headers = {"x-paystack-signature": sign(payload)}

    first = await api_client.post(WEBHOOK_URL, content=payload, headers=headers)
    second = await api_client.post(WEBHOOK_URL, content=payload, headers=headers)

    assert first.status_code == second.status_code == 200
    assert second.json() == {"message": "Webhook received"}
    assert len(notifier.of_type("booking_confirmed")) == 1


async def test_unparseable_payload_is_acknowledged(api_client):
    payload = b'{"data": {"reference": "BKG-1"}}'

    response = await api_client.post(
        WEBHOOK_URL, content=payload, headers={"x-paystack-signature": sign(payload)}
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Webhook received with errors"}


async def test_processing_error_is_acknowledged(db, api_client, make_booking, monkeypatch):
    booking = await make_booking()
    payload = charge_success(booking)

    async def explode(self, db, event):
        raise RuntimeError("database went away")

    monkeypatch.setattr(ReconciliationService, "handle_webhook_event", explode)

    response = await api_client.post(
        WEBHOOK_URL, content=payload, headers={"x-paystack-signature": sign(payload)}
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Webhook received with errors"}
    assert (await load_booking(db, booking.id)).status == BookingStatus.PENDING


async def test_unhandled_event_type_is_acknowledged(api_client):
    payload = json.dumps({"event": "transfer.success", "data": {"reference": "TRF-1"}}).encode()

    response = await api_client.post(
        WEBHOOK_URL, content=payload, headers={"x-paystack-signature": sign(payload)}
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Webhook received"}
