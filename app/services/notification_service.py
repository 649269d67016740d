"""Notification service for booking emails.

Email goes out through SendGrid. Every send is best-effort: failures are
logged and reported as ``False``, never raised, so a notification can not
roll back the state change that triggered it.
"""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from app.config import settings

if TYPE_CHECKING:
    from app.models.booking import Booking

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class NotificationService:
    """Service for sending booking lifecycle emails."""

    # Notification types
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_ABANDONED = "booking_abandoned"
    BOOKING_COMPLETED = "booking_completed"

    def __init__(
        self,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize notification service."""
        self.api_key = api_key if api_key is not None else settings.sendgrid_api_key
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0, transport=self._transport)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()

    async def send(self, to: str, subject: str, template_data: dict[str, Any]) -> bool:
        """Send an email via SendGrid.

        Args:
            to: Recipient email
            subject: Email subject
            template_data: ``title``, ``body`` and optional ``action_url``

        Returns:
            bool: True if sent successfully
        """
        if not self.api_key:
            logger.info(f"Email not sent to {to} ({subject}): SendGrid is not configured")
            return False

        html_content = self._generate_email_html(
            title=template_data.get("title", subject),
            body=template_data.get("body", ""),
            action_url=template_data.get("action_url"),
        )
        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {
                "email": settings.email_from_address,
                "name": settings.email_from_name,
            },
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
        }

        try:
            response = await self.http_client.post(
                SENDGRID_SEND_URL,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to send email to {to} ({subject}): {e}")
            return False

        if response.status_code not in (200, 202):
            logger.error(
                f"SendGrid rejected email to {to} ({subject}): {response.status_code}"
            )
            return False
        return True

    def _generate_email_html(self, title: str, body: str, action_url: str | None) -> str:
        """Generate simple HTML email content."""
        button_html = ""
        if action_url:
            button_html = f"""
            <p style="margin-top: 24px;">
                <a href="{action_url}"
                   style="background-color: #0E7490; color: white; padding: 12px 24px;
                          text-decoration: none; border-radius: 6px; display: inline-block;">
                    View Booking
                </a>
            </p>
            """

        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
                     max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">
            <div style="background-color: #f0f9ff; border-radius: 8px; padding: 24px;">
                <h1 style="color: #0c4a6e; font-size: 24px; margin-bottom: 16px;">{title}</h1>
                <p style="color: #4b5563; font-size: 16px; line-height: 1.6;">{body}</p>
                {button_html}
            </div>
            <p style="color: #9ca3af; font-size: 12px; margin-top: 24px; text-align: center;">
                &copy; {datetime.now(UTC).year} {settings.app_name}. All rights reserved.
            </p>
        </body>
        </html>
        """

    # ==================== BOOKING NOTIFICATION HELPERS ====================

    @staticmethod
    def _booking_url(booking: "Booking") -> str:
        return f"{settings.frontend_url}/bookings/{booking.id}"

    @staticmethod
    def _window(booking: "Booking") -> str:
        fmt = "%d %b %Y %H:%M"
        return f"{booking.start_date.strftime(fmt)} to {booking.end_date.strftime(fmt)}"

    async def notify_booking_confirmed(self, booking: "Booking") -> bool:
        """Tell the customer their payment went through."""
        return await self.send(
            to=booking.user.email,
            subject="Booking Confirmed",
            template_data={
                "type": self.BOOKING_CONFIRMED,
                "title": "Booking Confirmed!",
                "body": (
                    f"Your cruise on {booking.boat.boat_name} from {self._window(booking)} "
                    f"is confirmed. Total paid: {booking.currency} {booking.total_price}. "
                    f"Reference: {booking.payment_reference}"
                ),
                "action_url": self._booking_url(booking),
            },
        )

    async def notify_booking_cancelled(self, booking: "Booking") -> bool:
        """Tell the customer their booking was cancelled and what is refunded."""
        return await self.send(
            to=booking.user.email,
            subject="Booking Cancelled",
            template_data={
                "type": self.BOOKING_CANCELLED,
                "title": "Booking Cancelled",
                "body": (
                    f"Your booking on {booking.boat.boat_name} for {self._window(booking)} "
                    f"has been cancelled. A refund of {booking.currency} {booking.refund_amount} "
                    f"({booking.refund_percentage}%) is on its way."
                ),
                "action_url": self._booking_url(booking),
            },
        )

    async def notify_booking_abandoned(self, booking: "Booking") -> bool:
        """Tell the customer an unpaid booking has lapsed."""
        return await self.send(
            to=booking.user.email,
            subject="Booking Expired",
            template_data={
                "type": self.BOOKING_ABANDONED,
                "title": "Your booking has expired",
                "body": (
                    f"We did not receive payment for your booking on {booking.boat.boat_name} "
                    f"for {self._window(booking)}, so the slot has been released. "
                    "You are welcome to book again."
                ),
                "action_url": f"{settings.frontend_url}/boats/{booking.boat_id}",
            },
        )

    async def notify_booking_completed(self, booking: "Booking") -> bool:
        """Thank the customer once the cruise has ended."""
        return await self.send(
            to=booking.user.email,
            subject="Thanks for cruising with us",
            template_data={
                "type": self.BOOKING_COMPLETED,
                "title": "Hope you enjoyed your cruise!",
                "body": (
                    f"Your cruise on {booking.boat.boat_name} is complete. "
                    "We would love to have you on board again."
                ),
                "action_url": self._booking_url(booking),
            },
        )
