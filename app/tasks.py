"""Celery background tasks.

This module contains the periodic booking lifecycle sweeps:
- Abandoning bookings left unpaid past the payment timeout
- Completing bookings whose cruise has ended
"""

import asyncio

from celery import shared_task

from app.database import async_session_maker
from app.services.lifecycle_sweeper import LifecycleSweeper
from app.services.notification_service import NotificationService


def run_async(coro):
    """Run async function in sync context."""
    try:
        loop = asyncio.get_event_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


async def _run_sweep(name: str):
    notifier = NotificationService()
    try:
        sweeper = LifecycleSweeper(async_session_maker, notifier)
        return await getattr(sweeper, name)()
    finally:
        await notifier.close()


# ==================== LIFECYCLE TASKS ====================


@shared_task(bind=True, max_retries=3)
def abandon_stale_bookings(self):
    """Abandon bookings that were never paid.

    Runs every 15 minutes.
    """
    try:
        result = run_async(_run_sweep("abandon_stale_bookings"))
        return {"status": "success", "updated": result.updated, "notified": result.notified}
    except Exception as exc:
        self.retry(exc=exc, countdown=60)


@shared_task(bind=True, max_retries=3)
def complete_finished_bookings(self):
    """Mark finished cruises as completed.

    Runs hourly.
    """
    try:
        result = run_async(_run_sweep("complete_finished_bookings"))
        return {"status": "success", "updated": result.updated, "notified": result.notified}
    except Exception as exc:
        self.retry(exc=exc, countdown=300)
