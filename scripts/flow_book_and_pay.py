#!/usr/bin/env python3
"""
Booking and payment flow script against a running API.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_book_and_pay.py --user-id <UUID> --boat-id <UUID> \
        --start 2026-12-01T10:00:00+01:00 --end 2026-12-01T14:00:00+01:00
    python scripts/flow_book_and_pay.py --token <JWT> --boat-id <UUID> \
        --start 2026-12-01T10:00:00+01:00 --end 2026-12-01T14:00:00+01:00 --cancel

Flow:
    1. Initialize booking (creates the Paystack checkout)
    2. Pay on the Paystack checkout page (manual, test card)
    3. Verify payment and confirm booking
    4. Cancel booking and receive refund (optional)
"""

import argparse
import json
import sys

import httpx

BASE_URL = "http://localhost:8000"


def mint_token(user_id: str) -> str:
    """Sign an access token locally with the API's JWT secret."""
    from app.core.security import create_access_token

    return create_access_token(user_id)


def api_request(token: str, method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make authenticated API request."""
    headers = {"Authorization": f"Bearer {token}"}
    response = httpx.request(
        method,
        f"{BASE_URL}{endpoint}",
        headers=headers,
        json=data,
        timeout=40.0,
        follow_redirects=True,
    )
    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None):
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    data = result["data"].get("booking", result["data"])
    if fields:
        data = {k: data.get(k) for k in fields if k in data}
    print(json.dumps(data, indent=2))
    return True


def main():
    parser = argparse.ArgumentParser(description="Booking and payment flow")
    auth = parser.add_mutually_exclusive_group(required=True)
    auth.add_argument("--token", help="Access token")
    auth.add_argument("--user-id", help="User UUID to mint a token for")
    parser.add_argument("--boat-id", required=True, help="Boat UUID")
    parser.add_argument("--start", required=True, help="Start (ISO-8601 with offset)")
    parser.add_argument("--end", required=True, help="End (ISO-8601 with offset)")
    parser.add_argument("--guests", type=int, default=2, help="Number of guests")
    parser.add_argument("--cancel", action="store_true", help="Cancel after confirming")
    args = parser.parse_args()

    token = args.token or mint_token(args.user_id)
    fields = ["id", "total_price", "status", "payment_status", "payment_reference"]

    # Step 1: Initialize booking
    print_step(1, "Initialize booking")
    init_result = api_request(token, "POST", "/api/v1/bookings/initialize", {
        "boatId": args.boat_id,
        "startDate": args.start,
        "endDate": args.end,
        "numberOfGuest": args.guests,
    })
    if not print_result(init_result, fields):
        sys.exit(1)

    booking_id = init_result["data"]["booking"]["id"]
    reference = init_result["data"]["payment_reference"]
    print(f"\nPayment reference: {reference}")
    print(f"Checkout URL:      {init_result['data']['payment_url']}")

    # Step 2: Pay
    print_step(2, "Complete payment on the checkout page")
    input("Press Enter once the payment is done...")

    # Step 3: Verify
    print_step(3, "Verify payment")
    verify_result = api_request(token, "GET", f"/api/v1/bookings/verify/{reference}")
    if not print_result(verify_result, fields + ["paid_at"]):
        sys.exit(1)
    print(f"\n{verify_result['data']['message']}")

    if not args.cancel:
        print("\n" + "="*60)
        print("FLOW COMPLETE (booking confirmed)")
        print("="*60)
        return

    # Step 4: Cancel
    print_step(4, "Cancel booking")
    cancel_result = api_request(token, "PATCH", f"/api/v1/bookings/{booking_id}/cancel")
    if not print_result(cancel_result, fields + ["refund_amount", "refund_percentage"]):
        sys.exit(1)

    refund = cancel_result["data"]["refund"]
    print("\n" + "="*60)
    print("FULL FLOW COMPLETE")
    print("="*60)
    print(f"Booking:  {booking_id}")
    print(f"Refund:   {refund['amount']} ({refund['percentage']}%)")


if __name__ == "__main__":
    main()
