"""Post a sample Cashfree notification to a running relay.

Useful for checking how the relay logs SUCCESS, FAILED and unknown statuses.
"""

import argparse
import json
from pathlib import Path

import httpx


def build_payload(order_id: str, payment_status: str, amount: float) -> dict:
    """Flat notification body in the shape the relay reads first."""

    return {
        "order_id": order_id,
        "order_status": "PAID" if payment_status == "SUCCESS" else "ACTIVE",
        "order_amount": amount,
        "payment_id": f"cf_{order_id}",
        "payment_status": payment_status,
    }


def main() -> None:
    """Parse CLI args and post one notification."""

    parser = argparse.ArgumentParser(description="Send a webhook notification to the relay.")
    parser.add_argument("--base-url", default="http://localhost:3001")
    parser.add_argument("--order-id", default="ORDER_TEST")
    parser.add_argument("--status", default="SUCCESS", help="payment_status value to report")
    parser.add_argument("--amount", type=float, default=499.0)
    parser.add_argument("--file", dest="json_file", default=None, help="Send this JSON file instead")
    args = parser.parse_args()

    if args.json_file:
        payload = json.loads(Path(args.json_file).read_text())
    else:
        payload = build_payload(args.order_id, args.status, args.amount)

    resp = httpx.post(f"{args.base_url}/api/webhook", json=payload, timeout=10.0)
    print(f"status={resp.status_code} body={resp.text}")


if __name__ == "__main__":
    main()
