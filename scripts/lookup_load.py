"""Read-only load run against the relay.

Hammers either `POST /api/order-status` for one existing order (one Cashfree
GET per request) or `POST /api/webhook` (no Cashfree call at all). Neither
mode creates orders.
"""

import argparse
import asyncio
import statistics
import time
from collections import Counter
from uuid import uuid4

import httpx


def request_body(route: str, order_id: str, seq: int) -> dict:
    if route == "order-status":
        return {"order_id": order_id}
    status = ("SUCCESS", "FAILED", "PENDING")[seq % 3]
    return {"order_id": order_id, "payment_id": f"load-{seq}", "payment_status": status}


async def drain(client: httpx.AsyncClient, url: str, route: str, order_id: str, queue: asyncio.Queue, results: list):
    """Worker: post one body per queued sequence number until the queue is empty."""

    while True:
        try:
            seq = queue.get_nowait()
        except asyncio.QueueEmpty:
            return
        started = time.perf_counter()
        try:
            resp = await client.post(
                url,
                json=request_body(route, order_id, seq),
                headers={"x-request-id": f"load-{uuid4()}"},
            )
            outcome = str(resp.status_code)
        except httpx.HTTPError as exc:
            outcome = type(exc).__name__
        results.append((outcome, (time.perf_counter() - started) * 1000))


async def run(base_url: str, route: str, order_id: str, total: int, workers: int) -> list:
    queue: asyncio.Queue = asyncio.Queue()
    for seq in range(total):
        queue.put_nowait(seq)
    results: list = []
    url = f"{base_url}/api/{route}"
    async with httpx.AsyncClient(timeout=30.0) as client:
        await asyncio.gather(
            *(drain(client, url, route, order_id, queue, results) for _ in range(workers))
        )
    return results


def report(results: list, elapsed_s: float) -> None:
    outcomes = Counter(outcome for outcome, _ in results)
    latencies = [latency for _, latency in results]
    print(f"requests={len(results)} elapsed_s={elapsed_s:.2f} rps={len(results) / elapsed_s:.1f}")
    for outcome, count in sorted(outcomes.items()):
        print(f"  {outcome}: {count}")
    if len(latencies) >= 2:
        cuts = statistics.quantiles(latencies, n=100)
        print(f"latency_ms p50={cuts[49]:.1f} p95={cuts[94]:.1f} max={max(latencies):.1f}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Read-only load run against the relay.")
    parser.add_argument("--base-url", default="http://localhost:3001")
    parser.add_argument("--route", choices=["order-status", "webhook"], default="webhook")
    parser.add_argument("--order-id", default="ORDER_LOAD", help="existing order to look up")
    parser.add_argument("--total", type=int, default=200)
    parser.add_argument("--workers", type=int, default=10)
    args = parser.parse_args()

    started = time.perf_counter()
    results = asyncio.run(run(args.base_url, args.route, args.order_id, args.total, args.workers))
    report(results, max(time.perf_counter() - started, 1e-9))


if __name__ == "__main__":
    main()
