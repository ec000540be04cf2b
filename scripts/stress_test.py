#!/usr/bin/env python3
"""
Stress test the PDF service.

Sends batches of concurrent /generate-pdf requests and reports success
rate and latency.

Usage:
    python scripts/stress_test.py [--url URL] [--batch-size 5] [--batches 30]
                                  [--delay 2.0] [--save-dir DIR]
"""

import argparse
import asyncio
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import httpx

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

SAMPLE_REQUEST = {
    "patientName": "Stress Test Patient",
    "patientNotes": "This is a stress test of the PDF generation service.",
    "template": "default",
    "includeCalendar": True,
    "exercises": [
        {"id": 1, "title": "Exercise 1", "description": "Description for exercise 1"},
        {"id": 2, "title": "Exercise 2", "description": "Description for exercise 2"},
    ],
}


@dataclass
class RequestOutcome:
    request_id: str
    success: bool
    duration_ms: int
    error: Optional[str] = None


async def make_request(
    client: httpx.AsyncClient,
    url: str,
    request_id: str,
    save_dir: Optional[Path],
) -> RequestOutcome:
    """Send one render request and record the outcome."""
    payload = {**SAMPLE_REQUEST, "patientName": f"Stress Test Patient {request_id}"}
    start = time.monotonic()
    try:
        response = await client.post(url, json=payload, headers={"X-Request-ID": f"stress-{request_id}"})
        response.raise_for_status()
    except httpx.HTTPError as e:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.error(f"[{request_id}] Failed after {duration_ms}ms: {e}")
        return RequestOutcome(request_id, False, duration_ms, str(e))

    duration_ms = int((time.monotonic() - start) * 1000)
    logger.info(f"[{request_id}] Completed in {duration_ms}ms ({len(response.content)} bytes)")

    if save_dir:
        save_dir.mkdir(parents=True, exist_ok=True)
        (save_dir / f"stress-test-{request_id}.pdf").write_bytes(response.content)

    return RequestOutcome(request_id, True, duration_ms)


async def run(args: argparse.Namespace) -> List[RequestOutcome]:
    save_dir = Path(args.save_dir) if args.save_dir else None
    outcomes: List[RequestOutcome] = []

    async with httpx.AsyncClient(timeout=args.timeout) as client:
        for batch in range(args.batches):
            logger.info(f"Batch {batch + 1}/{args.batches}: {args.batch_size} requests")
            results = await asyncio.gather(*(
                make_request(client, args.url, f"{batch + 1}-{i + 1}", save_dir)
                for i in range(args.batch_size)
            ))
            outcomes.extend(results)
            if batch < args.batches - 1:
                await asyncio.sleep(args.delay)

    return outcomes


def summarize(outcomes: List[RequestOutcome]) -> dict:
    """Aggregate outcomes into counts and latency figures."""
    successes = [o for o in outcomes if o.success]
    durations = [o.duration_ms for o in successes]
    return {
        "total": len(outcomes),
        "succeeded": len(successes),
        "failed": len(outcomes) - len(successes),
        "success_rate": (len(successes) / len(outcomes) * 100) if outcomes else 0.0,
        "min_ms": min(durations) if durations else 0,
        "avg_ms": int(sum(durations) / len(durations)) if durations else 0,
        "max_ms": max(durations) if durations else 0,
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Stress test the PDF service")
    parser.add_argument("--url", default="http://localhost:3001/generate-pdf")
    parser.add_argument("--batch-size", type=int, default=5, help="Concurrent requests per batch")
    parser.add_argument("--batches", type=int, default=30, help="Number of batches")
    parser.add_argument("--delay", type=float, default=2.0, help="Seconds between batches")
    parser.add_argument("--timeout", type=float, default=30.0, help="Per-request timeout")
    parser.add_argument("--save-dir", help="Write returned PDFs here")
    args = parser.parse_args()

    outcomes = asyncio.run(run(args))
    stats = summarize(outcomes)

    logger.info("=" * 50)
    logger.info(f"Requests:     {stats['total']}")
    logger.info(f"Succeeded:    {stats['succeeded']} ({stats['success_rate']:.1f}%)")
    logger.info(f"Failed:       {stats['failed']}")
    logger.info(f"Latency (ms): min={stats['min_ms']} avg={stats['avg_ms']} max={stats['max_ms']}")

    return 0 if stats["failed"] == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
