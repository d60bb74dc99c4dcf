"""
Checkout traffic generator.

Each virtual user picks 1-5 distinct products and a random payment
provider, then posts a checkout. Users run in concurrent batches with a
short pause between batches. Declined payments and 5xx responses are part
of the expected mix and are counted, not treated as errors.

Usage:
    storefront-loadgen --total-users 200 --batch-size 10
"""

import argparse
import asyncio
import logging
import os
import random
import statistics
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import httpx

from .catalog import DEFAULT_PRODUCTS
from .payments import PROVIDERS
from .telemetry import setup_logging

logger = logging.getLogger(__name__)

PRODUCT_IDS = tuple(p.id for p in DEFAULT_PRODUCTS)
MIN_ITEMS = 1
MAX_ITEMS = 5
PROGRESS_EVERY = 25


@dataclass
class FlowResult:
    provider: str
    items: List[str]
    status: str
    duration_ms: int

    @property
    def ok(self) -> bool:
        return self.status.isdigit() and 200 <= int(self.status) < 300


@dataclass
class RunSummary:
    results: List[FlowResult] = field(default_factory=list)
    errors: int = 0

    @property
    def completed(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    def status_counts(self) -> Counter:
        return Counter(r.status for r in self.results)

    def latency_stats(self) -> dict:
        durations = [r.duration_ms for r in self.results]
        if not durations:
            return {"avg": 0, "p50": 0, "p95": 0}
        p95 = int(statistics.quantiles(durations, n=20)[18]) if len(durations) >= 20 else max(durations)
        return {
            "avg": int(statistics.mean(durations)),
            "p50": int(statistics.median(durations)),
            "p95": p95,
        }


def build_cart(rng: random.Random, product_ids: Sequence[str] = PRODUCT_IDS) -> List[str]:
    count = rng.randint(MIN_ITEMS, min(MAX_ITEMS, len(product_ids)))
    return rng.sample(list(product_ids), count)


async def run_user_flow(client: httpx.AsyncClient, rng: random.Random, timeout_s: float = 20.0) -> FlowResult:
    items = build_cart(rng)
    provider = rng.choice(PROVIDERS)
    payload = {
        "items": [{"productId": pid, "quantity": 1} for pid in items],
        "paymentProvider": provider,
    }

    started = time.monotonic()
    try:
        resp = await client.post("/api/checkout", json=payload, timeout=timeout_s)
        status = str(resp.status_code)
    except httpx.HTTPError as exc:
        logger.debug("Checkout request failed", extra={"provider": provider, "error": repr(exc)})
        status = "exception"
    duration_ms = int((time.monotonic() - started) * 1000)

    return FlowResult(provider=provider, items=items, status=status, duration_ms=duration_ms)


async def run_load(
    client: httpx.AsyncClient,
    total_users: int,
    batch_size: int,
    inter_batch_delay_ms: int = 0,
    rng: Optional[random.Random] = None,
) -> RunSummary:
    rng = rng or random.Random()
    summary = RunSummary()

    while summary.completed + summary.errors < total_users:
        remaining = total_users - (summary.completed + summary.errors)
        batch = [run_user_flow(client, rng) for _ in range(min(batch_size, remaining))]

        for outcome in await asyncio.gather(*batch, return_exceptions=True):
            if isinstance(outcome, BaseException):
                logger.warning("Virtual user crashed", extra={"error": repr(outcome)})
                summary.errors += 1
                continue
            summary.results.append(outcome)
            if summary.completed % PROGRESS_EVERY == 0:
                logger.info(
                    f"Progress: {summary.completed}/{total_users}",
                    extra={
                        "provider": outcome.provider,
                        "duration_ms": outcome.duration_ms,
                        "status": outcome.status,
                    },
                )

        if summary.completed + summary.errors < total_users and inter_batch_delay_ms > 0:
            await asyncio.sleep(inter_batch_delay_ms / 1000)

    return summary


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate checkout traffic against the storefront API.")
    parser.add_argument("--base-url", default=os.environ.get("BASE_URL", "http://localhost:5174"))
    parser.add_argument("--total-users", type=int, default=int(os.environ.get("TOTAL_USERS", "500")))
    parser.add_argument("--batch-size", type=int, default=int(os.environ.get("BATCH_SIZE", "5")))
    parser.add_argument(
        "--inter-batch-delay-ms",
        type=int,
        default=int(os.environ.get("INTER_BATCH_DELAY_MS", "250")),
    )
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args(argv)
    if args.total_users < 0 or args.batch_size < 1:
        parser.error("--total-users must be >= 0 and --batch-size >= 1")
    return args


async def _main(args: argparse.Namespace) -> RunSummary:
    async with httpx.AsyncClient(base_url=args.base_url) as client:
        return await run_load(
            client,
            total_users=args.total_users,
            batch_size=args.batch_size,
            inter_batch_delay_ms=args.inter_batch_delay_ms,
            rng=random.Random(args.seed),
        )


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(os.environ.get("LOG_LEVEL", "INFO"), "storefront-loadgen")
    logger.info(
        f"Simulating activity: {args.total_users} users in batches of {args.batch_size} -> {args.base_url}",
    )

    summary = asyncio.run(_main(args))

    logger.info(
        f"Done. Completed: {summary.completed} (ok: {summary.succeeded}), Errors: {summary.errors}",
        extra={"statuses": dict(summary.status_counts()), **summary.latency_stats()},
    )


if __name__ == "__main__":
    main()
