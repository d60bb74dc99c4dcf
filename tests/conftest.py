"""
Pytest configuration and fixtures.
"""
import random
from typing import Dict, List, Optional

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from storefront.catalog import Catalog
from storefront.checkout import CheckoutService
from storefront.payments import PaymentSimulator
from storefront.store import OrderStore


class FakeClock:
    """Monotonic clock whose sleep returns immediately but advances time."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class BrokenRandom(random.Random):
    """Random source that blows up on the first draw."""

    def random(self) -> float:
        raise RuntimeError("entropy pool exhausted")


def overrides_for(provider_key: str, min_ms=None, max_ms=None, failure_rate=None) -> Dict[str, str]:
    values = {}
    if min_ms is not None:
        values[f"PAYMENT_{provider_key}_MIN_MS"] = str(min_ms)
    if max_ms is not None:
        values[f"PAYMENT_{provider_key}_MAX_MS"] = str(max_ms)
    if failure_rate is not None:
        values[f"PAYMENT_{provider_key}_FAILURE_RATE"] = str(failure_rate)
    return values


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer(span_exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider.get_tracer("storefront-tests")


@pytest.fixture
def store() -> OrderStore:
    return OrderStore()


@pytest.fixture
def make_service(clock, tracer, store):
    """
    Build a CheckoutService with fast, controllable collaborators.

    Defaults force a confirmed order: reservation always succeeds and every
    provider's failure rate is 0.
    """

    def _make(
        overrides: Optional[Dict[str, str]] = None,
        reserve_probability: float = 1.0,
        seed: int = 7,
        rng: Optional[random.Random] = None,
    ) -> CheckoutService:
        if overrides is None:
            overrides = {}
            for key in ("ZAPPAY", "GLITCHPAY", "LAGPAY"):
                overrides.update(overrides_for(key, failure_rate=0))
        rng = rng or random.Random(seed)
        simulator = PaymentSimulator(
            overrides=overrides,
            rng=rng,
            sleep=clock.sleep,
            clock=clock,
            tracer=tracer,
        )
        return CheckoutService(
            catalog=Catalog(),
            store=store,
            simulator=simulator,
            rng=rng,
            reserve_probability=reserve_probability,
            tracer=tracer,
        )

    return _make
