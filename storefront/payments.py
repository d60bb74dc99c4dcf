"""
Simulated payment providers.

Three fictional providers, each with its own latency range and failure
rate. Every value can be overridden through the environment:

    PAYMENT_<KEY>_MIN_MS, PAYMENT_<KEY>_MAX_MS, PAYMENT_<KEY>_FAILURE_RATE

where <KEY> is the provider name upper-cased with non-alphanumerics
removed (ZAPPAY, GLITCHPAY, LAGPAY). Overrides are read each time a
config is resolved, not once at startup.
"""

import asyncio
import logging
import os
import random
import re
import time
from typing import Awaitable, Callable, Dict, Mapping, Optional

from opentelemetry import trace

from .errors import UnknownProviderError
from .models import ChargeResult, PaymentProvider, ProviderConfig
from .telemetry import get_tracer

logger = logging.getLogger(__name__)

PROVIDERS = ("ZapPay", "GlitchPay", "LagPay")

DEFAULT_PROVIDER_CONFIGS: Dict[str, ProviderConfig] = {
    "ZapPay": ProviderConfig(min_ms=50, max_ms=150, failure_rate=0.05),
    "GlitchPay": ProviderConfig(min_ms=200, max_ms=1200, failure_rate=0.3),
    "LagPay": ProviderConfig(min_ms=1200, max_ms=3000, failure_rate=0.1),
}


def override_key_base(provider: str) -> str:
    return re.sub(r"[^A-Z0-9]", "", provider.upper())


def override_keys(provider: str) -> Dict[str, str]:
    base = override_key_base(provider)
    return {
        "min_ms": f"PAYMENT_{base}_MIN_MS",
        "max_ms": f"PAYMENT_{base}_MAX_MS",
        "failure_rate": f"PAYMENT_{base}_FAILURE_RATE",
    }


def _coerce(overrides: Mapping[str, str], key: str, default, cast):
    raw = overrides.get(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError, OverflowError):
        logger.warning(
            "Ignoring unusable payment override",
            extra={"key": key, "value": raw, "default": default},
        )
        return default


def _to_ms(raw) -> int:
    return int(float(raw))


def resolve_provider_config(provider: str, overrides: Optional[Mapping[str, str]] = None) -> ProviderConfig:
    """
    Defaults for `provider`, with any overrides applied.

    Only coerces to numbers; ranges are not checked here. The simulator
    clamps min/max and the failure rate when it uses them.
    """
    if provider not in DEFAULT_PROVIDER_CONFIGS:
        raise UnknownProviderError(f"Unknown payment provider: {provider}")
    if overrides is None:
        overrides = os.environ

    defaults = DEFAULT_PROVIDER_CONFIGS[provider]
    keys = override_keys(provider)
    return ProviderConfig(
        min_ms=_coerce(overrides, keys["min_ms"], defaults.min_ms, _to_ms),
        max_ms=_coerce(overrides, keys["max_ms"], defaults.max_ms, _to_ms),
        failure_rate=_coerce(overrides, keys["failure_rate"], defaults.failure_rate, float),
    )


def resolve_all_provider_configs(overrides: Optional[Mapping[str, str]] = None) -> Dict[str, ProviderConfig]:
    return {provider: resolve_provider_config(provider, overrides) for provider in PROVIDERS}


Sleep = Callable[[float], Awaitable[None]]


class PaymentSimulator:
    """
    Fakes a charge: waits for a random latency, then flips a weighted coin.

    A declined charge is returned as a `failed` ChargeResult, never raised.
    The amount is carried for realism only and does not affect the outcome.
    """

    def __init__(
        self,
        overrides: Optional[Mapping[str, str]] = None,
        rng: Optional[random.Random] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        tracer: Optional[trace.Tracer] = None,
    ):
        self.overrides = overrides
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.clock = clock
        self.tracer = tracer or get_tracer(__name__)

    def config_for(self, provider: PaymentProvider) -> ProviderConfig:
        return resolve_provider_config(provider, self.overrides)

    async def charge(self, amount_minor: int, provider: PaymentProvider) -> ChargeResult:
        with self.tracer.start_as_current_span(
            f"Charge {provider}",
            attributes={"op": "commerce.payment", "payment.provider": provider},
        ) as span:
            cfg = self.config_for(provider)

            lo = max(0, cfg.min_ms)
            hi = max(lo, cfg.max_ms)
            latency = self.rng.randint(lo, hi)

            started = self.clock()
            await self.sleep(latency / 1000)
            measured = int(round((self.clock() - started) * 1000))

            failure_rate = min(max(cfg.failure_rate, 0.0), 1.0)
            failed = self.rng.random() < failure_rate

            result = ChargeResult(
                provider=provider,
                status="failed" if failed else "success",
                latency_ms=measured,
                drawn_latency_ms=latency,
            )

            span.set_attribute("payment.latency_ms", result.latency_ms)
            span.set_attribute("payment.config.min_ms", cfg.min_ms)
            span.set_attribute("payment.config.max_ms", cfg.max_ms)
            span.set_attribute("payment.config.failure_rate", cfg.failure_rate)
            span.set_attribute("payment.status", result.status)

        logger.debug(
            "Simulated charge",
            extra={
                "provider": provider,
                "amount_minor": amount_minor,
                "status": result.status,
                "latency_ms": result.latency_ms,
            },
        )
        return result
