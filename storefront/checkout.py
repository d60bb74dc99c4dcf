import logging
import random
from typing import List, Optional, Tuple

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .catalog import Catalog
from .errors import CartValidationError, CheckoutError, InternalCheckoutError, PaymentFailedError
from .models import CartLine, CheckoutRequest, CheckoutResponse, Order, PaymentProvider
from .payments import PROVIDERS, PaymentSimulator
from .store import OrderStore, new_order_id
from .telemetry import get_tracer

logger = logging.getLogger(__name__)

DEFAULT_RESERVE_PROBABILITY = 0.8


class CheckoutService:
    """
    Runs one checkout attempt per call:

      validate cart -> reserve inventory -> charge -> decide -> record order

    The reservation is a memoryless draw, not a stock count. The caller sees
    the same 402 whether the reservation or the charge failed; only the span
    attributes tell the two apart. Nothing is retried.
    """

    def __init__(
        self,
        catalog: Catalog,
        store: OrderStore,
        simulator: PaymentSimulator,
        rng: Optional[random.Random] = None,
        reserve_probability: float = DEFAULT_RESERVE_PROBABILITY,
        tracer: Optional[trace.Tracer] = None,
    ):
        self.catalog = catalog
        self.store = store
        self.simulator = simulator
        self.rng = rng or random.Random()
        self.reserve_probability = reserve_probability
        self.tracer = tracer or get_tracer(__name__)

    async def checkout(self, req: CheckoutRequest) -> CheckoutResponse:
        with self.tracer.start_as_current_span(
            "Order Processing",
            attributes={"op": "commerce.order.server"},
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            try:
                return await self._checkout(req, span)
            except CheckoutError:
                raise
            except Exception as exc:
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, type(exc).__name__))
                logger.exception("Checkout failed with an internal error")
                raise InternalCheckoutError() from exc

    async def _checkout(self, req: CheckoutRequest, span: trace.Span) -> CheckoutResponse:
        try:
            lines, total_minor = self.validate_cart(req.items)
        except CartValidationError as exc:
            span.set_attribute("payment.status", "failed")
            span.set_attribute("inventory.reserved", False)
            logger.info("Checkout rejected: invalid cart", extra={"reason": exc.message})
            raise

        reserved = self.reserve_inventory()

        provider = self.select_provider(req.payment_provider)
        charge = await self.simulator.charge(total_minor, provider)

        span.set_attribute("payment.provider", charge.provider)
        span.set_attribute("inventory.reserved", reserved)

        if charge.status != "success" or not reserved:
            span.set_attribute("payment.status", "failed")
            logger.info(
                "Checkout rejected: payment failed",
                extra={
                    "provider": charge.provider,
                    "charge_status": charge.status,
                    "inventory_reserved": reserved,
                },
            )
            raise PaymentFailedError()

        order = Order(id=new_order_id(), total_minor=total_minor, items=lines)
        self.store.append(order)

        span.set_attribute("order.id", order.id)
        span.set_attribute("payment.status", "success")
        logger.info(
            "Order confirmed",
            extra={
                "order_id": order.id,
                "provider": charge.provider,
                "total_minor": total_minor,
                "latency_ms": charge.latency_ms,
            },
        )
        return CheckoutResponse(order_id=order.id, payment_provider=charge.provider)

    def validate_cart(self, items: List[CartLine]) -> Tuple[List[CartLine], int]:
        """Check every line against the catalog and price it from catalog prices."""
        if not items:
            raise CartValidationError("Cart is empty")

        total_minor = 0
        for line in items:
            product = self.catalog.get(line.product_id)
            if product is None or line.quantity <= 0:
                raise CartValidationError("Invalid cart item")
            total_minor += product.price_minor * line.quantity
        return list(items), total_minor

    def reserve_inventory(self) -> bool:
        return self.rng.random() < self.reserve_probability

    def select_provider(self, requested: Optional[str]) -> PaymentProvider:
        if requested in PROVIDERS:
            return requested
        return self.rng.choice(PROVIDERS)
