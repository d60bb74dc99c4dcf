import logging
import random
from typing import Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import __version__
from .catalog import Catalog
from .checkout import CheckoutService
from .errors import CheckoutError
from .models import CheckoutRequest, CheckoutResponse, ErrorResponse, Order, Product, ProviderConfig
from .payments import PaymentSimulator, resolve_all_provider_configs
from .settings import (
    HOST,
    INVENTORY_RESERVE_RATE,
    LOG_LEVEL,
    PORT,
    SERVICE_NAME,
    TRACES_CONSOLE_EXPORT,
    TRACES_SAMPLE_RATE,
)
from .store import OrderStore
from .telemetry import setup_logging, setup_tracing

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    402: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def build_checkout_service() -> CheckoutService:
    tracer = setup_tracing(SERVICE_NAME, TRACES_SAMPLE_RATE, TRACES_CONSOLE_EXPORT)
    rng = random.Random()
    return CheckoutService(
        catalog=Catalog(),
        store=OrderStore(),
        simulator=PaymentSimulator(rng=rng, tracer=tracer),
        rng=rng,
        reserve_probability=INVENTORY_RESERVE_RATE,
        tracer=tracer,
    )


def create_app(service: Optional[CheckoutService] = None) -> FastAPI:
    setup_logging(LOG_LEVEL, SERVICE_NAME)

    app = FastAPI(title="Storefront Checkout Demo", version=__version__)
    app.state.checkout = service or build_checkout_service()

    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected malformed request", extra={"path": request.url.path, "errors": len(exc.errors())})
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    @app.get("/api/health")
    def health():
        return {"ok": True}

    @app.get("/api/products", response_model=List[Product])
    def list_products(request: Request):
        return request.app.state.checkout.catalog.products()

    @app.get("/api/payment-config", response_model=Dict[str, ProviderConfig])
    def payment_config(request: Request):
        return resolve_all_provider_configs(request.app.state.checkout.simulator.overrides)

    @app.post("/api/checkout", response_model=CheckoutResponse, responses=ERROR_RESPONSES)
    async def checkout(req: CheckoutRequest, request: Request):
        return await request.app.state.checkout.checkout(req)

    @app.get("/api/orders/{order_id}", response_model=Order, responses={404: {"model": ErrorResponse}})
    def get_order(order_id: str, request: Request):
        order = request.app.state.checkout.store.get(order_id)
        if order is None:
            return JSONResponse(status_code=404, content={"error": "Order not found"})
        return order

    return app


app = create_app()


def run() -> None:
    import uvicorn

    logger.info("Backend listening", extra={"host": HOST, "port": PORT})
    uvicorn.run(app, host=HOST, port=PORT, log_config=None)
