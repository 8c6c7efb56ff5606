"""HTTP surface for the storefront: product, checkout session, and order pages."""

from contextlib import asynccontextmanager
from http import HTTPStatus
from time import perf_counter
from urllib.parse import urlencode
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from shopfront.common.config import settings
from shopfront.common.db import build_session_factory, create_schema
from shopfront.common.errors import (
    GatewayError,
    InvalidTransitionError,
    OrderNotFoundError,
    OrderValidationError,
    PersistenceError,
    ShopfrontError,
)
from shopfront.common.logging import configure_logging, logger, trace_id_ctx
from shopfront.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from shopfront.common.startup import log_startup_config
from shopfront.common.state_machine import OrderStatus
from shopfront.common.tracing import instrument_app, setup_tracing
from shopfront.services.storefront.gateway import AdyenGateway
from shopfront.services.storefront.schemas import (
    CheckoutPageResponse,
    ConfirmationResponse,
    ErrorResponse,
    FailureResponse,
    ProductResponse,
    SessionCreateResponse,
)
from shopfront.services.storefront.service import CheckoutService
from shopfront.services.storefront.store import SqlOrderStore

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings,
    ["postgres_dsn", "adyen_environment", "adyen_merchant_account", "adyen_api_key", "public_base_url"],
)
session_factory = build_session_factory(settings.postgres_dsn)
gateway = AdyenGateway(
    base_url=settings.adyen_base_url,
    api_key=settings.adyen_api_key,
    merchant_account=settings.adyen_merchant_account,
    api_version=settings.adyen_api_version,
    country_code=settings.country_code,
    shopper_locale=settings.shopper_locale,
    timeout=settings.adyen_timeout_seconds,
    service_name=settings.service_name,
)
service = CheckoutService(
    SqlOrderStore(session_factory),
    gateway,
    client_key=settings.adyen_client_key,
    product_id=settings.product_id,
    tax_rate_bps=settings.tax_rate_bps,
    service_name=settings.service_name,
)

FAILURE_MESSAGES = {
    "Refused": "Your payment was declined. Please check your payment details and try again.",
    "Cancelled": "The payment was cancelled. You can try again when you're ready.",
    "Error": "An error occurred while processing your payment. Please try again.",
}
DEFAULT_FAILURE_MESSAGE = "We couldn't process your payment. Please try again or contact support."


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Create the orders table if missing; close the gateway client on shutdown."""

    create_schema(session_factory)
    yield
    gateway.close()


app = FastAPI(title="Shopfront Storefront", lifespan=lifespan)
instrument_app(app)


def get_checkout_service() -> CheckoutService:
    return service


def product() -> ProductResponse:
    return ProductResponse(
        id=settings.product_id,
        name=settings.product_name,
        description=settings.product_description,
        price=f"{settings.product_price_cents / 100:.2f} {settings.product_currency}",
        price_cents=settings.product_price_cents,
        currency=settings.product_currency,
        image_url=settings.product_image_url,
    )


def failure_message(reason: str) -> str:
    return FAILURE_MESSAGES.get(reason, DEFAULT_FAILURE_MESSAGE)


def _error_status(exc: ShopfrontError) -> int:
    if isinstance(exc, OrderValidationError):
        return 400
    if isinstance(exc, OrderNotFoundError):
        return 404
    if isinstance(exc, InvalidTransitionError):
        return 409
    if isinstance(exc, GatewayError):
        return 502
    if isinstance(exc, PersistenceError):
        return 503
    return 500


@app.exception_handler(ShopfrontError)
async def shopfront_error_handler(request: Request, exc: ShopfrontError):
    """Render core errors as `{error, message}` JSON."""

    status_code = _error_status(exc)
    logger.error("request_failed path=%s status=%s error=%s", request.url.path, status_code, exc)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=HTTPStatus(status_code).phrase, message=str(exc)).model_dump(),
    )


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and latency; bind a trace id for log correlation."""

    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    token = trace_id_ctx.set(request.headers.get("x-trace-id") or str(uuid4()))
    try:
        response = await call_next(request)
        status_code = response.status_code
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        trace_id_ctx.reset(token)
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


@app.get("/", response_model=ProductResponse)
def product_page():
    """The product on sale."""

    return product()


@app.get("/checkout", response_model=CheckoutPageResponse)
def checkout_page():
    """Product plus the public client key the drop-in is mounted with."""

    return CheckoutPageResponse(product=product(), client_key=settings.adyen_client_key)


@app.post("/api/sessions", response_model=SessionCreateResponse)
def create_session(svc: CheckoutService = Depends(get_checkout_service)):
    """Create a pending order and a hosted payment session for the product."""

    session = svc.create_checkout(
        settings.product_name,
        settings.product_price_cents,
        settings.product_currency,
        settings.confirmation_url,
    )
    logger.info(
        "payment_session_created session_id=%s reference=%s",
        session.session_id,
        session.order_reference,
    )
    return SessionCreateResponse(
        session_id=session.session_id,
        session_data=session.session_data,
        client_key=session.client_key,
    )


@app.get("/order/confirmation", response_model=ConfirmationResponse)
def confirmation(
    session_id: str = Query(default="", alias="sessionId"),
    session_result: str = Query(default="", alias="sessionResult"),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """Return page of the hosted session: reconcile, then confirm or redirect."""

    if not session_id:
        raise HTTPException(status_code=400, detail="Missing session ID")

    result = svc.reconcile_payment(session_id, session_result)
    if result.status is not OrderStatus.AUTHORIZED:
        query = urlencode({"reference": result.order.reference, "reason": result.result_code})
        return RedirectResponse(url=f"/order/failed?{query}", status_code=303)

    order = result.order
    return ConfirmationResponse(
        order_reference=order.reference,
        product_name=order.product_name,
        amount=order.formatted_amount,
        psp_reference=order.psp_reference,
        status="Authorized",
    )


@app.get("/order/failed", response_model=FailureResponse)
def failure(reference: str = "", reason: str = ""):
    """Explain why a payment did not go through."""

    return FailureResponse(order_reference=reference, reason=reason, message=failure_message(reason))


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
