"""Payment-session gateway port and its Adyen Checkout adapter.

The storefront never sees card data: it asks the provider for a hosted
session, hands the session blob to the browser, and later asks the provider
what happened in that session.
"""

from abc import ABC, abstractmethod
from time import perf_counter

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from shopfront.common.errors import GatewayError
from shopfront.common.logging import logger
from shopfront.common.metrics import gateway_errors_total, gateway_latency_seconds
from shopfront.common.tracing import tracer


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Amount(WireModel):
    currency: str
    value: int


class LineItem(WireModel):
    quantity: int = 1
    amount_excluding_tax: int
    tax_percentage: int
    description: str
    id: str
    tax_amount: int
    amount_including_tax: int


class SessionRequest(WireModel):
    merchant_account: str
    amount: Amount
    reference: str
    return_url: str
    country_code: str
    shopper_locale: str
    channel: str = "Web"
    allowed_payment_methods: list[str] = Field(default_factory=lambda: ["scheme"])
    line_items: list[LineItem] = Field(default_factory=list)


class SessionHandle(WireModel):
    """Remote session created for one order."""

    id: str
    session_data: str
    expires_at: str = ""

    @property
    def session_id(self) -> str:
        return self.id


class PaymentAttempt(WireModel):
    result_code: str = ""
    psp_reference: str = ""


class SessionOutcome(WireModel):
    """What the provider reports about a finished hosted session."""

    id: str = ""
    status: str = ""
    reference: str
    payments: list[PaymentAttempt] = Field(default_factory=list)

    @property
    def session_id(self) -> str:
        return self.id


class PaymentGateway(ABC):
    """Remote payment-session provider."""

    @abstractmethod
    def create_session(
        self,
        reference: str,
        amount: int,
        currency: str,
        return_url: str,
        line_items: list[LineItem],
    ) -> SessionHandle:
        """Open a hosted payment session correlated by `reference`."""

    @abstractmethod
    def get_session_outcome(self, session_id: str, session_result: str) -> SessionOutcome:
        """Fetch the result of a hosted session."""


class AdyenGateway(PaymentGateway):
    """Adyen Checkout sessions API over `httpx`."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        merchant_account: str,
        api_version: str = "v71",
        country_code: str = "US",
        shopper_locale: str = "en-US",
        transport: httpx.BaseTransport | None = None,
        timeout: float = 10.0,
        service_name: str = "storefront",
    ) -> None:
        self.merchant_account = merchant_account
        self.api_version = api_version
        self.country_code = country_code
        self.shopper_locale = shopper_locale
        self.service_name = service_name
        self.client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"X-API-Key": api_key},
        )

    def close(self) -> None:
        self.client.close()

    def _request(self, operation: str, method: str, path: str, ok_statuses: tuple[int, ...], **kwargs) -> dict:
        """Send one request and return the decoded JSON body or raise `GatewayError`."""

        start = perf_counter()
        try:
            with tracer.start_as_current_span(f"adyen.{operation}"):
                resp = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            gateway_errors_total.labels(service=self.service_name, operation=operation).inc()
            logger.error("gateway_transport_error operation=%s error=%s", operation, exc)
            raise GatewayError(f"{operation}: failed to send request: {exc}") from exc
        finally:
            gateway_latency_seconds.labels(service=self.service_name, operation=operation).observe(
                max(0.0, perf_counter() - start)
            )

        if resp.status_code not in ok_statuses:
            gateway_errors_total.labels(service=self.service_name, operation=operation).inc()
            logger.error(
                "gateway_error_status operation=%s status=%s body=%s",
                operation,
                resp.status_code,
                resp.text,
            )
            raise GatewayError(
                f"{operation}: API returned status {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )
        try:
            return resp.json()
        except ValueError as exc:
            gateway_errors_total.labels(service=self.service_name, operation=operation).inc()
            raise GatewayError(f"{operation}: failed to parse response", resp.status_code, resp.text) from exc

    def create_session(
        self,
        reference: str,
        amount: int,
        currency: str,
        return_url: str,
        line_items: list[LineItem],
    ) -> SessionHandle:
        request = SessionRequest(
            merchant_account=self.merchant_account,
            amount=Amount(currency=currency, value=amount),
            reference=reference,
            return_url=return_url,
            country_code=self.country_code,
            shopper_locale=self.shopper_locale,
            line_items=line_items,
        )
        payload = self._request(
            "create_session",
            "POST",
            f"/{self.api_version}/sessions",
            (200, 201),
            json=request.model_dump(by_alias=True),
        )
        try:
            handle = SessionHandle.model_validate(payload)
        except ValidationError as exc:
            raise GatewayError(f"create_session: unexpected response shape: {exc}") from exc
        logger.info("gateway_session_created reference=%s session_id=%s", reference, handle.id)
        return handle

    def get_session_outcome(self, session_id: str, session_result: str) -> SessionOutcome:
        logger.info("gateway_session_outcome_requested session_id=%s", session_id)
        payload = self._request(
            "get_session_outcome",
            "GET",
            f"/{self.api_version}/sessions/{session_id}",
            (200,),
            params={"sessionResult": session_result},
        )
        try:
            return SessionOutcome.model_validate(payload)
        except ValidationError as exc:
            raise GatewayError(f"get_session_outcome: unexpected response shape: {exc}") from exc
