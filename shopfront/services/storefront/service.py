"""Checkout orchestration.

Creates an order together with a hosted payment session, and later reconciles
the session outcome into a single order-status update. Reconciliation may run
more than once for the same session (page reloads, duplicate redirects); every
repeat of a terminal outcome is absorbed by the state machine or recognised as
a replay, never treated as an error.
"""

from dataclasses import dataclass

from shopfront.common.errors import GatewayError, InvalidTransitionError, OrderValidationError, PersistenceError
from shopfront.common.logging import logger, order_reference_ctx, session_id_ctx
from shopfront.common.metrics import (
    checkout_sessions_total,
    order_status_write_failures_total,
    payment_verifications_total,
)
from shopfront.common.state_machine import OrderStatus
from shopfront.services.storefront.domain import Order
from shopfront.services.storefront.gateway import LineItem, PaymentGateway
from shopfront.services.storefront.store import OrderStore


RESULT_CODE_STATUSES: dict[str, OrderStatus] = {
    "Authorised": OrderStatus.AUTHORIZED,
    "Refused": OrderStatus.FAILED,
    "Error": OrderStatus.FAILED,
    "Cancelled": OrderStatus.CANCELLED,
}


def map_result_code(result_code: str) -> OrderStatus:
    """Map a provider result code to an order status; unknown codes stay pending."""

    return RESULT_CODE_STATUSES.get(result_code, OrderStatus.PENDING)


def result_code_label(result_code: str) -> str:
    """Metric label for a result code; anything unmapped is grouped as `other`."""

    if not result_code:
        return "none"
    return result_code if result_code in RESULT_CODE_STATUSES else "other"


def amount_excluding_tax(amount_including_tax: int, tax_rate_bps: int) -> int:
    # Rate is in basis points: 1000 = 10%.
    return (amount_including_tax * 10000) // (10000 + tax_rate_bps)


def tax_amount(amount_including_tax: int, tax_rate_bps: int) -> int:
    return amount_including_tax - amount_excluding_tax(amount_including_tax, tax_rate_bps)


@dataclass(frozen=True)
class CheckoutSession:
    """What the browser needs to mount the hosted payment form."""

    session_id: str
    session_data: str
    client_key: str
    order_reference: str


@dataclass(frozen=True)
class PaymentVerification:
    """Outcome of reconciling one hosted session with its order."""

    order: Order
    result_code: str
    psp_reference: str
    status: OrderStatus


class CheckoutService:
    """Owns order creation and payment reconciliation."""

    def __init__(
        self,
        store: OrderStore,
        gateway: PaymentGateway,
        client_key: str,
        product_id: str = "widget-001",
        tax_rate_bps: int = 1000,
        service_name: str = "storefront",
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.client_key = client_key
        self.product_id = product_id
        self.tax_rate_bps = tax_rate_bps
        self.service_name = service_name

    def _line_items(self, product_name: str, amount: int) -> list[LineItem]:
        return [
            LineItem(
                quantity=1,
                amount_excluding_tax=amount_excluding_tax(amount, self.tax_rate_bps),
                tax_percentage=self.tax_rate_bps,
                description=product_name,
                id=self.product_id,
                tax_amount=tax_amount(amount, self.tax_rate_bps),
                amount_including_tax=amount,
            )
        ]

    def create_checkout(self, product_name: str, amount: int, currency: str, return_url: str) -> CheckoutSession:
        """Persist a pending order and open a hosted session for it.

        A gateway failure leaves the pending order in place; it simply never
        gets a live session.
        """

        order = Order.new(product_name, amount, currency)
        try:
            self.store.create(order)
        except PersistenceError:
            checkout_sessions_total.labels(service=self.service_name, outcome="store_error").inc()
            raise
        logger.info("order_created reference=%s amount=%s currency=%s", order.reference, amount, currency)

        try:
            handle = self.gateway.create_session(
                reference=order.reference,
                amount=amount,
                currency=currency,
                return_url=return_url,
                line_items=self._line_items(product_name, amount),
            )
        except GatewayError:
            checkout_sessions_total.labels(service=self.service_name, outcome="gateway_error").inc()
            logger.warning("checkout_session_failed reference=%s order left pending", order.reference)
            raise

        checkout_sessions_total.labels(service=self.service_name, outcome="created").inc()
        return CheckoutSession(
            session_id=handle.session_id,
            session_data=handle.session_data,
            client_key=self.client_key,
            order_reference=order.reference,
        )

    def reconcile_payment(self, session_id: str, session_result: str) -> PaymentVerification:
        """Apply a hosted session's outcome to its order."""

        session_token = session_id_ctx.set(session_id)
        try:
            outcome = self.gateway.get_session_outcome(session_id, session_result)

            result_code, psp_reference = "", ""
            if outcome.payments:
                result_code = outcome.payments[0].result_code
                psp_reference = outcome.payments[0].psp_reference

            status = map_result_code(result_code)
            logger.info(
                "session_outcome result_code=%s reference=%s psp_reference=%s mapped_status=%s",
                result_code,
                outcome.reference,
                psp_reference,
                status.value,
            )

            order = self.store.get_by_reference(outcome.reference)
            reference_token = order_reference_ctx.set(order.reference)
            try:
                self._apply_outcome(order, status, psp_reference)
            finally:
                order_reference_ctx.reset(reference_token)

            payment_verifications_total.labels(
                service=self.service_name,
                result_code=result_code_label(result_code),
                status=status.value,
            ).inc()
            return PaymentVerification(
                order=order,
                result_code=result_code,
                psp_reference=psp_reference,
                status=status,
            )
        finally:
            session_id_ctx.reset(session_token)

    def _apply_outcome(self, order: Order, status: OrderStatus, psp_reference: str) -> None:
        """Transition `order` in memory, then write it back best-effort."""

        if status is OrderStatus.PENDING:
            logger.info("outcome_unresolved reference=%s order left as %s", order.reference, order.status.value)
            return

        if (
            status is OrderStatus.AUTHORIZED
            and order.is_authorized
            and order.psp_reference == psp_reference
        ):
            logger.info("outcome_replayed reference=%s status=authorized", order.reference)
            return

        previous = order.status
        try:
            order.transition_to(status, psp_reference)
        except (InvalidTransitionError, OrderValidationError):
            logger.warning(
                "outcome_rejected reference=%s current=%s requested=%s",
                order.reference,
                previous.value,
                status.value,
            )
            raise

        try:
            self.store.update_status(
                order.reference,
                order.status,
                order.psp_reference,
                expected_status=previous,
            )
        except PersistenceError as exc:
            # The caller still gets the in-memory result; stored state may lag.
            order_status_write_failures_total.labels(service=self.service_name).inc()
            logger.warning("order_status_write_failed reference=%s error=%s", order.reference, exc)
