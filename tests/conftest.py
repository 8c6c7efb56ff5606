"""Shared fixtures: test environment, in-memory order store, scripted gateway."""

import os

os.environ.setdefault("POSTGRES_DSN", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ADYEN_API_KEY", "test-api-key")
os.environ.setdefault("ADYEN_CLIENT_KEY", "test_client_key")
os.environ.setdefault("ADYEN_MERCHANT_ACCOUNT", "TestMerchant")
os.environ.setdefault("TRACING_ENABLED", "false")

from dataclasses import replace  # noqa: E402

import pytest  # noqa: E402

from shopfront.common.errors import (  # noqa: E402
    GatewayError,
    OrderNotFoundError,
    PersistenceError,
    StaleOrderError,
)
from shopfront.services.storefront.gateway import (  # noqa: E402
    PaymentAttempt,
    PaymentGateway,
    SessionHandle,
    SessionOutcome,
)
from shopfront.services.storefront.service import CheckoutService  # noqa: E402
from shopfront.services.storefront.store import OrderStore  # noqa: E402


class InMemoryOrderStore(OrderStore):
    """Dict-backed store; keeps copies so callers cannot mutate stored rows."""

    def __init__(self) -> None:
        self.orders = {}
        self.fail_updates = False

    def create(self, order):
        if order.reference in self.orders:
            raise PersistenceError(f"duplicate reference {order.reference}")
        self.orders[order.reference] = replace(order)

    def get_by_reference(self, reference):
        if reference not in self.orders:
            raise OrderNotFoundError(reference)
        return replace(self.orders[reference])

    def update_status(self, reference, status, psp_reference, expected_status=None):
        if self.fail_updates:
            raise PersistenceError("database unavailable")
        stored = self.orders.get(reference)
        if stored is None or (expected_status is not None and stored.status != expected_status):
            raise StaleOrderError(f"order {reference} not updated")
        self.orders[reference] = replace(stored, status=status, psp_reference=psp_reference)


class ScriptedGateway(PaymentGateway):
    """Records session requests and replays a configured outcome."""

    def __init__(self) -> None:
        self.sessions = []
        self.outcome_calls = []
        self.result_code = ""
        self.psp_reference = ""
        self.with_payment = True
        self.create_error = None
        self.outcome_error = None

    def create_session(self, reference, amount, currency, return_url, line_items):
        if self.create_error is not None:
            raise self.create_error
        session_id = f"CS{len(self.sessions) + 1:04d}"
        self.sessions.append(
            {
                "session_id": session_id,
                "reference": reference,
                "amount": amount,
                "currency": currency,
                "return_url": return_url,
                "line_items": line_items,
            }
        )
        return SessionHandle(id=session_id, session_data=f"blob-{session_id}")

    def get_session_outcome(self, session_id, session_result):
        self.outcome_calls.append((session_id, session_result))
        if self.outcome_error is not None:
            raise self.outcome_error
        session = next(s for s in self.sessions if s["session_id"] == session_id)
        payments = []
        if self.with_payment:
            payments.append(PaymentAttempt(result_code=self.result_code, psp_reference=self.psp_reference))
        return SessionOutcome(id=session_id, status="completed", reference=session["reference"], payments=payments)


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def gateway():
    return ScriptedGateway()


@pytest.fixture
def checkout_service(store, gateway):
    return CheckoutService(store, gateway, client_key="test_client_key", product_id="widget-001", tax_rate_bps=1000)


@pytest.fixture
def gateway_down():
    return GatewayError("API returned status 500", status_code=500, body="boom")
