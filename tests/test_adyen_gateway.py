"""AdyenGateway wire format and error handling via httpx.MockTransport."""

import json

import httpx
import pytest

from shopfront.common.errors import GatewayError
from shopfront.services.storefront.gateway import AdyenGateway, LineItem

BASE_URL = "https://checkout-test.adyen.com"


def make_gateway(handler) -> AdyenGateway:
    return AdyenGateway(
        base_url=BASE_URL,
        api_key="secret-key",
        merchant_account="TestMerchant",
        transport=httpx.MockTransport(handler),
    )


def widget_line_item() -> LineItem:
    return LineItem(
        quantity=1,
        amount_excluding_tax=90,
        tax_percentage=1000,
        description="Widget",
        id="widget-001",
        tax_amount=10,
        amount_including_tax=100,
    )


def test_create_session_request_shape():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["api_key"] = request.headers.get("x-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "CS123", "sessionData": "blob", "expiresAt": "2026-10-18T00:00:00Z"})

    handle = make_gateway(handler).create_session(
        reference="ORDER-1",
        amount=100,
        currency="USD",
        return_url="http://localhost:8080/order/confirmation",
        line_items=[widget_line_item()],
    )

    assert handle.session_id == "CS123"
    assert handle.session_data == "blob"
    assert seen["method"] == "POST"
    assert seen["url"] == f"{BASE_URL}/v71/sessions"
    assert seen["api_key"] == "secret-key"
    body = seen["body"]
    assert body["merchantAccount"] == "TestMerchant"
    assert body["amount"] == {"currency": "USD", "value": 100}
    assert body["reference"] == "ORDER-1"
    assert body["returnUrl"] == "http://localhost:8080/order/confirmation"
    assert body["countryCode"] == "US"
    assert body["shopperLocale"] == "en-US"
    assert body["channel"] == "Web"
    assert body["allowedPaymentMethods"] == ["scheme"]
    assert body["lineItems"] == [
        {
            "quantity": 1,
            "amountExcludingTax": 90,
            "taxPercentage": 1000,
            "description": "Widget",
            "id": "widget-001",
            "taxAmount": 10,
            "amountIncludingTax": 100,
        }
    ]


def test_create_session_error_status():
    gateway = make_gateway(lambda request: httpx.Response(401, text="unauthorized"))

    with pytest.raises(GatewayError) as excinfo:
        gateway.create_session("ORDER-1", 100, "USD", "http://x", [widget_line_item()])

    assert excinfo.value.status_code == 401
    assert excinfo.value.body == "unauthorized"


def test_create_session_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GatewayError):
        make_gateway(handler).create_session("ORDER-1", 100, "USD", "http://x", [])


def test_get_session_outcome():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "id": "CS123",
                "status": "completed",
                "reference": "ORDER-1",
                "payments": [{"resultCode": "Authorised", "pspReference": "PSP-9"}],
            },
        )

    outcome = make_gateway(handler).get_session_outcome("CS123", "res-blob")

    assert seen["path"] == "/v71/sessions/CS123"
    assert seen["params"] == {"sessionResult": "res-blob"}
    assert outcome.reference == "ORDER-1"
    assert outcome.status == "completed"
    assert outcome.payments[0].result_code == "Authorised"
    assert outcome.payments[0].psp_reference == "PSP-9"


def test_get_session_outcome_without_payments():
    gateway = make_gateway(lambda request: httpx.Response(200, json={"id": "CS1", "reference": "ORDER-1"}))
    assert gateway.get_session_outcome("CS1", "").payments == []


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"id": "CS1"}),
    ],
)
def test_get_session_outcome_failures(response):
    gateway = make_gateway(lambda request: response)
    with pytest.raises(GatewayError):
        gateway.get_session_outcome("CS1", "res")
