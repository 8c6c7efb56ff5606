"""API request/response schemas for storefront endpoints."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ProductResponse(BaseModel):
    """The single product on sale."""

    id: str
    name: str
    description: str
    price: str
    price_cents: int
    currency: str
    image_url: str


class CheckoutPageResponse(BaseModel):
    product: ProductResponse
    client_key: str


class SessionCreateResponse(BaseModel):
    """Payload the browser drop-in needs; camelCase for the JS client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    session_data: str
    client_key: str


class ConfirmationResponse(BaseModel):
    order_reference: str
    product_name: str
    amount: str
    psp_reference: str
    status: str


class FailureResponse(BaseModel):
    order_reference: str
    reason: str
    message: str


class ErrorResponse(BaseModel):
    error: str
    message: str
