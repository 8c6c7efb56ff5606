"""Order aggregate for the storefront.

An order is created `pending` when a checkout session is requested and is
moved to a terminal status exactly once by payment reconciliation. Every
status change is validated against `ALLOWED_TRANSITIONS`; a rejected change
leaves the order untouched.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import time
from uuid import uuid4

from shopfront.common.errors import InvalidTransitionError, OrderValidationError
from shopfront.common.state_machine import OrderStatus, validate_transition


def _now() -> datetime:
    return datetime.now(timezone.utc)


def generate_reference() -> str:
    """Merchant-facing order reference, e.g. `ORDER-1735689600-3F9A1C2B`."""

    return f"ORDER-{int(time())}-{uuid4().hex[:8].upper()}"


IDENTITY_FIELDS = ("id", "reference")


def validate_order_input(product_name: str, amount: int, currency: str) -> None:
    if amount <= 0:
        raise OrderValidationError("order amount must be positive")
    if len(currency) != 3:
        raise OrderValidationError("currency code must be 3 characters")
    if product_name == "":
        raise OrderValidationError("product name cannot be empty")


@dataclass
class Order:
    """One purchase attempt for the storefront product."""

    id: str
    reference: str
    amount: int
    currency: str
    product_name: str
    status: OrderStatus = OrderStatus.PENDING
    psp_reference: str = ""
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def __setattr__(self, name: str, value) -> None:
        # id and reference are set once by __init__; use dataclasses.replace for a copy with new ones.
        if name in IDENTITY_FIELDS and name in self.__dict__:
            raise AttributeError(f"order {name} cannot be reassigned")
        super().__setattr__(name, value)

    @classmethod
    def new(cls, product_name: str, amount: int, currency: str) -> "Order":
        """Validate input and build a fresh `pending` order."""

        validate_order_input(product_name, amount, currency)
        now = _now()
        return cls(
            id=str(uuid4()),
            reference=generate_reference(),
            amount=amount,
            currency=currency,
            product_name=product_name,
            created_at=now,
            updated_at=now,
        )

    def _move_to(self, new_status: OrderStatus) -> None:
        validate_transition(self.status, new_status)
        self.status = new_status
        self.updated_at = _now()

    def authorize(self, psp_reference: str) -> None:
        """Record a successful authorization; only legal while pending."""

        validate_transition(self.status, OrderStatus.AUTHORIZED)
        if not psp_reference:
            raise OrderValidationError("PSP reference cannot be empty")
        self.psp_reference = psp_reference
        self._move_to(OrderStatus.AUTHORIZED)

    def fail(self) -> None:
        self._move_to(OrderStatus.FAILED)

    def cancel(self) -> None:
        self._move_to(OrderStatus.CANCELLED)

    def transition_to(self, status: OrderStatus | str, psp_reference: str = "") -> None:
        """Dispatch a target status to the matching transition method."""

        status = OrderStatus(status)
        if status is OrderStatus.AUTHORIZED:
            self.authorize(psp_reference)
        elif status is OrderStatus.FAILED:
            self.fail()
        elif status is OrderStatus.CANCELLED:
            self.cancel()
        else:
            raise InvalidTransitionError(f"Invalid transition target: {status.value}")

    @property
    def is_pending(self) -> bool:
        return self.status is OrderStatus.PENDING

    @property
    def is_authorized(self) -> bool:
        return self.status is OrderStatus.AUTHORIZED

    @property
    def is_failed(self) -> bool:
        return self.status is OrderStatus.FAILED

    @property
    def is_cancelled(self) -> bool:
        return self.status is OrderStatus.CANCELLED

    @property
    def can_be_modified(self) -> bool:
        return self.is_pending

    @property
    def formatted_amount(self) -> str:
        return f"{self.amount / 100:.2f} {self.currency}"
