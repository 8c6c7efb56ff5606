"""Order state machine transitions enforced by the order entity."""

from enum import Enum

from shopfront.common.errors import InvalidTransitionError


class OrderStatus(str, Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Self-transitions on FAILED/CANCELLED let a repeated outcome be re-applied.
ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.AUTHORIZED, OrderStatus.FAILED, OrderStatus.CANCELLED},
    OrderStatus.AUTHORIZED: set(),
    OrderStatus.FAILED: {OrderStatus.FAILED, OrderStatus.CANCELLED},
    OrderStatus.CANCELLED: {OrderStatus.CANCELLED},
}


def validate_transition(current: OrderStatus | str, new: OrderStatus | str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    current, new = OrderStatus(current), OrderStatus(new)
    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Invalid transition: {current.value} -> {new.value}")
