"""Error taxonomy shared by the order domain, store, and gateway."""


class ShopfrontError(Exception):
    """Base class for every error the storefront core raises."""


class OrderValidationError(ShopfrontError, ValueError):
    """Order input rejected before any side effect."""


class InvalidTransitionError(ShopfrontError, ValueError):
    """Requested status change is not allowed by the order state machine."""


class OrderNotFoundError(ShopfrontError, LookupError):
    """No order exists for the given reference."""

    def __init__(self, reference: str) -> None:
        super().__init__(f"order not found: {reference}")
        self.reference = reference


class PersistenceError(ShopfrontError):
    """Order store unavailable or a constraint was violated."""


class StaleOrderError(PersistenceError):
    """Conditional status write matched no row (status changed underneath)."""


class GatewayError(ShopfrontError):
    """Payment-session gateway call failed or returned a non-success status."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
