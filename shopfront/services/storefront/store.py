"""Order persistence boundary.

`OrderStore` is the contract the checkout service depends on; `SqlOrderStore`
implements it with SQLAlchemy over an injected session factory.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from shopfront.common.errors import OrderNotFoundError, PersistenceError, StaleOrderError
from shopfront.common.logging import logger
from shopfront.common.state_machine import OrderStatus
from shopfront.services.storefront.domain import Order
from shopfront.services.storefront.models import OrderRecord


class OrderStore(ABC):
    """Create, fetch, and update orders by reference."""

    @abstractmethod
    def create(self, order: Order) -> None:
        """Persist a new order; raises `PersistenceError` on any store failure."""

    @abstractmethod
    def get_by_reference(self, reference: str) -> Order:
        """Return the order or raise `OrderNotFoundError`."""

    @abstractmethod
    def update_status(
        self,
        reference: str,
        status: OrderStatus,
        psp_reference: str,
        expected_status: OrderStatus | None = None,
    ) -> None:
        """Write status + PSP reference in one statement.

        With `expected_status` the write only applies while the stored status
        still equals it; otherwise `StaleOrderError` is raised.
        """


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_domain(record: OrderRecord) -> Order:
    return Order(
        id=record.id,
        reference=record.reference,
        amount=record.amount,
        currency=record.currency,
        product_name=record.product_name,
        status=OrderStatus(record.status),
        psp_reference=record.psp_reference or "",
        created_at=_aware(record.created_at),
        updated_at=_aware(record.updated_at),
    )


class SqlOrderStore(OrderStore):
    """SQLAlchemy-backed order store."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def create(self, order: Order) -> None:
        try:
            with self.session_factory() as db:
                db.add(
                    OrderRecord(
                        id=order.id,
                        reference=order.reference,
                        amount=order.amount,
                        currency=order.currency,
                        status=order.status.value,
                        product_name=order.product_name,
                        psp_reference=order.psp_reference or None,
                        created_at=order.created_at,
                        updated_at=order.updated_at,
                    )
                )
                db.commit()
        except IntegrityError as exc:
            raise PersistenceError(f"failed to create order {order.reference}: duplicate or invalid row") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to create order {order.reference}: {exc}") from exc

    def get_by_reference(self, reference: str) -> Order:
        try:
            with self.session_factory() as db:
                record = db.execute(
                    select(OrderRecord).where(OrderRecord.reference == reference)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to get order {reference}: {exc}") from exc
        if record is None:
            raise OrderNotFoundError(reference)
        return _to_domain(record)

    def update_status(
        self,
        reference: str,
        status: OrderStatus,
        psp_reference: str,
        expected_status: OrderStatus | None = None,
    ) -> None:
        expected = OrderStatus(expected_status).value if expected_status is not None else None
        stmt = update(OrderRecord).where(OrderRecord.reference == reference)
        if expected is not None:
            stmt = stmt.where(OrderRecord.status == expected)
        stmt = stmt.values(
            status=OrderStatus(status).value,
            psp_reference=psp_reference or None,
            updated_at=datetime.now(timezone.utc),
        )
        try:
            with self.session_factory() as db:
                rowcount = db.execute(stmt).rowcount
                db.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to update order status {reference}: {exc}") from exc

        if rowcount != 1:
            logger.warning(
                "order_status_write_missed reference=%s expected_status=%s",
                reference,
                expected,
            )
            raise StaleOrderError(
                f"order {reference} not updated (missing or status no longer {expected})"
            )
