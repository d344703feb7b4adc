"""
Order Repository - the order aggregate store.

Header, lines and history are always written in the caller's transaction.
Status changes go through compare_and_set_status() so two concurrent
transitions of the same order can never both succeed.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import Select, case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from rest_api.models import Order, OrderItem, OrderStatusHistory, utcnow
from shared.config.constants import (
    OrderStatus,
    QUEUE_PRIORITY,
    TOTAL_TOLERANCE_CENTS,
)
from shared.config.logging import get_logger
from shared.utils.exceptions import OrderTotalMismatchError
from .base import BaseRepository, RepositoryFilters

logger = get_logger(__name__)

PICKUP_CODE_INDEX = "uq_order_active_pickup_code"


@dataclass
class OrderLine:
    """A validated, priced line ready to be written."""

    menu_item_id: int
    item_name: str
    quantity: int
    unit_price_cents: int
    special_instructions: str | None = None

    @property
    def subtotal_cents(self) -> int:
        return self.quantity * self.unit_price_cents


def _is_pickup_code_violation(error: IntegrityError) -> bool:
    message = str(error.orig)
    # PostgreSQL names the index; SQLite names the column
    return PICKUP_CODE_INDEX in message or "orders.pickup_code" in message


def compute_total_cents(lines: Sequence[Any]) -> int:
    """Sum of quantity * unit price over lines (OrderLine or OrderItem)."""
    return sum(line.quantity * line.unit_price_cents for line in lines)


class OrderRepository(BaseRepository[Order]):
    """
    Repository for Order aggregates.

    Guarantees eager loading of items.
    """

    @property
    def model(self) -> type[Order]:
        return Order

    def _base_query(self) -> Select:
        return (
            select(Order)
            .options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id.desc())
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, order_id: int) -> Order | None:
        """Load one order with its lines, bypassing any stale identity-map copy."""
        query = (
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.items))
            .execution_options(populate_existing=True)
        )
        return self._db.scalar(query)

    def find_ready_by_code(self, code: str) -> Order | None:
        query = (
            select(Order)
            .where(Order.pickup_code == code, Order.status == OrderStatus.READY)
            .options(selectinload(Order.items))
        )
        return self._db.scalar(query)

    def pickup_code_in_use(self, code: str) -> bool:
        """True if a non-terminal order currently holds the code."""
        query = (
            select(Order.id)
            .where(Order.pickup_code == code, Order.status.in_(OrderStatus.ACTIVE))
            .limit(1)
        )
        return self._db.scalar(query) is not None

    def count_active(self) -> int:
        return self.count(Order.status.in_(OrderStatus.ACTIVE))

    def for_owner(self, owner_id: str, filters: RepositoryFilters | None = None) -> Sequence[Order]:
        """The owner's orders, newest first."""
        filters = filters or RepositoryFilters()
        query = (
            self._base_query()
            .where(Order.owner_id == owner_id)
            .offset(filters.offset)
            .limit(filters.limit)
        )
        return self._db.execute(query).scalars().unique().all()

    def queue(self, statuses: Sequence[str] | None = None) -> Sequence[Order]:
        """
        Non-terminal orders by stage priority, then FIFO within a stage.

        The id breaks ties between orders created in the same microsecond.
        """
        wanted = [s for s in (statuses or OrderStatus.ACTIVE) if s in OrderStatus.ACTIVE]
        if not wanted:
            return []
        priority = case(QUEUE_PRIORITY, value=Order.status, else_=len(QUEUE_PRIORITY))
        query = (
            select(Order)
            .where(Order.status.in_(wanted))
            .options(selectinload(Order.items))
            .order_by(priority, Order.created_at.asc(), Order.id.asc())
        )
        return self._db.execute(query).scalars().unique().all()

    def history(self, order_id: int) -> Sequence[OrderStatusHistory]:
        query = (
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.created_at, OrderStatusHistory.id)
        )
        return self._db.execute(query).scalars().all()

    # =========================================================================
    # Writes (caller commits)
    # =========================================================================

    def insert_order(
        self,
        owner_id: str,
        lines: Sequence[OrderLine],
        pickup_code: str,
        notes: str | None = None,
        pickup_time: datetime | None = None,
    ) -> Order | None:
        """
        Insert header and lines inside a SAVEPOINT.

        Returns None if the active pickup code index rejected the code; the
        savepoint is rolled back and the outer transaction stays usable.
        Any other integrity error propagates.
        """
        order = Order(
            owner_id=owner_id,
            status=OrderStatus.PLACED,
            total_cents=compute_total_cents(lines),
            pickup_code=pickup_code,
            notes=notes,
            pickup_time=pickup_time,
            items=[
                OrderItem(
                    menu_item_id=line.menu_item_id,
                    item_name=line.item_name,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    special_instructions=line.special_instructions,
                )
                for line in lines
            ],
        )
        try:
            with self._db.begin_nested():
                self._db.add(order)
                self._db.flush()
        except IntegrityError as e:
            if _is_pickup_code_violation(e):
                logger.info("Pickup code taken at insert, redrawing", owner_id=owner_id)
                return None
            raise
        return order

    def compare_and_set_status(self, order_id: int, expected: str, new_status: str) -> bool:
        """
        Atomically move an order from `expected` to `new_status`.

        Returns False if the stored status was not `expected` (a concurrent
        transition won) or the order does not exist.
        """
        now = utcnow()
        values: dict[str, Any] = {"status": new_status, "updated_at": now}
        if new_status == OrderStatus.COMPLETED:
            values["completed_at"] = now
        result = self._db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def append_history(
        self,
        order_id: int,
        from_status: str | None,
        to_status: str,
        changed_by: str | None,
        note: str | None = None,
    ) -> OrderStatusHistory:
        entry = OrderStatusHistory(
            order_id=order_id,
            from_status=from_status,
            to_status=to_status,
            changed_by=changed_by,
            note=note,
        )
        self._db.add(entry)
        self._db.flush()
        return entry

    # =========================================================================
    # Invariants
    # =========================================================================

    def verify_total(self, order: Order) -> None:
        """
        Check that the stored total matches the stored lines within tolerance.

        Raises:
            OrderTotalMismatchError: if the drift exceeds TOTAL_TOLERANCE_CENTS.
        """
        computed = self.line_totals(order.id)
        if abs(computed - order.total_cents) > TOTAL_TOLERANCE_CENTS:
            raise OrderTotalMismatchError(order.id, order.total_cents, computed)

    def line_totals(self, order_id: int) -> int:
        """Total recomputed in SQL, independent of loaded objects."""
        query = select(
            func.coalesce(func.sum(OrderItem.quantity * OrderItem.unit_price_cents), 0)
        ).where(OrderItem.order_id == order_id)
        return int(self._db.scalar(query) or 0)
