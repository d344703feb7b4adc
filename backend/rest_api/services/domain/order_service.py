"""
Order Domain Service.

Orchestrates the order lifecycle: creation with a fresh pickup code,
status transitions along the state graph, pickup verification at the
counter, and the post-commit side effects (notifications, push, real-time
events).

Every write runs in the session's single transaction and is committed
once; side effects are scheduled only after that commit succeeds.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Sequence

from sqlalchemy.orm import Session

from rest_api.models import Order, OrderStatusHistory
from rest_api.repositories import (
    MenuItemRepository,
    OrderLine,
    OrderRepository,
    RepositoryFilters,
    compute_total_cents,
)
from rest_api.services.events import OrderChange, dispatch_order_change
from rest_api.services.permissions import RoleResolver
from rest_api.services.pickup_codes import PickupCodeAllocator
from shared.config.constants import (
    Actions,
    NotificationType,
    OrderStatus,
    STATUS_NOTIFICATIONS,
    SettingKeys,
    TOTAL_TOLERANCE_CENTS,
    allowed_transitions,
    validate_order_status,
)
from shared.config.logging import get_logger, mask_identity, orders_logger, pickup_logger
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit, store_guard
from shared.utils.exceptions import (
    AppException,
    ConflictError,
    ForbiddenError,
    InvalidItemError,
    InvalidTransitionError,
    NotFoundError,
    OrderTotalMismatchError,
    ValidationError,
)
from shared.utils.schemas import OrderLineInput
from shared.utils.validators import is_well_formed_pickup_code, validate_quantity
from .notification_service import NotificationService
from .settings_service import SettingsService

if TYPE_CHECKING:
    from fastapi import BackgroundTasks

logger = get_logger(__name__)


class OrderService:
    """
    Domain service for orders.

    Business rules:
    - an order has at least one line and every quantity is >= 1
    - unit prices are snapshotted from the catalog at creation
    - pickup codes are unique among non-terminal orders
    - staff move orders along the state graph; an owner may only cancel
      while the order is placed or confirmed
    - concurrent transitions of one order: exactly one wins, the other
      gets ConflictError
    - the stored total always matches its lines within 5 cents
    """

    def __init__(
        self,
        db: Session,
        background_tasks: "BackgroundTasks | None" = None,
        allocator: PickupCodeAllocator | None = None,
        allow_cancel_from_preparing: bool | None = None,
    ):
        self._db = db
        self._background_tasks = background_tasks
        self._orders = OrderRepository(db)
        self._items = MenuItemRepository(db)
        self._allocator = allocator or PickupCodeAllocator(self._orders)
        self._roles = RoleResolver(db)
        if allow_cancel_from_preparing is None:
            allow_cancel_from_preparing = settings.allow_cancel_from_preparing
        self._allow_cancel_from_preparing = allow_cancel_from_preparing

    # =========================================================================
    # Creation
    # =========================================================================

    def create_order(
        self,
        owner_id: str,
        lines: Sequence[OrderLineInput],
        notes: str | None = None,
        pickup_time: datetime | None = None,
        client_total_cents: int | None = None,
    ) -> Order:
        """
        Place a new order for `owner_id`.

        Raises:
            NotFoundError: If the owner has no profile.
            ValidationError: If there are no lines or a quantity is < 1.
            InvalidItemError: If an item is unknown or unavailable.
            ConflictError: If the cafeteria is at capacity.
        """
        self._roles.require(owner_id, Actions.ORDER_CREATE, resource_owner=owner_id, description="place orders")

        priced = self._price_lines(lines)
        total_cents = compute_total_cents(priced)
        if client_total_cents is not None and abs(client_total_cents - total_cents) > TOTAL_TOLERANCE_CENTS:
            orders_logger.warning(
                "Client total ignored",
                owner=mask_identity(owner_id),
                client_total_cents=client_total_cents,
                total_cents=total_cents,
            )

        self._check_capacity()

        with store_guard(self._db, "create_order"):
            order = self._allocator.allocate(
                owner_id=owner_id,
                lines=priced,
                notes=notes,
                pickup_time=pickup_time,
            )
            self._orders.append_history(
                order_id=order.id,
                from_status=None,
                to_status=OrderStatus.PLACED,
                changed_by=owner_id,
                note="Order placed",
            )
            self._verify_total_or_rollback(order)
            order_id = order.id
            safe_commit(self._db)

        orders_logger.info(
            "Order placed",
            order_id=order_id,
            owner=mask_identity(owner_id),
            lines=len(priced),
            total_cents=total_cents,
        )

        order = self._load(order_id)
        notification_ids = self._notify_placed(order)
        dispatch_order_change(OrderChange.placed(order, notification_ids), self._background_tasks)
        return order

    def _price_lines(self, lines: Sequence[OrderLineInput]) -> list[OrderLine]:
        if not lines:
            raise ValidationError("Order must contain at least one item")
        for line in lines:
            try:
                validate_quantity(line.quantity)
            except ValueError as e:
                raise ValidationError(
                    str(e), field="quantity", menu_item_id=line.menu_item_id
                ) from e

        menu_items = self._items.find_for_order([line.menu_item_id for line in lines])
        priced: list[OrderLine] = []
        for line in lines:
            item = menu_items.get(line.menu_item_id)
            if item is None:
                raise InvalidItemError(line.menu_item_id)
            priced.append(
                OrderLine(
                    menu_item_id=item.id,
                    item_name=item.name,
                    quantity=line.quantity,
                    unit_price_cents=item.price_cents,
                    special_instructions=line.special_instructions,
                )
            )
        return priced

    def _check_capacity(self) -> None:
        with store_guard(self._db, "capacity_check"):
            capacity = SettingsService(self._db).get_int(SettingKeys.MAX_CONCURRENT_ORDERS)
        if capacity <= 0:
            return
        with store_guard(self._db, "capacity_check"):
            active = self._orders.count_active()
        if active >= capacity:
            raise ConflictError("Cafeteria at capacity", active=active, capacity=capacity)

    def _notify_placed(self, order: Order) -> tuple[int, ...]:
        """
        Write the order_placed notification in its own commit.

        The order is already committed; a failure here is logged and the
        order still stands.
        """
        try:
            with store_guard(self._db, "notify_order_placed"):
                notification = NotificationService(self._db).enqueue_for_order(
                    order, NotificationType.ORDER_PLACED
                )
                notification_id = notification.id
                safe_commit(self._db)
        except AppException as e:
            logger.error("Order placed notification not written", order_id=order.id, error=e.detail)
            return ()
        return (notification_id,)

    # =========================================================================
    # Transitions
    # =========================================================================

    def transition_status(
        self,
        order_id: int,
        new_status: str,
        actor_id: str,
        note: str | None = None,
    ) -> Order:
        """
        Move an order to `new_status`.

        A transition to the current status is a no-op (no history row).

        Raises:
            ValidationError: If `new_status` is not a known status.
            NotFoundError: If the order does not exist.
            ForbiddenError: If the actor may not make this change.
            InvalidTransitionError: If the state graph forbids the edge.
            ConflictError: If a concurrent transition changed the order first.
            OrderTotalMismatchError: If the stored total drifted from its lines;
                nothing is written.
        """
        if not validate_order_status(new_status):
            raise ValidationError(f"Unknown order status: {new_status}", field="status")

        order = self._get_or_404(order_id)
        current = order.status
        is_staff = self._roles.is_staff(actor_id)

        if not is_staff and not self._owner_may_cancel(order, actor_id, new_status):
            raise ForbiddenError(
                f"move this order to {new_status}",
                order_id=order_id,
                actor=mask_identity(actor_id),
                status=current,
            )

        if new_status == current:
            return order

        successors = allowed_transitions(current, self._allow_cancel_from_preparing and is_staff)
        if new_status not in successors:
            raise InvalidTransitionError("order", current, new_status, order_id=order_id)

        with store_guard(self._db, "transition_order"):
            if not self._orders.compare_and_set_status(order_id, current, new_status):
                self._db.rollback()
                raise ConflictError(
                    "Order was modified concurrently",
                    order_id=order_id,
                    expected=current,
                    new_status=new_status,
                )
            self._orders.append_history(
                order_id=order_id,
                from_status=current,
                to_status=new_status,
                changed_by=actor_id,
                note=note,
            )
            notification_ids: tuple[int, ...] = ()
            notification_type = STATUS_NOTIFICATIONS.get(new_status)
            if notification_type is not None:
                notification = NotificationService(self._db).enqueue_for_order(order, notification_type)
                notification_ids = (notification.id,)
            self._verify_total_or_rollback(order)
            safe_commit(self._db)

        orders_logger.info(
            "Order status changed",
            order_id=order_id,
            from_status=current,
            to_status=new_status,
            actor=mask_identity(actor_id),
        )

        order = self._load(order_id)
        dispatch_order_change(
            OrderChange.transitioned(order, current, actor_id, notification_ids),
            self._background_tasks,
        )
        return order

    @staticmethod
    def _owner_may_cancel(order: Order, actor_id: str, new_status: str) -> bool:
        return (
            order.owner_id == actor_id
            and new_status == OrderStatus.CANCELLED
            and order.status in OrderStatus.OWNER_CANCELLABLE
        )

    def cancel_order(self, order_id: int, actor_id: str, reason: str | None = None) -> Order:
        return self.transition_status(order_id, OrderStatus.CANCELLED, actor_id, note=reason)

    def complete_pickup(self, order_id: int, actor_id: str) -> Order:
        """Hand the order over at the counter (ready -> completed)."""
        order = self.transition_status(order_id, OrderStatus.COMPLETED, actor_id, note="Picked up")
        pickup_logger.info("Order handed over", order_id=order_id, actor=mask_identity(actor_id))
        return order

    # =========================================================================
    # Pickup
    # =========================================================================

    def verify_pickup(self, code: str, actor_id: str | None = None) -> Order:
        """
        Find the ready order holding `code`.

        Malformed codes, unknown codes and orders that are not ready all
        raise the same NotFoundError so the response reveals nothing.
        """
        if actor_id is not None:
            self._roles.require(actor_id, Actions.PICKUP_VERIFY, description="verify pickup codes")

        order = None
        if is_well_formed_pickup_code(code):
            with store_guard(self._db, "verify_pickup"):
                order = self._orders.find_ready_by_code(code)
        if order is None:
            pickup_logger.info("Pickup code rejected", actor=mask_identity(actor_id))
            raise NotFoundError("Ready order for pickup code")

        pickup_logger.info("Pickup code verified", order_id=order.id, actor=mask_identity(actor_id))
        return order

    # =========================================================================
    # Query Methods
    # =========================================================================

    def get_order(self, order_id: int, requester_id: str) -> Order:
        order = self._get_or_404(order_id)
        self._roles.require(
            requester_id,
            Actions.ORDER_READ,
            resource_owner=order.owner_id,
            description="view this order",
        )
        return order

    def list_orders_for_owner(
        self,
        requester_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[Order]:
        """The requester's own orders, newest first."""
        with store_guard(self._db, "list_orders"):
            return self._orders.for_owner(requester_id, RepositoryFilters(limit=limit, offset=offset))

    def list_queue(self, requester_id: str, statuses: Sequence[str] | None = None) -> Sequence[Order]:
        """Non-terminal orders for the staff screen, earliest stage first."""
        self._roles.require(requester_id, Actions.ORDER_QUEUE, description="view the order queue")
        if statuses:
            unknown = [s for s in statuses if s not in OrderStatus.ACTIVE]
            if unknown:
                raise ValidationError(f"Not a queue status: {', '.join(unknown)}", field="status")
        with store_guard(self._db, "list_queue"):
            return self._orders.queue(statuses)

    def get_history(self, order_id: int, requester_id: str) -> Sequence[OrderStatusHistory]:
        self.get_order(order_id, requester_id)
        with store_guard(self._db, "order_history"):
            return self._orders.history(order_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_or_404(self, order_id: int) -> Order:
        with store_guard(self._db, "load_order"):
            order = self._orders.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def _load(self, order_id: int) -> Order:
        return self._get_or_404(order_id)

    def _verify_total_or_rollback(self, order: Order) -> None:
        """Total check inside the open transaction; a drift undoes the write."""
        try:
            self._orders.verify_total(order)
        except OrderTotalMismatchError:
            self._db.rollback()
            raise
