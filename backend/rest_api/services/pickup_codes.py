"""
Pickup Code Allocator.

Codes are 4-digit strings drawn uniformly at random with `secrets`, unique
among non-terminal orders. Uniqueness is arbitrated by the partial unique
index on orders.pickup_code; the pre-check only avoids most wasted inserts.
Collisions are retried here and never reach the caller.
"""

from __future__ import annotations

import secrets
from datetime import datetime
from typing import Callable, Sequence

from rest_api.models import Order
from rest_api.repositories import OrderLine, OrderRepository
from shared.config.constants import PICKUP_CODE_LENGTH, PICKUP_CODE_SPACE
from shared.config.logging import get_logger

logger = get_logger(__name__)


class PickupCodeAllocator:
    """
    Draws codes and writes the order header under the winning code.

    `randbelow` is injectable so tests can force collisions.
    """

    def __init__(
        self,
        repository: OrderRepository,
        randbelow: Callable[[int], int] = secrets.randbelow,
    ):
        self._repo = repository
        self._randbelow = randbelow

    def draw(self) -> str:
        """One uniformly random zero-padded code."""
        return str(self._randbelow(PICKUP_CODE_SPACE)).zfill(PICKUP_CODE_LENGTH)

    def allocate(
        self,
        owner_id: str,
        lines: Sequence[OrderLine],
        notes: str | None = None,
        pickup_time: datetime | None = None,
    ) -> Order:
        """
        Insert the order under a fresh code, redrawing until one sticks.

        There is no retry bound: the capacity guard keeps the active set far
        below the 10,000-code space.
        """
        attempts = 0
        while True:
            attempts += 1
            code = self.draw()
            if self._repo.pickup_code_in_use(code):
                continue
            order = self._repo.insert_order(
                owner_id=owner_id,
                lines=lines,
                pickup_code=code,
                notes=notes,
                pickup_time=pickup_time,
            )
            if order is not None:
                if attempts > 1:
                    logger.info("Pickup code allocated after redraws", order_id=order.id, attempts=attempts)
                return order
