"""
Limit/offset paging for order and notification listings.

Order history for a regular customer grows without bound, so every list
endpoint takes a bounded page instead of returning the whole table.
"""

from dataclasses import dataclass

from fastapi import Query

from shared.config.constants import Limits


@dataclass
class Pagination:
    """A clamped page window. Out-of-range values are pulled back in bounds."""

    limit: int
    offset: int
    max_limit: int = Limits.MAX_PAGE_SIZE

    def __post_init__(self):
        if self.limit < 1:
            self.limit = 1
        elif self.limit > self.max_limit:
            self.limit = self.max_limit
        if self.offset < 0:
            self.offset = 0


def get_pagination(
    limit: int = Query(
        Limits.DEFAULT_PAGE_SIZE,
        ge=1,
        le=Limits.MAX_PAGE_SIZE,
        description="Page size",
    ),
    offset: int = Query(0, ge=0, description="Rows to skip before the page starts"),
) -> Pagination:
    return Pagination(limit=limit, offset=offset)
