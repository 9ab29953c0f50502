"""Sorting, searching and paging over an in-memory holder collection.

Numeric fields sort on exact ints (or an exact ``Fraction`` for share of
supply), never on the rounded display strings. The direction is passed on
every call; toggling it on repeated clicks belongs to the caller.
"""

import logging
import math
from collections.abc import Callable, Mapping, Sequence
from fractions import Fraction
from typing import Any

from ..core.exceptions import ValidationError
from ..core.models import HolderRecord
from ..core.types import SortDirection, SortField
from ..resolution.address_resolver import AddressResolver
from .amounts import share_ratio

logger = logging.getLogger(__name__)


class SortPaginator:
    """Orders and slices holder records for a view."""

    def __init__(
        self,
        total_supply: int = 0,
        tags: Mapping[str, str] | None = None,
        resolver: AddressResolver | None = None,
    ):
        """
        Initialize the paginator.

        Args:
            total_supply: Raw total supply, used for the percentage field
            tags: Labels keyed by canonical raw address
            resolver: Address resolver shared with the rest of the session
        """
        self.total_supply = total_supply
        self.resolver = resolver or AddressResolver()
        self.tags = {self.resolver.normalize(k): v for k, v in (tags or {}).items()}

    def tag_for(self, address: str) -> str:
        """Tag label of an address, or the empty string."""
        return self.tags.get(self.resolver.normalize(address), "")

    def _key(self, field: SortField) -> Callable[[HolderRecord], Any]:
        if field == SortField.RANK:
            # Unranked records go last in ascending order
            return lambda r: r.rank if r.rank is not None else math.inf
        if field == SortField.ADDRESS:
            return lambda r: r.address
        if field == SortField.TAG:
            return lambda r: self.tag_for(r.address)
        if field == SortField.BALANCE:
            return lambda r: r.balance
        if field == SortField.BALANCE_CHANGE_24H:
            # A missing delta orders like a zero change
            return lambda r: r.balance_change_24h or 0
        if field == SortField.PERCENTAGE:
            return self._share_key
        raise ValidationError("field", str(field), "unsupported sort field")

    def _share_key(self, record: HolderRecord) -> Fraction:
        ratio = share_ratio(record.balance, self.total_supply)
        # Zero supply leaves every share unavailable; keep input order
        return ratio if ratio is not None else Fraction(0)

    def sort_by(
        self,
        collection: Sequence[HolderRecord],
        field: SortField | str,
        direction: SortDirection | str = SortDirection.ASC,
    ) -> list[HolderRecord]:
        """
        Return a new list ordered by ``field``.

        Ties keep their input order in both directions.

        Raises:
            ValidationError: For an unknown field or direction, or a
                collection holding something other than HolderRecords
        """
        try:
            field = SortField(field)
        except ValueError:
            raise ValidationError("field", str(field), "unsupported sort field")
        try:
            direction = SortDirection(direction)
        except ValueError:
            raise ValidationError("direction", str(direction), "expected asc or desc")

        for index, record in enumerate(collection):
            if not isinstance(record, HolderRecord):
                raise ValidationError(
                    f"collection[{index}]", type(record).__name__, "expected a HolderRecord"
                )

        return sorted(
            collection,
            key=self._key(field),
            reverse=direction == SortDirection.DESC,
        )

    def search(
        self,
        collection: Sequence[HolderRecord],
        needle: str | None,
    ) -> list[HolderRecord]:
        """Keep records whose address matches ``needle`` in raw or friendly form."""
        if not needle or not needle.strip():
            return list(collection)
        return [r for r in collection if self.resolver.matches(needle, r.address)]

    @staticmethod
    def paginate(
        collection: Sequence[Any],
        page_index: int,
        page_size: int,
    ) -> tuple[list[Any], int]:
        """
        Slice one page out of a collection.

        Args:
            collection: Items in display order
            page_index: Zero-based page number
            page_size: Items per page

        Returns:
            Tuple of (page items, total page count). A page past the end is
            an empty list, not an error.
        """
        if page_index < 0:
            raise ValidationError("page_index", str(page_index), "must be >= 0")
        if page_size <= 0:
            raise ValidationError("page_size", str(page_size), "must be > 0")

        total_pages = math.ceil(len(collection) / page_size)
        start = page_index * page_size
        return list(collection[start:start + page_size]), total_pages
