"""Holder ranking and concentration statistics.

Rankings sort by the raw integer balance, so ordering stays exact beyond
2**53. Concentration sums are plain int accumulations over the ranked prefix:

- top10_sum   = sum of the 10 largest balances (fewer if fewer holders)
- top100_sum  = sum of the 100 largest balances
- top1000_sum = sum of the 1000 largest balances
"""

import logging
from collections.abc import Sequence

from ..core.exceptions import ValidationError
from ..core.models import ConcentrationStats, HolderRecord, TokenMeta
from .amounts import percent_of

logger = logging.getLogger(__name__)

CONCENTRATION_BUCKETS = (10, 100, 1000)


class HolderAggregator:
    """Ranks holders and derives concentration statistics."""

    def __init__(self, share_digits: int = 3):
        """
        Initialize the aggregator.

        Args:
            share_digits: Fractional digits in share-of-supply strings
        """
        self.share_digits = share_digits

    @staticmethod
    def _validate(records: Sequence[HolderRecord]) -> None:
        for index, record in enumerate(records):
            if not isinstance(record, HolderRecord):
                raise ValidationError(
                    field=f"records[{index}]",
                    value=type(record).__name__,
                    reason="expected a decoded HolderRecord",
                )

    def rank(
        self,
        records: Sequence[HolderRecord],
        start: int = 1,
    ) -> list[HolderRecord]:
        """
        Order holders by balance, largest first, and number them.

        Python's sort is stable, so equal balances keep their input order.

        Args:
            records: Decoded holder records
            start: Rank of the first holder (``offset + 1`` for an API page)

        Returns:
            New records carrying sequential ranks ``start, start + 1, ...``
        """
        if start < 1:
            raise ValidationError("start", str(start), "ranks are 1-based")
        self._validate(records)

        ordered = sorted(records, key=lambda record: record.balance, reverse=True)
        return [record.with_rank(start + i) for i, record in enumerate(ordered)]

    def concentration(self, ranked: Sequence[HolderRecord]) -> ConcentrationStats:
        """Top-10/100/1000 prefix sums over a ranked sequence."""
        self._validate(ranked)

        sums = {}
        running = 0
        consumed = 0
        for k in CONCENTRATION_BUCKETS:
            # Continue the running sum from the previous bucket boundary
            for record in ranked[consumed:k]:
                running += record.balance
            consumed = min(k, len(ranked))
            sums[k] = running

        return ConcentrationStats(
            top10_sum=sums[10],
            top100_sum=sums[100],
            top1000_sum=sums[1000],
            holder_count=len(ranked),
        )

    def share_of_supply(self, balance: int, total_supply: int) -> str:
        """Percentage of supply as a display string; sentinel for zero supply."""
        return percent_of(balance, total_supply, decimals=self.share_digits)

    def concentration_shares(
        self,
        stats: ConcentrationStats,
        total_supply: int,
    ) -> dict[str, str]:
        """Share of supply held by each concentration bucket."""
        return {
            label: self.share_of_supply(value, total_supply)
            for label, value in stats.as_dict().items()
        }

    def summarize(
        self,
        records: Sequence[HolderRecord],
        meta: TokenMeta,
    ) -> tuple[list[HolderRecord], ConcentrationStats, dict[str, str]]:
        """
        Rank a full holder set and compute its concentration.

        Args:
            records: Every holder of the token
            meta: Token metadata (for total supply)

        Returns:
            Tuple of (ranked records, stats, bucket shares of supply)
        """
        ranked = self.rank(records)
        stats = self.concentration(ranked)
        shares = self.concentration_shares(stats, meta.total_supply)

        if meta.total_supply and stats.top1000_sum > meta.total_supply:
            logger.warning(
                f"Top holders hold {stats.top1000_sum} raw units, "
                f"more than total supply {meta.total_supply}"
            )

        logger.debug(
            f"Ranked {len(ranked)} holders; top10={stats.top10_sum} "
            f"top100={stats.top100_sum} top1000={stats.top1000_sum}"
        )
        return ranked, stats, shares
