"""Tests for holder ranking and concentration."""

import pytest

from conftest import make_address
from jetton_holders.calculator.aggregator import HolderAggregator
from jetton_holders.core.exceptions import ValidationError
from jetton_holders.core.models import ConcentrationStats, HolderRecord, TokenMeta


class TestRank:
    """Tests for HolderAggregator.rank."""

    @pytest.fixture
    def aggregator(self) -> HolderAggregator:
        return HolderAggregator()

    def test_ranks_by_balance_descending(self, aggregator, sample_records):
        ranked = aggregator.rank(list(reversed(sample_records)))

        assert [r.balance for r in ranked] == [100, 100, 50]
        assert [r.rank for r in ranked] == [1, 2, 3]

    def test_ties_keep_input_order(self, aggregator, sample_records):
        ranked = aggregator.rank(sample_records)

        assert ranked[0].address == make_address(1)
        assert ranked[1].address == make_address(2)

    def test_offset_start(self, aggregator, sample_records):
        ranked = aggregator.rank(sample_records, start=101)
        assert [r.rank for r in ranked] == [101, 102, 103]

    def test_does_not_mutate_input(self, aggregator, sample_records):
        aggregator.rank(sample_records)
        assert all(r.rank is None for r in sample_records)

    def test_empty(self, aggregator):
        assert aggregator.rank([]) == []

    def test_rejects_undecoded_input(self, aggregator):
        with pytest.raises(ValidationError):
            aggregator.rank([{"address": "x", "balance": 1}])

    def test_rejects_zero_start(self, aggregator, sample_records):
        with pytest.raises(ValidationError):
            aggregator.rank(sample_records, start=0)

    def test_exact_beyond_float_precision(self, aggregator):
        big = 2**60
        records = [
            HolderRecord(address=make_address(1), balance=big),
            HolderRecord(address=make_address(2), balance=big + 1),
        ]
        ranked = aggregator.rank(records)
        assert ranked[0].balance == big + 1


class TestConcentration:
    """Tests for top-10/100/1000 sums."""

    def test_small_set(self, sample_records):
        aggregator = HolderAggregator()
        stats = aggregator.concentration(aggregator.rank(sample_records))

        assert stats.top10_sum == 250
        assert stats.top100_sum == 250
        assert stats.top1000_sum == 250
        assert stats.holder_count == 3

    def test_prefix_sums_are_monotonic(self):
        records = [
            HolderRecord(address=make_address(i), balance=(1500 - i) * 10**9)
            for i in range(1500)
        ]
        aggregator = HolderAggregator()
        ranked = aggregator.rank(records)
        stats = aggregator.concentration(ranked)

        assert stats.top10_sum == sum(r.balance for r in ranked[:10])
        assert stats.top100_sum == sum(r.balance for r in ranked[:100])
        assert stats.top1000_sum == sum(r.balance for r in ranked[:1000])
        assert stats.top10_sum <= stats.top100_sum <= stats.top1000_sum
        assert stats.holder_count == 1500

    def test_empty(self):
        stats = HolderAggregator().concentration([])
        assert stats.as_dict() == {"top10": 0, "top100": 0, "top1000": 0}

    def test_model_rejects_decreasing_sums(self):
        with pytest.raises(ValueError):
            ConcentrationStats(top10_sum=10, top100_sum=5, top1000_sum=20)


class TestSummarize:
    """Tests for the full ranking pass."""

    def test_scenario(self, sample_records, sample_meta):
        aggregator = HolderAggregator()
        ranked, stats, shares = aggregator.summarize(sample_records, sample_meta)

        assert [r.rank for r in ranked] == [1, 2, 3]
        assert stats.top10_sum == 250
        assert [aggregator.share_of_supply(r.balance, sample_meta.total_supply) for r in ranked] == [
            "40.000%",
            "40.000%",
            "20.000%",
        ]
        assert shares["top10"] == "100.000%"

    def test_zero_supply_shares_are_sentinel(self, sample_records):
        aggregator = HolderAggregator()
        _, _, shares = aggregator.summarize(sample_records, TokenMeta(total_supply=0))
        assert set(shares.values()) == {"—"}
