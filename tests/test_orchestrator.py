"""Tests for the holder analysis orchestrator."""

import json

import pytest

from conftest import Recorder, json_response, make_address
from jetton_holders.core.config import AppConfig
from jetton_holders.core.types import SortDirection, SortField, UNAVAILABLE
from jetton_holders.orchestrator import HolderAnalysisOrchestrator
from jetton_holders.providers.price.coingecko_price import CoinGeckoPriceProvider


@pytest.fixture
def config(master_address) -> AppConfig:
    return AppConfig(jetton_master=master_address)


@pytest.fixture
def make_orchestrator(make_client, config):
    def factory(responses, settings: AppConfig | None = None, price_provider=None):
        recorder = Recorder(responses)
        orchestrator = HolderAnalysisOrchestrator(
            config=settings or config,
            client=make_client(recorder),
            price_provider=price_provider,
        )
        return orchestrator, recorder

    return factory


class TestLoadPage:
    """Tests for API-page mode."""

    @pytest.mark.asyncio
    async def test_ranks_and_shares(self, make_orchestrator, meta_payload, holders_payload):
        orchestrator, recorder = make_orchestrator(
            [json_response(meta_payload), json_response(holders_payload)]
        )

        page = await orchestrator.load_page(page_index=0, page_size=3)

        assert [row.rank for row in page.rows] == [1, 2, 3]
        assert [row.address for row in page.rows] == [make_address(1), make_address(2), make_address(3)]
        assert [row.share for row in page.rows] == ["40.000%", "40.000%", "20.000%"]
        assert [row.balance_display for row in page.rows] == ["100", "100", "50"]
        assert [row.change_display for row in page.rows] == ["+5", UNAVAILABLE, "-10"]
        assert page.total_pages == 1
        assert page.rows[0].friendly_address != page.rows[0].address
        assert all(row.value_usd is None for row in page.rows)
        assert {entry.action for entry in page.audit_trail} == {"fetch"}
        await orchestrator.aclose()

    @pytest.mark.asyncio
    async def test_ranks_continue_from_offset(self, make_orchestrator, meta_payload):
        holders = {
            "addresses": [
                {"address": make_address(10), "balance": "5"},
                {"address": make_address(11), "balance": "4"},
            ],
            "total": 250,
        }
        orchestrator, recorder = make_orchestrator([json_response(meta_payload), json_response(holders)])

        page = await orchestrator.load_page(page_index=3, page_size=2)

        assert [row.rank for row in page.rows] == [7, 8]
        assert recorder.requests[1].url.params["offset"] == "6"
        assert page.total_pages == 125
        await orchestrator.aclose()

    @pytest.mark.asyncio
    async def test_sort_and_search_within_page(self, make_orchestrator, meta_payload, holders_payload):
        orchestrator, _ = make_orchestrator([json_response(meta_payload), json_response(holders_payload)])

        page = await orchestrator.load_page(
            page_size=3,
            search=make_address(3)[2:14],
            sort_field=SortField.BALANCE,
            direction=SortDirection.ASC,
        )

        assert [row.address for row in page.rows] == [make_address(3)]
        assert page.rows[0].rank == 3
        await orchestrator.aclose()

    @pytest.mark.asyncio
    async def test_meta_fetched_once(self, make_orchestrator, meta_payload, holders_payload):
        orchestrator, recorder = make_orchestrator([
            json_response(meta_payload),
            json_response(holders_payload),
            json_response(holders_payload),
        ])

        await orchestrator.load_page(page_size=3)
        await orchestrator.load_page(page_size=3)

        paths = [r.url.path for r in recorder.requests]
        assert sum(1 for p in paths if not p.endswith("/holders")) == 1
        await orchestrator.aclose()

    @pytest.mark.asyncio
    async def test_unknown_supply_flags_and_sentinels(self, make_orchestrator, holders_payload):
        orchestrator, _ = make_orchestrator([
            json_response({"metadata": {"decimals": "0"}}),
            json_response(holders_payload),
        ])

        page = await orchestrator.load_page(page_size=3)

        assert {row.share for row in page.rows} == {UNAVAILABLE}
        assert "total_supply" in [flag.field for flag in page.quality_flags]
        await orchestrator.aclose()

    @pytest.mark.asyncio
    async def test_negative_page_rejected(self, make_orchestrator):
        orchestrator, _ = make_orchestrator([])
        with pytest.raises(ValueError):
            await orchestrator.load_page(page_index=-1)


class TestEnrichment:
    """Tests for tags and fiat values."""

    @pytest.mark.asyncio
    async def test_tags_from_file(self, make_orchestrator, master_address, meta_payload, holders_payload, tmp_path):
        tags_path = tmp_path / "tags.json"
        tags_path.write_text(json.dumps({make_address(1): "Exchange"}), encoding="utf-8")
        settings = AppConfig(jetton_master=master_address, tags_source=str(tags_path))
        orchestrator, _ = make_orchestrator(
            [json_response(meta_payload), json_response(holders_payload)], settings=settings
        )

        page = await orchestrator.load_page(page_size=3)

        assert [row.tag for row in page.rows] == ["Exchange", "", ""]
        await orchestrator.aclose()

    @pytest.mark.asyncio
    async def test_missing_tags_become_a_flag(self, make_orchestrator, master_address, meta_payload, holders_payload, tmp_path):
        settings = AppConfig(jetton_master=master_address, tags_source=str(tmp_path / "absent.json"))
        orchestrator, _ = make_orchestrator(
            [json_response(meta_payload), json_response(holders_payload)], settings=settings
        )

        page = await orchestrator.load_page(page_size=3)

        assert all(row.tag == "" for row in page.rows)
        assert "tags" in [flag.field for flag in page.quality_flags]
        await orchestrator.aclose()

    @pytest.mark.asyncio
    async def test_fiat_values(self, make_orchestrator, master_address, limiter, meta_payload, holders_payload):
        price_recorder = Recorder([json_response({"gram": {"usd": 0.5}})])
        price_provider = CoinGeckoPriceProvider(limiter=limiter, transport=price_recorder.transport)
        settings = AppConfig(jetton_master=master_address, coingecko_id="gram")
        orchestrator, _ = make_orchestrator(
            [json_response(meta_payload), json_response(holders_payload)],
            settings=settings,
            price_provider=price_provider,
        )

        page = await orchestrator.load_page(page_size=3)

        assert page.price.usd == 0.5
        assert [row.value_usd for row in page.rows] == [pytest.approx(50.0), pytest.approx(50.0), pytest.approx(25.0)]
        await orchestrator.aclose()


class TestSnapshot:
    """Tests for full-set snapshots and local views."""

    @pytest.mark.asyncio
    async def test_concentration(self, make_orchestrator, meta_payload, holders_payload):
        orchestrator, _ = make_orchestrator([json_response(meta_payload), json_response(holders_payload)])

        snapshot = await orchestrator.load_snapshot()

        assert snapshot.complete
        assert [r.rank for r in snapshot.holders] == [1, 2, 3]
        assert snapshot.concentration.top10_sum == 250
        assert snapshot.concentration.holder_count == 3
        assert snapshot.concentration_shares["top10"] == "100.000%"
        assert "rank" in [entry.action for entry in snapshot.audit_trail]
        await orchestrator.aclose()

    @pytest.mark.asyncio
    async def test_truncated_snapshot_is_flagged(self, make_orchestrator, meta_payload):
        holders = {
            "addresses": [{"address": make_address(i), "balance": "1"} for i in range(2)],
            "total": 10,
        }
        orchestrator, _ = make_orchestrator([json_response(meta_payload), json_response(holders)])

        snapshot = await orchestrator.load_snapshot(max_holders=2)

        assert not snapshot.complete
        assert "holders" in [flag.field for flag in snapshot.quality_flags]
        await orchestrator.aclose()

    @pytest.mark.asyncio
    async def test_view_snapshot(self, make_orchestrator, meta_payload, holders_payload):
        orchestrator, recorder = make_orchestrator([json_response(meta_payload), json_response(holders_payload)])
        snapshot = await orchestrator.load_snapshot()
        requests_before = len(recorder.requests)

        page = orchestrator.view_snapshot(
            snapshot,
            page_index=0,
            page_size=2,
            sort_field=SortField.BALANCE,
            direction=SortDirection.ASC,
        )

        assert [row.balance for row in page.rows] == [50, 100]
        assert [row.rank for row in page.rows] == [3, 1]
        assert page.total_pages == 2
        assert len(recorder.requests) == requests_before

        past_end = orchestrator.view_snapshot(snapshot, page_index=5, page_size=2)
        assert past_end.rows == []
        assert past_end.total_pages == 2
        await orchestrator.aclose()
