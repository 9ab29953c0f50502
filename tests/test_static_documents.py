"""Tests for tag and distribution document loading."""

import json

import httpx
import pytest

from conftest import Recorder, json_response, make_address
from jetton_holders.core.exceptions import DataSourceError
from jetton_holders.providers.annotations.static_documents import StaticDocumentProvider
from jetton_holders.resolution.address_resolver import parse_address


@pytest.fixture
def provider() -> StaticDocumentProvider:
    return StaticDocumentProvider()


class TestParseTags:
    """Tests for the accepted tag document shapes."""

    def test_mapping(self, provider):
        annotations = provider.parse_tags({make_address(1): "Exchange"})
        assert [(a.address, a.label) for a in annotations] == [(make_address(1), "Exchange")]

    def test_nested_list(self, provider):
        data = {
            "tags": [
                {"address": make_address(1), "label": "Exchange"},
                {"address": make_address(2), "tag": "Team"},
                {"address": make_address(3), "name": "Treasury"},
            ]
        }
        labels = [a.label for a in provider.parse_tags(data)]
        assert labels == ["Exchange", "Team", "Treasury"]

    def test_friendly_keys_are_normalized(self, provider):
        friendly = parse_address(make_address(4)).to_friendly(bounceable=True)
        annotations = provider.parse_tags({friendly: "Bridge"})
        assert annotations[0].address == make_address(4)

    def test_skips_incomplete_entries(self, provider):
        data = [
            {"address": make_address(1)},
            {"label": "No address"},
            "junk",
            {"address": "  ", "label": "Blank"},
        ]
        assert provider.parse_tags(data) == []


class TestParseDistribution:
    """Tests for distribution bucket decoding."""

    def test_list_of_buckets(self, provider):
        data = [
            {"label": "0-1k", "holders": 1200, "share": 0.5},
            {"range": "1k-10k", "count": "300", "percent": "12.5%"},
        ]
        buckets = provider.parse_distribution(data)

        assert [b.label for b in buckets] == ["0-1k", "1k-10k"]
        assert buckets[0].holders == 1200
        assert buckets[1].holders == 300
        assert buckets[1].share == "12.5%"

    def test_wrapped_and_extra_fields(self, provider):
        buckets = provider.parse_distribution({"buckets": [{"bucket": "whales", "holders": 3, "balance": "9"}]})
        assert buckets[0].label == "whales"
        assert buckets[0].model_extra == {"balance": "9"}

    def test_unlabelled_rows_dropped(self, provider):
        assert provider.parse_distribution([{"holders": 5}]) == []

    def test_unrecognized_shape(self, provider):
        assert provider.parse_distribution("nope") == []


class TestLoadDocument:
    """Tests for loading from files and URLs."""

    @pytest.mark.asyncio
    async def test_json_file(self, provider, tmp_path):
        path = tmp_path / "tags.json"
        path.write_text(json.dumps({make_address(1): "Exchange"}), encoding="utf-8")

        tags = await provider.load_tags(str(path))

        assert tags == {make_address(1): "Exchange"}

    @pytest.mark.asyncio
    async def test_yaml_file(self, provider, tmp_path):
        path = tmp_path / "distribution.yaml"
        path.write_text("buckets:\n  - label: small\n    holders: 10\n", encoding="utf-8")

        buckets = await provider.load_distribution(str(path))

        assert buckets[0].label == "small"
        assert buckets[0].holders == 10

    @pytest.mark.asyncio
    async def test_missing_file(self, provider, tmp_path):
        with pytest.raises(DataSourceError):
            await provider.load_document(str(tmp_path / "absent.json"))

    @pytest.mark.asyncio
    async def test_malformed_file(self, provider, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DataSourceError):
            await provider.load_document(str(path))

    @pytest.mark.asyncio
    async def test_url_fetched_once(self):
        recorder = Recorder([json_response({make_address(1): "Exchange"})])
        provider = StaticDocumentProvider(transport=recorder.transport)

        first = await provider.load_tags("https://example.org/tags.json")
        second = await provider.load_tags("https://example.org/tags.json")

        assert first == second == {make_address(1): "Exchange"}
        assert len(recorder.requests) == 1
        assert provider.get_audit_trail()[0].action == "load"

    @pytest.mark.asyncio
    async def test_url_error(self):
        provider = StaticDocumentProvider(transport=Recorder([httpx.Response(404)]).transport)
        with pytest.raises(DataSourceError) as exc_info:
            await provider.load_document("https://example.org/missing.json")
        assert exc_info.value.status_code == 404
