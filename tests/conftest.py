"""Pytest configuration and fixtures for jetton holder tests."""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from jetton_holders.core.models import HolderRecord, TokenMeta
from jetton_holders.providers.ledger.tonapi_client import TonApiClient
from jetton_holders.providers.rate_limiter import RateLimiter
from jetton_holders.resolution.address_resolver import LedgerAddress
from jetton_holders.storage.credential_store import MemoryStore


def make_address(seed: int, workchain: int = 0) -> str:
    """Deterministic raw address whose hash is ``seed`` repeated."""
    return LedgerAddress(workchain=workchain, hash_part=bytes([seed % 256]) * 32).to_raw()


class FakeClock:
    """Monotonic clock that only moves when told to, or when slept on."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class Recorder:
    """httpx.MockTransport handler replaying scripted responses."""

    def __init__(self, responses: list[httpx.Response] | Callable[[httpx.Request], httpx.Response]):
        self._responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if callable(self._responses):
            return self._responses(request)
        return self._responses.pop(0)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def json_response(payload: Any, status_code: int = 200, headers: dict | None = None) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode(),
        headers={"content-type": "application/json", **(headers or {})},
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(min_gap=4.0, clock=clock, sleep=clock.sleep)


@pytest.fixture
def master_address() -> str:
    return make_address(0xAB)


@pytest.fixture
def make_client(limiter: RateLimiter, master_address: str):
    """Factory for a TonApiClient on a scripted transport and fake clock."""

    def factory(recorder: Recorder, credential: str | None = None, store: MemoryStore | None = None) -> TonApiClient:
        return TonApiClient(
            master=master_address,
            credential=credential,
            credential_store=store or MemoryStore(),
            anonymous_min_gap=4.0,
            authenticated_min_gap=1.0,
            retry_after_default=4.0,
            limiter=limiter,
            transport=recorder.transport,
        )

    return factory


@pytest.fixture
def sample_meta(master_address: str) -> TokenMeta:
    """Metadata for a 250-unit, zero-decimal jetton."""
    return TokenMeta(master=master_address, decimals=0, total_supply=250, name="Gram", symbol="GRAM")


@pytest.fixture
def sample_records() -> list[HolderRecord]:
    """Three holders, two tied at the top."""
    return [
        HolderRecord(address=make_address(1), balance=100, balance_change_24h=5),
        HolderRecord(address=make_address(2), balance=100, balance_change_24h=None),
        HolderRecord(address=make_address(3), balance=50, balance_change_24h=-10),
    ]


@pytest.fixture
def meta_payload() -> dict[str, Any]:
    """A /jettons/{master} response."""
    return {
        "mintable": True,
        "total_supply": "250",
        "metadata": {
            "name": "Gram",
            "symbol": "GRAM",
            "decimals": "0",
        },
        "holders_count": 3,
    }


@pytest.fixture
def holders_payload() -> dict[str, Any]:
    """A /jettons/{master}/holders response in API order."""
    return {
        "addresses": [
            {"owner": {"address": make_address(3)}, "balance": "50", "change_24h": "-10"},
            {"owner": {"address": make_address(1)}, "balance": "100", "balance_change_24h": 5},
            {"address": make_address(2), "amount": "100"},
        ],
        "total": 3,
    }
