"""Decoding of TonAPI payloads into canonical models.

TonAPI responses have drifted between versions, so every field is looked up
through a short list of aliases, once, here. Everything downstream sees only
:class:`TokenMeta`, :class:`HolderRecord` and :class:`HoldersPage`.

Missing or malformed fields fall back to safe defaults instead of failing the
whole page: decimals -> 9, total supply -> 0, balance -> 0, 24h delta -> None.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from ...calculator.amounts import coerce_int
from ...core.exceptions import ValidationError
from ...core.models import HolderRecord, HoldersPage, TokenMeta

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 9
DEFAULT_NAME = "GRAM"
DEFAULT_SYMBOL = "GRAM"

META_CONTAINER_KEYS = ("metadata", "jetton")
SUPPLY_KEYS = ("total_supply", "totalSupply")
HOLDER_LIST_KEYS = ("holders", "addresses", "items")
ADDRESS_PATHS = (
    ("owner", "address"),
    ("address",),
    ("account", "address"),
    ("wallet_address",),
)
BALANCE_KEYS = ("balance", "amount", "jetton_balance")
CHANGE_KEYS = ("balance_change_24h", "change_24h", "balanceChange24h")


def first_present(mapping: Mapping[str, Any], keys: Iterable[str]) -> Any:
    """Value of the first key that is present and not None."""
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def resolve_path(obj: Any, path: Iterable[str]) -> Any:
    """Walk nested mappings along ``path``; None if any step is missing."""
    current = obj
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def decode_token_meta(payload: Any, master: str | None = None) -> TokenMeta:
    """
    Build :class:`TokenMeta` from a ``/jettons/{master}`` response.

    Metadata is read from ``metadata``, then ``jetton``, then the top level.
    Total supply may sit in the metadata or at the top level under either
    spelling.
    """
    info = payload if isinstance(payload, Mapping) else {}
    meta: Mapping[str, Any] = info
    for key in META_CONTAINER_KEYS:
        candidate = info.get(key)
        if isinstance(candidate, Mapping) and candidate:
            meta = candidate
            break

    decimals = coerce_int(meta.get("decimals"))
    if decimals is None or decimals < 0:
        if meta.get("decimals") is not None:
            logger.warning(f"Unusable decimals {meta.get('decimals')!r}, using {DEFAULT_DECIMALS}")
        decimals = DEFAULT_DECIMALS

    raw_supply = first_present(meta, SUPPLY_KEYS)
    if raw_supply is None:
        raw_supply = first_present(info, SUPPLY_KEYS)
    total_supply = coerce_int(raw_supply)
    if total_supply is None or total_supply < 0:
        if raw_supply is not None:
            logger.warning(f"Unusable total supply {raw_supply!r}, using 0")
        total_supply = 0

    name = meta.get("name") or DEFAULT_NAME
    symbol = meta.get("symbol") or DEFAULT_SYMBOL

    return TokenMeta(
        master=master,
        decimals=decimals,
        total_supply=total_supply,
        name=str(name),
        symbol=str(symbol),
    )


def decode_holder(item: Any) -> HolderRecord:
    """
    Build one :class:`HolderRecord`; the rank is left for the aggregator.

    Raises:
        ValidationError: If the entry is not an object
    """
    if not isinstance(item, Mapping):
        raise ValidationError("holder", repr(item), "expected an object")

    address = ""
    for path in ADDRESS_PATHS:
        value = resolve_path(item, path)
        if isinstance(value, str) and value:
            address = value
            break

    raw_balance = first_present(item, BALANCE_KEYS)
    balance = coerce_int(raw_balance) if raw_balance is not None else 0
    if balance is None or balance < 0:
        logger.warning(f"Unusable balance {raw_balance!r} for {address or '?'}, using 0")
        balance = 0

    raw_change = first_present(item, CHANGE_KEYS)
    change = coerce_int(raw_change) if raw_change is not None else None

    return HolderRecord(address=address, balance=balance, balance_change_24h=change)


def extract_holder_items(payload: Any) -> list[Any]:
    """The holder list under any accepted key, or the payload itself."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in HOLDER_LIST_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def decode_holders_page(payload: Any, offset: int = 0, limit: int = 0) -> HoldersPage:
    """Decode a ``/jettons/{master}/holders`` response."""
    items = extract_holder_items(payload)
    total = None
    if isinstance(payload, Mapping):
        total = coerce_int(payload.get("total"))

    records = []
    for item in items:
        if not isinstance(item, Mapping):
            logger.warning(f"Skipping holder entry of type {type(item).__name__}")
            continue
        records.append(decode_holder(item))

    return HoldersPage(
        records=records,
        offset=offset,
        limit=limit,
        total=total if total is not None and total >= 0 else None,
    )
