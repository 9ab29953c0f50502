"""Address resolution module."""

from .address_resolver import (
    AddressResolver,
    LedgerAddress,
    normalize_address,
    parse_address,
    to_friendly_non_bounceable,
)

__all__ = [
    "AddressResolver",
    "LedgerAddress",
    "normalize_address",
    "parse_address",
    "to_friendly_non_bounceable",
]
