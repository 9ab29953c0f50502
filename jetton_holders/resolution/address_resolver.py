"""Address resolution - maps raw and friendly TON addresses to one identity.

An account has two textual encodings:
- raw: ``<workchain>:<64 hex digits>``, the canonical lookup key
- friendly: 48 base64 (or base64url) characters carrying flags, workchain,
  hash and checksum

Tag matching and search must treat both as the same account, so everything is
normalized to the raw form before any equality or containment test. Encoding
and checksum handling are delegated to ``pytoniq_core.Address``.
"""

import logging
import re
from dataclasses import dataclass

from pytoniq_core.boc.address import Address, AddressError

from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_RAW_PATTERN = re.compile(r"^(-?\d+):([0-9a-fA-F]{64})$")
_FRIENDLY_PATTERN = re.compile(r"^[A-Za-z0-9+/_-]{48}$")


@dataclass(frozen=True)
class LedgerAddress:
    """A parsed account address."""

    workchain: int
    hash_part: bytes
    bounceable: bool = True
    test_only: bool = False

    def _address(self) -> Address:
        return Address((self.workchain, self.hash_part))

    def to_raw(self) -> str:
        """Canonical raw form, lowercase hex."""
        return self._address().to_str(is_user_friendly=False)

    def to_friendly(
        self,
        bounceable: bool = False,
        url_safe: bool = True,
        test_only: bool = False,
    ) -> str:
        """Friendly form; non-bounceable and URL-safe by default for display."""
        return self._address().to_str(
            is_user_friendly=True,
            is_url_safe=url_safe,
            is_bounceable=bounceable,
            is_test_only=test_only,
        )


def parse_address(text: str) -> LedgerAddress:
    """
    Parse a raw or friendly address.

    Raises:
        ValidationError: If the text is neither form or fails its checksum
    """
    if not isinstance(text, str):
        raise ValidationError("address", repr(text), "expected a string")
    candidate = text.strip()

    raw = _RAW_PATTERN.match(candidate)
    if raw:
        workchain = int(raw.group(1))
        if not -128 <= workchain <= 127:
            raise ValidationError("address", text, "workchain out of range")
        return LedgerAddress(workchain=workchain, hash_part=bytes.fromhex(raw.group(2)))

    if not _FRIENDLY_PATTERN.match(candidate):
        raise ValidationError("address", text, "not a raw or friendly address")
    try:
        parsed = Address(candidate)
    except (AddressError, ValueError) as e:
        raise ValidationError("address", text, str(e) or "invalid friendly address")

    return LedgerAddress(
        workchain=parsed.wc,
        hash_part=bytes(parsed.hash_part),
        bounceable=bool(parsed.is_bounceable),
        test_only=bool(parsed.is_test_only),
    )


def normalize_address(text: str) -> str:
    """
    Canonical lookup key for an address.

    Unparseable input comes back stripped but otherwise untouched, the same
    way it would be displayed.
    """
    try:
        return parse_address(text).to_raw()
    except ValidationError:
        return text.strip() if isinstance(text, str) else ""


def to_friendly_non_bounceable(text: str) -> str:
    """Display form of an address; falls back to the input when unparseable."""
    try:
        return parse_address(text).to_friendly(bounceable=False, url_safe=True)
    except ValidationError:
        return text


class AddressResolver:
    """Caching front for address normalization, display and search."""

    def __init__(self, test_only: bool = False):
        """
        Initialize the resolver.

        Args:
            test_only: Emit friendly addresses with the testnet flag
        """
        self.test_only = test_only
        self._cache: dict[str, LedgerAddress | None] = {}

    def _lookup(self, text: str) -> LedgerAddress | None:
        if text not in self._cache:
            try:
                self._cache[text] = parse_address(text)
            except ValidationError as e:
                logger.debug(f"Unparseable address {text!r}: {e.reason}")
                self._cache[text] = None
        return self._cache[text]

    def normalize(self, text: str) -> str:
        """Canonical raw key (see :func:`normalize_address`)."""
        parsed = self._lookup(text)
        return parsed.to_raw() if parsed else text.strip()

    def friendly(self, text: str) -> str:
        """Non-bounceable URL-safe display form."""
        parsed = self._lookup(text)
        if parsed is None:
            return text
        return parsed.to_friendly(bounceable=False, url_safe=True, test_only=self.test_only)

    def same_account(self, left: str, right: str) -> bool:
        """True when both texts address the same account."""
        return self.normalize(left) == self.normalize(right)

    def matches(self, needle: str, address: str) -> bool:
        """
        Search predicate for a holder address.

        A needle that is itself a full address matches by identity. Any other
        needle matches case-insensitively as a substring of either the raw or
        the friendly form. An empty needle matches everything.
        """
        needle = (needle or "").strip()
        if not needle:
            return True

        if self._lookup(needle) is not None:
            return self.same_account(needle, address)

        lowered = needle.lower()
        raw = self.normalize(address).lower()
        friendly = self.friendly(address).lower()
        return lowered in raw or lowered in friendly

    def clear_cache(self) -> None:
        """Clear the cache."""
        self._cache.clear()
