"""Ledger index (TonAPI) client and payload decoding."""

from .decoding import decode_holder, decode_holders_page, decode_token_meta
from .tonapi_client import TonApiClient

__all__ = [
    "TonApiClient",
    "decode_holder",
    "decode_holders_page",
    "decode_token_meta",
]
