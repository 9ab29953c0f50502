"""Jetton Holder Analytics.

Fetches holder balances for a single jetton master from TonAPI under a strict
request budget, and derives exact holder rankings, top-N concentration and
sortable, paginated holder views.
"""

__version__ = "0.1.0"
