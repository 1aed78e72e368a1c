"""Price gateway interface (Protocol)."""

from typing import Protocol

from tradejournal.services.journal.models import AssetType
from tradejournal.services.prices.models import PriceQuote


class IPriceGateway(Protocol):
    """
    Source of current market prices.

    Lookups are keyed by (symbol.upper(), asset_type). A missing or failed
    quote is None, never an exception: callers show the position without
    unrealized P&L.
    """

    def get_price(self, symbol: str, asset_type: AssetType) -> PriceQuote | None:
        """Latest quote, or None when unavailable."""
        ...
