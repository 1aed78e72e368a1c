"""Price gateway for current market quotes.

The journal only consumes a price (or None) per (symbol, asset_type).
Fetching from a market-data provider is left to IPriceGateway
implementations outside this package.

Key components:
- IPriceGateway: Protocol interface
- PriceQuote: Quote model
- StaticPriceGateway: Fixed quotes (in memory or YAML)
- CachingPriceGateway: Expiring cache that degrades failures to None
"""

from tradejournal.services.prices.gateway import CachingPriceGateway, StaticPriceGateway, lookup_prices
from tradejournal.services.prices.exceptions import QuotesFileError
from tradejournal.services.prices.interface import IPriceGateway
from tradejournal.services.prices.models import PriceQuote

__all__ = [
    "IPriceGateway",
    "PriceQuote",
    "QuotesFileError",
    "StaticPriceGateway",
    "CachingPriceGateway",
    "lookup_prices",
]
