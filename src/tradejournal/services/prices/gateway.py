"""Price gateway implementations.

- StaticPriceGateway: quotes held in memory or loaded from a YAML file
- CachingPriceGateway: time-bounded cache in front of any gateway that
  turns upstream failures into "no price"
"""

import threading
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from tradejournal.services.journal.models import AssetType, utcnow
from tradejournal.services.prices.exceptions import QuotesFileError
from tradejournal.services.prices.interface import IPriceGateway
from tradejournal.services.prices.models import PriceQuote
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()

QuoteKey = tuple[str, AssetType]


class StaticPriceGateway:
    """
    Gateway serving a fixed set of quotes.

    Example:
        >>> gateway = StaticPriceGateway.from_prices({("BTC", AssetType.CRYPTO): Decimal("65000")})
        >>> gateway.get_price("btc", AssetType.CRYPTO).price
        Decimal('65000')
    """

    def __init__(self, quotes: list[PriceQuote] | None = None) -> None:
        self._quotes: dict[QuoteKey, PriceQuote] = {}
        for quote in quotes or []:
            self.set_quote(quote)

    @classmethod
    def from_prices(cls, prices: Mapping[QuoteKey, Decimal]) -> "StaticPriceGateway":
        """Build from a {(symbol, asset_type): price} mapping."""
        return cls(
            [
                PriceQuote(symbol=symbol, asset_type=asset_type, price=price)
                for (symbol, asset_type), price in prices.items()
            ]
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "StaticPriceGateway":
        """
        Load quotes from YAML.

        Format (a bare number is shorthand for ``{price: number}``):

            crypto:
              BTC: 65000
            stock:
              AAPL:
                price: 190.5
                change_percent_24h: 1.2
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise QuotesFileError(f"Cannot read quotes file {path}: {e}") from e

        if not isinstance(data, dict):
            raise QuotesFileError(f"Quotes file {path} must map asset types to symbols")

        quotes = []
        for asset_type_name, symbols in data.items():
            try:
                asset_type = AssetType(asset_type_name)
            except ValueError as e:
                raise QuotesFileError(f"Unknown asset type {asset_type_name!r} in {path}") from e
            if symbols is not None and not isinstance(symbols, dict):
                raise QuotesFileError(f"Quotes for {asset_type_name!r} in {path} must map symbols to prices")

            for symbol, value in (symbols or {}).items():
                fields: dict[str, Any] = dict(value) if isinstance(value, dict) else {"price": value}
                # Go through str so YAML floats become exact decimals
                fields = {key: str(item) if isinstance(item, float) else item for key, item in fields.items()}
                try:
                    quotes.append(PriceQuote(symbol=str(symbol), asset_type=asset_type, **fields))
                except (PydanticValidationError, TypeError) as e:
                    raise QuotesFileError(f"Invalid quote for {symbol} in {path}: {e}") from e
        return cls(quotes)

    def set_quote(self, quote: PriceQuote) -> None:
        self._quotes[(quote.symbol, quote.asset_type)] = quote

    def get_price(self, symbol: str, asset_type: AssetType) -> PriceQuote | None:
        return self._quotes.get((symbol.upper(), asset_type))


class CachingPriceGateway:
    """
    Cache quotes from an upstream gateway for a fixed number of minutes.

    Upstream exceptions are logged and reported as None so a market-data
    outage only hides unrealized P&L. Misses are not cached.

    Example:
        >>> gateway = CachingPriceGateway(upstream, expiry_minutes=5)
        >>> gateway.get_price("BTC", AssetType.CRYPTO)  # fetched
        >>> gateway.get_price("BTC", AssetType.CRYPTO)  # cached for 5 minutes
    """

    def __init__(
        self,
        upstream: IPriceGateway,
        expiry_minutes: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """
        Initialize cache.

        Args:
            upstream: Gateway to fetch from on a miss
            expiry_minutes: Lifetime of a cached quote
            clock: Time source (injectable for tests)
        """
        if expiry_minutes < 0:
            raise ValueError(f"expiry_minutes cannot be negative, got {expiry_minutes}")
        self._upstream = upstream
        self._expiry = timedelta(minutes=expiry_minutes)
        self._clock = clock
        self._cache: dict[QuoteKey, tuple[datetime, PriceQuote]] = {}
        self._lock = threading.Lock()

    def get_price(self, symbol: str, asset_type: AssetType) -> PriceQuote | None:
        key = (symbol.upper(), asset_type)
        now = self._clock()

        with self._lock:
            cached = self._cache.get(key)
        if cached is not None and now - cached[0] < self._expiry:
            return cached[1]

        try:
            quote = self._upstream.get_price(key[0], asset_type)
        except Exception as exc:
            logger.warning(
                "price_gateway.fetch_failed",
                symbol=key[0],
                asset_type=asset_type.value,
                error=str(exc),
            )
            return None

        if quote is None:
            logger.debug("price_gateway.no_quote", symbol=key[0], asset_type=asset_type.value)
            return None

        with self._lock:
            self._cache[key] = (now, quote)
        return quote

    def invalidate(self, symbol: str | None = None, asset_type: AssetType | None = None) -> None:
        """Drop cached quotes (all, or those matching symbol and/or asset type)."""
        with self._lock:
            if symbol is None and asset_type is None:
                self._cache.clear()
                return
            for key in list(self._cache):
                if symbol is not None and key[0] != symbol.upper():
                    continue
                if asset_type is not None and key[1] != asset_type:
                    continue
                del self._cache[key]


def lookup_prices(
    gateway: IPriceGateway | None,
    keys: list[QuoteKey],
) -> dict[QuoteKey, Decimal | None]:
    """Resolve the current price of each (symbol, asset_type); None where unavailable."""
    prices: dict[QuoteKey, Decimal | None] = {}
    for symbol, asset_type in keys:
        quote = gateway.get_price(symbol, asset_type) if gateway is not None else None
        prices[(symbol, asset_type)] = quote.price if quote is not None else None
    return prices
