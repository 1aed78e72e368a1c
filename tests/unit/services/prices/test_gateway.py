"""Unit tests for price gateways."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from tradejournal.services.journal.models import AssetType
from tradejournal.services.journal.exceptions import JournalError
from tradejournal.services.prices import (
    CachingPriceGateway,
    PriceQuote,
    QuotesFileError,
    StaticPriceGateway,
    lookup_prices,
)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int) -> None:
        self.now += timedelta(minutes=minutes)


class CountingGateway:
    """Upstream that counts calls and can be made to fail."""

    def __init__(self, price: str | None = "100") -> None:
        self.calls = 0
        self.price = price
        self.error: Exception | None = None

    def get_price(self, symbol: str, asset_type: AssetType) -> PriceQuote | None:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.price is None:
            return None
        return PriceQuote(symbol=symbol, asset_type=asset_type, price=Decimal(self.price))


class TestPriceQuote:
    def test_symbol_upper_cased(self) -> None:
        quote = PriceQuote(symbol="btc", asset_type="crypto", price="65000")
        assert quote.symbol == "BTC"
        assert quote.price == Decimal("65000")

    def test_price_must_be_positive(self) -> None:
        with pytest.raises(ValidationError, match="Price must be positive"):
            PriceQuote(symbol="BTC", asset_type="crypto", price="0")


class TestStaticPriceGateway:
    """Test fixed quotes."""

    def test_lookup_is_case_insensitive(self) -> None:
        gateway = StaticPriceGateway.from_prices({("BTC", AssetType.CRYPTO): Decimal("65000")})

        quote = gateway.get_price("btc", AssetType.CRYPTO)
        assert quote is not None
        assert quote.price == Decimal("65000")

    def test_keyed_by_asset_type(self) -> None:
        gateway = StaticPriceGateway.from_prices({("COIN", AssetType.STOCK): Decimal("200")})
        assert gateway.get_price("COIN", AssetType.CRYPTO) is None

    def test_from_yaml(self, tmp_path) -> None:
        path = tmp_path / "quotes.yaml"
        path.write_text(
            "crypto:\n"
            "  BTC: 65000\n"
            "stock:\n"
            "  aapl:\n"
            "    price: 190.1\n"
            "    change_percent_24h: 1.2\n"
        )

        gateway = StaticPriceGateway.from_yaml(path)

        btc = gateway.get_price("BTC", AssetType.CRYPTO)
        aapl = gateway.get_price("AAPL", AssetType.STOCK)
        assert btc is not None and btc.price == Decimal("65000")
        assert aapl is not None
        assert aapl.price == Decimal("190.1")
        assert aapl.change_percent_24h == Decimal("1.2")

    @pytest.mark.parametrize(
        "content,message",
        [
            ("bond:\n  T: 100\n", "Unknown asset type"),
            ("crypto:\n  BTC: 0\n", "Invalid quote for BTC"),
            ("crypto:\n  BTC: {price: -5}\n", "Invalid quote for BTC"),
            ("crypto: [BTC]\n", "must map symbols"),
            ("- BTC\n", "must map asset types"),
            ("crypto: {BTC: [unclosed\n", "Cannot read quotes file"),
        ],
    )
    def test_from_yaml_rejects_bad_file(self, tmp_path, content: str, message: str) -> None:
        path = tmp_path / "quotes.yaml"
        path.write_text(content)

        with pytest.raises(QuotesFileError, match=message) as exc_info:
            StaticPriceGateway.from_yaml(path)

        assert isinstance(exc_info.value, JournalError)

    def test_from_yaml_missing_file(self, tmp_path) -> None:
        with pytest.raises(QuotesFileError, match="Cannot read quotes file"):
            StaticPriceGateway.from_yaml(tmp_path / "absent.yaml")

    def test_set_quote_replaces(self) -> None:
        gateway = StaticPriceGateway()
        gateway.set_quote(PriceQuote(symbol="ETH", asset_type="crypto", price="10"))
        gateway.set_quote(PriceQuote(symbol="ETH", asset_type="crypto", price="12"))

        quote = gateway.get_price("ETH", AssetType.CRYPTO)
        assert quote is not None and quote.price == Decimal("12")


class TestCachingPriceGateway:
    """Test the expiring quote cache."""

    def test_hit_within_expiry(self) -> None:
        upstream = CountingGateway()
        clock = FakeClock()
        gateway = CachingPriceGateway(upstream, expiry_minutes=5, clock=clock)

        gateway.get_price("BTC", AssetType.CRYPTO)
        clock.advance(4)
        gateway.get_price("btc", AssetType.CRYPTO)

        assert upstream.calls == 1

    def test_refetch_after_expiry(self) -> None:
        upstream = CountingGateway()
        clock = FakeClock()
        gateway = CachingPriceGateway(upstream, expiry_minutes=5, clock=clock)

        gateway.get_price("BTC", AssetType.CRYPTO)
        clock.advance(5)
        gateway.get_price("BTC", AssetType.CRYPTO)

        assert upstream.calls == 2

    def test_upstream_failure_degrades_to_none(self) -> None:
        upstream = CountingGateway()
        upstream.error = ConnectionError("provider down")
        gateway = CachingPriceGateway(upstream)

        assert gateway.get_price("BTC", AssetType.CRYPTO) is None

    def test_missing_quote_not_cached(self) -> None:
        upstream = CountingGateway(price=None)
        gateway = CachingPriceGateway(upstream, clock=FakeClock())

        assert gateway.get_price("BTC", AssetType.CRYPTO) is None
        assert gateway.get_price("BTC", AssetType.CRYPTO) is None
        assert upstream.calls == 2

    def test_invalidate_by_symbol(self) -> None:
        upstream = CountingGateway()
        gateway = CachingPriceGateway(upstream, clock=FakeClock())
        gateway.get_price("BTC", AssetType.CRYPTO)
        gateway.get_price("ETH", AssetType.CRYPTO)

        gateway.invalidate(symbol="btc")
        gateway.get_price("BTC", AssetType.CRYPTO)
        gateway.get_price("ETH", AssetType.CRYPTO)

        assert upstream.calls == 3

    def test_negative_expiry_rejected(self) -> None:
        with pytest.raises(ValueError):
            CachingPriceGateway(CountingGateway(), expiry_minutes=-1)


def test_lookup_prices_without_gateway() -> None:
    assert lookup_prices(None, [("BTC", AssetType.CRYPTO)]) == {("BTC", AssetType.CRYPTO): None}


def test_lookup_prices_mixes_hits_and_misses() -> None:
    gateway = StaticPriceGateway.from_prices({("BTC", AssetType.CRYPTO): Decimal("5")})

    prices = lookup_prices(gateway, [("BTC", AssetType.CRYPTO), ("AAPL", AssetType.STOCK)])

    assert prices == {("BTC", AssetType.CRYPTO): Decimal("5"), ("AAPL", AssetType.STOCK): None}
