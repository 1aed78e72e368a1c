"""Unit tests for journal data models."""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from tradejournal.services.journal.models import (
    AssetType,
    Lot,
    LotFilter,
    TradeInput,
    TradeSide,
    TradeStatus,
    TradeUpdate,
)


class TestLot:
    """Test Lot model."""

    def test_create_buy_lot(self, buy: Lot) -> None:
        """Test creating a buy lot with defaults."""
        assert buy.side == TradeSide.BUY
        assert buy.status == TradeStatus.OPEN
        assert buy.remaining_quantity == Decimal("2")
        assert buy.pnl is None
        assert buy.hypothesis == ""
        assert len(buy.id) == 36

    def test_symbol_upper_cased(self, make_lot) -> None:
        """Test symbol is normalized to upper case."""
        lot = make_lot(symbol="  eth ")
        assert lot.symbol == "ETH"

    def test_empty_symbol_rejected(self, make_lot) -> None:
        """Test symbol is required."""
        with pytest.raises(ValidationError, match="Symbol is required"):
            make_lot(symbol="   ")

    @pytest.mark.parametrize("price", ["0", "-1"])
    def test_non_positive_entry_price_rejected(self, make_lot, price: str) -> None:
        """Test entry price must be positive."""
        with pytest.raises(ValidationError, match="Entry price must be a positive number"):
            make_lot(entry_price=price)

    @pytest.mark.parametrize("quantity", ["0", "-5"])
    def test_non_positive_quantity_rejected(self, make_lot, quantity: str) -> None:
        """Test quantity must be positive."""
        with pytest.raises(ValidationError, match="Quantity must be a positive number"):
            make_lot(quantity=quantity, remaining_quantity=None)

    def test_remaining_above_quantity_rejected(self, make_lot) -> None:
        """Test remaining quantity cannot exceed original quantity."""
        with pytest.raises(ValidationError, match="exceeds original quantity"):
            make_lot(quantity="2", remaining_quantity=Decimal("3"))

    def test_negative_remaining_rejected(self, make_lot) -> None:
        """Test remaining quantity cannot be negative."""
        with pytest.raises(ValidationError, match="cannot be negative"):
            make_lot(remaining_quantity=Decimal("-1"))

    def test_effective_quantity_falls_back_to_quantity(self, make_lot) -> None:
        """Test legacy lots without remaining quantity count as unreduced."""
        lot = make_lot(quantity="3", remaining_quantity=None)
        assert lot.effective_quantity == Decimal("3")

    def test_effective_quantity_uses_remaining(self, make_lot) -> None:
        lot = make_lot(quantity="3", remaining_quantity=Decimal("1"))
        assert lot.effective_quantity == Decimal("1")

    def test_lot_is_immutable(self, buy: Lot) -> None:
        """Test lots cannot be mutated in place."""
        with pytest.raises(ValidationError):
            buy.status = TradeStatus.CLOSED  # type: ignore[misc]

    def test_side_and_status_helpers(self, make_lot) -> None:
        sell = make_lot(side=TradeSide.SELL, status=TradeStatus.CLOSED)
        assert sell.is_sell and not sell.is_buy
        assert sell.is_closed and not sell.is_open


class TestTradeInput:
    """Test create-trade payload."""

    def test_buy_starts_with_full_remaining(self) -> None:
        """Test a new buy lot carries remaining_quantity == quantity."""
        lot = TradeInput(
            asset_type=AssetType.STOCK,
            symbol="aapl",
            side=TradeSide.BUY,
            entry_date=date(2024, 3, 1),
            entry_price=Decimal("150"),
            quantity=Decimal("10"),
        ).to_lot()

        assert lot.symbol == "AAPL"
        assert lot.remaining_quantity == Decimal("10")
        assert lot.status == TradeStatus.OPEN

    def test_sell_has_no_remaining(self) -> None:
        lot = TradeInput(
            asset_type="crypto",
            symbol="BTC",
            side="sell",
            entry_date="2024-03-01",
            entry_price="150",
            quantity="1",
            linked_trade_id="abc",
        ).to_lot()

        assert lot.remaining_quantity is None
        assert lot.linked_trade_id == "abc"

    def test_empty_link_means_no_link(self) -> None:
        """Test an empty linked_trade_id string is treated as absent."""
        trade = TradeInput(
            asset_type="crypto",
            symbol="BTC",
            side="sell",
            entry_date="2024-03-01",
            entry_price="150",
            quantity="1",
            linked_trade_id="",
        )
        assert trade.linked_trade_id is None

    def test_string_numbers_parse_exactly(self) -> None:
        """Test decimal strings are kept exact."""
        trade = TradeInput(
            asset_type="crypto",
            symbol="BTC",
            side="buy",
            entry_date="2024-03-01",
            entry_price="0.1",
            quantity="0.3",
        )
        assert trade.entry_price * 3 == Decimal("0.3")

    def test_missing_fields_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            TradeInput(symbol="BTC", side="buy")  # type: ignore[call-arg]

        missing = {error["loc"][0] for error in exc_info.value.errors()}
        assert {"asset_type", "entry_date", "entry_price", "quantity"} <= missing

    def test_unknown_asset_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TradeInput(
                asset_type="bond",
                symbol="T",
                side="buy",
                entry_date="2024-03-01",
                entry_price="100",
                quantity="1",
            )


class TestTradeUpdate:
    """Test edit payload."""

    def test_changes_only_supplied_fields(self) -> None:
        """Test only explicitly supplied fields are reported as changes."""
        update = TradeUpdate(notes="moved stop", stop_loss=None)
        assert update.changes() == {"notes": "moved stop", "stop_loss": None}

    def test_empty_update_has_no_changes(self) -> None:
        assert TradeUpdate().changes() == {}

    def test_exit_price_must_be_positive(self) -> None:
        with pytest.raises(ValidationError, match="Exit price must be a positive number"):
            TradeUpdate(exit_price=Decimal("0"))


class TestLotFilter:
    """Test list filter."""

    def test_matches_all_when_empty(self, buy: Lot) -> None:
        assert LotFilter().matches(buy)

    def test_matches_each_criterion(self, make_lot) -> None:
        lot = make_lot(symbol="ETH", asset_type=AssetType.CRYPTO)

        assert LotFilter(symbol="eth").matches(lot)
        assert LotFilter(status="open", asset_type="crypto").matches(lot)
        assert not LotFilter(status="closed").matches(lot)
        assert not LotFilter(asset_type="stock").matches(lot)
        assert not LotFilter(symbol="BTC").matches(lot)
