"""
Journal lifecycle integration test.

Runs the journal service against a real SQLite ledger on disk:
    buy -> partial sell -> closing sell -> summary
    open position rollup with and without prices
    unlinked sell and sell against a closed buy
    portfolio value with realized and unrealized P&L
    cascade delete
    concurrent sells against one buy lot
"""

import threading
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from tradejournal.services.journal import (
    AssetType,
    JournalService,
    Lot,
    SQLiteLotLedger,
    TradeStatus,
)
from tradejournal.services.prices import StaticPriceGateway

pytestmark = pytest.mark.integration


def trade(side: str, symbol: str, price: str, quantity: str, **extra: Any) -> dict[str, Any]:
    return {
        "asset_type": extra.pop("asset_type", "crypto"),
        "symbol": symbol,
        "side": side,
        "entry_date": extra.pop("entry_date", "2024-01-15"),
        "entry_price": price,
        "quantity": quantity,
        **extra,
    }


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "journal.db"


@pytest.fixture
def journal(db_path):
    ledger = SQLiteLotLedger(db_path)
    yield JournalService(ledger)
    ledger.close()


@pytest.fixture
def btc_buy(journal: JournalService) -> Lot:
    """Buy BTC, qty 2 @ $100 (cost $200)."""
    return journal.create_trade(trade("buy", "BTC", "100", "2")).trade


class TestPartialThenFullExit:
    """Buy 2 BTC, sell 1 @ $150, then sell the last 1 @ $120."""

    def test_partial_exit(self, journal: JournalService, btc_buy: Lot) -> None:
        result = journal.create_trade(
            trade("sell", "BTC", "150", "1", entry_date="2024-02-01", linked_trade_id=btc_buy.id)
        )

        assert result.trade.pnl == Decimal("50")
        assert result.trade.pnl_percent == Decimal("50")
        buy = journal.get_trade(btc_buy.id)
        assert buy.remaining_quantity == Decimal("1")
        assert buy.status == TradeStatus.OPEN

    def test_closing_exit(self, journal: JournalService, btc_buy: Lot) -> None:
        journal.create_trade(trade("sell", "BTC", "150", "1", entry_date="2024-02-01", linked_trade_id=btc_buy.id))
        second = journal.create_trade(
            trade("sell", "BTC", "120", "1", entry_date="2024-03-01", linked_trade_id=btc_buy.id)
        )

        assert second.trade.pnl == Decimal("20")
        buy = journal.get_trade(btc_buy.id)
        assert buy.remaining_quantity == Decimal("0")
        assert buy.status == TradeStatus.CLOSED
        assert buy.exit_price == Decimal("120")
        assert buy.pnl == Decimal("20")
        assert buy.pnl_percent == Decimal("20")

        summary = journal.get_portfolio_summary()
        assert summary.realized_pnl == Decimal("70")
        assert summary.wins == 2
        assert summary.closed_positions == 1
        assert summary.open_positions == 0
        assert summary.total_trades == 3

    def test_state_survives_reopen(self, db_path, journal: JournalService, btc_buy: Lot) -> None:
        journal.create_trade(trade("sell", "BTC", "150", "1", entry_date="2024-02-01", linked_trade_id=btc_buy.id))

        reopened = SQLiteLotLedger(db_path)
        try:
            stored = JournalService(reopened).get_trade(btc_buy.id)
        finally:
            reopened.close()

        assert stored.remaining_quantity == Decimal("1")


class TestOpenPositions:
    """Buy ETH qty 5 @ $10 with no sell recorded."""

    def test_rollup(self, journal: JournalService) -> None:
        journal.create_trade(trade("buy", "ETH", "10", "5"))

        [valuation] = journal.get_open_positions()

        position = valuation.position
        assert position.total_quantity == Decimal("5")
        assert position.avg_entry_price == Decimal("10")
        assert position.total_cost_basis == Decimal("50")
        assert valuation.unrealized.pnl is None

    def test_rollup_with_price(self, journal: JournalService) -> None:
        journal.create_trade(trade("buy", "ETH", "10", "5"))
        gateway = StaticPriceGateway.from_prices({("ETH", AssetType.CRYPTO): Decimal("12")})

        [valuation] = journal.get_open_positions(gateway)

        assert valuation.unrealized.pnl == Decimal("10")
        assert valuation.unrealized.pnl_percent == Decimal("20")


class TestUnlinkedSell:
    """Sell referencing a trade id that does not exist."""

    def test_only_the_insert_happens(self, journal: JournalService, btc_buy: Lot) -> None:
        before = journal.get_trade(btc_buy.id)

        result = journal.create_trade(trade("sell", "BTC", "150", "1", linked_trade_id="no-such-trade"))

        assert result.trade.status == TradeStatus.OPEN
        assert result.trade.pnl is None
        assert len(result.warnings) == 1
        assert journal.get_trade(btc_buy.id) == before
        assert len(journal.list_trades()) == 2


class TestSellAgainstClosedBuy:
    """Sell linked to a buy that has nothing left."""

    def test_sell_closes_at_zero_and_buy_keeps_its_exit(self, journal: JournalService, btc_buy: Lot) -> None:
        journal.create_trade(trade("sell", "BTC", "150", "2", linked_trade_id=btc_buy.id))
        closed = journal.get_trade(btc_buy.id)

        result = journal.create_trade(trade("sell", "BTC", "120", "1", linked_trade_id=btc_buy.id))

        stored = journal.get_trade(result.trade.id)
        assert stored.status == TradeStatus.CLOSED
        assert stored.pnl == Decimal("0")
        assert result.unmatched_quantity == Decimal("1")
        assert journal.get_trade(btc_buy.id) == closed
        assert journal.get_portfolio_summary().realized_pnl == Decimal("100")


class TestPortfolioValuation:
    """Realized plus unrealized P&L over the SQLite ledger."""

    def test_total_pnl(self, journal: JournalService, btc_buy: Lot) -> None:
        journal.create_trade(trade("sell", "BTC", "150", "1", linked_trade_id=btc_buy.id))
        journal.create_trade(trade("buy", "AAPL", "150", "10", asset_type="stock"))
        gateway = StaticPriceGateway.from_prices({("BTC", AssetType.CRYPTO): Decimal("130")})

        valuation = journal.get_portfolio_valuation(gateway)

        assert valuation.unrealized_pnl == Decimal("30")
        assert valuation.total_pnl == Decimal("80")
        assert valuation.unpriced_positions == 1


class TestCascadeDelete:
    """Deleting a buy removes its linked sells."""

    def test_three_records_removed(self, journal: JournalService, btc_buy: Lot) -> None:
        other = journal.create_trade(trade("buy", "AAPL", "150", "10", asset_type="stock")).trade
        journal.create_trade(trade("sell", "BTC", "150", "1", linked_trade_id=btc_buy.id))
        journal.create_trade(trade("sell", "BTC", "160", "1", linked_trade_id=btc_buy.id))

        journal.delete_trade(btc_buy.id)

        assert [lot.id for lot in journal.list_trades()] == [other.id]


class TestConcurrentSells:
    """Two writers selling against one buy lot do not lose an update."""

    def test_separate_connections_serialize(self, db_path, btc_buy: Lot) -> None:
        errors: list[BaseException] = []
        barrier = threading.Barrier(2)

        def sell(price: str) -> None:
            ledger = SQLiteLotLedger(db_path, timeout=10.0)
            try:
                barrier.wait()
                JournalService(ledger).create_trade(trade("sell", "BTC", price, "1", linked_trade_id=btc_buy.id))
            except BaseException as exc:  # surfaced to the test thread below
                errors.append(exc)
            finally:
                ledger.close()

        threads = [threading.Thread(target=sell, args=(price,)) for price in ("150", "160")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []

        ledger = SQLiteLotLedger(db_path)
        try:
            buy = ledger.get_by_id(btc_buy.id)
            sells = [lot for lot in ledger.list_all() if lot.is_sell]
        finally:
            ledger.close()

        assert buy is not None
        assert buy.remaining_quantity == Decimal("0")
        assert buy.status == TradeStatus.CLOSED
        assert all(lot.status == TradeStatus.CLOSED for lot in sells)
        assert sum((lot.pnl for lot in sells if lot.pnl is not None), Decimal("0")) == Decimal("110")
