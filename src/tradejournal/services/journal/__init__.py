"""Journal service for lot tracking and P&L.

This module records buy and sell executions as lots, matches sells against
the buy lot they close, and derives open positions, realized P&L and win
rate from the ledger.

Key components:
- JournalService: Main service implementation
- IJournalService / ILotLedger: Protocol interfaces
- Position engine: record_sell, recompute_buy_on_edit
- Aggregation engine: open positions, unrealized P&L, portfolio summary
- Ledgers: InMemoryLotLedger, SQLiteLotLedger

Example:
    >>> from tradejournal.services.journal import JournalService, InMemoryLotLedger
    >>>
    >>> journal = JournalService(InMemoryLotLedger())
    >>> buy = journal.create_trade({
    ...     "asset_type": "stock",
    ...     "symbol": "AAPL",
    ...     "side": "buy",
    ...     "entry_date": "2024-03-01",
    ...     "entry_price": "150",
    ...     "quantity": "10",
    ... }).trade
    >>>
    >>> # Close part of the position
    >>> journal.create_trade({
    ...     "asset_type": "stock",
    ...     "symbol": "AAPL",
    ...     "side": "sell",
    ...     "entry_date": "2024-04-01",
    ...     "entry_price": "170",
    ...     "quantity": "4",
    ...     "linked_trade_id": buy.id,
    ... })
    >>>
    >>> print(journal.get_portfolio_summary().realized_pnl)
"""

from tradejournal.services.journal.aggregation import (
    aggregate_open_positions,
    compute_portfolio_summary,
    compute_portfolio_valuation,
    compute_unrealized_pnl,
    group_lots_by_asset,
    value_positions,
)
from tradejournal.services.journal.cache import TradeCache
from tradejournal.services.journal.exceptions import (
    JournalError,
    LedgerError,
    TradeNotFoundError,
    TradeValidationError,
    UnlinkedSellWarning,
)
from tradejournal.services.journal.interface import IJournalService, ILotLedger
from tradejournal.services.journal.ledger import InMemoryLotLedger, SQLiteLotLedger, create_ledger
from tradejournal.services.journal.models import (
    AggregatedPosition,
    AssetGroup,
    AssetType,
    CreateTradeResult,
    Lot,
    LotFilter,
    PortfolioSummary,
    PortfolioValuation,
    PositionValuation,
    SellResult,
    TradeInput,
    TradeSide,
    TradeStatus,
    TradeUpdate,
    UnrealizedPnl,
)
from tradejournal.services.journal.position_engine import recompute_buy_on_edit, record_sell
from tradejournal.services.journal.service import JournalService

__all__ = [
    # Service
    "IJournalService",
    "JournalService",
    "TradeCache",
    # Ledger
    "ILotLedger",
    "InMemoryLotLedger",
    "SQLiteLotLedger",
    "create_ledger",
    # Engines
    "record_sell",
    "recompute_buy_on_edit",
    "aggregate_open_positions",
    "compute_unrealized_pnl",
    "value_positions",
    "compute_portfolio_summary",
    "compute_portfolio_valuation",
    "group_lots_by_asset",
    # Models
    "Lot",
    "AssetType",
    "TradeSide",
    "TradeStatus",
    "TradeInput",
    "TradeUpdate",
    "LotFilter",
    "SellResult",
    "CreateTradeResult",
    "AggregatedPosition",
    "UnrealizedPnl",
    "PositionValuation",
    "AssetGroup",
    "PortfolioSummary",
    "PortfolioValuation",
    # Errors
    "JournalError",
    "TradeValidationError",
    "TradeNotFoundError",
    "LedgerError",
    "UnlinkedSellWarning",
]
