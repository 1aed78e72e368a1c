"""Data models for the journal service.

Defines all core entities for trade accounting:
- Lot: One recorded trade execution (buy or sell)
- TradeInput / TradeUpdate: Validated create and edit payloads
- SellResult / CreateTradeResult: Outcomes of recording a sell
- AggregatedPosition / PositionValuation: Open position rollups
- AssetGroup: Display grouping of all lots for one asset
- PortfolioSummary: Realized P&L and win-rate statistics
- PortfolioValuation: Open positions at market combined with realized P&L
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tradejournal.services.journal.exceptions import UnlinkedSellWarning


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssetType(str, Enum):
    """Asset class of a traded symbol."""

    CRYPTO = "crypto"
    STOCK = "stock"


class TradeSide(str, Enum):
    """Side of a trade execution."""

    BUY = "buy"
    SELL = "sell"


class TradeStatus(str, Enum):
    """Lifecycle status of a lot."""

    OPEN = "open"
    CLOSED = "closed"


def _normalize_symbol(v: str) -> str:
    symbol = v.strip().upper()
    if not symbol:
        raise ValueError("Symbol is required")
    return symbol


def _require_positive(v: Decimal | None, label: str) -> Decimal | None:
    if v is not None and v <= 0:
        raise ValueError(f"{label} must be a positive number, got {v}")
    return v


class Lot(BaseModel):
    """
    Individual lot representing a single trade execution.

    Buy lots track how much of their original quantity is still held in
    ``remaining_quantity``; sell lots reference the buy they close through
    ``linked_trade_id``. Lots are immutable: the position engine and the
    ledger produce updated copies.

    Attributes:
        id: Unique identifier (uuid4 string)
        asset_type: crypto or stock
        symbol: Upper-cased ticker
        side: buy or sell
        entry_date: Execution date (exit date for sells)
        entry_price: Execution price per unit
        quantity: Original executed quantity (never reduced by matching)
        remaining_quantity: Unmatched quantity of a buy lot (None = unreduced)
        stop_loss: Advisory stop level
        take_profit: Advisory target level
        hypothesis: Free-text trade thesis
        status: open or closed
        exit_date: Date of the closing sell (buy lots)
        exit_price: Price of the closing sell (buy lots)
        pnl: Realized P&L of this record
        pnl_percent: Realized P&L as percent of entry price
        notes: Free-text notes
        linked_trade_id: Buy lot this sell closes
        created_at: Creation time (UTC)
        updated_at: Last mutation time (UTC)

    Example:
        >>> lot = Lot(
        ...     asset_type=AssetType.CRYPTO,
        ...     symbol="btc",
        ...     side=TradeSide.BUY,
        ...     entry_date=date(2024, 1, 15),
        ...     entry_price=Decimal("100"),
        ...     quantity=Decimal("2"),
        ...     remaining_quantity=Decimal("2"),
        ... )
        >>> lot.symbol
        'BTC'
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    asset_type: AssetType
    symbol: str
    side: TradeSide
    entry_date: date
    entry_price: Decimal
    quantity: Decimal
    remaining_quantity: Decimal | None = None

    # Advisory levels, not enforced
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None

    hypothesis: str = ""
    status: TradeStatus = TradeStatus.OPEN

    # Stamped on buy lots by the closing sell
    exit_date: date | None = None
    exit_price: Decimal | None = None
    pnl: Decimal | None = None
    pnl_percent: Decimal | None = None

    notes: str = ""
    linked_trade_id: str | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        """Normalize symbol to upper case."""
        return _normalize_symbol(v)

    @field_validator("entry_price")
    @classmethod
    def validate_entry_price(cls, v: Decimal) -> Decimal:
        """Validate entry price is positive."""
        if v <= 0:
            raise ValueError(f"Entry price must be a positive number, got {v}")
        return v

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: Decimal) -> Decimal:
        """Validate quantity is positive."""
        if v <= 0:
            raise ValueError(f"Quantity must be a positive number, got {v}")
        return v

    @field_validator("remaining_quantity")
    @classmethod
    def validate_remaining_quantity(cls, v: Decimal | None) -> Decimal | None:
        """Validate remaining quantity is not negative."""
        if v is not None and v < 0:
            raise ValueError(f"Remaining quantity cannot be negative, got {v}")
        return v

    @model_validator(mode="after")
    def validate_remaining_within_quantity(self) -> "Lot":
        """Remaining quantity must stay within [0, quantity]."""
        if self.remaining_quantity is not None and self.remaining_quantity > self.quantity:
            raise ValueError(
                f"Remaining quantity {self.remaining_quantity} exceeds original quantity {self.quantity}"
            )
        return self

    @property
    def effective_quantity(self) -> Decimal:
        """Unmatched quantity, treating a missing remaining_quantity as unreduced."""
        if self.remaining_quantity is None:
            return self.quantity
        return self.remaining_quantity

    @property
    def is_buy(self) -> bool:
        return self.side == TradeSide.BUY

    @property
    def is_sell(self) -> bool:
        return self.side == TradeSide.SELL

    @property
    def is_open(self) -> bool:
        return self.status == TradeStatus.OPEN

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED

    model_config = ConfigDict(frozen=True)  # Immutable; use model_copy for changes


class TradeInput(BaseModel):
    """
    Fields accepted by create-trade.

    Validates everything a new lot needs before the ledger is touched.
    """

    asset_type: AssetType
    symbol: str
    side: TradeSide
    entry_date: date
    entry_price: Decimal
    quantity: Decimal
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None
    hypothesis: str = ""
    notes: str = ""
    linked_trade_id: str | None = None

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        return _normalize_symbol(v)

    @field_validator("entry_price")
    @classmethod
    def validate_entry_price(cls, v: Decimal) -> Decimal:
        return _require_positive(v, "Entry price")  # type: ignore[return-value]

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: Decimal) -> Decimal:
        return _require_positive(v, "Quantity")  # type: ignore[return-value]

    @field_validator("linked_trade_id")
    @classmethod
    def validate_linked_trade_id(cls, v: str | None) -> str | None:
        # Empty string from forms means "no link"
        return v or None

    def to_lot(self) -> Lot:
        """Build the new lot; buys start with their full quantity remaining."""
        return Lot(
            asset_type=self.asset_type,
            symbol=self.symbol,
            side=self.side,
            entry_date=self.entry_date,
            entry_price=self.entry_price,
            quantity=self.quantity,
            remaining_quantity=self.quantity if self.side == TradeSide.BUY else None,
            stop_loss=self.stop_loss,
            take_profit=self.take_profit,
            hypothesis=self.hypothesis,
            notes=self.notes,
            linked_trade_id=self.linked_trade_id,
        )


class TradeUpdate(BaseModel):
    """
    Fields accepted by update-trade.

    Every field is optional; only the fields explicitly supplied are applied
    (see ``changes()``).
    """

    asset_type: AssetType | None = None
    symbol: str | None = None
    side: TradeSide | None = None
    entry_date: date | None = None
    entry_price: Decimal | None = None
    quantity: Decimal | None = None
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None
    hypothesis: str | None = None
    status: TradeStatus | None = None
    exit_date: date | None = None
    exit_price: Decimal | None = None
    pnl: Decimal | None = None
    pnl_percent: Decimal | None = None
    notes: str | None = None

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str | None) -> str | None:
        return None if v is None else _normalize_symbol(v)

    @field_validator("entry_price")
    @classmethod
    def validate_entry_price(cls, v: Decimal | None) -> Decimal | None:
        return _require_positive(v, "Entry price")

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: Decimal | None) -> Decimal | None:
        return _require_positive(v, "Quantity")

    @field_validator("exit_price")
    @classmethod
    def validate_exit_price(cls, v: Decimal | None) -> Decimal | None:
        return _require_positive(v, "Exit price")

    def changes(self) -> dict[str, Any]:
        """Fields explicitly supplied by the caller."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class LotFilter(BaseModel):
    """Optional filters for listing lots."""

    status: TradeStatus | None = None
    asset_type: AssetType | None = None
    symbol: str | None = None

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str | None) -> str | None:
        return v.strip().upper() if v else None

    def matches(self, lot: Lot) -> bool:
        if self.status is not None and lot.status != self.status:
            return False
        if self.asset_type is not None and lot.asset_type != self.asset_type:
            return False
        if self.symbol is not None and lot.symbol != self.symbol:
            return False
        return True


class SellResult(BaseModel):
    """
    Outcome of applying a sell to its linked buy lot.

    Attributes:
        sell: Sell lot to persist (closed with P&L when matched)
        updated_buy: Buy lot to persist (None when unlinked or the buy had
            nothing left to match)
        sell_pnl: Realized P&L of this sell (None when unlinked)
        sell_pnl_percent: Realized P&L percent (None when unlinked)
        matched_quantity: Quantity matched against the buy lot
        unmatched_quantity: Sell quantity beyond what the buy lot had available
    """

    sell: Lot
    updated_buy: Lot | None = None
    sell_pnl: Decimal | None = None
    sell_pnl_percent: Decimal | None = None
    matched_quantity: Decimal = Decimal("0")
    unmatched_quantity: Decimal = Decimal("0")

    @property
    def is_linked(self) -> bool:
        """True when the sell was matched against a buy lot, even for zero quantity."""
        return self.sell.is_closed

    @property
    def closed_buy(self) -> bool:
        """True when this sell fully closed its buy lot."""
        return self.updated_buy is not None and self.updated_buy.is_closed

    model_config = ConfigDict(frozen=True)


class CreateTradeResult(BaseModel):
    """
    Returned by create-trade: the new trade and the buy lot it named.

    unmatched_quantity is the part of a linked sell that no buy quantity
    covered: the excess over the buy's remaining quantity, or the whole sell
    when its link did not resolve. Sells recorded without a link report 0.
    """

    trade: Lot
    linked_trade: Lot | None = None
    unmatched_quantity: Decimal = Decimal("0")
    warnings: list[UnlinkedSellWarning] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class AggregatedPosition(BaseModel):
    """
    Open position for one (symbol, asset_type), rolled up from its buy lots.

    Attributes:
        symbol: Ticker
        asset_type: crypto or stock
        total_quantity: Sum of effective quantity across lots
        avg_entry_price: total_cost_basis / total_quantity (0 when flat)
        total_cost_basis: Sum of entry_price * effective quantity
        lot_count: Number of open buy lots
        lots: Member lots, oldest entry first
    """

    symbol: str
    asset_type: AssetType
    total_quantity: Decimal
    avg_entry_price: Decimal
    total_cost_basis: Decimal
    lot_count: int
    lots: list[Lot] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class UnrealizedPnl(BaseModel):
    """Unrealized P&L; both fields None when no price is available."""

    pnl: Decimal | None = None
    pnl_percent: Decimal | None = None

    @property
    def is_available(self) -> bool:
        return self.pnl is not None

    model_config = ConfigDict(frozen=True)


class PositionValuation(BaseModel):
    """Open position joined with its current market price."""

    position: AggregatedPosition
    current_price: Decimal | None = None
    unrealized: UnrealizedPnl = Field(default_factory=UnrealizedPnl)

    @property
    def market_value(self) -> Decimal | None:
        if self.current_price is None:
            return None
        return self.current_price * self.position.total_quantity

    model_config = ConfigDict(frozen=True)


class AssetGroup(BaseModel):
    """
    Every lot recorded for one (symbol, asset_type), for journal display.

    Attributes:
        symbol: Ticker
        asset_type: crypto or stock
        lots: All lots of the asset, newest entry first
        open_count: Number of open lots
        closed_count: Number of closed lots
        open_cost: Cost basis still held (open buys, effective quantity)
        realized_pnl: Realized P&L of the asset
    """

    symbol: str
    asset_type: AssetType
    lots: list[Lot] = Field(default_factory=list)
    open_count: int = 0
    closed_count: int = 0
    open_cost: Decimal = Decimal("0")
    realized_pnl: Decimal = Decimal("0")

    model_config = ConfigDict(frozen=True)


class PortfolioSummary(BaseModel):
    """
    Portfolio-level statistics derived from the whole ledger.

    Attributes:
        open_positions_cost: Cost basis of open buy lots (effective quantity)
        closed_positions_cost_basis: Cost basis of closed buy lots (original quantity)
        realized_pnl: Sum of realized P&L, one record per realization
        realized_pnl_percent: realized_pnl / closed_positions_cost_basis * 100
        win_rate: wins / (wins + losses) * 100
        wins: Realizations with positive P&L
        losses: Realizations with negative P&L
        open_positions: Number of open buy lots
        closed_positions: Number of closed buy lots
        total_trades: Number of lots in the ledger
    """

    open_positions_cost: Decimal = Decimal("0")
    closed_positions_cost_basis: Decimal = Decimal("0")
    realized_pnl: Decimal = Decimal("0")
    realized_pnl_percent: Decimal = Decimal("0")
    win_rate: Decimal = Decimal("0")
    wins: int = 0
    losses: int = 0
    open_positions: int = 0
    closed_positions: int = 0
    total_trades: int = 0

    model_config = ConfigDict(frozen=True)


class PortfolioValuation(BaseModel):
    """
    Whole-portfolio view combining open positions at market with realized P&L.

    Attributes:
        total_invested: Cost basis of every open position, priced or not
        unrealized_pnl: Sum of unrealized P&L over positions with a price
        unrealized_pnl_percent: unrealized_pnl / total_invested * 100
        portfolio_value: total_invested + unrealized_pnl
        realized_pnl: Realized P&L from the portfolio summary
        total_pnl: realized_pnl + unrealized_pnl
        priced_positions: Positions that had a current price
        unpriced_positions: Positions left out of unrealized P&L
    """

    total_invested: Decimal = Decimal("0")
    unrealized_pnl: Decimal = Decimal("0")
    unrealized_pnl_percent: Decimal = Decimal("0")
    portfolio_value: Decimal = Decimal("0")
    realized_pnl: Decimal = Decimal("0")
    total_pnl: Decimal = Decimal("0")
    priced_positions: int = 0
    unpriced_positions: int = 0

    model_config = ConfigDict(frozen=True)
