"""Journal service implementation.

Applies the position engine against a lot ledger and exposes the
journal's operations: create, update, delete, list, summary, positions.
"""

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from tradejournal.services.journal.aggregation import (
    aggregate_open_positions,
    compute_portfolio_summary,
    compute_portfolio_valuation,
    group_lots_by_asset,
    value_positions,
)
from tradejournal.services.journal.cache import TradeCache
from tradejournal.services.journal.exceptions import TradeNotFoundError, TradeValidationError, UnlinkedSellWarning
from tradejournal.services.journal.interface import ILotLedger
from tradejournal.services.journal.models import (
    AssetGroup,
    CreateTradeResult,
    Lot,
    LotFilter,
    PortfolioSummary,
    PortfolioValuation,
    PositionValuation,
    TradeInput,
    TradeUpdate,
)
from tradejournal.services.journal.position_engine import recompute_buy_on_edit, record_sell
from tradejournal.services.prices.gateway import lookup_prices
from tradejournal.services.prices.interface import IPriceGateway
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)

# Buy-lot fields the position engine changes when a sell is matched
_MATCH_FIELDS = ("status", "remaining_quantity", "exit_date", "exit_price", "pnl", "pnl_percent")

# Fields an edit may write back (id and bookkeeping timestamps are the ledger's)
_EDIT_EXCLUDE = {"id", "created_at", "updated_at"}


class JournalService:
    """
    Trading journal service.

    Validates input at the boundary, runs every sell match as one ledger
    transaction, and serves read-side rollups from an explicit snapshot
    cache that each write invalidates.

    Attributes:
        ledger: Lot repository
        cache: Snapshot cache of the full trade list

    Example:
        >>> journal = JournalService(InMemoryLotLedger())
        >>> buy = journal.create_trade({
        ...     "asset_type": "crypto", "symbol": "btc", "side": "buy",
        ...     "entry_date": "2024-01-15", "entry_price": "100", "quantity": "2",
        ... }).trade
        >>> result = journal.create_trade({
        ...     "asset_type": "crypto", "symbol": "BTC", "side": "sell",
        ...     "entry_date": "2024-02-01", "entry_price": "150", "quantity": "1",
        ...     "linked_trade_id": buy.id,
        ... })
        >>> result.trade.pnl, result.linked_trade.remaining_quantity
        (Decimal('50'), Decimal('1'))
    """

    def __init__(
        self,
        ledger: ILotLedger,
        cache: TradeCache | None = None,
        price_gateway: IPriceGateway | None = None,
    ) -> None:
        """
        Initialize journal service.

        Args:
            ledger: Lot repository to read and write
            cache: Snapshot cache (a fresh one if None)
            price_gateway: Default source of current prices for positions
        """
        self.ledger = ledger
        self.cache = cache if cache is not None else TradeCache()
        self._price_gateway = price_gateway

    # ==================== Writes ====================

    def create_trade(self, fields: TradeInput | dict[str, Any]) -> CreateTradeResult:
        """
        Record a new trade.

        Buys start with remaining_quantity equal to quantity. A sell that
        names a linked buy is matched against it; the sell insert and the
        buy update commit together or not at all. A buy with nothing left
        matches zero: the sell closes with P&L 0 and its whole quantity is
        reported unmatched. A link that does not resolve to a buy lot leaves
        the sell open and unlinked, and an UnlinkedSellWarning is returned.

        Args:
            fields: TradeInput or a dict of its fields

        Returns:
            CreateTradeResult with the stored trade and the updated buy lot

        Raises:
            TradeValidationError: If a required field is missing or invalid
        """
        trade_input = self._parse(TradeInput, fields)
        new_lot = trade_input.to_lot()

        try:
            if new_lot.is_sell and new_lot.linked_trade_id:
                result = self._create_linked_sell(new_lot)
            else:
                self.ledger.insert(new_lot)
                result = CreateTradeResult(trade=new_lot)
        finally:
            self.cache.invalidate()

        logger.info(
            "journal_service.trade_created",
            symbol=result.trade.symbol,
            side=result.trade.side.value,
            quantity=str(result.trade.quantity),
            price=str(result.trade.entry_price),
            pnl=None if result.trade.pnl is None else str(result.trade.pnl),
            trade_id=result.trade.id,
            linked_trade_id=result.trade.linked_trade_id,
        )
        return result

    def _create_linked_sell(self, new_sell: Lot) -> CreateTradeResult:
        linked_id = new_sell.linked_trade_id
        assert linked_id is not None

        with self.ledger.transaction():
            linked = self.ledger.get_by_id(linked_id)

            reason = None
            if linked is None:
                reason = "was not found"
            elif not linked.is_buy:
                reason = "is not a buy lot"
                linked = None

            sell_result = record_sell(new_sell, linked)
            self.ledger.insert(sell_result.sell)

            # An exhausted buy is reported as it stands, not rewritten
            stored_buy = linked
            if sell_result.updated_buy is not None:
                updated_buy = sell_result.updated_buy
                stored_buy = self.ledger.update(
                    updated_buy.id,
                    {name: getattr(updated_buy, name) for name in _MATCH_FIELDS},
                )

        warnings = []
        if reason is not None:
            warnings.append(UnlinkedSellWarning(new_sell.id, linked_id, reason))
            logger.warning(
                "journal_service.sell_unlinked",
                symbol=new_sell.symbol,
                trade_id=new_sell.id,
                linked_trade_id=linked_id,
                reason=reason,
            )
        elif sell_result.closed_buy and stored_buy is not None:
            logger.info(
                "journal_service.position_closed",
                symbol=stored_buy.symbol,
                quantity=str(stored_buy.quantity),
                price=str(stored_buy.exit_price),
                pnl=str(stored_buy.pnl),
                trade_id=stored_buy.id,
            )

        return CreateTradeResult(
            trade=sell_result.sell,
            linked_trade=stored_buy,
            unmatched_quantity=sell_result.unmatched_quantity,
            warnings=warnings,
        )

    def update_trade(self, trade_id: str, fields: TradeUpdate | dict[str, Any]) -> Lot:
        """
        Edit a trade's fields directly.

        Only the supplied fields change. Closing a buy lot here with an exit
        price recomputes its P&L over the original quantity; remaining
        quantity is never touched.

        Args:
            trade_id: Trade to edit
            fields: TradeUpdate or a dict of the fields to change

        Returns:
            The stored trade after the edit

        Raises:
            TradeValidationError: If a supplied field is invalid
            TradeNotFoundError: If trade_id is not in the ledger
        """
        update = self._parse(TradeUpdate, fields)

        try:
            with self.ledger.transaction():
                existing = self.ledger.get_by_id(trade_id)
                if existing is None:
                    raise TradeNotFoundError(trade_id)
                edited = recompute_buy_on_edit(existing, update)
                stored = self.ledger.update(trade_id, edited.model_dump(exclude=_EDIT_EXCLUDE))
        finally:
            self.cache.invalidate()

        logger.info(
            "journal_service.trade_updated",
            symbol=stored.symbol,
            side=stored.side.value,
            trade_id=trade_id,
            fields=sorted(update.model_fields_set),
            pnl=None if stored.pnl is None else str(stored.pnl),
        )
        return stored

    def delete_trade(self, trade_id: str) -> bool:
        """
        Delete a trade and every trade linked to it.

        Deleting a sell does not give its matched quantity back to the buy
        lot; a deletion is permanent.

        Args:
            trade_id: Trade to delete

        Returns:
            True once the trade is deleted

        Raises:
            TradeNotFoundError: If trade_id is not in the ledger
        """
        try:
            with self.ledger.transaction():
                existing = self.ledger.get_by_id(trade_id)
                if existing is None:
                    raise TradeNotFoundError(trade_id)
                linked_removed = self.ledger.delete_where_linked(trade_id)
                self.ledger.delete_by_id(trade_id)
        finally:
            self.cache.invalidate()

        logger.info(
            "journal_service.trade_deleted",
            symbol=existing.symbol,
            side=existing.side.value,
            trade_id=trade_id,
            linked_removed=linked_removed,
            restored_quantity=False,
        )
        return True

    # ==================== Reads ====================

    def get_trade(self, trade_id: str) -> Lot:
        """
        Fetch one trade.

        Raises:
            TradeNotFoundError: If trade_id is not in the ledger
        """
        lot = self.ledger.get_by_id(trade_id)
        if lot is None:
            raise TradeNotFoundError(trade_id)
        return lot

    def list_trades(self, lot_filter: LotFilter | dict[str, Any] | None = None) -> list[Lot]:
        """List trades newest first, optionally filtered by status, asset type or symbol."""
        parsed = self._parse(LotFilter, lot_filter) if lot_filter is not None else None
        if parsed is None or not parsed.model_dump(exclude_none=True):
            return self._snapshot()
        return self.ledger.list_all(parsed)

    def get_portfolio_summary(self) -> PortfolioSummary:
        return compute_portfolio_summary(self._snapshot())

    def get_open_positions(self, price_gateway: IPriceGateway | None = None) -> list[PositionValuation]:
        """
        Open positions valued at current prices.

        Args:
            price_gateway: Price source; falls back to the service default.
                Positions without a price carry no unrealized P&L.
        """
        gateway = price_gateway if price_gateway is not None else self._price_gateway
        positions = aggregate_open_positions(self._snapshot())
        prices = lookup_prices(gateway, [(p.symbol, p.asset_type) for p in positions])
        return value_positions(positions, prices)

    def get_portfolio_valuation(self, price_gateway: IPriceGateway | None = None) -> PortfolioValuation:
        """
        Portfolio value with unrealized and total P&L.

        Positions without a current price count toward the invested amount
        but add no unrealized P&L.
        """
        return compute_portfolio_valuation(self.get_open_positions(price_gateway), self.get_portfolio_summary())

    def get_asset_groups(self) -> list[AssetGroup]:
        return group_lots_by_asset(self._snapshot())

    # ==================== Helpers ====================

    def _snapshot(self) -> list[Lot]:
        return self.cache.get_or_load(self.ledger.list_all)

    @staticmethod
    def _parse(model: type[ModelT], fields: ModelT | dict[str, Any]) -> ModelT:
        if isinstance(fields, model):
            return fields
        try:
            return model.model_validate(fields)
        except PydanticValidationError as exc:
            raise TradeValidationError.from_pydantic(exc) from exc
