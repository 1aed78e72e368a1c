"""Journal service interfaces (Protocol).

Defines the contracts between the accounting core and its collaborators:
- ILotLedger: Durable collection of lots (persistence)
- IJournalService: Inbound API surface used by the CLI or any transport
"""

from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol

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

if TYPE_CHECKING:
    from tradejournal.services.prices.interface import IPriceGateway


class ILotLedger(Protocol):
    """
    Lot repository.

    Implementations must make every operation performed inside
    ``transaction()`` all-or-nothing, and serialize concurrent transactions
    so two sells against the same buy lot cannot lose an update.
    """

    def get_by_id(self, trade_id: str) -> Lot | None:
        """Return the lot with this id, or None."""
        ...

    def insert(self, lot: Lot) -> None:
        """
        Store a new lot.

        Raises:
            LedgerError: If a lot with the same id already exists
        """
        ...

    def update(self, trade_id: str, fields: dict[str, Any]) -> Lot:
        """
        Overwrite fields of an existing lot and refresh updated_at.

        Returns:
            The stored lot after the update

        Raises:
            TradeNotFoundError: If no lot has this id
        """
        ...

    def delete_by_id(self, trade_id: str) -> bool:
        """Delete one lot. Returns False when the id was absent."""
        ...

    def delete_where_linked(self, trade_id: str) -> int:
        """Delete every lot whose linked_trade_id is trade_id. Returns the count."""
        ...

    def list_all(self, lot_filter: LotFilter | None = None) -> list[Lot]:
        """Lots matching the filter, newest entry_date first, then newest created_at."""
        ...

    def transaction(self) -> AbstractContextManager[None]:
        """Context manager committing everything inside it or nothing."""
        ...

    def close(self) -> None:
        """Release resources."""
        ...


class IJournalService(Protocol):
    """
    Trading journal API.

    Example:
        >>> journal: IJournalService = JournalService(InMemoryLotLedger())
        >>> buy = journal.create_trade({...side: "buy"...}).trade
        >>> result = journal.create_trade({...side: "sell", "linked_trade_id": buy.id...})
        >>> result.linked_trade.remaining_quantity
    """

    def create_trade(self, fields: TradeInput | dict[str, Any]) -> CreateTradeResult:
        """Record a trade; sells linked to a buy lot are matched against it atomically."""
        ...

    def update_trade(self, trade_id: str, fields: TradeUpdate | dict[str, Any]) -> Lot:
        """Edit a trade's fields directly."""
        ...

    def delete_trade(self, trade_id: str) -> bool:
        """Delete a trade and every trade linked to it."""
        ...

    def get_trade(self, trade_id: str) -> Lot:
        """Fetch one trade."""
        ...

    def list_trades(self, lot_filter: LotFilter | dict[str, Any] | None = None) -> list[Lot]:
        """List trades, newest first."""
        ...

    def get_portfolio_summary(self) -> PortfolioSummary:
        """Realized P&L, cost basis and win rate over the whole ledger."""
        ...

    def get_open_positions(self, price_gateway: "IPriceGateway | None" = None) -> list[PositionValuation]:
        """Open positions with unrealized P&L where a price is available."""
        ...

    def get_portfolio_valuation(self, price_gateway: "IPriceGateway | None" = None) -> PortfolioValuation:
        """Portfolio value, unrealized and total P&L across open positions."""
        ...

    def get_asset_groups(self) -> list[AssetGroup]:
        """All trades grouped by asset."""
        ...
