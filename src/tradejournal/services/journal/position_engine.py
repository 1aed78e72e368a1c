"""Position engine: applies sells to buy lots and computes realized P&L.

Rules for a sell linked to a buy lot:
- Match at most the buy lot's remaining quantity (remaining_quantity, or
  quantity for legacy lots where it was never set)
- Partial exit: reduce remaining_quantity, buy stays open, its exit/P&L
  fields are left alone
- Full exit: buy closes with remaining_quantity 0 and is stamped with the
  closing sell's date, price and P&L
- The sell itself closes and carries the P&L of the quantity it matched
- A buy with nothing left matches zero: the sell closes with P&L 0, its
  whole quantity is reported unmatched, and the buy is not rewritten

The engine is stateless. It never reads or writes the ledger; callers pass
lots in and persist the lots that come back.
"""

from decimal import Decimal

from pydantic import ValidationError as PydanticValidationError

from tradejournal.services.journal.exceptions import TradeValidationError
from tradejournal.services.journal.models import Lot, SellResult, TradeStatus, TradeUpdate
from tradejournal.services.journal.pnl import ZERO, effective_quantity, price_pnl, price_pnl_percent
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()

# Edits to any of these on a closed buy recompute its P&L
_PNL_INPUT_FIELDS = frozenset({"status", "exit_price", "entry_price", "quantity"})


def record_sell(new_sell: Lot, linked_buy: Lot | None) -> SellResult:
    """
    Apply a new sell lot against the buy lot it references.

    Args:
        new_sell: Sell lot being recorded (quantity > 0, entry_price > 0)
        linked_buy: Buy lot named by new_sell.linked_trade_id, or None when
            the reference did not resolve

    Returns:
        SellResult with the sell and buy lots to persist

    Raises:
        TradeValidationError: If new_sell is not a valid sell or linked_buy
            is not a buy lot

    Example:
        >>> # Buy 2 @ $100, sell 1 @ $150
        >>> result = record_sell(sell, buy)
        >>> result.sell_pnl
        Decimal('50')
        >>> result.updated_buy.remaining_quantity
        Decimal('1')
    """
    _validate_sell(new_sell)

    if linked_buy is None:
        return _unmatched(new_sell)

    if not linked_buy.is_buy:
        raise TradeValidationError({"linked_trade_id": f"Trade {linked_buy.id} is not a buy lot"})

    available = effective_quantity(linked_buy)
    if available <= 0:
        return _matched_zero(new_sell, linked_buy)

    matched = min(new_sell.quantity, available)
    unmatched = new_sell.quantity - matched

    sell_pnl = price_pnl(new_sell.entry_price, linked_buy.entry_price, matched)
    sell_pnl_percent = price_pnl_percent(new_sell.entry_price, linked_buy.entry_price)

    new_remaining = available - matched

    if new_remaining <= 0:
        updated_buy = linked_buy.model_copy(
            update={
                "status": TradeStatus.CLOSED,
                "remaining_quantity": ZERO,
                "exit_date": new_sell.entry_date,
                "exit_price": new_sell.entry_price,
                "pnl": sell_pnl,
                "pnl_percent": sell_pnl_percent,
            }
        )
    else:
        updated_buy = linked_buy.model_copy(update={"remaining_quantity": new_remaining})

    sell = new_sell.model_copy(
        update={
            "status": TradeStatus.CLOSED,
            "pnl": sell_pnl,
            "pnl_percent": sell_pnl_percent,
        }
    )

    logger.debug(
        "position_engine.sell_matched",
        symbol=sell.symbol,
        side=sell.side.value,
        quantity=str(matched),
        price=str(sell.entry_price),
        pnl=str(sell_pnl),
        trade_id=sell.id,
        linked_trade_id=linked_buy.id,
        remaining_quantity=str(updated_buy.remaining_quantity),
    )

    if unmatched > 0:
        logger.warning(
            "position_engine.unmatched_quantity",
            symbol=sell.symbol,
            trade_id=sell.id,
            linked_trade_id=linked_buy.id,
            quantity=str(new_sell.quantity),
            unmatched_quantity=str(unmatched),
        )

    return SellResult(
        sell=sell,
        updated_buy=updated_buy,
        sell_pnl=sell_pnl,
        sell_pnl_percent=sell_pnl_percent,
        matched_quantity=matched,
        unmatched_quantity=unmatched,
    )


def recompute_buy_on_edit(lot: Lot, update: TradeUpdate) -> Lot:
    """
    Apply an explicit edit to a lot.

    Only supplied fields change. When the edited lot is a closed buy with an
    exit price and the edit touched its status, exit price, entry price or
    quantity, P&L is recomputed over the ORIGINAL quantity. This path never
    adjusts remaining_quantity.

    Args:
        lot: Lot as currently stored
        update: Fields supplied by the caller

    Returns:
        Edited lot (not yet persisted)

    Raises:
        TradeValidationError: If the edited lot violates a field rule, e.g.
            quantity below the lot's remaining quantity
    """
    changes = update.changes()
    try:
        edited = Lot.model_validate({**lot.model_dump(), **changes})
    except PydanticValidationError as exc:
        raise TradeValidationError.from_pydantic(exc) from exc

    if (
        edited.is_buy
        and edited.is_closed
        and edited.exit_price is not None
        and _PNL_INPUT_FIELDS.intersection(changes)
    ):
        edited = edited.model_copy(
            update={
                "pnl": price_pnl(edited.exit_price, edited.entry_price, edited.quantity),
                "pnl_percent": price_pnl_percent(edited.exit_price, edited.entry_price),
            }
        )

    return edited


def _validate_sell(new_sell: Lot) -> None:
    errors: dict[str, str] = {}
    if not new_sell.is_sell:
        errors["side"] = "Only sell lots can be matched against a buy lot"
    if new_sell.quantity <= 0:
        errors["quantity"] = "Quantity must be a positive number"
    if new_sell.entry_price <= 0:
        errors["entry_price"] = "Entry price must be a positive number"
    if errors:
        raise TradeValidationError(errors)


def _unmatched(new_sell: Lot) -> SellResult:
    sell = new_sell.model_copy(update={"status": TradeStatus.OPEN, "pnl": None, "pnl_percent": None})
    return SellResult(sell=sell, unmatched_quantity=Decimal(new_sell.quantity))


def _matched_zero(new_sell: Lot, linked_buy: Lot) -> SellResult:
    # The buy keeps the exit stamp and P&L of the sell that closed it
    logger.warning(
        "position_engine.buy_exhausted",
        symbol=new_sell.symbol,
        trade_id=new_sell.id,
        linked_trade_id=linked_buy.id,
        quantity=str(new_sell.quantity),
        unmatched_quantity=str(new_sell.quantity),
    )
    sell = new_sell.model_copy(update={"status": TradeStatus.CLOSED, "pnl": ZERO, "pnl_percent": ZERO})
    return SellResult(
        sell=sell,
        sell_pnl=ZERO,
        sell_pnl_percent=ZERO,
        matched_quantity=ZERO,
        unmatched_quantity=Decimal(new_sell.quantity),
    )
