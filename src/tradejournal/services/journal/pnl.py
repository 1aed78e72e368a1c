"""Shared P&L math for the position and aggregation engines.

All arithmetic is Decimal so quantity comparisons after repeated partial
exits are exact.
"""

from collections.abc import Iterable
from decimal import Decimal

from tradejournal.services.journal.models import Lot

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def effective_quantity(lot: Lot) -> Decimal:
    """Remaining quantity of a lot, falling back to quantity for legacy rows."""
    return lot.effective_quantity


def price_pnl(exit_price: Decimal, entry_price: Decimal, quantity: Decimal) -> Decimal:
    """P&L of closing ``quantity`` bought at ``entry_price`` at ``exit_price``."""
    return (exit_price - entry_price) * quantity


def price_pnl_percent(exit_price: Decimal, entry_price: Decimal) -> Decimal:
    """Price move as percent of entry; 0 when entry price is not positive."""
    if entry_price <= 0:
        return ZERO
    return (exit_price - entry_price) / entry_price * HUNDRED


def percent_of(amount: Decimal, base: Decimal) -> Decimal:
    """``amount`` as percent of ``base``; 0 when base is not positive."""
    if base <= 0:
        return ZERO
    return amount / base * HUNDRED


def cost_basis(lots: Iterable[Lot], use_remaining: bool = True) -> Decimal:
    """
    Sum of entry_price * quantity over lots.

    Args:
        lots: Lots to sum
        use_remaining: Use effective (remaining) quantity; False uses the
            original quantity, which is the cost basis of a closed lot.
    """
    total = ZERO
    for lot in lots:
        qty = effective_quantity(lot) if use_remaining else lot.quantity
        total += lot.entry_price * qty
    return total


def win_rate(wins: int, losses: int) -> Decimal:
    """Percent of decided trades that won; 0 when nothing is decided."""
    decided = wins + losses
    if decided == 0:
        return ZERO
    return Decimal(wins) / Decimal(decided) * HUNDRED
