"""Aggregation engine: read-only rollups over a snapshot of lots.

Every function here is pure. Passing the same snapshot twice yields the
same output, and no lot is modified.

Realized P&L has exactly one canonical record per realization:
- each closed sell lot carrying a P&L (one per matching event)
- each closed buy lot carrying a P&L that no sell lot references (a
  position closed by editing the buy directly)
A buy lot stamped by its closing sell only mirrors that sell's P&L for
display and is not counted again.

A buy that was partly sold and then closed by editing it is still
referenced by its sells, so only the sells count. The edit stamps P&L over
the original quantity, which overlaps the sold part, and the realization of
the quantity that was still held is not recorded anywhere. Record the rest
of the exit as a linked sell to keep it in realized P&L.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal

from tradejournal.services.journal.models import (
    AggregatedPosition,
    AssetGroup,
    AssetType,
    Lot,
    PortfolioSummary,
    PortfolioValuation,
    PositionValuation,
    UnrealizedPnl,
)
from tradejournal.services.journal.pnl import ZERO, cost_basis, effective_quantity, percent_of, win_rate

PositionKey = tuple[str, AssetType]


def aggregate_open_positions(lots: Iterable[Lot]) -> list[AggregatedPosition]:
    """
    Roll open buy lots up into one position per (symbol, asset_type).

    Args:
        lots: Snapshot of lots (any side, any status)

    Returns:
        Positions ordered by total cost basis, largest first. Each position
        keeps its lots ordered oldest entry first.

    Example:
        >>> # Buy 5 ETH @ $10
        >>> [position] = aggregate_open_positions([buy])
        >>> position.total_quantity, position.avg_entry_price, position.total_cost_basis
        (Decimal('5'), Decimal('10'), Decimal('50'))
    """
    grouped: dict[PositionKey, list[Lot]] = {}
    for lot in lots:
        if lot.is_buy and lot.is_open:
            grouped.setdefault((lot.symbol, lot.asset_type), []).append(lot)

    positions: list[AggregatedPosition] = []
    for (symbol, asset_type), members in grouped.items():
        total_quantity = sum((effective_quantity(lot) for lot in members), start=ZERO)
        total_cost = cost_basis(members)
        avg_entry = total_cost / total_quantity if total_quantity > 0 else ZERO

        positions.append(
            AggregatedPosition(
                symbol=symbol,
                asset_type=asset_type,
                total_quantity=total_quantity,
                avg_entry_price=avg_entry,
                total_cost_basis=total_cost,
                lot_count=len(members),
                lots=sorted(members, key=lambda lot: lot.entry_date),
            )
        )

    return sorted(positions, key=lambda p: p.total_cost_basis, reverse=True)


def compute_unrealized_pnl(position: AggregatedPosition, current_price: Decimal | None) -> UnrealizedPnl:
    """
    Mark a position to market.

    Args:
        position: Aggregated open position
        current_price: Latest price, or None when no quote is available

    Returns:
        UnrealizedPnl; both fields None when current_price is None
    """
    if current_price is None:
        return UnrealizedPnl()

    pnl = current_price * position.total_quantity - position.total_cost_basis
    return UnrealizedPnl(pnl=pnl, pnl_percent=percent_of(pnl, position.total_cost_basis))


def value_positions(
    positions: Iterable[AggregatedPosition],
    prices: Mapping[PositionKey, Decimal | None],
) -> list[PositionValuation]:
    """Join positions with their current prices (missing price -> no unrealized P&L)."""
    valuations = []
    for position in positions:
        price = prices.get((position.symbol, position.asset_type))
        valuations.append(
            PositionValuation(
                position=position,
                current_price=price,
                unrealized=compute_unrealized_pnl(position, price),
            )
        )
    return valuations


def compute_portfolio_valuation(
    valuations: Iterable[PositionValuation],
    summary: PortfolioSummary,
) -> PortfolioValuation:
    """
    Combine open positions at market with realized P&L.

    Every open position counts toward total_invested. Only positions with a
    current price contribute unrealized P&L; the rest are counted in
    unpriced_positions.

    Args:
        valuations: Open positions joined with their current prices
        summary: Portfolio summary supplying realized P&L

    Returns:
        PortfolioValuation
    """
    snapshot = list(valuations)
    invested = sum((v.position.total_cost_basis for v in snapshot), start=ZERO)
    priced = [v for v in snapshot if v.unrealized.pnl is not None]
    unrealized = sum((v.unrealized.pnl for v in priced if v.unrealized.pnl is not None), start=ZERO)

    return PortfolioValuation(
        total_invested=invested,
        unrealized_pnl=unrealized,
        unrealized_pnl_percent=percent_of(unrealized, invested),
        portfolio_value=invested + unrealized,
        realized_pnl=summary.realized_pnl,
        total_pnl=summary.realized_pnl + unrealized,
        priced_positions=len(priced),
        unpriced_positions=len(snapshot) - len(priced),
    )

def realized_records(lots: Iterable[Lot]) -> list[Lot]:
    """
    Lots that are the canonical record of a realization.

    Closed sells with P&L, plus closed buys with P&L that no sell references.
    """
    snapshot = list(lots)
    referenced = {lot.linked_trade_id for lot in snapshot if lot.is_sell and lot.linked_trade_id}

    records = []
    for lot in snapshot:
        if not lot.is_closed or lot.pnl is None:
            continue
        if lot.is_sell or lot.id not in referenced:
            records.append(lot)
    return records


def compute_portfolio_summary(lots: Iterable[Lot]) -> PortfolioSummary:
    """
    Portfolio statistics over the whole ledger.

    Args:
        lots: Snapshot of every lot

    Returns:
        PortfolioSummary (see module docstring for the realized P&L rule)
    """
    snapshot = list(lots)
    open_buys = [lot for lot in snapshot if lot.is_buy and lot.is_open]
    closed_buys = [lot for lot in snapshot if lot.is_buy and lot.is_closed]

    records = realized_records(snapshot)
    realized = sum((lot.pnl for lot in records if lot.pnl is not None), start=ZERO)
    wins = sum(1 for lot in records if lot.pnl is not None and lot.pnl > 0)
    losses = sum(1 for lot in records if lot.pnl is not None and lot.pnl < 0)

    closed_cost = cost_basis(closed_buys, use_remaining=False)

    return PortfolioSummary(
        open_positions_cost=cost_basis(open_buys),
        closed_positions_cost_basis=closed_cost,
        realized_pnl=realized,
        realized_pnl_percent=percent_of(realized, closed_cost),
        win_rate=win_rate(wins, losses),
        wins=wins,
        losses=losses,
        open_positions=len(open_buys),
        closed_positions=len(closed_buys),
        total_trades=len(snapshot),
    )


def group_lots_by_asset(lots: Iterable[Lot]) -> list[AssetGroup]:
    """
    Group every lot by (symbol, asset_type) for journal display.

    Groups are ordered by symbol then asset type; lots inside a group are
    ordered newest entry first.
    """
    snapshot = list(lots)
    grouped: dict[PositionKey, list[Lot]] = {}
    for lot in snapshot:
        grouped.setdefault((lot.symbol, lot.asset_type), []).append(lot)

    realized_ids = {lot.id for lot in realized_records(snapshot)}

    groups = []
    for (symbol, asset_type), members in sorted(grouped.items(), key=lambda item: (item[0][0], item[0][1].value)):
        open_buys = [lot for lot in members if lot.is_buy and lot.is_open]
        realized = sum(
            (lot.pnl for lot in members if lot.id in realized_ids and lot.pnl is not None),
            start=ZERO,
        )
        groups.append(
            AssetGroup(
                symbol=symbol,
                asset_type=asset_type,
                lots=sorted(members, key=lambda lot: (lot.entry_date, lot.created_at), reverse=True),
                open_count=sum(1 for lot in members if lot.is_open),
                closed_count=sum(1 for lot in members if lot.is_closed),
                open_cost=cost_basis(open_buys),
                realized_pnl=realized,
            )
        )
    return groups
