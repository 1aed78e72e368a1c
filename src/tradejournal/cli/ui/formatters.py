"""Rich table formatters for CLI output."""

from decimal import Decimal
from typing import Optional

from rich.table import Table

from tradejournal.services.journal.models import (
    AssetGroup,
    Lot,
    PortfolioSummary,
    PortfolioValuation,
    PositionValuation,
)


def format_quantity(value: Optional[Decimal]) -> str:
    """Quantity without exponent or trailing zeros ("-" when missing)."""
    if value is None:
        return "-"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def format_money(value: Optional[Decimal]) -> str:
    if value is None:
        return "-"
    return f"${value:,.2f}"


def format_percent(value: Optional[Decimal]) -> str:
    if value is None:
        return "-"
    return f"{value:.2f}%"


def format_pnl(value: Optional[Decimal], percent: Optional[Decimal] = None) -> str:
    """
    Colored P&L cell.

    Args:
        value: P&L amount (None renders as "-")
        percent: Optional P&L percent appended in parentheses

    Returns:
        Rich markup string, green for gains and red for losses
    """
    if value is None:
        return "[dim]-[/dim]"

    color = "green" if value > 0 else "red" if value < 0 else "white"
    text = f"{'+' if value > 0 else ''}{format_money(value)}"
    if percent is not None:
        text += f" ({format_percent(percent)})"
    return f"[{color}]{text}[/{color}]"


def create_trades_table(lots: list[Lot], title: str = "Trades") -> Table:
    """
    Create a Rich table listing trades.

    Args:
        lots: Trades to show, in display order
        title: Table title

    Returns:
        Configured Rich Table with one row per trade
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Date", style="green")
    table.add_column("Symbol", style="cyan", no_wrap=True)
    table.add_column("Type", style="magenta")
    table.add_column("Side", style="white")
    table.add_column("Qty", justify="right", style="yellow")
    table.add_column("Remaining", justify="right", style="yellow")
    table.add_column("Price", justify="right")
    table.add_column("Status", style="white")
    table.add_column("P&L", justify="right")

    for lot in lots:
        side = "[green]BUY[/green]" if lot.is_buy else "[red]SELL[/red]"
        status = "[green]open[/green]" if lot.is_open else "[dim]closed[/dim]"
        table.add_row(
            lot.id[:8],
            lot.entry_date.isoformat(),
            lot.symbol,
            lot.asset_type.value,
            side,
            format_quantity(lot.quantity),
            format_quantity(lot.remaining_quantity) if lot.is_buy else "-",
            format_money(lot.entry_price),
            status,
            format_pnl(lot.pnl, lot.pnl_percent),
        )

    return table


def create_trade_detail_table(lot: Lot) -> Table:
    """Create a two-column Rich table with every field of one trade."""
    table = Table(title=f"Trade {lot.symbol}", show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("ID", lot.id)
    table.add_row("Asset Type", lot.asset_type.value)
    table.add_row("Symbol", lot.symbol)
    table.add_row("Side", lot.side.value)
    table.add_row("Status", lot.status.value)
    table.add_row("Entry Date", lot.entry_date.isoformat())
    table.add_row("Entry Price", format_money(lot.entry_price))
    table.add_row("Quantity", format_quantity(lot.quantity))
    if lot.is_buy:
        table.add_row("Remaining", format_quantity(lot.effective_quantity))
    table.add_row("Stop Loss", format_money(lot.stop_loss))
    table.add_row("Take Profit", format_money(lot.take_profit))
    table.add_row("Exit Date", lot.exit_date.isoformat() if lot.exit_date else "-")
    table.add_row("Exit Price", format_money(lot.exit_price))
    table.add_row("P&L", format_pnl(lot.pnl, lot.pnl_percent))
    if lot.linked_trade_id:
        table.add_row("Linked Trade", lot.linked_trade_id)
    if lot.hypothesis:
        table.add_row("Hypothesis", lot.hypothesis)
    if lot.notes:
        table.add_row("Notes", lot.notes)

    return table


def create_summary_table(summary: PortfolioSummary) -> Table:
    """Create a Rich table for the portfolio summary."""
    table = Table(title="Portfolio Summary", show_header=False)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Open Positions Cost", format_money(summary.open_positions_cost))
    table.add_row("Closed Cost Basis", format_money(summary.closed_positions_cost_basis))
    table.add_row("Realized P&L", format_pnl(summary.realized_pnl, summary.realized_pnl_percent))
    table.add_row("Win Rate", format_percent(summary.win_rate))
    table.add_row("Wins / Losses", f"{summary.wins} / {summary.losses}")
    table.add_row("Open Positions", str(summary.open_positions))
    table.add_row("Closed Positions", str(summary.closed_positions))
    table.add_row("Total Trades", str(summary.total_trades))

    return table


def create_positions_table(valuations: list[PositionValuation]) -> Table:
    """
    Create a Rich table for open positions.

    Positions without a current price show "-" for price, value and
    unrealized P&L.
    """
    table = Table(title="Open Positions", show_header=True, header_style="bold cyan")
    table.add_column("Symbol", style="cyan", no_wrap=True)
    table.add_column("Type", style="magenta")
    table.add_column("Qty", justify="right", style="yellow")
    table.add_column("Avg Entry", justify="right")
    table.add_column("Cost Basis", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("Unrealized", justify="right")
    table.add_column("Lots", justify="right", style="dim")

    for valuation in valuations:
        position = valuation.position
        table.add_row(
            position.symbol,
            position.asset_type.value,
            format_quantity(position.total_quantity),
            format_money(position.avg_entry_price),
            format_money(position.total_cost_basis),
            format_money(valuation.current_price),
            format_money(valuation.market_value),
            format_pnl(valuation.unrealized.pnl, valuation.unrealized.pnl_percent),
            str(position.lot_count),
        )

    return table


def create_valuation_table(valuation: PortfolioValuation) -> Table:
    """Create a Rich table with portfolio value, unrealized and total P&L."""
    table = Table(title="Portfolio Value", show_header=False)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Invested", format_money(valuation.total_invested))
    table.add_row("Portfolio Value", format_money(valuation.portfolio_value))
    table.add_row("Unrealized P&L", format_pnl(valuation.unrealized_pnl, valuation.unrealized_pnl_percent))
    table.add_row("Realized P&L", format_pnl(valuation.realized_pnl))
    table.add_row("Total P&L", format_pnl(valuation.total_pnl))
    if valuation.unpriced_positions:
        table.add_row("Unpriced Positions", str(valuation.unpriced_positions))

    return table

def create_groups_tables(groups: list[AssetGroup]) -> list[Table]:
    """One trades table per asset, titled with the asset's open/closed counts and realized P&L."""
    tables = []
    for group in groups:
        title = (
            f"{group.symbol} ({group.asset_type.value}) - "
            f"{group.open_count} open, {group.closed_count} closed, "
            f"open cost {format_money(group.open_cost)}, realized {format_money(group.realized_pnl)}"
        )
        tables.append(create_trades_table(group.lots, title=title))
    return tables
