"""Trade journal commands - thin CLI orchestration over JournalService."""

import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Literal, Optional, cast

import click
from rich.console import Console

from tradejournal.cli.ui import (
    create_groups_tables,
    create_positions_table,
    create_summary_table,
    create_trade_detail_table,
    create_trades_table,
    create_valuation_table,
)
from tradejournal.cli.ui.formatters import format_money, format_pnl, format_quantity
from tradejournal.services.journal import JournalError, JournalService, TradeValidationError, create_ledger
from tradejournal.services.prices import CachingPriceGateway, IPriceGateway, StaticPriceGateway
from tradejournal.system import LoggerFactory, reload_system_config

console = Console()

ASSET_TYPES = click.Choice(["crypto", "stock"], case_sensitive=False)
DATE = click.DateTime(formats=["%Y-%m-%d"])


def _open_journal(ctx: click.Context) -> JournalService:
    """Load configuration, configure logging and build the service for one command."""
    options = ctx.ensure_object(dict)
    config = reload_system_config(options.get("config_file"))

    log_level = options.get("log_level")
    if log_level:
        # click already validated the choice
        config.logging.level = cast(Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], log_level.upper())
    LoggerFactory.configure(config.logging.to_logger_config())

    ledger = create_ledger(config.journal)
    ctx.call_on_close(ledger.close)

    gateway: IPriceGateway | None = None
    if config.prices.quotes_file:
        gateway = CachingPriceGateway(
            StaticPriceGateway.from_yaml(Path(config.prices.quotes_file)),
            expiry_minutes=config.prices.cache_expiry_minutes,
        )
    return JournalService(ledger, price_gateway=gateway)


def _fail(action: str, error: Exception) -> None:
    console.print(f"[bold red]✗ {action} failed:[/bold red] {error}")
    if isinstance(error, TradeValidationError):
        for field, reason in error.errors.items():
            console.print(f"  [red]{field}[/red]: {reason}")
    sys.exit(1)


def _as_date(value: Optional[datetime]) -> Optional[date]:
    return value.date() if value is not None else None


@click.command("add")
@click.argument("side", type=click.Choice(["buy", "sell"], case_sensitive=False))
@click.argument("symbol")
@click.option("--asset-type", "-t", type=ASSET_TYPES, required=True, help="Asset class (crypto or stock)")
@click.option("--price", "-p", required=True, help="Execution price per unit")
@click.option("--quantity", "-q", required=True, help="Executed quantity")
@click.option("--date", "-d", "entry_date", type=DATE, help="Execution date (YYYY-MM-DD, default today)")
@click.option("--stop-loss", help="Advisory stop level")
@click.option("--take-profit", help="Advisory target level")
@click.option("--hypothesis", default="", help="Trade thesis")
@click.option("--notes", default="", help="Free-text notes")
@click.option("--link", "linked_trade_id", help="Buy trade ID this sell closes")
@click.pass_context
def add_command(
    ctx: click.Context,
    side: str,
    symbol: str,
    asset_type: str,
    price: str,
    quantity: str,
    entry_date: Optional[datetime],
    stop_loss: Optional[str],
    take_profit: Optional[str],
    hypothesis: str,
    notes: str,
    linked_trade_id: Optional[str],
):
    """
    Record a buy or sell trade.

    A sell given --link is matched against that buy trade: the buy's
    remaining quantity drops, and the buy closes when nothing remains.

    \b
    Examples:
        tradejournal add buy BTC -t crypto -p 42000 -q 0.5 -d 2024-01-15
        tradejournal add sell BTC -t crypto -p 48000 -q 0.5 --link <buy-id>
    """
    try:
        journal = _open_journal(ctx)
        result = journal.create_trade(
            {
                "asset_type": asset_type.lower(),
                "symbol": symbol,
                "side": side.lower(),
                "entry_date": _as_date(entry_date) or date.today(),
                "entry_price": price,
                "quantity": quantity,
                "stop_loss": stop_loss,
                "take_profit": take_profit,
                "hypothesis": hypothesis,
                "notes": notes,
                "linked_trade_id": linked_trade_id,
            }
        )
    except JournalError as e:
        _fail("Add trade", e)
        return

    trade = result.trade
    console.print(
        f"[bold green]✓ Recorded {trade.side.value.upper()}[/bold green] "
        f"{format_quantity(trade.quantity)} {trade.symbol} @ {format_money(trade.entry_price)}"
    )
    console.print(f"  ID: [yellow]{trade.id}[/yellow]")

    if trade.pnl is not None:
        console.print(f"  Realized P&L: {format_pnl(trade.pnl, trade.pnl_percent)}")

    linked = result.linked_trade
    if linked is not None:
        if result.unmatched_quantity == trade.quantity:
            console.print(f"  [yellow]⚠ Buy {linked.id[:8]} had no remaining quantity to match[/yellow]")
        elif linked.is_closed:
            console.print(f"  [cyan]Closed buy {linked.id[:8]}[/cyan]")
        else:
            console.print(
                f"  [cyan]Buy {linked.id[:8]} remaining:[/cyan] {format_quantity(linked.remaining_quantity)}"
            )

    if linked is not None and 0 < result.unmatched_quantity < trade.quantity:
        console.print(
            f"  [yellow]⚠ {format_quantity(result.unmatched_quantity)} exceeded the linked buy and was not matched[/yellow]"
        )
    for warning in result.warnings:
        console.print(f"  [yellow]⚠ {warning}[/yellow]")


@click.command("list")
@click.option("--status", "-s", type=click.Choice(["open", "closed"], case_sensitive=False), help="Filter by status")
@click.option("--asset-type", "-t", type=ASSET_TYPES, help="Filter by asset class")
@click.option("--symbol", help="Filter by symbol")
@click.pass_context
def list_command(ctx: click.Context, status: Optional[str], asset_type: Optional[str], symbol: Optional[str]):
    """
    List trades, newest first.

    Example:
        tradejournal list --status open --asset-type crypto
    """
    try:
        journal = _open_journal(ctx)
        lots = journal.list_trades(
            {
                "status": status.lower() if status else None,
                "asset_type": asset_type.lower() if asset_type else None,
                "symbol": symbol,
            }
        )
    except JournalError as e:
        _fail("List trades", e)
        return

    if not lots:
        console.print("[yellow]No trades recorded[/yellow]")
        return

    console.print(create_trades_table(lots))
    console.print(f"\n[dim]{len(lots)} trade(s)[/dim]")


@click.command("show")
@click.argument("trade_id")
@click.pass_context
def show_command(ctx: click.Context, trade_id: str):
    """Show every field of one trade."""
    try:
        journal = _open_journal(ctx)
        lot = journal.get_trade(trade_id)
    except JournalError as e:
        _fail("Show trade", e)
        return

    console.print(create_trade_detail_table(lot))


@click.command("edit")
@click.argument("trade_id")
@click.option("--asset-type", "-t", type=ASSET_TYPES, help="Asset class")
@click.option("--symbol", help="Symbol")
@click.option("--date", "-d", "entry_date", type=DATE, help="Execution date (YYYY-MM-DD)")
@click.option("--price", "-p", "entry_price", help="Execution price per unit")
@click.option("--quantity", "-q", help="Original quantity")
@click.option("--stop-loss", help="Advisory stop level")
@click.option("--take-profit", help="Advisory target level")
@click.option("--hypothesis", help="Trade thesis")
@click.option("--notes", help="Free-text notes")
@click.option("--status", "-s", type=click.Choice(["open", "closed"], case_sensitive=False), help="Status")
@click.option("--exit-date", type=DATE, help="Exit date (YYYY-MM-DD)")
@click.option("--exit-price", help="Exit price (closing a buy recomputes its P&L)")
@click.pass_context
def edit_command(
    ctx: click.Context,
    trade_id: str,
    asset_type: Optional[str],
    symbol: Optional[str],
    entry_date: Optional[datetime],
    entry_price: Optional[str],
    quantity: Optional[str],
    stop_loss: Optional[str],
    take_profit: Optional[str],
    hypothesis: Optional[str],
    notes: Optional[str],
    status: Optional[str],
    exit_date: Optional[datetime],
    exit_price: Optional[str],
):
    """
    Edit fields of a trade.

    Only the options given are changed. Closing a buy with an exit price
    records its P&L over the full original quantity.

    \b
    Examples:
        tradejournal edit <id> --notes "moved stop"
        tradejournal edit <buy-id> --status closed --exit-price 190 --exit-date 2024-05-01
    """
    candidates: dict[str, Any] = {
        "asset_type": asset_type.lower() if asset_type else None,
        "symbol": symbol,
        "entry_date": _as_date(entry_date),
        "entry_price": entry_price,
        "quantity": quantity,
        "stop_loss": stop_loss,
        "take_profit": take_profit,
        "hypothesis": hypothesis,
        "notes": notes,
        "status": status.lower() if status else None,
        "exit_date": _as_date(exit_date),
        "exit_price": exit_price,
    }
    fields = {name: value for name, value in candidates.items() if value is not None}

    if not fields:
        console.print("[yellow]Nothing to change: pass at least one field option[/yellow]")
        sys.exit(1)

    try:
        journal = _open_journal(ctx)
        lot = journal.update_trade(trade_id, fields)
    except JournalError as e:
        _fail("Edit trade", e)
        return

    console.print(f"[bold green]✓ Updated {lot.symbol} {lot.side.value}[/bold green] ({', '.join(sorted(fields))})")
    if lot.pnl is not None:
        console.print(f"  P&L: {format_pnl(lot.pnl, lot.pnl_percent)}")


@click.command("delete")
@click.argument("trade_id")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_command(ctx: click.Context, trade_id: str, yes: bool):
    """
    Delete a trade and every sell linked to it.

    Deleting a sell does not give its quantity back to the buy it closed.
    """
    if not yes:
        click.confirm(f"Delete trade {trade_id} and its linked trades?", abort=True)

    try:
        journal = _open_journal(ctx)
        journal.delete_trade(trade_id)
    except JournalError as e:
        _fail("Delete trade", e)
        return

    console.print(f"[bold green]✓ Deleted trade {trade_id}[/bold green]")


@click.command("summary")
@click.pass_context
def summary_command(ctx: click.Context):
    """Show realized P&L, cost basis and win rate."""
    try:
        journal = _open_journal(ctx)
        summary = journal.get_portfolio_summary()
    except JournalError as e:
        _fail("Summary", e)
        return

    console.print(create_summary_table(summary))


@click.command("positions")
@click.option(
    "--quotes",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file of current prices (overrides prices.quotes_file)",
)
@click.pass_context
def positions_command(ctx: click.Context, quotes: Optional[Path]):
    """
    Show open positions with unrealized P&L, then portfolio value and
    total P&L (realized plus unrealized).

    \b
    Quotes file format:
        crypto:
          BTC: 65000
        stock:
          AAPL: {price: 190.5}
    """
    try:
        journal = _open_journal(ctx)
        gateway = StaticPriceGateway.from_yaml(quotes) if quotes else None
        valuations = journal.get_open_positions(gateway)
        portfolio = journal.get_portfolio_valuation(gateway)
    except JournalError as e:
        _fail("Positions", e)
        return

    if not valuations:
        console.print("[yellow]No open positions[/yellow]")
        return

    console.print(create_positions_table(valuations))
    console.print(create_valuation_table(portfolio))

    missing = [v.position.symbol for v in valuations if v.current_price is None]
    if missing:
        console.print(f"[dim]No current price for: {', '.join(missing)}[/dim]")


@click.command("groups")
@click.pass_context
def groups_command(ctx: click.Context):
    """Show every trade grouped by asset."""
    try:
        journal = _open_journal(ctx)
        groups = journal.get_asset_groups()
    except JournalError as e:
        _fail("Groups", e)
        return

    if not groups:
        console.print("[yellow]No trades recorded[/yellow]")
        return

    for table in create_groups_tables(groups):
        console.print(table)
        console.print()
