"""CLI UI components - table formatters."""

from tradejournal.cli.ui.formatters import (
    create_groups_tables,
    create_positions_table,
    create_summary_table,
    create_trade_detail_table,
    create_trades_table,
    create_valuation_table,
)

__all__ = [
    "create_groups_tables",
    "create_positions_table",
    "create_summary_table",
    "create_trade_detail_table",
    "create_trades_table",
    "create_valuation_table",
]
