"""Commands __init__ - exports all trade journal commands."""

from tradejournal.cli.commands.trades import (
    add_command,
    delete_command,
    edit_command,
    groups_command,
    list_command,
    positions_command,
    show_command,
    summary_command,
)

__all__ = [
    "add_command",
    "delete_command",
    "edit_command",
    "groups_command",
    "list_command",
    "positions_command",
    "show_command",
    "summary_command",
]
