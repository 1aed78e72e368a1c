"""Tradejournal services package.

Each service is independently testable and talks to its collaborators
through Protocol interfaces injected at construction.
"""

from tradejournal.services.journal import IJournalService, JournalService
from tradejournal.services.prices import IPriceGateway

__all__: list[str] = [
    "IJournalService",
    "IPriceGateway",
    "JournalService",
]
