"""Errors raised by price gateways."""

from tradejournal.services.journal.exceptions import JournalError


class QuotesFileError(JournalError):
    """A quotes file could not be read or holds an invalid quote."""

    pass
