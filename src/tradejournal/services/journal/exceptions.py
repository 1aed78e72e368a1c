"""Error taxonomy for the journal service."""

from pydantic import ValidationError as PydanticValidationError


class JournalError(Exception):
    """Base exception for journal errors."""

    pass


class TradeValidationError(JournalError):
    """
    A required field is missing or invalid.

    Raised before any ledger write. ``errors`` maps each offending field
    to a human-readable reason.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        reasons = "; ".join(f"{name}: {reason}" for name, reason in self.errors.items())
        super().__init__(f"Invalid trade: {reasons}")

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "TradeValidationError":
        """Collapse a pydantic ValidationError into one reason per field."""
        errors: dict[str, str] = {}
        for error in exc.errors():
            name = ".".join(str(part) for part in error["loc"]) or "trade"
            message = error["msg"]
            if message.startswith("Value error, "):
                message = message[len("Value error, ") :]
            errors.setdefault(name, message)
        return cls(errors)


class TradeNotFoundError(JournalError):
    """Operation addressed a trade id that is not in the ledger."""

    def __init__(self, trade_id: str) -> None:
        self.trade_id = trade_id
        super().__init__(f"Trade not found: {trade_id}")


class LedgerError(JournalError):
    """The lot ledger failed to read or write."""

    pass


class UnlinkedSellWarning(UserWarning):
    """
    A sell could not be matched against the trade it references.

    Not raised: the sell is still recorded (open, no P&L) and the warning
    is returned to the caller alongside the created trade.
    """

    def __init__(self, sell_id: str, linked_trade_id: str, reason: str = "was not found") -> None:
        self.sell_id = sell_id
        self.linked_trade_id = linked_trade_id
        self.reason = reason
        super().__init__(f"Sell {sell_id} recorded as unlinked: trade {linked_trade_id} {reason}")
