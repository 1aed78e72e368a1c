"""Price quote model supplied by market-data collaborators."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tradejournal.services.journal.models import AssetType, utcnow


class PriceQuote(BaseModel):
    """
    Latest market quote for one (symbol, asset_type).

    Attributes:
        symbol: Upper-cased ticker
        asset_type: crypto or stock
        price: Last traded price
        change_24h: Absolute change over 24h (previous close for stocks)
        change_percent_24h: Percent change over 24h
        high_24h: 24h high
        low_24h: 24h low
        volume_24h: 24h traded volume
        last_updated: When the quote was fetched
    """

    symbol: str
    asset_type: AssetType
    price: Decimal
    change_24h: Decimal = Decimal("0")
    change_percent_24h: Decimal = Decimal("0")
    high_24h: Decimal | None = None
    low_24h: Decimal | None = None
    volume_24h: Decimal = Decimal("0")
    last_updated: datetime = Field(default_factory=utcnow)

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError(f"Price must be positive, got {v}")
        return v

    model_config = ConfigDict(frozen=True)
