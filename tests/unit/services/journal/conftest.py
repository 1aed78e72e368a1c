"""Shared fixtures for journal service tests."""

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any

import pytest

from tradejournal.services.journal.models import AssetType, Lot, TradeSide


@pytest.fixture
def make_lot() -> Callable[..., Lot]:
    """
    Factory for lots with sensible defaults.

    Buys default to remaining_quantity == quantity, sells to None.
    """

    def _make(
        side: TradeSide = TradeSide.BUY,
        symbol: str = "BTC",
        asset_type: AssetType = AssetType.CRYPTO,
        entry_price: str = "100",
        quantity: str = "2",
        entry_date: date = date(2024, 1, 15),
        **overrides: Any,
    ) -> Lot:
        fields: dict[str, Any] = {
            "asset_type": asset_type,
            "symbol": symbol,
            "side": side,
            "entry_date": entry_date,
            "entry_price": Decimal(entry_price),
            "quantity": Decimal(quantity),
        }
        if side == TradeSide.BUY:
            fields["remaining_quantity"] = Decimal(quantity)
        fields.update(overrides)
        return Lot(**fields)

    return _make


@pytest.fixture
def buy(make_lot: Callable[..., Lot]) -> Lot:
    """Buy 2 BTC @ $100."""
    return make_lot()


@pytest.fixture
def make_sell(make_lot: Callable[..., Lot]) -> Callable[..., Lot]:
    """Factory for sells linked to a given buy lot."""

    def _make(linked: Lot | None, entry_price: str, quantity: str, **overrides: Any) -> Lot:
        return make_lot(
            side=TradeSide.SELL,
            symbol=linked.symbol if linked else "BTC",
            asset_type=linked.asset_type if linked else AssetType.CRYPTO,
            entry_price=entry_price,
            quantity=quantity,
            entry_date=overrides.pop("entry_date", date(2024, 2, 1)),
            linked_trade_id=linked.id if linked else overrides.pop("linked_trade_id", "missing-id"),
            **overrides,
        )

    return _make
