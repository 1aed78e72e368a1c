"""Unit tests for TradeCache."""

from tradejournal.services.journal.cache import TradeCache
from tradejournal.services.journal.models import Lot


def test_loads_once_until_invalidated(buy: Lot) -> None:
    calls = []

    def loader() -> list[Lot]:
        calls.append(1)
        return [buy]

    cache = TradeCache()
    assert not cache.is_loaded

    assert cache.get_or_load(loader) == [buy]
    assert cache.get_or_load(loader) == [buy]
    assert len(calls) == 1
    assert cache.hits == 1
    assert cache.misses == 1

    cache.invalidate()
    assert not cache.is_loaded
    cache.get_or_load(loader)
    assert len(calls) == 2


def test_returned_list_is_a_copy(buy: Lot) -> None:
    """Mutating a returned list does not change the cached snapshot."""
    cache = TradeCache()
    first = cache.get_or_load(lambda: [buy])
    first.clear()

    assert cache.get_or_load(lambda: []) == [buy]
