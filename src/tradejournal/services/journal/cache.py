"""Snapshot cache of the full trade list.

JournalService reads the whole ledger for summaries, positions and asset
groups. TradeCache keeps the last full snapshot until the next mutation
invalidates it.
"""

import threading
from collections.abc import Callable

from tradejournal.services.journal.models import Lot
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()


class TradeCache:
    """
    Holds the most recent full list of lots.

    Example:
        >>> cache = TradeCache()
        >>> lots = cache.get_or_load(ledger.list_all)   # loads
        >>> lots = cache.get_or_load(ledger.list_all)   # served from cache
        >>> cache.invalidate()                          # after any write
    """

    def __init__(self) -> None:
        self._snapshot: tuple[Lot, ...] | None = None
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get_or_load(self, loader: Callable[[], list[Lot]]) -> list[Lot]:
        """Return the cached snapshot, calling loader on a miss."""
        with self._lock:
            if self._snapshot is not None:
                self.hits += 1
                return list(self._snapshot)

            self.misses += 1
            snapshot = tuple(loader())
            self._snapshot = snapshot
            logger.debug("trade_cache.loaded", lot_count=len(snapshot))
            return list(snapshot)

    def invalidate(self) -> None:
        """Drop the snapshot; the next read reloads from the ledger."""
        with self._lock:
            self._snapshot = None

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None
