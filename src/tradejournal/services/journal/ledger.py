"""Lot ledger backends.

Two interchangeable implementations of ILotLedger:
- InMemoryLotLedger: dict-backed, for tests and throwaway sessions
- SQLiteLotLedger: durable single-file store

Both serialize transactions and roll back everything done inside a
transaction block that raises.
"""

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any

from tradejournal.services.journal.exceptions import LedgerError, TradeNotFoundError
from tradejournal.services.journal.interface import ILotLedger
from tradejournal.services.journal.models import Lot, LotFilter, utcnow
from tradejournal.system import LoggerFactory
from tradejournal.system.config import JournalConfig

logger = LoggerFactory.get_logger()

# Fields a ledger update may never overwrite
_IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


def _sort_newest_first(lots: list[Lot]) -> list[Lot]:
    return sorted(lots, key=lambda lot: (lot.entry_date, lot.created_at), reverse=True)


class InMemoryLotLedger:
    """
    In-memory lot ledger.

    Lots are immutable, so a transaction snapshot is a shallow copy of the
    id -> lot mapping, restored if the transaction block raises.

    Example:
        >>> ledger = InMemoryLotLedger()
        >>> ledger.insert(lot)
        >>> ledger.get_by_id(lot.id) == lot
        True
    """

    def __init__(self) -> None:
        self._lots: dict[str, Lot] = {}
        self._lock = threading.RLock()

    def get_by_id(self, trade_id: str) -> Lot | None:
        with self._lock:
            return self._lots.get(trade_id)

    def insert(self, lot: Lot) -> None:
        with self._lock:
            if lot.id in self._lots:
                raise LedgerError(f"Trade ID {lot.id} already exists in ledger")
            self._lots[lot.id] = lot

    def update(self, trade_id: str, fields: dict[str, Any]) -> Lot:
        with self._lock:
            existing = self._lots.get(trade_id)
            if existing is None:
                raise TradeNotFoundError(trade_id)
            changes = {key: value for key, value in fields.items() if key not in _IMMUTABLE_FIELDS}
            changes["updated_at"] = utcnow()
            updated = existing.model_copy(update=changes)
            self._lots[trade_id] = updated
            return updated

    def delete_by_id(self, trade_id: str) -> bool:
        with self._lock:
            return self._lots.pop(trade_id, None) is not None

    def delete_where_linked(self, trade_id: str) -> int:
        with self._lock:
            linked = [lot.id for lot in self._lots.values() if lot.linked_trade_id == trade_id]
            for lot_id in linked:
                del self._lots[lot_id]
            return len(linked)

    def list_all(self, lot_filter: LotFilter | None = None) -> list[Lot]:
        with self._lock:
            lots = list(self._lots.values())
        if lot_filter is not None:
            lots = [lot for lot in lots if lot_filter.matches(lot)]
        return _sort_newest_first(lots)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = dict(self._lots)
            try:
                yield
            except BaseException:
                self._lots = snapshot
                raise

    def close(self) -> None:
        pass

    def __len__(self) -> int:
        return len(self._lots)


_COLUMNS: tuple[str, ...] = (
    "id",
    "asset_type",
    "symbol",
    "side",
    "entry_date",
    "entry_price",
    "quantity",
    "remaining_quantity",
    "stop_loss",
    "take_profit",
    "hypothesis",
    "status",
    "exit_date",
    "exit_price",
    "pnl",
    "pnl_percent",
    "notes",
    "linked_trade_id",
    "created_at",
    "updated_at",
)

# Decimals are stored as TEXT so values round-trip exactly
_SCHEMA = """
CREATE TABLE IF NOT EXISTS trades (
    id TEXT PRIMARY KEY,
    asset_type TEXT NOT NULL CHECK(asset_type IN ('crypto', 'stock')),
    symbol TEXT NOT NULL,
    side TEXT NOT NULL CHECK(side IN ('buy', 'sell')),
    entry_date TEXT NOT NULL,
    entry_price TEXT NOT NULL,
    quantity TEXT NOT NULL,
    remaining_quantity TEXT,
    stop_loss TEXT,
    take_profit TEXT,
    hypothesis TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'open' CHECK(status IN ('open', 'closed')),
    exit_date TEXT,
    exit_price TEXT,
    pnl TEXT,
    pnl_percent TEXT,
    notes TEXT NOT NULL DEFAULT '',
    linked_trade_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_trades_symbol ON trades(symbol);
CREATE INDEX IF NOT EXISTS idx_trades_status ON trades(status);
CREATE INDEX IF NOT EXISTS idx_trades_asset_type ON trades(asset_type);
CREATE INDEX IF NOT EXISTS idx_trades_linked_trade_id ON trades(linked_trade_id);
"""


def _to_db(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat(timespec="microseconds")
    if isinstance(value, date):
        return value.isoformat()
    return value


class SQLiteLotLedger:
    """
    SQLite-backed lot ledger.

    Each Lot field maps to one column of the ``trades`` table; enum columns
    are guarded by CHECK constraints. Transactions take the write lock up
    front (BEGIN IMMEDIATE), so a read-modify-write of a buy lot cannot
    interleave with another writer, in this process or another.

    Example:
        >>> ledger = SQLiteLotLedger(Path("journal.db"))
        >>> with ledger.transaction():
        ...     ledger.insert(sell)
        ...     ledger.update(buy.id, {"remaining_quantity": Decimal("1")})
    """

    def __init__(self, db_path: Path | str = ":memory:", timeout: float = 5.0) -> None:
        """
        Open (and create if needed) the ledger database.

        Args:
            db_path: Database file, or ":memory:"
            timeout: Seconds to wait for another writer's lock
        """
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()
        self._depth = 0
        try:
            self._conn = sqlite3.connect(
                self.db_path,
                timeout=timeout,
                check_same_thread=False,
                isolation_level=None,  # explicit BEGIN/COMMIT
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(_SCHEMA)
            migrated = self._conn.execute(
                "UPDATE trades SET remaining_quantity = quantity WHERE side = 'buy' AND remaining_quantity IS NULL"
            ).rowcount
        except sqlite3.Error as exc:
            raise LedgerError(f"Failed to open ledger at {self.db_path}: {exc}") from exc

        logger.debug("ledger.sqlite.initialized", db_path=self.db_path, migrated_lots=migrated)

    def get_by_id(self, trade_id: str) -> Lot | None:
        row = self._query_one("SELECT * FROM trades WHERE id = ?", (trade_id,))
        return None if row is None else self._row_to_lot(row)

    def insert(self, lot: Lot) -> None:
        values = tuple(_to_db(getattr(lot, column)) for column in _COLUMNS)
        placeholders = ", ".join("?" for _ in _COLUMNS)
        self._execute(f"INSERT INTO trades ({', '.join(_COLUMNS)}) VALUES ({placeholders})", values)

    def update(self, trade_id: str, fields: dict[str, Any]) -> Lot:
        changes = {key: value for key, value in fields.items() if key not in _IMMUTABLE_FIELDS}
        unknown = set(changes) - set(_COLUMNS)
        if unknown:
            raise LedgerError(f"Unknown trade fields: {sorted(unknown)}")
        changes["updated_at"] = utcnow()

        assignments = ", ".join(f"{key} = ?" for key in changes)
        params = tuple(_to_db(value) for value in changes.values()) + (trade_id,)

        with self._lock:
            cursor = self._execute(f"UPDATE trades SET {assignments} WHERE id = ?", params)
            if cursor.rowcount == 0:
                raise TradeNotFoundError(trade_id)
            updated = self.get_by_id(trade_id)
        assert updated is not None
        return updated

    def delete_by_id(self, trade_id: str) -> bool:
        cursor = self._execute("DELETE FROM trades WHERE id = ?", (trade_id,))
        return cursor.rowcount > 0

    def delete_where_linked(self, trade_id: str) -> int:
        cursor = self._execute("DELETE FROM trades WHERE linked_trade_id = ?", (trade_id,))
        return cursor.rowcount

    def list_all(self, lot_filter: LotFilter | None = None) -> list[Lot]:
        query = "SELECT * FROM trades WHERE 1=1"
        params: list[Any] = []

        if lot_filter is not None:
            if lot_filter.status is not None:
                query += " AND status = ?"
                params.append(lot_filter.status.value)
            if lot_filter.asset_type is not None:
                query += " AND asset_type = ?"
                params.append(lot_filter.asset_type.value)
            if lot_filter.symbol is not None:
                query += " AND symbol = ?"
                params.append(lot_filter.symbol)

        query += " ORDER BY entry_date DESC, created_at DESC"

        with self._lock:
            try:
                rows = self._conn.execute(query, params).fetchall()
            except sqlite3.Error as exc:
                raise LedgerError(f"Failed to list trades: {exc}") from exc
        return [self._row_to_lot(row) for row in rows]

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._depth > 0:
                # Nested block joins the enclosing transaction
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            self._execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield
            except BaseException:
                self._depth = 0
                self._rollback()
                raise
            self._depth = 0
            try:
                self._execute("COMMIT")
            except LedgerError:
                self._rollback()
                raise

    def _rollback(self) -> None:
        # SQLite may already have rolled back on its own (e.g. SQLITE_FULL)
        if self._conn.in_transaction:
            self._execute("ROLLBACK")

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                return self._conn.execute(sql, params)
            except sqlite3.Error as exc:
                logger.error("ledger.sqlite.write_failed", db_path=self.db_path, error=str(exc))
                raise LedgerError(f"Ledger write failed: {exc}") from exc

    def _query_one(self, sql: str, params: tuple[Any, ...]) -> sqlite3.Row | None:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchone()
            except sqlite3.Error as exc:
                raise LedgerError(f"Ledger read failed: {exc}") from exc

    @staticmethod
    def _row_to_lot(row: sqlite3.Row) -> Lot:
        return Lot.model_validate({column: row[column] for column in _COLUMNS})


def create_ledger(config: JournalConfig) -> ILotLedger:
    """
    Build the ledger backend named in configuration.

    Args:
        config: Journal section of SystemConfig

    Returns:
        InMemoryLotLedger or SQLiteLotLedger
    """
    if config.ledger_backend == "memory":
        return InMemoryLotLedger()
    if config.ledger_backend == "sqlite":
        return SQLiteLotLedger(Path(config.database_path))
    raise ValueError(f"Unknown ledger backend: {config.ledger_backend}")
