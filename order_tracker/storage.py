"""SQLite-backed persistence helpers for the order tracker."""

from __future__ import annotations

import pickle
import sqlite3
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Generic, Iterator, List, Optional, Sequence, Tuple, TypeVar

from .domain import Admin, Customer, Order
from .repository import DuplicateRecordError, RecordNotFoundError, RepositoryError, matches

T = TypeVar("T")


def _column_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class SQLiteRepository(Generic[T]):
    """Pickled records in one SQLite table.

    ``lookup_fields`` names record attributes that are copied into indexed
    columns; ``find_one`` and ``count`` filtering only on those attributes
    run as SQL queries instead of full-table scans. Columns listed in
    ``unique_fields`` get a unique index, so SQLite itself rejects a second
    record with the same value.
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        table: str,
        *,
        lookup_fields: Sequence[str] = (),
        unique_fields: Sequence[str] = (),
        lock: Optional[threading.RLock] = None,
    ) -> None:
        self._connection = connection
        self._table = table
        self._lookup_fields: Tuple[str, ...] = tuple(
            dict.fromkeys((*lookup_fields, *unique_fields))
        )
        self._unique_fields = frozenset(unique_fields)
        self._lock = lock or threading.RLock()
        extra_columns = "".join(f", {name} TEXT" for name in self._lookup_fields)
        with self._transaction() as conn:
            conn.execute(
                f"CREATE TABLE IF NOT EXISTS {table} ("  # nosec - static table names
                f"record_id TEXT PRIMARY KEY, data BLOB NOT NULL{extra_columns})"
            )
            for name in self._lookup_fields:
                if name in self._unique_fields:
                    conn.execute(
                        f"CREATE UNIQUE INDEX IF NOT EXISTS ux_{table}_{name} "
                        f"ON {table} ({name})"
                    )
                else:
                    conn.execute(
                        f"CREATE INDEX IF NOT EXISTS ix_{table}_{name} ON {table} ({name})"
                    )

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run statements under the connection lock; commit or roll back as one."""

        with self._lock:
            try:
                with self._connection:
                    yield self._connection
            except sqlite3.Error as exc:
                raise RepositoryError(f"Storage failure on {self._table!r}: {exc}") from exc

    def _lookup_values(self, item: T) -> List[Optional[str]]:
        return [_column_value(getattr(item, name, None)) for name in self._lookup_fields]

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------
    def __contains__(self, item_id: object) -> bool:
        if not isinstance(item_id, str):
            return False
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT 1 FROM {self._table} WHERE record_id = ?", (item_id,)
            ).fetchone()
        return row is not None

    def __len__(self) -> int:
        with self._transaction() as conn:
            (total,) = conn.execute(f"SELECT COUNT(*) FROM {self._table}").fetchone()
        return int(total)

    def __iter__(self) -> Iterator[T]:
        return iter(self.list())

    # ------------------------------------------------------------------
    # Reads and writes
    # ------------------------------------------------------------------
    def add(self, item_id: str, item: T) -> None:
        columns = ", ".join(("record_id", "data") + self._lookup_fields)
        marks = ", ".join("?" for _ in range(2 + len(self._lookup_fields)))
        with self._transaction() as conn:
            try:
                conn.execute(
                    f"INSERT INTO {self._table} ({columns}) VALUES ({marks})",
                    (item_id, pickle.dumps(item), *self._lookup_values(item)),
                )
            except sqlite3.IntegrityError as exc:
                raise DuplicateRecordError(
                    f"Record {item_id!r} clashes with a stored record: {exc}"
                ) from exc

    def upsert(self, item_id: str, item: T) -> None:
        names = ("data",) + self._lookup_fields
        columns = ", ".join(("record_id",) + names)
        marks = ", ".join("?" for _ in range(1 + len(names)))
        updates = ", ".join(f"{name} = excluded.{name}" for name in names)
        with self._transaction() as conn:
            try:
                conn.execute(
                    f"INSERT INTO {self._table} ({columns}) VALUES ({marks}) "
                    f"ON CONFLICT(record_id) DO UPDATE SET {updates}",
                    (item_id, pickle.dumps(item), *self._lookup_values(item)),
                )
            except sqlite3.IntegrityError as exc:
                raise DuplicateRecordError(
                    f"Record {item_id!r} clashes with a stored record: {exc}"
                ) from exc

    def get(self, item_id: str) -> T:
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT data FROM {self._table} WHERE record_id = ?", (item_id,)
            ).fetchone()
        if row is None:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found")
        return pickle.loads(row[0])

    def remove(self, item_id: str) -> None:
        with self._transaction() as conn:
            deleted = conn.execute(
                f"DELETE FROM {self._table} WHERE record_id = ?", (item_id,)
            ).rowcount
        if not deleted:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found")

    def list(self) -> List[T]:
        return self._select({})

    def find_one(self, **filters: Any) -> Optional[T]:
        found = self._select(filters, limit=1)
        return found[0] if found else None

    def count(self, **filters: Any) -> int:
        if not filters:
            return len(self)
        return len(self._select(filters))

    def _select(self, filters: Dict[str, Any], limit: Optional[int] = None) -> List[T]:
        indexed = {name: value for name, value in filters.items() if name in self._lookup_fields}
        clause = " AND ".join(f"{name} = ?" for name in indexed)
        statement = f"SELECT data FROM {self._table}"
        if clause:
            statement += f" WHERE {clause}"
        statement += " ORDER BY rowid"
        parameters = tuple(_column_value(value) for value in indexed.values())
        with self._transaction() as conn:
            rows = conn.execute(statement, parameters).fetchall()

        items: List[T] = []
        for row in rows:
            item = pickle.loads(row[0])
            if matches(item, filters):
                items.append(item)
                if limit is not None and len(items) >= limit:
                    break
        return items


class OrderDatabase:
    """One SQLite file holding the order, customer and admin tables."""

    def __init__(self, path: str) -> None:
        try:
            self._connection = sqlite3.connect(path, check_same_thread=False)
        except sqlite3.Error as exc:
            raise RepositoryError(f"Cannot open database {path!r}: {exc}") from exc
        lock = threading.RLock()
        self.orders = SQLiteRepository[Order](
            self._connection, "orders", unique_fields=("order_id",), lock=lock
        )
        self.customers = SQLiteRepository[Customer](
            self._connection, "customers", unique_fields=("email",), lock=lock
        )
        self.admins = SQLiteRepository[Admin](
            self._connection, "admins", unique_fields=("email",), lock=lock
        )

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "OrderDatabase":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = ["SQLiteRepository", "OrderDatabase"]
