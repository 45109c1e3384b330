"""Repository contract and the in-memory store used by tests and demos."""

from __future__ import annotations

import copy
import threading
from typing import (
    Any,
    Dict,
    Generic,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    TypeVar,
)

from .errors import NotFoundError, PersistenceError

T = TypeVar("T")


class RepositoryError(PersistenceError):
    """The store failed to read or write a record."""


class DuplicateRecordError(RepositoryError):
    """A record with the same key is already stored."""

    kind = "DuplicateRecord"
    http_status = 400


class RecordNotFoundError(NotFoundError, RepositoryError):
    """No stored record has the requested id."""


def matches(item: Any, filters: Mapping[str, Any]) -> bool:
    """True when every attribute named in ``filters`` equals its value."""

    return all(getattr(item, name, None) == value for name, value in filters.items())


class Repository(Protocol[T]):
    """Keyed record store shared by the in-memory and SQLite backends."""

    def __contains__(self, item_id: object) -> bool: ...

    def __len__(self) -> int: ...

    def __iter__(self) -> Iterator[T]: ...

    def add(self, item_id: str, item: T) -> None: ...

    def upsert(self, item_id: str, item: T) -> None: ...

    def get(self, item_id: str) -> T: ...

    def remove(self, item_id: str) -> None: ...

    def list(self) -> List[T]: ...

    def find_one(self, **filters: Any) -> Optional[T]: ...

    def count(self, **filters: Any) -> int: ...


class InMemoryRepository(Generic[T]):
    """Dictionary-backed store.

    Records are copied on the way in and out, so a caller only changes
    stored state through ``add``/``upsert``, the same as with SQLite.
    ``unique_fields`` names attributes that no two records may share.
    """

    def __init__(self, *, unique_fields: Sequence[str] = ()) -> None:
        self._records: Dict[str, T] = {}
        self._unique_fields: Tuple[str, ...] = tuple(unique_fields)
        self._guard = threading.RLock()

    def _check_unique(self, item_id: str, item: T) -> None:
        for name in self._unique_fields:
            value = getattr(item, name, None)
            if value is None:
                continue
            for other_id, other in self._records.items():
                if other_id != item_id and getattr(other, name, None) == value:
                    raise DuplicateRecordError(
                        f"Record with {name} {value!r} already exists"
                    )

    def __contains__(self, item_id: object) -> bool:
        with self._guard:
            return item_id in self._records

    def __len__(self) -> int:
        with self._guard:
            return len(self._records)

    def __iter__(self) -> Iterator[T]:
        return iter(self.list())

    def add(self, item_id: str, item: T) -> None:
        with self._guard:
            if item_id in self._records:
                raise DuplicateRecordError(f"Record with id {item_id!r} already exists")
            self._check_unique(item_id, item)
            self._records[item_id] = copy.deepcopy(item)

    def upsert(self, item_id: str, item: T) -> None:
        with self._guard:
            self._check_unique(item_id, item)
            self._records[item_id] = copy.deepcopy(item)

    def get(self, item_id: str) -> T:
        with self._guard:
            if item_id not in self._records:
                raise RecordNotFoundError(f"Record with id {item_id!r} not found")
            return copy.deepcopy(self._records[item_id])

    def remove(self, item_id: str) -> None:
        with self._guard:
            if self._records.pop(item_id, None) is None:
                raise RecordNotFoundError(f"Record with id {item_id!r} not found")

    def list(self) -> List[T]:
        with self._guard:
            return [copy.deepcopy(record) for record in self._records.values()]

    def find_one(self, **filters: Any) -> Optional[T]:
        with self._guard:
            for record in self._records.values():
                if matches(record, filters):
                    return copy.deepcopy(record)
        return None

    def count(self, **filters: Any) -> int:
        with self._guard:
            return sum(1 for record in self._records.values() if matches(record, filters))


__all__ = [
    "Repository",
    "InMemoryRepository",
    "RepositoryError",
    "DuplicateRecordError",
    "RecordNotFoundError",
    "matches",
]
