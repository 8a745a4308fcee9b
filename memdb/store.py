"""
memdb/store.py -- Thread-safe in-memory store for users and products.

Pattern: Repository over two identity-keyed dicts. MemoryDB is the only code
that touches the dicts; routes call its methods and receive copies.

Concurrency:
  One ReadWriteLock guards the whole store (both collections and both
  counters). Every mutation takes the lock in exclusive mode for the full
  read-counter / insert / increment sequence, so two concurrent creates can
  never be handed the same id. Lookups and listings take it in shared mode.

Identity:
  Each collection has its own counter starting at 1. A counter is advanced
  only by create and never moves backwards, so ids freed by delete are not
  handed out again.

Copies:
  Records go in and come out as dataclasses.replace() copies. A caller that
  mutates a returned record does not change what the store holds, and a list
  returned by list_users() is a snapshot that later writes cannot touch.

Layer rule: no imports from api/, auth/, or core/.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Generic, TypeVar

from memdb.models import Product, User
from memdb.rwlock import ReadWriteLock

logger = logging.getLogger("memdb.store")

_Record = TypeVar("_Record", User, Product)

# Fields no update may touch -- the store owns them.
_IMMUTABLE_FIELDS: frozenset = frozenset({"id", "created_at", "updated_at"})


def _now() -> datetime:
    return datetime.now(timezone.utc)


class _Table(Generic[_Record]):
    """One identity-keyed collection plus its id counter. Holds no lock itself."""

    def __init__(self, record_type: type[_Record]) -> None:
        self.record_type = record_type
        self.rows: dict[int, _Record] = {}
        self.next_id: int = 1
        self.mutable_fields: frozenset = frozenset(
            f.name for f in dataclasses.fields(record_type) if f.name not in _IMMUTABLE_FIELDS
        )


class MemoryDB:
    """In-memory repository for User and Product records.

    Usage:
        db = MemoryDB()
        user = db.create_user(User(username="admin", email="admin@example.com"))
        assert db.get_user(user.id) == user
        db.get_user(999)   # None, not an exception
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._users: _Table[User] = _Table(User)
        self._products: _Table[Product] = _Table(Product)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a user, assigning its id and created_at. Returns the stored record.

        No uniqueness checks on username or email -- the caller does those
        before calling. Never fails for a well-formed record.
        """
        return self._insert(self._users, user)

    def get_user(self, user_id: int) -> User | None:
        """Return the user with this id, or None if there is none."""
        return self._get(self._users, user_id)

    def list_users(self) -> list[User]:
        """Return a snapshot of all users. Order is unspecified."""
        return self._list(self._users)

    def get_user_by_username(self, username: str) -> User | None:
        """Exact, case-sensitive match on username. Linear scan."""
        with self._lock.read():
            for user in self._users.rows.values():
                if user.username == username:
                    return dataclasses.replace(user)
        return None

    def get_user_by_email(self, email: str) -> User | None:
        """Case-insensitive match on email. Linear scan."""
        wanted = email.lower()
        with self._lock.read():
            for user in self._users.rows.values():
                if user.email.lower() == wanted:
                    return dataclasses.replace(user)
        return None

    def update_user(self, user_id: int, **fields) -> User | None:
        """Apply field updates atomically. Returns the updated user or None if not found.

        Accepted fields: username, email, full_name, is_active, hashed_password.
        Raises ValueError for id, created_at, updated_at or unknown names.
        """
        return self._update(self._users, user_id, fields)

    def delete_user(self, user_id: int) -> bool:
        """Remove a user. Returns False if the id was not present."""
        return self._delete(self._users, user_id)

    def count_users(self) -> int:
        with self._lock.read():
            return len(self._users.rows)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def create_product(self, product: Product) -> Product:
        """Insert a product, assigning its id and created_at. Returns the stored record."""
        return self._insert(self._products, product)

    def get_product(self, product_id: int) -> Product | None:
        """Return the product with this id, or None if there is none."""
        return self._get(self._products, product_id)

    def list_products(self) -> list[Product]:
        """Return a snapshot of all products. Order is unspecified."""
        return self._list(self._products)

    def update_product(self, product_id: int, **fields) -> Product | None:
        """Apply field updates atomically. Returns the updated product or None if not found."""
        return self._update(self._products, product_id, fields)

    def delete_product(self, product_id: int) -> bool:
        """Remove a product. Returns False if the id was not present."""
        return self._delete(self._products, product_id)

    def count_products(self) -> int:
        with self._lock.read():
            return len(self._products.rows)

    # ------------------------------------------------------------------
    # Shared table operations
    # ------------------------------------------------------------------

    def _insert(self, table: _Table[_Record], record: _Record) -> _Record:
        # Counter read, insert and increment must happen under one exclusive hold.
        with self._lock.write():
            stored = dataclasses.replace(record, id=table.next_id, created_at=_now(), updated_at=None)
            table.rows[stored.id] = stored
            table.next_id += 1
            result = dataclasses.replace(stored)
        logger.debug("%s %d created", table.record_type.__name__, result.id)
        return result

    def _get(self, table: _Table[_Record], record_id: int) -> _Record | None:
        with self._lock.read():
            row = table.rows.get(record_id)
            return dataclasses.replace(row) if row is not None else None

    def _list(self, table: _Table[_Record]) -> list[_Record]:
        with self._lock.read():
            return [dataclasses.replace(r) for r in table.rows.values()]

    def _update(self, table: _Table[_Record], record_id: int, fields: dict) -> _Record | None:
        rejected = set(fields) - table.mutable_fields
        if rejected:
            raise ValueError(f"Cannot update {table.record_type.__name__} fields: {sorted(rejected)!r}")
        with self._lock.write():
            row = table.rows.get(record_id)
            if row is None:
                return None
            updated = dataclasses.replace(row, **fields, updated_at=_now())
            table.rows[record_id] = updated
            return dataclasses.replace(updated)

    def _delete(self, table: _Table[_Record], record_id: int) -> bool:
        with self._lock.write():
            removed = table.rows.pop(record_id, None)
        if removed is None:
            return False
        logger.debug("%s %d deleted", table.record_type.__name__, record_id)
        return True
