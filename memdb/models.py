"""
memdb/models.py -- Domain dataclasses for stored entities.

Pattern: Data class (pure data container, zero logic). MemoryDB owns the
lifecycle of these records; routes map them to the API response models in
api/models.py.

Layer rule: no imports from api/, auth/, or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered account.

    id and created_at are assigned by MemoryDB.create_user(); whatever the
    caller puts there is overwritten. hashed_password is None for accounts
    created without a password (they cannot log in).
    """

    username: str
    email: str
    full_name: str = ""
    is_active: bool = True
    id: int | None = None
    hashed_password: str | None = None  # bcrypt hash, never serialized
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Product:
    """A catalogue entry. price is a non-negative amount, stock a non-negative count."""

    name: str
    price: float
    description: str = ""
    stock: int = 0
    category: str = ""
    is_active: bool = True
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
