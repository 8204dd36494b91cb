"""Database bootstrap utilities for the survey graph service.

Exposes engine construction, the transaction helper used by every multi-step
write, and the migrations runner that applies SQL files from `migrations/`.
"""

from surveygraph.db.base import get_engine, transaction
from surveygraph.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "transaction",
    "apply_migrations",
]
