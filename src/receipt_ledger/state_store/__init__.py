"""
State store for idempotency, audit trail and ledger writes.
"""

from .sqlite_store import StateStore, from_cents, to_cents

__all__ = ["StateStore", "from_cents", "to_cents"]
