"""Outcome stores - durable per-slot cache of terminal outcomes."""

from mint_reconciler.storage.memory import MemoryOutcomeStore
from mint_reconciler.storage.sqlite import SQLiteOutcomeStore

__all__ = ["MemoryOutcomeStore", "SQLiteOutcomeStore"]
