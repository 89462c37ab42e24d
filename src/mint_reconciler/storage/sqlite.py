"""SQLite implementation of the OutcomeStore protocol."""

from __future__ import annotations

import json
from pathlib import Path

import aiosqlite

from mint_reconciler.models.records import ErrorKind, MintOutcome

SCHEMA = """
-- Terminal outcomes, one row per request
CREATE TABLE IF NOT EXISTS outcomes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    request_id TEXT NOT NULL UNIQUE,
    slot INTEGER NOT NULL,
    token_id TEXT,
    final_owner TEXT,
    verified INTEGER NOT NULL DEFAULT 0,
    error_kind TEXT,
    tx_hash TEXT,
    resolved_via TEXT,
    warnings TEXT NOT NULL DEFAULT '[]',
    error TEXT,
    completed_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_outcomes_slot ON outcomes(slot);
"""


class SQLiteOutcomeStore:
    """SQLite-backed outcome cache keyed by slot."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    async def save_outcome(self, outcome: MintOutcome) -> None:
        # token ids are uint256 and do not fit an SQLite INTEGER
        await self.db.execute(
            "INSERT OR REPLACE INTO outcomes"
            " (request_id, slot, token_id, final_owner, verified, error_kind,"
            "  tx_hash, resolved_via, warnings, error, completed_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                outcome.request_id,
                outcome.slot,
                str(outcome.token_id) if outcome.token_id is not None else None,
                outcome.final_owner,
                int(outcome.verified),
                outcome.error_kind.value if outcome.error_kind else None,
                outcome.tx_hash,
                outcome.resolved_via,
                json.dumps(list(outcome.warnings)),
                outcome.error,
                outcome.completed_at,
            ),
        )
        await self.db.commit()

    async def get_completed(self, slot: int) -> MintOutcome | None:
        async with self.db.execute(
            "SELECT * FROM outcomes WHERE slot=? AND verified=1 AND error_kind IS NULL"
            " ORDER BY id DESC LIMIT 1",
            (slot,),
        ) as cur:
            row = await cur.fetchone()
            return _row_to_outcome(row) if row else None

    async def get_completed_slots(self) -> dict[int, MintOutcome]:
        async with self.db.execute(
            "SELECT * FROM outcomes WHERE verified=1 AND error_kind IS NULL ORDER BY id"
        ) as cur:
            return {row["slot"]: _row_to_outcome(row) async for row in cur}

    async def list_outcomes(self, limit: int = 50) -> list[MintOutcome]:
        async with self.db.execute(
            "SELECT * FROM outcomes ORDER BY id DESC LIMIT ?", (limit,)
        ) as cur:
            return [_row_to_outcome(row) async for row in cur]


def _row_to_outcome(row: aiosqlite.Row) -> MintOutcome:
    return MintOutcome(
        request_id=row["request_id"],
        slot=row["slot"],
        token_id=int(row["token_id"]) if row["token_id"] is not None else None,
        final_owner=row["final_owner"],
        verified=bool(row["verified"]),
        error_kind=ErrorKind(row["error_kind"]) if row["error_kind"] else None,
        tx_hash=row["tx_hash"],
        resolved_via=row["resolved_via"],
        warnings=tuple(json.loads(row["warnings"] or "[]")),
        error=row["error"],
        completed_at=row["completed_at"],
    )
