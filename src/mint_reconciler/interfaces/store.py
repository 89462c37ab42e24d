"""OutcomeStore protocol - durable per-slot cache of terminal outcomes."""

from __future__ import annotations

from typing import Protocol

from mint_reconciler.models.records import MintOutcome


class OutcomeStore(Protocol):
    """Persists terminal outcomes so completed slots survive restarts."""

    async def initialize(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def save_outcome(self, outcome: MintOutcome) -> None:
        """Record a terminal outcome (successful or not)."""
        ...

    async def get_completed(self, slot: int) -> MintOutcome | None:
        """The successful outcome recorded for a slot, if any."""
        ...

    async def get_completed_slots(self) -> dict[int, MintOutcome]:
        """All slots with a successful outcome."""
        ...

    async def list_outcomes(self, limit: int = 50) -> list[MintOutcome]:
        """Most recent outcomes first."""
        ...
