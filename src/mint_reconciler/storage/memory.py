"""In-memory implementation of the OutcomeStore protocol."""

from __future__ import annotations

from mint_reconciler.models.records import MintOutcome


class MemoryOutcomeStore:
    """Process-local outcome cache. Default when no db_path is configured."""

    def __init__(self) -> None:
        self._outcomes: list[MintOutcome] = []
        self._completed: dict[int, MintOutcome] = {}

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def save_outcome(self, outcome: MintOutcome) -> None:
        self._outcomes.append(outcome)
        if outcome.succeeded:
            self._completed[outcome.slot] = outcome

    async def get_completed(self, slot: int) -> MintOutcome | None:
        return self._completed.get(slot)

    async def get_completed_slots(self) -> dict[int, MintOutcome]:
        return dict(self._completed)

    async def list_outcomes(self, limit: int = 50) -> list[MintOutcome]:
        return list(reversed(self._outcomes))[:limit]
