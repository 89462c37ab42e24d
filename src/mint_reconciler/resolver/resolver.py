"""Token resolver - applies the strategy table to a confirmed receipt."""

from __future__ import annotations

import logging
from typing import Sequence

from mint_reconciler.interfaces.chain import ChainClient
from mint_reconciler.models.events import Receipt
from mint_reconciler.models.records import Resolution
from mint_reconciler.resolver.strategies import (
    LogStrategy,
    MintedEventStrategy,
    PrimaryEventStrategy,
    ResolutionContext,
    SupplyHeuristicStrategy,
    TransferEventStrategy,
)

log = logging.getLogger(__name__)


class TokenResolver:
    """Recovers the identifier created by a mint call.

    Log strategies run in priority order and all of them are evaluated so
    that disagreements can be reported; the highest-priority hit wins. The
    supply read runs only when no log strategy produced anything.
    """

    def __init__(
        self,
        chain: ChainClient | None = None,
        log_strategies: Sequence[LogStrategy] | None = None,
        fallback: SupplyHeuristicStrategy | None = None,
    ) -> None:
        self._chain = chain
        self._log_strategies = tuple(
            log_strategies
            if log_strategies is not None
            else (PrimaryEventStrategy(), MintedEventStrategy(), TransferEventStrategy())
        )
        self._fallback = fallback

    @classmethod
    def default(cls, chain: ChainClient | None = None) -> TokenResolver:
        return cls(chain=chain, fallback=SupplyHeuristicStrategy())

    def resolve_from_logs(
        self, receipt: Receipt, ctx: ResolutionContext
    ) -> Resolution | None:
        """Synchronous part: logs only, no chain access."""
        hits = []
        for strategy in self._log_strategies:
            token_id = strategy.find(receipt, ctx)
            if token_id is not None:
                hits.append((strategy.name, token_id))

        if not hits:
            return None

        winner, token_id = hits[0]
        warnings = tuple(
            f"{name} reported token {other}, kept {winner} value {token_id}"
            for name, other in hits[1:]
            if other != token_id
        )
        for warning in warnings:
            log.warning("Resolver disagreement in %s: %s", receipt.tx_hash[:12], warning)
        return Resolution(token_id=token_id, resolved_via=winner, warnings=warnings)

    async def resolve(self, receipt: Receipt, ctx: ResolutionContext) -> Resolution | None:
        resolution = self.resolve_from_logs(receipt, ctx)
        if resolution is not None:
            log.debug(
                "Resolved token %d via %s (tx=%s)",
                resolution.token_id, resolution.resolved_via, receipt.tx_hash[:12],
            )
            return resolution

        if self._fallback is None or self._chain is None:
            return None

        token_id = await self._fallback.find(self._chain, ctx)
        if token_id is None:
            return None

        log.warning(
            "No mint event in %s, inferred token %d from totalSupply",
            receipt.tx_hash[:12], token_id,
        )
        return Resolution(
            token_id=token_id,
            resolved_via=self._fallback.name,
            low_confidence=True,
            warnings=("token id inferred from totalSupply; assumes sequential ids",),
        )
