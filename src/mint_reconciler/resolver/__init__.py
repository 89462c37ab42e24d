"""Token identifier recovery from receipts."""

from mint_reconciler.resolver.resolver import TokenResolver
from mint_reconciler.resolver.strategies import (
    MINTED_EVENT,
    PRIMARY_EVENT,
    SUPPLY_HEURISTIC,
    TRANSFER_EVENT,
    MintedEventStrategy,
    PrimaryEventStrategy,
    ResolutionContext,
    SupplyHeuristicStrategy,
    TransferEventStrategy,
)

__all__ = [
    "TokenResolver", "ResolutionContext",
    "PrimaryEventStrategy", "MintedEventStrategy", "TransferEventStrategy",
    "SupplyHeuristicStrategy",
    "PRIMARY_EVENT", "MINTED_EVENT", "TRANSFER_EVENT", "SUPPLY_HEURISTIC",
]
