"""mint_reconciler - NFT mint orchestration and token id reconciliation."""

__version__ = "0.1.0"

from mint_reconciler.models import (
    ErrorKind,
    EventSignature,
    MintOutcome,
    MintRequest,
    OrchestratorState,
    RejectionReason,
    SubmitResult,
)
from mint_reconciler.orchestrator import MintOrchestrator

__all__ = [
    "MintOrchestrator",
    "MintRequest",
    "MintOutcome",
    "SubmitResult",
    "OrchestratorState",
    "ErrorKind",
    "RejectionReason",
    "EventSignature",
]
