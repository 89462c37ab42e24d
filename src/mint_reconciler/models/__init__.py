"""Data models for the mint reconciliation engine."""

from mint_reconciler.models.events import (
    IMAGE_NFT_MINTED,
    IMAGE_NFT_REQUESTED,
    TRANSFER,
    ZERO_ADDRESS,
    DecodedEvent,
    EventArgument,
    EventSignature,
    LogEntry,
    Receipt,
    same_address,
)
from mint_reconciler.models.records import (
    ErrorKind,
    MintOutcome,
    MintRequest,
    OrchestratorState,
    RejectionReason,
    Resolution,
    StallNotice,
    SubmitResult,
    TransactionHandle,
)
from mint_reconciler.models.config import ChainConfig, ContractsConfig, MinterConfig, MintConfig

__all__ = [
    "LogEntry", "Receipt", "EventArgument", "EventSignature", "DecodedEvent",
    "TRANSFER", "IMAGE_NFT_REQUESTED", "IMAGE_NFT_MINTED", "ZERO_ADDRESS",
    "same_address",
    "ErrorKind", "MintOutcome", "MintRequest", "OrchestratorState",
    "RejectionReason", "Resolution", "StallNotice", "SubmitResult",
    "TransactionHandle",
    "ChainConfig", "ContractsConfig", "MintConfig", "MinterConfig",
]
