"""Request, outcome and state records for the mint orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from mint_reconciler.models.events import EventSignature

if TYPE_CHECKING:
    from mint_reconciler.chain.abi import ContractMethod


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrchestratorState(str, Enum):
    """Lifecycle state of a slot (and of the request occupying it)."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    RECONCILING = "reconciling"
    VERIFYING = "verifying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (OrchestratorState.SUCCEEDED, OrchestratorState.FAILED)


class ErrorKind(str, Enum):
    """Terminal error taxonomy carried by a MintOutcome."""

    USER_REJECTED = "user_rejected"
    CHAIN_SUBMISSION_ERROR = "chain_submission_error"
    RECEIPT_ERROR = "receipt_error"
    DECODE_FAILURE = "decode_failure"
    VERIFICATION_FAILURE = "verification_failure"
    USER_CANCELLED = "user_cancelled"
    CONFIGURATION_ERROR = "configuration_error"
    REJECTED = "rejected"

    @property
    def quiet(self) -> bool:
        """Outcomes surfaced without alarm-level logging.

        User-initiated endings, and requests refused before anything was sent.
        """
        return self in (ErrorKind.USER_REJECTED, ErrorKind.USER_CANCELLED, ErrorKind.REJECTED)


class RejectionReason(str, Enum):
    """Why submit() did not hand back a transaction handle."""

    DUPLICATE_REQUEST = "duplicate_request"
    SLOT_BUSY = "slot_busy"
    ALREADY_COMPLETED = "already_completed"
    EMPTY_PAYLOAD = "empty_payload"
    WALLET_NOT_CONNECTED = "wallet_not_connected"
    WRONG_CHAIN = "wrong_chain"
    CONFIGURATION_ERROR = "configuration_error"
    USER_REJECTED = "user_rejected"
    SUBMISSION_FAILED = "submission_failed"
    USER_CANCELLED = "user_cancelled"


@dataclass(frozen=True)
class MintRequest:
    """One mint call the caller wants performed in a slot.

    ``target_contract`` is the token contract (Transfer emitter, answers
    ownerOf/totalSupply). ``minter_contract`` is the contract the call is
    sent to when it differs, e.g. a separate minter front-contract.
    """

    request_id: str
    slot: int
    payload: tuple
    target_contract: str
    expected_event_signatures: tuple[EventSignature, ...] = ()
    minter_contract: str | None = None
    method: ContractMethod | None = None
    minted_event_signatures: tuple[EventSignature, ...] = ()

    @property
    def call_contract(self) -> str:
        return self.minter_contract or self.target_contract


@dataclass(frozen=True)
class TransactionHandle:
    """A write call accepted by the chain client."""

    tx_hash: str
    submitted_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class Resolution:
    """A token identifier recovered by the resolver, and how."""

    token_id: int
    resolved_via: str  # strategy name, e.g. "primary-event" or "supply-heuristic"
    low_confidence: bool = False
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class MintOutcome:
    """Terminal result of one mint request. Produced exactly once."""

    request_id: str
    slot: int
    token_id: int | None = None
    final_owner: str | None = None
    verified: bool = False
    error_kind: ErrorKind | None = None
    tx_hash: str | None = None
    resolved_via: str | None = None
    warnings: tuple[str, ...] = ()
    error: str | None = None
    completed_at: str = ""

    @property
    def succeeded(self) -> bool:
        return self.error_kind is None and self.verified

    @property
    def soft_success(self) -> bool:
        """Identifier recovered but ownership could not be confirmed."""
        return self.token_id is not None and not self.verified


@dataclass
class SubmitResult:
    """Result of MintOrchestrator.submit()."""

    accepted: bool
    request_id: str
    handle: TransactionHandle | None = None
    reason: RejectionReason | None = None
    error: str | None = None


@dataclass(frozen=True)
class StallNotice:
    """Advisory: confirmation is taking longer than the configured budget."""

    request_id: str
    slot: int
    tx_hash: str | None
    budget: float  # seconds
    raised_at: str = ""
