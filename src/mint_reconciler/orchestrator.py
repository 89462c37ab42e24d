"""Mint orchestrator - per-slot state machine from submission to verified outcome."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from eth_utils import is_address

from mint_reconciler.chain.abi import OWNER_OF, ContractMethod
from mint_reconciler.errors import ChainError, ConfigurationError, UserRejectedError
from mint_reconciler.interfaces.chain import ChainClient
from mint_reconciler.interfaces.store import OutcomeStore
from mint_reconciler.interfaces.wallet import WalletConnector
from mint_reconciler.models.config import MinterConfig
from mint_reconciler.models.events import EventSignature, same_address
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
from mint_reconciler.resolver import ResolutionContext, TokenResolver
from mint_reconciler.watcher import TimeoutWatcher, WatcherHandle

log = logging.getLogger(__name__)

OutcomeListener = Callable[[MintOutcome], None]
StallListener = Callable[[StallNotice], None]

DEFAULT_STALL_TIMEOUT = 45.0

_PHASE_ERRORS = {
    OrchestratorState.AWAITING_CONFIRMATION: ErrorKind.RECEIPT_ERROR,
    OrchestratorState.RECONCILING: ErrorKind.DECODE_FAILURE,
    OrchestratorState.VERIFYING: ErrorKind.VERIFICATION_FAILURE,
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class _RequestRecord:
    """Everything the orchestrator knows about one request."""

    request: MintRequest
    requester: str
    future: asyncio.Future
    state: OrchestratorState = OrchestratorState.SUBMITTING
    handle: TransactionHandle | None = None
    resolution: Resolution | None = None
    outcome: MintOutcome | None = None
    cancelled: bool = False
    watcher: WatcherHandle | None = None
    task: asyncio.Task | None = None
    stall_notices: list[StallNotice] = field(default_factory=list)


class MintOrchestrator:
    """Coordinates one mint request at a time per slot.

    submit() validates and sends the write call; a background task then
    awaits the receipt, resolves the new token id, verifies ownership and
    delivers exactly one MintOutcome per request.
    """

    def __init__(
        self,
        chain: ChainClient,
        wallet: WalletConnector,
        mint_method: ContractMethod | None = None,
        requested_signatures: Sequence[EventSignature] = (),
        minted_signatures: Sequence[EventSignature] = (),
        chain_id: int | None = None,
        stall_timeout: float = DEFAULT_STALL_TIMEOUT,
        store: OutcomeStore | None = None,
        resolver: TokenResolver | None = None,
        watcher: TimeoutWatcher | None = None,
        on_stalled: StallListener | None = None,
    ) -> None:
        self._chain = chain
        self._wallet = wallet
        self._mint_method = mint_method
        self._requested_signatures = tuple(requested_signatures)
        self._minted_signatures = tuple(minted_signatures)
        self._chain_id = chain_id
        self._stall_timeout = stall_timeout
        self._store = store
        self._resolver = resolver or TokenResolver.default(chain)
        self._watcher = watcher or TimeoutWatcher()

        self._requests: dict[str, _RequestRecord] = {}
        self._slots: dict[int, str] = {}  # slot -> request id that owns it
        self._completed: dict[int, MintOutcome] = {}
        self._listeners: list[OutcomeListener] = []
        self._stall_listeners: list[StallListener] = [on_stalled] if on_stalled else []
        self._background: set[asyncio.Task] = set()

    @classmethod
    def from_config(
        cls,
        cfg: MinterConfig,
        chain: ChainClient,
        wallet: WalletConnector,
        store: OutcomeStore | None = None,
        on_stalled: StallListener | None = None,
    ) -> MintOrchestrator:
        return cls(
            chain=chain,
            wallet=wallet,
            mint_method=ContractMethod.parse(cfg.mint.method),
            requested_signatures=[EventSignature.parse(s) for s in cfg.mint.requested_events],
            minted_signatures=[EventSignature.parse(s) for s in cfg.mint.minted_events],
            chain_id=cfg.chain.chain_id,
            stall_timeout=cfg.mint.stall_timeout,
            store=store,
            on_stalled=on_stalled,
        )

    # ── Lifecycle ─────────────────────────────────────────

    async def initialize(self) -> None:
        """Load completed slots from the (already initialized) outcome store."""
        if self._store is None:
            return
        self._completed.update(await self._store.get_completed_slots())
        if self._completed:
            log.info("Restored %d completed slot(s): %s", len(self._completed), sorted(self._completed))

    async def close(self) -> None:
        """Cancel in-flight requests and wait for pending outcome writes."""
        for record in list(self._requests.values()):
            if record.outcome is None:
                self._cancel_record(record, "orchestrator closed")
            if record.task and not record.task.done():
                record.task.cancel()
        tasks = [r.task for r in self._requests.values() if r.task]
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._watcher.disarm_all()

    # ── Caller API ────────────────────────────────────────

    def subscribe(self, listener: OutcomeListener) -> None:
        """Call ``listener`` once for every outcome produced from now on."""
        self._listeners.append(listener)

    def subscribe_stalls(self, listener: StallListener) -> None:
        self._stall_listeners.append(listener)

    def on_outcome(self, request_id: str) -> asyncio.Future:
        """Future resolved with the request's single MintOutcome.

        Requests refused by the gate resolve immediately with a REJECTED
        outcome. Raises KeyError for an id this orchestrator never saw.
        """
        return self._requests[request_id].future

    def current_state(self, request_id: str) -> OrchestratorState:
        record = self._requests.get(request_id)
        return record.state if record else OrchestratorState.IDLE

    def slot_state(self, slot: int) -> OrchestratorState:
        owner = self._slots.get(slot)
        if owner is not None:
            return self._requests[owner].state
        if slot in self._completed:
            return OrchestratorState.SUCCEEDED
        return OrchestratorState.IDLE

    def completed_outcome(self, slot: int) -> MintOutcome | None:
        return self._completed.get(slot)

    def stall_notices(self, request_id: str) -> list[StallNotice]:
        record = self._requests.get(request_id)
        return list(record.stall_notices) if record else []

    async def submit(self, request: MintRequest) -> SubmitResult:
        """Validate, send the write call, and start tracking its receipt."""
        rejected = self._gate(request)
        if rejected is not None:
            log.info(
                "Mint %s rejected for slot %d: %s",
                request.request_id, request.slot, rejected.reason.value,
            )
            if rejected.reason != RejectionReason.DUPLICATE_REQUEST:
                # The id still gets its outcome; the slot keeps its owner.
                record = self._register(request, self._wallet.get_address(), claim_slot=False)
                self._finish(
                    record, ErrorKind.REJECTED,
                    error=f"{rejected.reason.value}: {rejected.error}",
                )
            return rejected

        requester = self._wallet.get_address()
        record = self._register(request, requester)

        try:
            method = self._check_configuration(request)
        except ConfigurationError as exc:
            self._finish(record, ErrorKind.CONFIGURATION_ERROR, error=str(exc))
            return SubmitResult(
                accepted=False, request_id=request.request_id,
                reason=RejectionReason.CONFIGURATION_ERROR, error=str(exc),
            )

        try:
            handle = await self._chain.submit_call(
                request.call_contract, method, request.payload, requester,
            )
        except UserRejectedError as exc:
            return self._submission_failed(
                record, ErrorKind.USER_REJECTED, RejectionReason.USER_REJECTED, exc,
            )
        except ConfigurationError as exc:
            return self._submission_failed(
                record, ErrorKind.CONFIGURATION_ERROR, RejectionReason.CONFIGURATION_ERROR, exc,
            )
        except ChainError as exc:
            return self._submission_failed(
                record, ErrorKind.CHAIN_SUBMISSION_ERROR, RejectionReason.SUBMISSION_FAILED, exc,
            )
        except Exception as exc:
            log.error("Unexpected submission error for %s: %s", request.request_id, exc, exc_info=True)
            return self._submission_failed(
                record, ErrorKind.CHAIN_SUBMISSION_ERROR, RejectionReason.SUBMISSION_FAILED, exc,
            )

        record.handle = handle
        if record.cancelled:
            # Already broadcast; the outcome was delivered by cancel().
            log.info(
                "Mint %s was cancelled while submitting; not tracking tx %s",
                request.request_id, handle.tx_hash[:12],
            )
            return SubmitResult(
                accepted=False, request_id=request.request_id, handle=handle,
                reason=RejectionReason.USER_CANCELLED,
            )

        self._transition(record, OrchestratorState.AWAITING_CONFIRMATION)
        record.watcher = self._watcher.arm(
            self._stall_timeout, lambda: self._on_stall(record), key=request.request_id,
        )
        record.task = asyncio.create_task(self._track(record), name=f"mint-{request.request_id}")
        log.info(
            "Mint %s submitted for slot %d (tx=%s)",
            request.request_id, request.slot, handle.tx_hash,
        )
        return SubmitResult(accepted=True, request_id=request.request_id, handle=handle)

    def cancel(self, request_id: str) -> bool:
        """Stop local processing of a request. Cannot unsend a broadcast tx.

        Returns False when the request is unknown or already terminal.
        """
        record = self._requests.get(request_id)
        if record is None or record.outcome is not None:
            return False
        self._cancel_record(record, "cancelled by caller")
        return True

    async def preload_minted(
        self,
        slot: int,
        contract: str,
        method: ContractMethod,
        args: Sequence[Any],
    ) -> bool:
        """Mark ``slot`` completed if the chain says it was already minted.

        ``method`` is a boolean view such as
        ``hasMintedType(address,uint256) returns (bool)``.
        """
        if slot in self._completed:
            return True
        minted = bool(await self._chain.read_call(contract, method, args))
        if minted:
            outcome = MintOutcome(
                request_id=f"onchain-{slot}",
                slot=slot,
                final_owner=self._wallet.get_address(),
                verified=True,
                completed_at=_now(),
            )
            self._completed[slot] = outcome
            self._persist(outcome)
            log.info("Slot %d already minted on-chain", slot)
        return minted

    # ── Gate & configuration ──────────────────────────────

    def _gate(self, request: MintRequest) -> SubmitResult | None:
        """Synchronous precondition checks; nothing here touches the chain."""

        def reject(reason: RejectionReason, error: str) -> SubmitResult:
            return SubmitResult(
                accepted=False, request_id=request.request_id, reason=reason, error=error,
            )

        if request.request_id in self._requests:
            return reject(RejectionReason.DUPLICATE_REQUEST, "request id already used")
        if request.slot in self._completed:
            return reject(RejectionReason.ALREADY_COMPLETED, f"slot {request.slot} already minted")
        owner = self._slots.get(request.slot)
        if owner is not None and not self._requests[owner].state.terminal:
            return reject(RejectionReason.SLOT_BUSY, f"slot {request.slot} has request {owner} in flight")
        if not request.payload:
            return reject(RejectionReason.EMPTY_PAYLOAD, "payload is empty")
        if not self._wallet.get_address():
            return reject(RejectionReason.WALLET_NOT_CONNECTED, "wallet not connected")
        wallet_chain = self._wallet.get_chain_id()
        if self._chain_id is not None and wallet_chain != self._chain_id:
            return reject(
                RejectionReason.WRONG_CHAIN,
                f"wallet on chain {wallet_chain}, expected {self._chain_id}",
            )
        return None

    def _check_configuration(self, request: MintRequest) -> ContractMethod:
        if not request.target_contract or not is_address(request.target_contract):
            raise ConfigurationError(
                f"target contract address is missing or invalid: {request.target_contract!r}"
            )
        if request.minter_contract is not None and not is_address(request.minter_contract):
            raise ConfigurationError(
                f"minter contract address is invalid: {request.minter_contract!r}"
            )
        method = request.method or self._mint_method
        if method is None:
            raise ConfigurationError("no mint method configured")
        if len(request.payload) != len(method.inputs):
            raise ConfigurationError(
                f"{method.canonical} takes {len(method.inputs)} argument(s),"
                f" payload has {len(request.payload)}"
            )
        return method

    # ── State machine ─────────────────────────────────────

    def _register(
        self,
        request: MintRequest,
        requester: str | None,
        claim_slot: bool = True,
    ) -> _RequestRecord:
        record = _RequestRecord(
            request=request,
            requester=requester or "",
            future=asyncio.get_running_loop().create_future(),
        )
        self._requests[request.request_id] = record
        if claim_slot:
            self._slots[request.slot] = request.request_id
            log.debug("Slot %d: idle -> submitting (%s)", request.slot, request.request_id)
        return record

    def _transition(self, record: _RequestRecord, state: OrchestratorState) -> bool:
        """Move a live request to ``state``. Only the slot's owner may write."""
        request = record.request
        if record.outcome is not None:
            return False
        if self._slots.get(request.slot) != request.request_id:
            log.warning(
                "Ignoring %s transition for %s: slot %d owned by %s",
                state.value, request.request_id, request.slot, self._slots.get(request.slot),
            )
            return False
        log.debug(
            "Slot %d: %s -> %s (%s)",
            request.slot, record.state.value, state.value, request.request_id,
        )
        record.state = state
        return True

    async def _track(self, record: _RequestRecord) -> None:
        """Task body for one request. Crashes end in the current phase's error kind."""
        try:
            await self._follow(record)
        except Exception as exc:
            log.error(
                "Tracking %s crashed while %s: %s",
                record.request.request_id, record.state.value, exc, exc_info=True,
            )
            kind = _PHASE_ERRORS.get(record.state, ErrorKind.RECEIPT_ERROR)
            self._finish(record, kind, error=f"internal error: {exc}")

    async def _follow(self, record: _RequestRecord) -> None:
        """Receipt -> reconcile -> verify."""
        request = record.request
        tx_hash = record.handle.tx_hash

        try:
            receipt = await self._chain.await_receipt(tx_hash)
        except Exception as exc:
            if self._dropped(record, "receipt error"):
                return
            self._finish(record, ErrorKind.RECEIPT_ERROR, error=str(exc))
            return

        if self._dropped(record, "receipt"):
            return
        self._watcher.disarm(record.watcher)

        if not receipt.succeeded:
            self._finish(record, ErrorKind.RECEIPT_ERROR, error="transaction reverted")
            return

        self._transition(record, OrchestratorState.RECONCILING)
        ctx = ResolutionContext(
            requester=record.requester,
            target_contract=request.target_contract,
            minter_contract=request.minter_contract,
            requested_signatures=request.expected_event_signatures or self._requested_signatures,
            minted_signatures=request.minted_event_signatures or self._minted_signatures,
        )
        resolution = await self._resolver.resolve(receipt, ctx)

        if self._dropped(record, "resolution"):
            return
        if resolution is None:
            self._finish(
                record, ErrorKind.DECODE_FAILURE,
                error="mint confirmed but no token id could be recovered",
            )
            return

        record.resolution = resolution
        self._transition(record, OrchestratorState.VERIFYING)
        try:
            owner = await self._chain.read_call(
                request.target_contract, OWNER_OF, (resolution.token_id,),
            )
        except Exception as exc:
            if self._dropped(record, "verification error"):
                return
            self._finish(
                record, ErrorKind.VERIFICATION_FAILURE,
                error=f"ownerOf({resolution.token_id}) failed: {exc}",
            )
            return

        if self._dropped(record, "verification"):
            return
        if not same_address(owner, record.requester):
            self._finish(
                record, ErrorKind.VERIFICATION_FAILURE, owner=owner,
                error=f"token {resolution.token_id} owned by {owner}, expected {record.requester}",
            )
            return

        self._finish(record, None, owner=owner, verified=True)

    def _dropped(self, record: _RequestRecord, what: str) -> bool:
        """True when the request went terminal while we were suspended."""
        if record.outcome is None:
            return False
        log.info(
            "Dropping late %s for %s request %s",
            what, record.state.value, record.request.request_id,
        )
        return True

    def _cancel_record(self, record: _RequestRecord, reason: str) -> None:
        record.cancelled = True
        self._finish(record, ErrorKind.USER_CANCELLED, error=reason)

    def _submission_failed(
        self,
        record: _RequestRecord,
        kind: ErrorKind,
        reason: RejectionReason,
        exc: Exception,
    ) -> SubmitResult:
        self._finish(record, kind, error=str(exc))
        return SubmitResult(
            accepted=False, request_id=record.request.request_id,
            reason=reason, error=str(exc),
        )

    def _on_stall(self, record: _RequestRecord) -> None:
        """Watcher callback. Advisory only: never changes state."""
        if record.outcome is not None or record.state != OrchestratorState.AWAITING_CONFIRMATION:
            return
        request = record.request
        notice = StallNotice(
            request_id=request.request_id,
            slot=request.slot,
            tx_hash=record.handle.tx_hash if record.handle else None,
            budget=self._stall_timeout,
            raised_at=_now(),
        )
        record.stall_notices.append(notice)
        log.warning(
            "Mint %s taking longer than %.0fs (tx=%s), network slow - check wallet activity",
            request.request_id, self._stall_timeout, notice.tx_hash,
        )
        for listener in self._stall_listeners:
            try:
                listener(notice)
            except Exception as exc:
                log.error("Stall listener failed: %s", exc, exc_info=True)

    # ── Outcome delivery ──────────────────────────────────

    def _finish(
        self,
        record: _RequestRecord,
        kind: ErrorKind | None,
        owner: str | None = None,
        verified: bool = False,
        error: str | None = None,
    ) -> MintOutcome | None:
        """Produce the request's single outcome. Later calls are no-ops."""
        if record.outcome is not None:
            return None

        self._watcher.disarm(record.watcher)
        request = record.request
        resolution = record.resolution
        outcome = MintOutcome(
            request_id=request.request_id,
            slot=request.slot,
            token_id=resolution.token_id if resolution else None,
            final_owner=owner,
            verified=verified,
            error_kind=kind,
            tx_hash=record.handle.tx_hash if record.handle else None,
            resolved_via=resolution.resolved_via if resolution else None,
            warnings=resolution.warnings if resolution else (),
            error=error,
            completed_at=_now(),
        )
        record.outcome = outcome
        record.state = OrchestratorState.SUCCEEDED if kind is None else OrchestratorState.FAILED
        if outcome.succeeded:
            self._completed[request.slot] = outcome

        self._report(outcome)
        if not record.future.done():
            record.future.set_result(outcome)
        for listener in self._listeners:
            try:
                listener(outcome)
            except Exception as exc:
                log.error("Outcome listener failed: %s", exc, exc_info=True)
        self._persist(outcome)
        return outcome

    def _report(self, outcome: MintOutcome) -> None:
        kind = outcome.error_kind
        if kind is None:
            log.info(
                "Mint %s succeeded: slot=%d token=%s owner=%s via %s (tx=%s)",
                outcome.request_id, outcome.slot, outcome.token_id,
                outcome.final_owner, outcome.resolved_via, outcome.tx_hash,
            )
        elif kind.quiet:
            log.info("Mint %s ended: %s", outcome.request_id, kind.value)
        elif kind == ErrorKind.VERIFICATION_FAILURE and outcome.token_id is not None:
            log.warning(
                "Mint %s: token %s minted but not verified: %s (slot=%d tx=%s)",
                outcome.request_id, outcome.token_id, outcome.error,
                outcome.slot, outcome.tx_hash,
            )
        else:
            log.error(
                "Mint %s failed: %s - %s (slot=%d tx=%s token=%s)",
                outcome.request_id, kind.value, outcome.error,
                outcome.slot, outcome.tx_hash, outcome.token_id,
            )

    def _persist(self, outcome: MintOutcome) -> None:
        if self._store is None:
            return
        task = asyncio.get_running_loop().create_task(self._save(outcome))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _save(self, outcome: MintOutcome) -> None:
        try:
            await self._store.save_outcome(outcome)
        except Exception as exc:
            log.error("Failed to persist outcome %s: %s", outcome.request_id, exc, exc_info=True)
