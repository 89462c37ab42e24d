"""Identifier recovery strategies, in the order the resolver applies them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from mint_reconciler.chain.abi import TOTAL_SUPPLY
from mint_reconciler.decoding import decode
from mint_reconciler.errors import ChainError
from mint_reconciler.interfaces.chain import ChainClient
from mint_reconciler.models.events import (
    TRANSFER,
    ZERO_ADDRESS,
    EventSignature,
    Receipt,
    same_address,
)

log = logging.getLogger(__name__)

PRIMARY_EVENT = "primary-event"
MINTED_EVENT = "minted-event"
TRANSFER_EVENT = "transfer-event"
SUPPLY_HEURISTIC = "supply-heuristic"


@dataclass(frozen=True)
class ResolutionContext:
    """Who minted, through which contracts, expecting which events."""

    requester: str
    target_contract: str
    minter_contract: str | None = None
    requested_signatures: tuple[EventSignature, ...] = ()
    minted_signatures: tuple[EventSignature, ...] = ()

    @property
    def primary_emitter(self) -> str:
        return self.minter_contract or self.target_contract

    @property
    def token_signatures(self) -> tuple[EventSignature, ...]:
        """Events the token contract may announce a mint with."""
        return self.minted_signatures or self.requested_signatures


def _as_token_id(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


class LogStrategy(Protocol):
    """Recovers an identifier from receipt logs alone."""

    name: str

    def find(self, receipt: Receipt, ctx: ResolutionContext) -> int | None:
        ...


class PrimaryEventStrategy:
    """A "requested" event emitted by the request-originating contract."""

    name = PRIMARY_EVENT

    def find(self, receipt: Receipt, ctx: ResolutionContext) -> int | None:
        for entry in receipt.logs:
            if not same_address(entry.address, ctx.primary_emitter):
                continue
            for signature in ctx.requested_signatures:
                event = decode(entry, signature)
                if event is None:
                    continue
                token_id = _as_token_id(event.args.get(signature.identifier))
                if token_id is not None:
                    return token_id
        return None


class MintedEventStrategy:
    """A "minted" event emitted by the token contract itself.

    Covers minter front-contracts that emit nothing the primary strategy
    recognises while the token contract announces the mint. An event whose
    recipient argument names someone else is skipped.
    """

    name = MINTED_EVENT

    def find(self, receipt: Receipt, ctx: ResolutionContext) -> int | None:
        for entry in receipt.logs:
            if not same_address(entry.address, ctx.target_contract):
                continue
            for signature in ctx.token_signatures:
                event = decode(entry, signature)
                if event is None:
                    continue
                recipient = event.args.get("to")
                if recipient is not None and not same_address(recipient, ctx.requester):
                    continue
                token_id = _as_token_id(event.args.get(signature.identifier))
                if token_id is not None:
                    return token_id
        return None


class TransferEventStrategy:
    """A mint-shaped Transfer: target contract, zero address -> requester.

    Any other Transfer bundled in the same transaction is ignored.
    """

    name = TRANSFER_EVENT

    def __init__(self, signature: EventSignature = TRANSFER) -> None:
        self._signature = signature

    def find(self, receipt: Receipt, ctx: ResolutionContext) -> int | None:
        for entry in receipt.logs:
            if not same_address(entry.address, ctx.target_contract):
                continue
            event = decode(entry, self._signature)
            if event is None:
                continue
            args = event.args
            if not same_address(args.get("to"), ctx.requester):
                continue
            if not same_address(args.get("from"), ZERO_ADDRESS):
                continue
            token_id = _as_token_id(args.get(self._signature.identifier))
            if token_id is not None:
                return token_id
        return None


class SupplyHeuristicStrategy:
    """Last resort: assume the new id is totalSupply() - 1.

    Only valid for append-only sequential id schemes.
    """

    name = SUPPLY_HEURISTIC

    async def find(self, chain: ChainClient, ctx: ResolutionContext) -> int | None:
        try:
            count = await chain.read_call(ctx.target_contract, TOTAL_SUPPLY, ())
        except ChainError as exc:
            log.warning("totalSupply read on %s failed: %s", ctx.target_contract[:10], exc)
            return None
        count = _as_token_id(count)
        if count is None or count <= 0:
            return None
        return count - 1
