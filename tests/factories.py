"""Synthetic log, receipt and request factories for testing."""

from __future__ import annotations

from eth_abi import encode

from mint_reconciler.chain.abi import ContractMethod
from mint_reconciler.models.events import (
    IMAGE_NFT_MINTED,
    IMAGE_NFT_REQUESTED,
    TRANSFER,
    ZERO_ADDRESS,
    EventSignature,
    LogEntry,
    Receipt,
)
from mint_reconciler.models.records import MintRequest

CHAIN_ID = 5042002

# Digit-only addresses are valid checksum addresses as written.
REQUESTER = "0x1111111111111111111111111111111111111111"
TARGET = "0x2222222222222222222222222222222222222222"
MINTER = "0x3333333333333333333333333333333333333333"
STRANGER = "0x4444444444444444444444444444444444444444"

TX_HASH = "0x" + "ab" * 32
TOKEN_URI = "ipfs://bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"

MINT = ContractMethod.parse("mint(uint8) returns (uint256)")


def address_topic(address: str) -> bytes:
    return encode(["address"], [address])


def uint_topic(value: int) -> bytes:
    return encode(["uint256"], [value])


def make_log(
    address: str,
    signature: EventSignature,
    *words: bytes,
    data: bytes = b"",
    log_index: int = 0,
) -> LogEntry:
    return LogEntry(
        address=address,
        topics=(signature.topic, *words),
        data=data,
        log_index=log_index,
    )


def make_transfer_log(
    token_id: int = 7,
    to: str = REQUESTER,
    sender: str = ZERO_ADDRESS,
    contract: str = TARGET,
    log_index: int = 1,
) -> LogEntry:
    return make_log(
        contract, TRANSFER,
        address_topic(sender), address_topic(to), uint_topic(token_id),
        log_index=log_index,
    )


def make_requested_log(
    token_id: int = 7,
    minter: str = REQUESTER,
    contract: str = TARGET,
    uri: str = TOKEN_URI,
    data: bytes | None = None,
    log_index: int = 0,
) -> LogEntry:
    return make_log(
        contract, IMAGE_NFT_REQUESTED,
        address_topic(minter), uint_topic(token_id),
        data=encode(["string"], [uri]) if data is None else data,
        log_index=log_index,
    )


def make_minted_log(
    token_id: int = 7,
    to: str = REQUESTER,
    contract: str = TARGET,
    uri: str = TOKEN_URI,
) -> LogEntry:
    return make_log(
        contract, IMAGE_NFT_MINTED,
        uint_topic(token_id), address_topic(to),
        data=encode(["string"], [uri]),
    )


def make_receipt(*logs: LogEntry, status: int = 1, tx_hash: str = TX_HASH) -> Receipt:
    return Receipt(
        tx_hash=tx_hash,
        status=status,
        block_number=1234,
        from_address=REQUESTER,
        logs=tuple(logs),
    )


def make_request(
    request_id: str = "req-1",
    slot: int = 1,
    payload: tuple = (1,),
    target: str = TARGET,
    minter: str | None = None,
    signatures: tuple[EventSignature, ...] = (),
    method: ContractMethod | None = None,
) -> MintRequest:
    return MintRequest(
        request_id=request_id,
        slot=slot,
        payload=payload,
        target_contract=target,
        expected_event_signatures=signatures,
        minter_contract=minter,
        method=method,
    )
