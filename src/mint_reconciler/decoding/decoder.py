"""Event log decoder - strict ABI decoding with a degraded topic-word path."""

from __future__ import annotations

import logging
from typing import Iterable

from eth_abi import decode as abi_decode
from eth_utils import to_checksum_address

from mint_reconciler.models.events import DecodedEvent, EventArgument, EventSignature, LogEntry

log = logging.getLogger(__name__)

_WORD = 32


def _is_dynamic(abi_type: str) -> bool:
    """Indexed dynamic values are stored as their keccak hash, not the value."""
    return (
        abi_type in ("string", "bytes")
        or abi_type.endswith("]")
        or abi_type.startswith("(")
    )


def _decode_topic(arg: EventArgument, word: bytes) -> object:
    if _is_dynamic(arg.type):
        return "0x" + word.hex()
    value = abi_decode([arg.type], word)[0]
    if arg.type == "address":
        return to_checksum_address(value)
    return value


def _word_value(arg: EventArgument, word: bytes) -> object:
    """Read an indexed argument straight from its topic word.

    Raises ValueError when the word cannot carry the argument type.
    """
    if arg.type.startswith("uint"):
        return int.from_bytes(word, "big")
    if arg.type.startswith("int"):
        return int.from_bytes(word, "big", signed=True)
    if arg.type == "address":
        if len(word) < 20:
            raise ValueError(f"topic too short for address: {len(word)} bytes")
        return to_checksum_address(word[-20:])
    if arg.type == "bool":
        return any(word)
    if arg.type.startswith("bytes") and arg.type[5:].isdigit():
        return word[: int(arg.type[5:])]
    return "0x" + word.hex()


def _decode_data(signature: EventSignature, data: bytes) -> dict:
    inputs = signature.data_inputs
    if not inputs:
        return {}
    values = abi_decode([arg.type for arg in inputs], data)
    return {arg.name: value for arg, value in zip(inputs, values)}


def _strict(entry: LogEntry, signature: EventSignature) -> DecodedEvent:
    indexed = signature.indexed_inputs
    words = entry.topics[1:]
    if len(words) != len(indexed):
        raise ValueError(
            f"{signature.name}: expected {len(indexed)} indexed topics, got {len(words)}"
        )
    if any(len(word) != _WORD for word in words):
        raise ValueError(f"{signature.name}: malformed topic word")
    return DecodedEvent(
        name=signature.name,
        address=entry.address,
        indexed_args={arg.name: _decode_topic(arg, w) for arg, w in zip(indexed, words)},
        non_indexed_args=_decode_data(signature, entry.data),
    )


def _degraded(entry: LogEntry, signature: EventSignature) -> DecodedEvent | None:
    indexed = signature.indexed_inputs
    words = entry.topics[1:]
    if len(words) < len(indexed):
        return None
    try:
        indexed_args = {arg.name: _word_value(arg, w) for arg, w in zip(indexed, words)}
    except ValueError as exc:
        log.debug("Manual topic decode of %s failed: %s", signature.name, exc)
        return None

    try:
        non_indexed = _decode_data(signature, entry.data)
    except Exception as exc:
        log.debug(
            "Data decode of %s from %s failed, keeping topic values only: %s",
            signature.name, entry.address[:10], exc,
        )
        non_indexed = {}

    return DecodedEvent(
        name=signature.name,
        address=entry.address,
        indexed_args=indexed_args,
        non_indexed_args=non_indexed,
        degraded=True,
    )


def decode(entry: LogEntry, signature: EventSignature) -> DecodedEvent | None:
    """Decode ``entry`` against ``signature``.

    Returns None when topic0 does not match or nothing usable can be
    extracted. Never raises.
    """
    if not entry.topics or entry.topics[0] != signature.topic:
        return None

    try:
        return _strict(entry, signature)
    except Exception as exc:
        log.debug(
            "Strict decode of %s from %s failed (%s), trying topic words",
            signature.name, entry.address[:10], exc,
        )

    event = _degraded(entry, signature)
    if event is not None:
        log.info(
            "Recovered %s from %s via manual topic decode",
            signature.name, entry.address[:10],
        )
    return event


def decode_any(
    entry: LogEntry, signatures: Iterable[EventSignature]
) -> DecodedEvent | None:
    """Try each signature in order; first match wins."""
    for signature in signatures:
        event = decode(entry, signature)
        if event is not None:
            return event
    return None
