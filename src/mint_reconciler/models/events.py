"""Raw and decoded event log models, as returned by a transaction receipt."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from eth_utils import keccak, to_bytes, to_checksum_address

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_SIGNATURE_RE = re.compile(r"^\s*(?:event\s+)?(\w+)\s*\((.*)\)\s*;?\s*$")


def _as_bytes(value: object) -> bytes:
    """Normalise a hex string / bytes-like RPC value to raw bytes."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if value is None or value == "":
        return b""
    return to_bytes(hexstr=str(value))


def _as_hex(value: object) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def _as_int(value: object, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    text = str(value)
    return int(text, 16) if text.startswith("0x") else int(text)


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive address comparison. None never matches."""
    if not a or not b:
        return False
    return a.lower() == b.lower()


@dataclass(frozen=True)
class LogEntry:
    """A raw event log entry: emitter, ordered topic words, data payload."""

    address: str
    topics: tuple[bytes, ...]
    data: bytes = b""
    log_index: int | None = None

    @classmethod
    def from_rpc(cls, raw: dict) -> LogEntry:
        """Build from a JSON-RPC log object, raw (hex strings) or web3-formatted."""
        index = raw.get("logIndex")
        return cls(
            address=to_checksum_address(raw["address"]),
            topics=tuple(_as_bytes(t) for t in raw.get("topics") or []),
            data=_as_bytes(raw.get("data")),
            log_index=_as_int(index) if index is not None else None,
        )


@dataclass(frozen=True)
class Receipt:
    """The confirmed result of a submitted transaction."""

    tx_hash: str
    status: int
    block_number: int = 0
    from_address: str | None = None
    logs: tuple[LogEntry, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_rpc(cls, raw: dict) -> Receipt:
        sender = raw.get("from")
        return cls(
            tx_hash=_as_hex(raw["transactionHash"]),
            status=_as_int(raw.get("status"), default=1),
            block_number=_as_int(raw.get("blockNumber")),
            from_address=to_checksum_address(sender) if sender else None,
            logs=tuple(LogEntry.from_rpc(log) for log in raw.get("logs") or []),
        )


@dataclass(frozen=True)
class EventArgument:
    """One argument of an event signature."""

    name: str
    type: str
    indexed: bool = False


@dataclass(frozen=True)
class EventSignature:
    """Declared shape of an event: name plus argument layout.

    ``identifier`` names the argument carrying the created token id.
    """

    name: str
    inputs: tuple[EventArgument, ...]
    identifier: str = "tokenId"

    @classmethod
    def parse(cls, text: str, identifier: str = "tokenId") -> EventSignature:
        """Parse a human-readable declaration.

        >>> EventSignature.parse(
        ...     "event Transfer(address indexed from, address indexed to, uint256 indexed tokenId)"
        ... ).canonical
        'Transfer(address,address,uint256)'
        """
        match = _SIGNATURE_RE.match(text)
        if not match:
            raise ValueError(f"Invalid event signature: {text!r}")
        name, body = match.groups()
        inputs = []
        for position, part in enumerate(p.strip() for p in body.split(",") if p.strip()):
            words = part.split()
            arg_type = words[0]
            indexed = "indexed" in words[1:]
            rest = [w for w in words[1:] if w != "indexed"]
            arg_name = rest[0] if rest else f"arg{position}"
            inputs.append(EventArgument(name=arg_name, type=arg_type, indexed=indexed))
        return cls(name=name, inputs=tuple(inputs), identifier=identifier)

    @property
    def canonical(self) -> str:
        return f"{self.name}({','.join(arg.type for arg in self.inputs)})"

    @property
    def topic(self) -> bytes:
        """keccak256 of the canonical signature (topic0 of emitted logs)."""
        return keccak(text=self.canonical)

    @property
    def indexed_inputs(self) -> tuple[EventArgument, ...]:
        return tuple(arg for arg in self.inputs if arg.indexed)

    @property
    def data_inputs(self) -> tuple[EventArgument, ...]:
        return tuple(arg for arg in self.inputs if not arg.indexed)


@dataclass(frozen=True)
class DecodedEvent:
    """A LogEntry interpreted against one EventSignature."""

    name: str
    address: str
    indexed_args: dict = field(default_factory=dict)
    non_indexed_args: dict = field(default_factory=dict)
    degraded: bool = False  # produced by the manual topic path

    @property
    def args(self) -> dict:
        return {**self.indexed_args, **self.non_indexed_args}


# Well-known signatures used by the ERC-721 collections this engine targets.
TRANSFER = EventSignature.parse(
    "event Transfer(address indexed from, address indexed to, uint256 indexed tokenId)"
)
IMAGE_NFT_REQUESTED = EventSignature.parse(
    "event ImageNFTRequested(address indexed minter, uint256 indexed tokenId, string tokenURI)"
)
IMAGE_NFT_MINTED = EventSignature.parse(
    "event ImageNFTMinted(uint256 indexed tokenId, address indexed to, string tokenURI)"
)
