"""Human-readable contract function signatures with calldata encoding."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Sequence

from eth_abi import decode, encode
from eth_utils import keccak, to_bytes, to_checksum_address

_FUNCTION_RE = re.compile(
    r"^\s*(?:function\s+)?(\w+)\s*\(([^)]*)\)\s*(.*?)\s*$"
)
_RETURNS_RE = re.compile(r"returns\s*\(([^)]*)\)")


def _param_types(body: str) -> tuple[str, ...]:
    types = []
    for part in body.split(","):
        part = part.strip()
        if part:
            types.append(part.split()[0])
    return tuple(types)


def _coerce(abi_type: str, value: Any) -> Any:
    """Coerce CLI/config values into what eth_abi expects for ``abi_type``."""
    if abi_type == "address":
        return to_checksum_address(value)
    if abi_type.startswith(("uint", "int")) and not abi_type.endswith("]"):
        if isinstance(value, str):
            return int(value, 16) if value.startswith("0x") else int(value)
        return int(value)
    if abi_type == "bool" and isinstance(value, str):
        return value.lower() in ("1", "true", "yes")
    if abi_type.startswith("bytes") and isinstance(value, str):
        return to_bytes(hexstr=value)
    return value


@dataclass(frozen=True)
class ContractMethod:
    """A callable contract function: name, input types, output types."""

    name: str
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> ContractMethod:
        """Parse ``"ownerOf(uint256 tokenId) view returns (address)"``."""
        match = _FUNCTION_RE.match(text)
        if not match:
            raise ValueError(f"Invalid function signature: {text!r}")
        name, params, tail = match.groups()
        returns = _RETURNS_RE.search(tail)
        return cls(
            name=name,
            inputs=_param_types(params),
            outputs=_param_types(returns.group(1)) if returns else (),
        )

    @property
    def canonical(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return keccak(text=self.canonical)[:4]

    def encode_call(self, args: Sequence[Any] = ()) -> bytes:
        if len(args) != len(self.inputs):
            raise ValueError(
                f"{self.canonical} takes {len(self.inputs)} argument(s), got {len(args)}"
            )
        values = [_coerce(t, v) for t, v in zip(self.inputs, args)]
        return self.selector + encode(list(self.inputs), values)

    def decode_output(self, data: bytes) -> Any:
        """Decode return data. A single output is unwrapped."""
        if not self.outputs:
            return None
        values = decode(list(self.outputs), data)
        if len(values) == 1:
            value = values[0]
            if self.outputs[0] == "address":
                return to_checksum_address(value)
            return value
        return values


TOTAL_SUPPLY = ContractMethod.parse("totalSupply() view returns (uint256)")
OWNER_OF = ContractMethod.parse("ownerOf(uint256 tokenId) view returns (address)")
