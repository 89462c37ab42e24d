"""Static wallet connector for node-managed accounts."""

from __future__ import annotations

from eth_utils import is_address, to_checksum_address


class StaticWallet:
    """WalletConnector for a fixed account on a fixed chain.

    Used when the JSON-RPC node (or a signer proxy in front of it) owns the
    key, so the "connection" is just configuration.
    """

    def __init__(self, address: str | None, chain_id: int | None) -> None:
        self._address = (
            to_checksum_address(address) if address and is_address(address) else None
        )
        self._chain_id = chain_id

    def get_address(self) -> str | None:
        return self._address

    def get_chain_id(self) -> int | None:
        return self._chain_id
