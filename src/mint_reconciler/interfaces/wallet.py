"""WalletConnector protocol - the connected account and its network."""

from __future__ import annotations

from typing import Protocol


class WalletConnector(Protocol):
    """Read-only view of the caller's wallet session."""

    def get_address(self) -> str | None:
        """Connected account address, or None when disconnected."""
        ...

    def get_chain_id(self) -> int | None:
        """Chain id the wallet is currently on."""
        ...
