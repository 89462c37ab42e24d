"""Mock implementations of the chain client and wallet connector."""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

from mint_reconciler.chain.abi import ContractMethod
from mint_reconciler.errors import ChainReadError
from mint_reconciler.models.events import Receipt
from mint_reconciler.models.records import TransactionHandle

from tests.factories import CHAIN_ID, REQUESTER, TX_HASH


class MockChainClient:
    """Implements ChainClient protocol.

    Submission and receipt delivery can be held open with ``hold_submit()``
    / ``hold_receipt()`` and released later to drive timing scenarios.
    """

    def __init__(
        self,
        receipt: Receipt | None = None,
        submit_error: Exception | None = None,
        receipt_error: Exception | None = None,
        owners: dict[int, str] | None = None,
        total_supply: int | None = None,
        tx_hash: str = TX_HASH,
    ) -> None:
        self.receipt = receipt
        self.submit_error = submit_error
        self.receipt_error = receipt_error
        self.owners: dict[int, str] = dict(owners or {})
        self.total_supply = total_supply
        self.tx_hash = tx_hash
        self.read_results: dict[str, Any] = {}
        self.read_errors: dict[str, Exception] = {}

        self.submit_calls: list[tuple[str, str, tuple, str]] = []
        self.receipt_calls: list[str] = []
        self.read_calls: list[tuple[str, str, tuple]] = []

        self._submit_gate = asyncio.Event()
        self._submit_gate.set()
        self._receipt_gate = asyncio.Event()
        self._receipt_gate.set()

    # ── Test helpers ──────────────────────────────────────

    def hold_submit(self) -> None:
        self._submit_gate.clear()

    def release_submit(self) -> None:
        self._submit_gate.set()

    def hold_receipt(self) -> None:
        self._receipt_gate.clear()

    def release_receipt(self) -> None:
        self._receipt_gate.set()

    def reads_of(self, name: str) -> list[tuple[str, str, tuple]]:
        return [call for call in self.read_calls if call[1] == name]

    # ── ChainClient ───────────────────────────────────────

    async def submit_call(
        self,
        contract: str,
        method: ContractMethod,
        args: Sequence[Any],
        sender: str,
    ) -> TransactionHandle:
        self.submit_calls.append((contract, method.canonical, tuple(args), sender))
        await self._submit_gate.wait()
        if self.submit_error is not None:
            raise self.submit_error
        return TransactionHandle(tx_hash=self.tx_hash)

    async def await_receipt(self, tx_hash: str) -> Receipt:
        self.receipt_calls.append(tx_hash)
        await self._receipt_gate.wait()
        if self.receipt_error is not None:
            raise self.receipt_error
        assert self.receipt is not None, "MockChainClient has no receipt staged"
        return self.receipt

    async def read_call(
        self, contract: str, method: ContractMethod, args: Sequence[Any] = ()
    ) -> Any:
        self.read_calls.append((contract, method.name, tuple(args)))
        if method.name in self.read_errors:
            raise self.read_errors[method.name]
        if method.name in self.read_results:
            return self.read_results[method.name]
        if method.name == "ownerOf":
            owner = self.owners.get(args[0])
            if owner is None:
                raise ChainReadError(f"ERC721NonexistentToken({args[0]})")
            return owner
        if method.name == "totalSupply":
            if self.total_supply is None:
                raise ChainReadError("execution reverted")
            return self.total_supply
        raise ChainReadError(f"no mock result for {method.canonical}")


class MockWallet:
    """Implements WalletConnector protocol."""

    def __init__(self, address: str | None = REQUESTER, chain_id: int | None = CHAIN_ID) -> None:
        self.address = address
        self.chain_id = chain_id

    def get_address(self) -> str | None:
        return self.address

    def get_chain_id(self) -> int | None:
        return self.chain_id
