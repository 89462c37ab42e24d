"""ChainClient protocol - submits write calls, awaits receipts, reads state."""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from mint_reconciler.chain.abi import ContractMethod
from mint_reconciler.models.events import Receipt
from mint_reconciler.models.records import TransactionHandle


class ChainClient(Protocol):
    """Remote chain access. Every call is fallible and never retried here."""

    async def submit_call(
        self,
        contract: str,
        method: ContractMethod,
        args: Sequence[Any],
        sender: str,
    ) -> TransactionHandle:
        """Send a write call. Raises UserRejectedError / ChainSubmissionError."""
        ...

    async def await_receipt(self, tx_hash: str) -> Receipt:
        """Suspend until the transaction is mined. Raises ReceiptError."""
        ...

    async def read_call(
        self, contract: str, method: ContractMethod, args: Sequence[Any] = ()
    ) -> Any:
        """Side-effect-free call. Raises ChainReadError."""
        ...
