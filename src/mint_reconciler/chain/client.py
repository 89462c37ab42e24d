"""EVM chain client on web3's asyncio API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

import aiohttp
from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address, to_hex
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TimeExhausted, Web3Exception
from web3.providers import AsyncBaseProvider

from mint_reconciler.chain.abi import ContractMethod
from mint_reconciler.errors import (
    ChainReadError,
    ChainSubmissionError,
    ConfigurationError,
    ReceiptError,
    UserRejectedError,
)
from mint_reconciler.models.events import Receipt
from mint_reconciler.models.records import TransactionHandle

log = logging.getLogger(__name__)

# EIP-1193 "User Rejected Request"
USER_REJECTED_CODE = 4001
_REJECTION_MARKERS = ("user rejected", "denied")

# Failures below web3's own exception tree
_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, ValueError)


def _error_details(exc: Exception) -> tuple[int | None, str]:
    """(code, message) of the node's error object, when the exception carries one."""
    response = getattr(exc, "rpc_response", None)
    error = response.get("error") if isinstance(response, dict) else None
    if isinstance(error, dict):
        return error.get("code"), str(error.get("message") or exc)
    return None, str(getattr(exc, "message", None) or exc)


def _is_user_rejection(code: int | None, message: str) -> bool:
    if code == USER_REJECTED_CODE:
        return True
    text = message.lower()
    return any(marker in text for marker in _REJECTION_MARKERS)


class Web3ChainClient:
    """ChainClient over an AsyncWeb3 instance.

    Writes go through ``eth_sendTransaction``, so the node (or the wallet
    behind it) holds the key and signs. Receipts are awaited with
    ``wait_for_transaction_receipt``; reads use ``eth_call`` at ``latest``.
    """

    def __init__(
        self,
        rpc_url: str = "",
        request_timeout: float = 30.0,
        poll_interval: float = 1.0,
        receipt_timeout: float = 300.0,
        provider: AsyncBaseProvider | None = None,
    ) -> None:
        if provider is None:
            provider = AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=request_timeout)},
            )
        self.w3 = AsyncWeb3(provider)
        self._poll_interval = poll_interval
        self._receipt_timeout = receipt_timeout

    async def chain_id(self) -> int:
        try:
            return await self.w3.eth.chain_id
        except (Web3Exception, *_TRANSPORT_ERRORS) as exc:
            code, message = _error_details(exc)
            raise ChainReadError(f"eth_chainId failed: {message}", code=code) from exc

    async def submit_call(
        self,
        contract: str,
        method: ContractMethod,
        args: Sequence[Any],
        sender: str,
    ) -> TransactionHandle:
        try:
            tx = {
                "from": to_checksum_address(sender),
                "to": to_checksum_address(contract),
                "data": to_hex(method.encode_call(args)),
            }
        except (ValueError, TypeError) as exc:
            raise ConfigurationError(f"Cannot encode {method.canonical}: {exc}") from exc

        log.info("Sending %s to %s from %s", method.canonical, contract[:10], sender[:10])

        try:
            tx_hash = await self.w3.eth.send_transaction(tx)
        except Web3Exception as exc:
            code, message = _error_details(exc)
            if _is_user_rejection(code, message):
                raise UserRejectedError(message, code=code) from exc
            raise ChainSubmissionError(message, code=code) from exc
        except _TRANSPORT_ERRORS as exc:
            raise ChainSubmissionError(f"RPC transport error: {exc}") from exc

        if not tx_hash:
            raise ChainSubmissionError("Node returned no transaction hash")

        handle = TransactionHandle(tx_hash=to_hex(tx_hash))
        log.info("Transaction sent: %s", handle.tx_hash)
        return handle

    async def await_receipt(self, tx_hash: str) -> Receipt:
        """Wait until mined. Returns the receipt whatever its status."""
        try:
            raw = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._receipt_timeout, poll_latency=self._poll_interval,
            )
        except TimeExhausted as exc:
            raise ReceiptError(
                f"Transaction not mined within {self._receipt_timeout:.0f}s",
                tx_hash=tx_hash,
            ) from exc
        except Web3Exception as exc:
            code, message = _error_details(exc)
            raise ReceiptError(message, tx_hash=tx_hash, code=code) from exc
        except _TRANSPORT_ERRORS as exc:
            raise ReceiptError(f"RPC transport error: {exc}", tx_hash=tx_hash) from exc

        receipt = Receipt.from_rpc(raw)
        log.debug(
            "Receipt for %s: status=%d block=%d logs=%d",
            tx_hash[:12], receipt.status, receipt.block_number, len(receipt.logs),
        )
        return receipt

    async def read_call(
        self, contract: str, method: ContractMethod, args: Sequence[Any] = ()
    ) -> Any:
        try:
            call = {
                "to": to_checksum_address(contract),
                "data": to_hex(method.encode_call(args)),
            }
        except (ValueError, TypeError) as exc:
            raise ChainReadError(f"Cannot encode {method.canonical}: {exc}") from exc

        try:
            result = await self.w3.eth.call(call, "latest")
        except Web3Exception as exc:
            code, message = _error_details(exc)
            raise ChainReadError(message, code=code) from exc
        except _TRANSPORT_ERRORS as exc:
            raise ChainReadError(f"RPC transport error: {exc}") from exc

        raw = bytes(result or b"")
        if method.outputs and not raw:
            raise ChainReadError(f"{method.canonical} returned no data from {contract}")
        try:
            return method.decode_output(raw)
        except DecodingError as exc:
            raise ChainReadError(f"Cannot decode {method.canonical} result: {exc}") from exc
