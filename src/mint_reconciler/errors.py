"""Exceptions raised by chain adapters and configuration checks."""

from __future__ import annotations


class MintReconcilerError(Exception):
    """Base exception for the mint engine."""


class ConfigurationError(MintReconcilerError):
    """Missing or invalid contract address / method / network settings."""


class ChainError(MintReconcilerError):
    """A remote chain call failed."""

    def __init__(self, message: str, tx_hash: str | None = None, code: int | None = None):
        self.tx_hash = tx_hash
        self.code = code
        super().__init__(message)


class UserRejectedError(ChainError):
    """The wallet declined to sign (EIP-1193 code 4001)."""


class ChainSubmissionError(ChainError):
    """The node or network refused the write call."""


class ReceiptError(ChainError):
    """The transaction reverted, or no usable receipt was obtained."""


class ChainReadError(ChainError):
    """A read-only eth_call failed."""
