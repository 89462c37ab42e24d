"""EVM chain integration components."""

from mint_reconciler.chain.abi import OWNER_OF, TOTAL_SUPPLY, ContractMethod
from mint_reconciler.chain.client import Web3ChainClient
from mint_reconciler.chain.wallet import StaticWallet

__all__ = ["ContractMethod", "OWNER_OF", "TOTAL_SUPPLY", "Web3ChainClient", "StaticWallet"]
