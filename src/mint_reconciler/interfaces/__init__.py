"""Protocol interfaces for the external collaborators of the engine."""

from mint_reconciler.interfaces.chain import ChainClient
from mint_reconciler.interfaces.store import OutcomeStore
from mint_reconciler.interfaces.wallet import WalletConnector

__all__ = ["ChainClient", "OutcomeStore", "WalletConnector"]
