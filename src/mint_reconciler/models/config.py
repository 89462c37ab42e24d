"""Configuration models for the mint engine."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ChainConfig:
    """Network the wallet and chain client must agree on."""

    network: str = "arc-testnet"
    chain_id: int = 5042002
    rpc_url: str = "https://rpc.testnet.arc.network"
    explorer_url: str = "https://testnet.arcscan.app"
    request_timeout: float = 30.0  # seconds per JSON-RPC call
    poll_interval: float = 1.0  # seconds between receipt polls
    receipt_timeout: float = 300.0  # hard limit on awaiting a receipt


@dataclass
class ContractsConfig:
    """Contract addresses. ``minter`` is optional (defaults to ``target``)."""

    target: str = ""  # ERC-721 token contract
    minter: str = ""  # contract the mint call is sent to, if different


@dataclass
class MintConfig:
    """How a mint call is shaped and reconciled."""

    method: str = "mint(uint8) returns (uint256)"
    requested_events: list[str] = field(
        default_factory=lambda: [
            "event ImageNFTRequested(address indexed minter, uint256 indexed tokenId, string tokenURI)",
        ]
    )
    minted_events: list[str] = field(
        default_factory=lambda: [
            "event ImageNFTMinted(uint256 indexed tokenId, address indexed to, string tokenURI)",
        ]
    )
    already_minted_method: str = ""  # e.g. "hasMintedType(address,uint256) returns (bool)"
    user_tokens_method: str = "getUserTokens(address user) view returns (uint256[])"
    stall_timeout: float = 45.0  # advisory "taking longer than expected"


@dataclass
class MinterConfig:
    """Complete engine configuration."""

    log_level: str = "info"
    wallet_address: str = ""
    chain: ChainConfig = field(default_factory=ChainConfig)
    contracts: ContractsConfig = field(default_factory=ContractsConfig)
    mint: MintConfig = field(default_factory=MintConfig)

    # Storage
    db_path: str = ""  # empty keeps outcomes in memory only
