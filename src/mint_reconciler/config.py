"""Configuration loading: TOML file + environment variables + network presets."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from mint_reconciler.errors import ConfigurationError
from mint_reconciler.models.config import ChainConfig, MinterConfig

# chain id, rpc url, explorer url
NETWORKS: dict[str, tuple[int, str, str]] = {
    "arc-testnet": (5042002, "https://rpc.testnet.arc.network", "https://testnet.arcscan.app"),
    "localhost": (31337, "http://127.0.0.1:8545", ""),
}


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "MINT_RECONCILER_",
) -> MinterConfig:
    """Load engine configuration from TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (MINT_RECONCILER_RPC_URL, etc.)
        2. TOML config file
        3. Network preset named by ``[chain] network``
        4. Defaults from MinterConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = MinterConfig()

    # ── Daemon section ─────────────────────────────────────
    daemon = raw.get("daemon", {})
    if v := daemon.get("log_level"):
        cfg.log_level = str(v)
    if v := daemon.get("wallet_address"):
        cfg.wallet_address = str(v)

    # ── Chain section ──────────────────────────────────────
    chain = raw.get("chain", {})
    network = os.environ.get(f"{env_prefix}NETWORK") or chain.get("network")
    if network:
        _apply_network(cfg.chain, str(network))
    if v := chain.get("chain_id"):
        cfg.chain.chain_id = int(v)
    if v := chain.get("rpc_url"):
        cfg.chain.rpc_url = str(v)
    if v := chain.get("explorer_url"):
        cfg.chain.explorer_url = str(v)
    if v := chain.get("request_timeout"):
        cfg.chain.request_timeout = float(v)
    if v := chain.get("poll_interval"):
        cfg.chain.poll_interval = float(v)
    if v := chain.get("receipt_timeout"):
        cfg.chain.receipt_timeout = float(v)

    # ── Contracts section ──────────────────────────────────
    contracts = raw.get("contracts", {})
    if v := contracts.get("target"):
        cfg.contracts.target = str(v)
    if v := contracts.get("minter"):
        cfg.contracts.minter = str(v)

    # ── Mint section ───────────────────────────────────────
    mint = raw.get("mint", {})
    if v := mint.get("method"):
        cfg.mint.method = str(v)
    if "requested_events" in mint:
        cfg.mint.requested_events = [str(e) for e in mint["requested_events"]]
    if "minted_events" in mint:
        cfg.mint.minted_events = [str(e) for e in mint["minted_events"]]
    if v := mint.get("already_minted_method"):
        cfg.mint.already_minted_method = str(v)
    if v := mint.get("user_tokens_method"):
        cfg.mint.user_tokens_method = str(v)
    if v := mint.get("stall_timeout"):
        cfg.mint.stall_timeout = float(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Environment variable overrides (highest priority) ──
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.chain.rpc_url = rpc
    if chain_id := os.environ.get(f"{env_prefix}CHAIN_ID"):
        cfg.chain.chain_id = int(chain_id)
    if wallet := os.environ.get(f"{env_prefix}WALLET_ADDRESS"):
        cfg.wallet_address = wallet
    if target := os.environ.get(f"{env_prefix}TARGET_CONTRACT"):
        cfg.contracts.target = target
    if minter := os.environ.get(f"{env_prefix}MINTER_CONTRACT"):
        cfg.contracts.minter = minter
    if db := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db

    # Expand ~ in paths
    if cfg.db_path and cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _apply_network(chain: ChainConfig, network: str) -> None:
    """Fill chain id / urls from a known network name."""
    try:
        chain_id, rpc_url, explorer_url = NETWORKS[network]
    except KeyError:
        raise ConfigurationError(
            f"Unknown network {network!r}; expected one of {', '.join(NETWORKS)}"
        ) from None
    chain.network = network
    chain.chain_id = chain_id
    chain.rpc_url = rpc_url
    chain.explorer_url = explorer_url
