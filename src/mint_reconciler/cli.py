"""CLI entry point for the mint reconciler."""

from __future__ import annotations

import asyncio
import logging
import sys
import uuid

import click

from mint_reconciler.chain import ContractMethod, Web3ChainClient, StaticWallet
from mint_reconciler.config import load_config
from mint_reconciler.errors import ChainError, ConfigurationError
from mint_reconciler.holdings import Holdings, owned_tokens
from mint_reconciler.models.config import MinterConfig
from mint_reconciler.models.events import EventSignature
from mint_reconciler.models.records import MintOutcome, MintRequest, RejectionReason, StallNotice
from mint_reconciler.orchestrator import MintOrchestrator
from mint_reconciler.resolver import ResolutionContext, TokenResolver
from mint_reconciler.storage import MemoryOutcomeStore, SQLiteOutcomeStore


def _require_wallet(cfg: MinterConfig) -> None:
    """Exit with error if no wallet address is configured."""
    if not cfg.wallet_address:
        click.echo("Error: No wallet address configured.", err=True)
        click.echo("Set MINT_RECONCILER_WALLET_ADDRESS or [daemon] wallet_address.", err=True)
        sys.exit(1)


def _require_target(cfg: MinterConfig) -> None:
    """Exit with error if no token contract is configured."""
    if not cfg.contracts.target:
        click.echo("Error: No target contract configured.", err=True)
        click.echo("Set MINT_RECONCILER_TARGET_CONTRACT or [contracts] target.", err=True)
        sys.exit(1)


def _explorer_link(cfg: MinterConfig, tx_hash: str | None) -> str:
    if not tx_hash:
        return "-"
    if not cfg.chain.explorer_url:
        return tx_hash
    return f"{cfg.chain.explorer_url.rstrip('/')}/tx/{tx_hash}"


def _chain_client(cfg: MinterConfig) -> Web3ChainClient:
    return Web3ChainClient(
        cfg.chain.rpc_url,
        request_timeout=cfg.chain.request_timeout,
        poll_interval=cfg.chain.poll_interval,
        receipt_timeout=cfg.chain.receipt_timeout,
    )


def _store(cfg: MinterConfig):
    return SQLiteOutcomeStore(cfg.db_path) if cfg.db_path else MemoryOutcomeStore()


def _echo_outcome(cfg: MinterConfig, outcome: MintOutcome) -> None:
    if outcome.succeeded:
        click.echo(f"Minted token #{outcome.token_id} in slot {outcome.slot}")
    elif outcome.soft_success:
        click.echo(f"Token #{outcome.token_id} minted but ownership not verified")
    else:
        kind = outcome.error_kind.value if outcome.error_kind else "unverified"
        click.echo(f"Mint failed: {kind}")
    click.echo(f"  Request:   {outcome.request_id}")
    click.echo(f"  Owner:     {outcome.final_owner or '-'}")
    click.echo(f"  Via:       {outcome.resolved_via or '-'}")
    click.echo(f"  Tx:        {_explorer_link(cfg, outcome.tx_hash)}")
    for warning in outcome.warnings:
        click.echo(f"  Warning:   {warning}")
    if outcome.error:
        click.echo(f"  Error:     {outcome.error}")


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """mint-reconciler - submit NFT mints and reconcile the minted token id."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the resolved configuration."""
    cfg = load_config(ctx.obj["config_path"])
    click.echo(f"Network:    {cfg.chain.network} (chain id {cfg.chain.chain_id})")
    click.echo(f"RPC URL:    {cfg.chain.rpc_url}")
    click.echo(f"Explorer:   {cfg.chain.explorer_url or '(none)'}")
    click.echo(f"Wallet:     {cfg.wallet_address or '(not set)'}")
    click.echo(f"Target:     {cfg.contracts.target or '(not set)'}")
    click.echo(f"Minter:     {cfg.contracts.minter or '(same as target)'}")
    click.echo(f"Method:     {cfg.mint.method}")
    click.echo(f"Stall:      {cfg.mint.stall_timeout:.0f}s")
    click.echo(f"DB path:    {cfg.db_path or '(memory)'}")


# ── Mint ───────────────────────────────────────────────


@cli.command()
@click.option("--slot", type=int, required=True, help="Slot (e.g. NFT type) to mint into")
@click.option("--request-id", default=None, help="Request id (default: random)")
@click.argument("args", nargs=-1)
@click.pass_context
def mint(ctx: click.Context, slot: int, request_id: str | None, args: tuple[str, ...]) -> None:
    """Submit a mint call and wait for the verified token id.

    ARGS are the mint method arguments; with none, the slot number is used.
    """
    cfg = load_config(ctx.obj["config_path"])
    _require_wallet(cfg)
    _require_target(cfg)

    def _stalled(notice: StallNotice) -> None:
        click.echo(
            f"Network slow - check wallet activity ({_explorer_link(cfg, notice.tx_hash)})",
            err=True,
        )

    async def _mint() -> MintOutcome | None:
        chain = _chain_client(cfg)
        try:
            node_chain_id = await chain.chain_id()
        except Exception as exc:
            click.echo(f"Error: cannot reach {cfg.chain.rpc_url}: {exc}", err=True)
            sys.exit(1)

        wallet = StaticWallet(cfg.wallet_address, node_chain_id)
        store = _store(cfg)
        await store.initialize()
        orchestrator = MintOrchestrator.from_config(cfg, chain, wallet, store, on_stalled=_stalled)
        try:
            await orchestrator.initialize()
            if cfg.mint.already_minted_method:
                try:
                    await orchestrator.preload_minted(
                        slot,
                        cfg.contracts.minter or cfg.contracts.target,
                        ContractMethod.parse(cfg.mint.already_minted_method),
                        (cfg.wallet_address, slot),
                    )
                except ChainError as exc:
                    click.echo(f"Warning: minted check failed: {exc}", err=True)

            request = MintRequest(
                request_id=request_id or uuid.uuid4().hex[:12],
                slot=slot,
                payload=tuple(args) if args else (slot,),
                target_contract=cfg.contracts.target,
                minter_contract=cfg.contracts.minter or None,
            )
            result = await orchestrator.submit(request)
            if not result.accepted:
                if result.reason == RejectionReason.ALREADY_COMPLETED:
                    done = orchestrator.completed_outcome(slot)
                    token = f" (token #{done.token_id})" if done and done.token_id is not None else ""
                    click.echo(f"Slot {slot} already minted{token}.")
                    if not token:
                        try:
                            held = await owned_tokens(
                                chain,
                                cfg.wallet_address,
                                cfg.contracts.target,
                                cfg.contracts.minter or None,
                                ContractMethod.parse(cfg.mint.user_tokens_method),
                            )
                        except ChainError as exc:
                            click.echo(f"Warning: token lookup failed: {exc}", err=True)
                        else:
                            ids = ", ".join(f"#{t}" for t in held.token_ids) or "none"
                            click.echo(f"Held tokens: {ids}")
                    return None
                click.echo(f"Mint not submitted: {result.reason.value} - {result.error}", err=True)
                sys.exit(1)

            click.echo(f"Submitted: {_explorer_link(cfg, result.handle.tx_hash)}")
            return await orchestrator.on_outcome(request.request_id)
        finally:
            await orchestrator.close()
            await store.close()

    try:
        outcome = asyncio.run(_mint())
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    if outcome is not None:
        _echo_outcome(cfg, outcome)
        if not outcome.succeeded:
            sys.exit(1)


@cli.command()
@click.argument("tx_hash")
@click.option("--requester", default=None, help="Mint recipient (default: configured wallet)")
@click.pass_context
def resolve(ctx: click.Context, tx_hash: str, requester: str | None) -> None:
    """Recover the token id minted by an already-mined transaction."""
    cfg = load_config(ctx.obj["config_path"])
    _require_target(cfg)
    requester = requester or cfg.wallet_address
    if not requester:
        _require_wallet(cfg)

    async def _resolve():
        chain = _chain_client(cfg)
        receipt = await chain.await_receipt(tx_hash)
        if not receipt.succeeded:
            click.echo(f"Transaction reverted: {_explorer_link(cfg, tx_hash)}", err=True)
            sys.exit(1)
        ctx_ = ResolutionContext(
            requester=requester,
            target_contract=cfg.contracts.target,
            minter_contract=cfg.contracts.minter or None,
            requested_signatures=tuple(
                EventSignature.parse(s) for s in cfg.mint.requested_events
            ),
            minted_signatures=tuple(
                EventSignature.parse(s) for s in cfg.mint.minted_events
            ),
        )
        return await TokenResolver.default(chain).resolve(receipt, ctx_)

    try:
        resolution = asyncio.run(_resolve())
    except ChainError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if resolution is None:
        click.echo("No token id could be recovered from this transaction.", err=True)
        sys.exit(1)
    click.echo(f"Token id:   {resolution.token_id}")
    click.echo(f"Via:        {resolution.resolved_via}")
    if resolution.low_confidence:
        click.echo("Confidence: low")
    for warning in resolution.warnings:
        click.echo(f"Warning:    {warning}")


@cli.command()
@click.option("--owner", default=None, help="Account to look up (default: configured wallet)")
@click.pass_context
def tokens(ctx: click.Context, owner: str | None) -> None:
    """List token ids held by an account."""
    cfg = load_config(ctx.obj["config_path"])
    _require_target(cfg)
    owner = owner or cfg.wallet_address
    if not owner:
        _require_wallet(cfg)

    async def _tokens() -> Holdings:
        return await owned_tokens(
            _chain_client(cfg),
            owner,
            cfg.contracts.target,
            cfg.contracts.minter or None,
            ContractMethod.parse(cfg.mint.user_tokens_method),
        )

    try:
        held = asyncio.run(_tokens())
    except (ChainError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Owner:      {held.owner}")
    click.echo(f"Source:     {held.source}")
    if not held.token_ids:
        click.echo("No tokens held.")
        return
    click.echo(f"Tokens:     {', '.join(f'#{t}' for t in held.token_ids)}")


@cli.command()
@click.option("--limit", type=int, default=20, help="Number of outcomes to show")
@click.pass_context
def history(ctx: click.Context, limit: int) -> None:
    """Show recent mint outcomes from the local database."""
    cfg = load_config(ctx.obj["config_path"])
    if not cfg.db_path:
        click.echo("No db_path configured; outcomes are not persisted.")
        return

    async def _history():
        store = SQLiteOutcomeStore(cfg.db_path)
        await store.initialize()
        try:
            return await store.list_outcomes(limit)
        finally:
            await store.close()

    outcomes = asyncio.run(_history())
    if not outcomes:
        click.echo("No outcomes recorded.")
        return
    for o in outcomes:
        state = "ok" if o.succeeded else (o.error_kind.value if o.error_kind else "unverified")
        token = f"#{o.token_id}" if o.token_id is not None else "-"
        click.echo(f"{o.completed_at[:19]}  slot={o.slot:<4} {token:<10} {state:<24} {o.request_id}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
