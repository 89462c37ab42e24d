"""Shared fixtures for mint_reconciler tests."""

from __future__ import annotations

import asyncio

import pytest
from pytest_metadata.plugin import metadata_key

from mint_reconciler.models.events import IMAGE_NFT_REQUESTED
from mint_reconciler.models.records import MintOutcome
from mint_reconciler.orchestrator import MintOrchestrator
from mint_reconciler.storage.sqlite import SQLiteOutcomeStore

from tests.factories import (
    CHAIN_ID,
    MINT,
    REQUESTER,
    TARGET,
    make_receipt,
    make_requested_log,
    make_transfer_log,
)
from tests.mocks import MockChainClient, MockWallet


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add network info to the report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "Arc Testnet (mocked)"
    meta["Chain ID"] = str(CHAIN_ID)
    meta["Target Contract"] = TARGET
    meta["Requester"] = REQUESTER


def make_orchestrator(chain, wallet, store=None, **overrides) -> MintOrchestrator:
    """Build a MintOrchestrator suitable for testing."""
    defaults = dict(
        mint_method=MINT,
        requested_signatures=(IMAGE_NFT_REQUESTED,),
        chain_id=CHAIN_ID,
        stall_timeout=5.0,
        store=store,
    )
    defaults.update(overrides)
    return MintOrchestrator(chain, wallet, **defaults)


async def outcome_of(orchestrator: MintOrchestrator, request_id: str) -> MintOutcome:
    """Wait (bounded) for a request's outcome."""
    return await asyncio.wait_for(orchestrator.on_outcome(request_id), timeout=2.0)


@pytest.fixture
def chain():
    """Chain that confirms a mint of token 7 to the requester."""
    receipt = make_receipt(make_requested_log(7), make_transfer_log(7))
    return MockChainClient(receipt=receipt, owners={7: REQUESTER}, total_supply=8)


@pytest.fixture
def wallet():
    return MockWallet()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteOutcomeStore."""
    s = SQLiteOutcomeStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
async def orchestrator(chain, wallet, store):
    """Fully wired MintOrchestrator with mocked chain and wallet."""
    o = make_orchestrator(chain, wallet, store)
    await o.initialize()
    yield o
    await o.close()
