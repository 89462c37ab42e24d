"""Owned-token lookup: minter index first, ownerOf scan as fallback."""

from __future__ import annotations

import logging

import pytest

from mint_reconciler.errors import ChainReadError
from mint_reconciler.holdings import MINTER_INDEX, OWNER_SCAN, owned_tokens, scan_owned

from tests.factories import MINTER, REQUESTER, STRANGER, TARGET
from tests.mocks import MockChainClient


def make_chain() -> MockChainClient:
    owners = {0: STRANGER, 1: REQUESTER, 3: REQUESTER}
    return MockChainClient(owners=owners, total_supply=4)


async def test_minter_index_is_used_first():
    chain = make_chain()
    chain.read_results["getUserTokens"] = (5, 9)

    held = await owned_tokens(chain, REQUESTER, TARGET, MINTER)

    assert held.token_ids == (5, 9)
    assert held.source == MINTER_INDEX
    assert chain.reads_of("getUserTokens") == [(MINTER, "getUserTokens", (REQUESTER,))]
    assert chain.reads_of("ownerOf") == []


async def test_empty_minter_index_is_trusted():
    chain = make_chain()
    chain.read_results["getUserTokens"] = ()

    held = await owned_tokens(chain, REQUESTER, TARGET, MINTER)

    assert held.token_ids == ()
    assert held.source == MINTER_INDEX


async def test_failing_minter_index_falls_back_to_scan(caplog):
    chain = make_chain()
    chain.read_errors["getUserTokens"] = ChainReadError("execution reverted")

    with caplog.at_level(logging.WARNING, logger="mint_reconciler.holdings"):
        held = await owned_tokens(chain, REQUESTER, TARGET, MINTER)

    assert held.token_ids == (1, 3)
    assert held.source == OWNER_SCAN
    assert any("scanning ownerOf" in r.getMessage() for r in caplog.records)


async def test_malformed_minter_index_falls_back_to_scan():
    chain = make_chain()
    chain.read_results["getUserTokens"] = "0x"

    held = await owned_tokens(chain, REQUESTER, TARGET, MINTER)

    assert held.source == OWNER_SCAN
    assert held.token_ids == (1, 3)


async def test_no_minter_scans_target():
    chain = make_chain()

    held = await owned_tokens(chain, REQUESTER, TARGET)

    assert held.source == OWNER_SCAN
    assert chain.reads_of("getUserTokens") == []
    assert [args for _, _, args in chain.reads_of("ownerOf")] == [(0,), (1,), (2,), (3,)]


async def test_scan_skips_unreadable_ids():
    """Id 2 has no owner in the mock and reverts."""
    held = await scan_owned(make_chain(), REQUESTER, TARGET)

    assert held == (1, 3)


async def test_scan_of_empty_collection():
    chain = MockChainClient(total_supply=0)

    assert await scan_owned(chain, REQUESTER, TARGET) == ()
    assert chain.reads_of("ownerOf") == []


async def test_supply_failure_raises():
    chain = MockChainClient(total_supply=None)

    with pytest.raises(ChainReadError):
        await owned_tokens(chain, REQUESTER, TARGET)
