"""Token ids held by an account.

The minter's own index (``getUserTokens``) is asked first. When the
minter is absent or the call fails, the token contract is scanned with
``ownerOf`` over ``0..totalSupply-1``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from mint_reconciler.chain.abi import OWNER_OF, TOTAL_SUPPLY, ContractMethod
from mint_reconciler.errors import ChainError
from mint_reconciler.interfaces.chain import ChainClient
from mint_reconciler.models.events import same_address

log = logging.getLogger(__name__)

USER_TOKENS = ContractMethod.parse("getUserTokens(address user) view returns (uint256[])")

MINTER_INDEX = "minter-index"
OWNER_SCAN = "owner-scan"


@dataclass(frozen=True)
class Holdings:
    owner: str
    token_ids: tuple[int, ...]
    source: str  # MINTER_INDEX or OWNER_SCAN


async def owned_tokens(
    chain: ChainClient,
    owner: str,
    target_contract: str,
    minter_contract: str | None = None,
    index_method: ContractMethod = USER_TOKENS,
) -> Holdings:
    """Token ids held by ``owner``.

    Raises ChainError only when the ``totalSupply`` read of the scan fails.
    """
    if minter_contract:
        try:
            result = await chain.read_call(minter_contract, index_method, (owner,))
        except ChainError as exc:
            log.warning(
                "%s on %s failed, scanning ownerOf instead: %s",
                index_method.name, minter_contract[:10], exc,
            )
        else:
            ids = _token_ids(result)
            if ids is not None:
                log.debug("%s returned %d token(s) for %s", index_method.name, len(ids), owner[:10])
                return Holdings(owner=owner, token_ids=ids, source=MINTER_INDEX)
            log.warning(
                "%s on %s returned %r, scanning ownerOf instead",
                index_method.name, minter_contract[:10], result,
            )

    ids = await scan_owned(chain, owner, target_contract)
    return Holdings(owner=owner, token_ids=ids, source=OWNER_SCAN)


async def scan_owned(chain: ChainClient, owner: str, target_contract: str) -> tuple[int, ...]:
    """``ownerOf`` for every id below ``totalSupply``; unreadable ids are skipped."""
    supply = int(await chain.read_call(target_contract, TOTAL_SUPPLY))
    held: list[int] = []
    for token_id in range(supply):
        try:
            holder = await chain.read_call(target_contract, OWNER_OF, (token_id,))
        except ChainError as exc:
            log.debug("ownerOf(%d) on %s failed, skipping: %s", token_id, target_contract[:10], exc)
            continue
        if same_address(holder, owner):
            held.append(token_id)
    log.debug("Scanned %d token(s) on %s, %d held by %s", supply, target_contract[:10], len(held), owner[:10])
    return tuple(held)


def _token_ids(result: Any) -> tuple[int, ...] | None:
    if not isinstance(result, (list, tuple)):
        return None
    try:
        return tuple(int(i) for i in result)
    except (TypeError, ValueError):
        return None
