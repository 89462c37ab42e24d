"""Human-readable contract method signatures."""

from __future__ import annotations

import pytest
from eth_abi import encode

from mint_reconciler.chain.abi import OWNER_OF, TOTAL_SUPPLY, ContractMethod

from tests.factories import MINT, REQUESTER


def test_parse_with_names_and_returns():
    method = ContractMethod.parse("function mintImage(uint8 nftType, string uri) external returns (uint256)")

    assert method.name == "mintImage"
    assert method.inputs == ("uint8", "string")
    assert method.outputs == ("uint256",)
    assert method.canonical == "mintImage(uint8,string)"


def test_well_known_selectors():
    assert TOTAL_SUPPLY.selector.hex() == "18160ddd"
    assert OWNER_OF.selector.hex() == "6352211e"


def test_encode_call_coerces_cli_strings():
    assert MINT.encode_call(("2",)) == MINT.encode_call((2,))
    assert MINT.encode_call(("0x02",)) == MINT.selector + encode(["uint8"], [2])


def test_encode_call_arity():
    with pytest.raises(ValueError, match="takes 1 argument"):
        MINT.encode_call((1, 2))


def test_decode_single_output_is_unwrapped():
    assert TOTAL_SUPPLY.decode_output(encode(["uint256"], [12])) == 12
    assert OWNER_OF.decode_output(encode(["address"], [REQUESTER])) == REQUESTER


def test_no_outputs_decode_to_none():
    assert ContractMethod.parse("burn(uint256)").decode_output(b"") is None
