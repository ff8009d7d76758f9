"""
Minimal contract ABIs and call data helpers for Uniswap V2 style pools.
"""

from typing import Any, List, NamedTuple, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from ..exceptions import DecodeError
from ..utils import canonical_address

UNISWAP_V2_FACTORY = "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f"
MULTICALL2 = "0x5ba1e12693dc8f9c48aad8770482f4739beed696"

# Uniswap V2 Factory ABI (minimal - just what we need)
FACTORY_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "allPairsLength",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"name": "", "type": "uint256"}],
        "name": "allPairs",
        "outputs": [{"name": "", "type": "address"}],
        "type": "function",
    },
]

# ERC20 metadata ABI
ERC20_METADATA_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "name",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function",
    },
]

# Multicall2 aggregate(Call[]) -> (blockNumber, returnData)
MULTICALL2_ABI = [
    {
        "inputs": [
            {
                "components": [
                    {"name": "target", "type": "address"},
                    {"name": "callData", "type": "bytes"},
                ],
                "name": "calls",
                "type": "tuple[]",
            }
        ],
        "name": "aggregate",
        "outputs": [
            {"name": "blockNumber", "type": "uint256"},
            {"name": "returnData", "type": "bytes[]"},
        ],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


class CallSpec(NamedTuple):
    """Signature and types of a contract function used in batched calls."""

    signature: str
    input_types: Tuple[str, ...]
    output_types: Tuple[str, ...]

    @property
    def selector(self) -> bytes:
        return bytes(Web3.keccak(text=self.signature)[:4])


TOKEN0 = CallSpec("token0()", (), ("address",))
TOKEN1 = CallSpec("token1()", (), ("address",))
GET_RESERVES = CallSpec("getReserves()", (), ("uint112", "uint112", "uint32"))
ALL_PAIRS = CallSpec("allPairs(uint256)", ("uint256",), ("address",))


def encode_call(spec: CallSpec, *args: Any) -> bytes:
    """Build call data: 4-byte selector followed by ABI-encoded arguments."""
    if len(args) != len(spec.input_types):
        raise ValueError(
            f"{spec.signature} expects {len(spec.input_types)} arguments, got {len(args)}"
        )
    if not spec.input_types:
        return spec.selector
    return spec.selector + encode(list(spec.input_types), list(args))


def decode_result(spec: CallSpec, data: bytes, record_id: str = "") -> Tuple[Any, ...]:
    """
    Decode the raw return payload of a call.

    Raises:
        DecodeError: If the payload is empty, truncated or malformed
    """
    if not data:
        raise DecodeError(f"Empty return data for {spec.signature}", record_id=record_id)
    try:
        return tuple(decode(list(spec.output_types), bytes(data)))
    except (DecodingError, ValueError, TypeError) as e:
        raise DecodeError(
            f"Cannot decode {spec.signature}: {e}", record_id=record_id
        ) from e


def decode_address(spec: CallSpec, data: bytes, record_id: str = "") -> str:
    """Decode a single-address return payload into canonical form."""
    (value,) = decode_result(spec, data, record_id)
    try:
        return canonical_address(value)
    except ValueError as e:
        raise DecodeError(str(e), record_id=record_id) from e


def build_pool_state_calls(pool_address: str) -> List[Tuple[str, bytes]]:
    """The three reads per pool, in order: token0, token1, getReserves."""
    return [
        (pool_address, encode_call(TOKEN0)),
        (pool_address, encode_call(TOKEN1)),
        (pool_address, encode_call(GET_RESERVES)),
    ]


def build_all_pairs_calls(
    factory_address: str, start: int, count: int
) -> List[Tuple[str, bytes]]:
    """One allPairs(i) read per index in [start, start + count)."""
    return [
        (factory_address, encode_call(ALL_PAIRS, start + offset))
        for offset in range(count)
    ]

