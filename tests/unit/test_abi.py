"""Tests for call data encoding and return payload decoding."""

import pytest
from eth_abi import encode

from pool_arbitrage.chain.abi import (
    ALL_PAIRS,
    GET_RESERVES,
    TOKEN0,
    TOKEN1,
    build_all_pairs_calls,
    build_pool_state_calls,
    decode_address,
    decode_result,
    encode_call,
)
from pool_arbitrage.exceptions import DecodeError

POOL = "0x" + "12" * 20


class TestCallData:
    def test_known_selectors(self):
        assert TOKEN0.selector.hex() == "0dfe1681"
        assert TOKEN1.selector.hex() == "d21220a7"
        assert GET_RESERVES.selector.hex() == "0902f1ac"
        assert ALL_PAIRS.selector.hex() == "1e3dd18b"

    def test_encode_call_without_arguments_is_selector(self):
        assert encode_call(TOKEN0) == TOKEN0.selector

    def test_encode_call_with_argument(self):
        data = encode_call(ALL_PAIRS, 7)
        assert data[:4] == ALL_PAIRS.selector
        assert data[4:] == encode(["uint256"], [7])

    def test_encode_call_checks_arity(self):
        with pytest.raises(ValueError):
            encode_call(ALL_PAIRS)

    def test_pool_state_calls_order(self):
        calls = build_pool_state_calls(POOL)
        assert [target for target, _ in calls] == [POOL, POOL, POOL]
        assert [data for _, data in calls] == [
            TOKEN0.selector,
            TOKEN1.selector,
            GET_RESERVES.selector,
        ]

    def test_all_pairs_calls_cover_index_range(self):
        calls = build_all_pairs_calls(POOL, 100, 3)
        assert len(calls) == 3
        assert calls[0][1] == encode_call(ALL_PAIRS, 100)
        assert calls[2][1] == encode_call(ALL_PAIRS, 102)


class TestDecoding:
    def test_decode_reserves(self):
        payload = encode(["uint112", "uint112", "uint32"], [10**18, 5 * 10**6, 123])
        assert decode_result(GET_RESERVES, payload) == (10**18, 5 * 10**6, 123)

    def test_decode_address_is_canonical(self):
        payload = encode(["address"], ["0x" + "ab" * 20])
        assert decode_address(TOKEN0, payload) == "0x" + "ab" * 20

    def test_empty_payload(self):
        with pytest.raises(DecodeError, match="Empty return data") as exc_info:
            decode_result(GET_RESERVES, b"", record_id=POOL)
        assert exc_info.value.record_id == POOL

    def test_truncated_payload(self):
        with pytest.raises(DecodeError):
            decode_result(GET_RESERVES, encode(["uint256"], [1]), record_id=POOL)

    def test_garbage_address_payload(self):
        with pytest.raises(DecodeError):
            decode_address(TOKEN1, b"\x01\x02\x03", record_id=POOL)
