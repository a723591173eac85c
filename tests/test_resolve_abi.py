"""
Unit tests for ABI helpers in dotbit.avatar.resolve.abi
"""

import pytest
from eth_utils import to_checksum_address

from dotbit.avatar.errors import AbiDecodeFailure
from dotbit.avatar.resolve.abi import (
    decode_address,
    decode_dynamic_bytes,
    decode_dynamic_string,
    decode_uint256,
    encode_call,
    pad_word,
)
from tests.test_helpers import (
    OWNER,
    abi_encode_address,
    abi_encode_bytes,
    abi_encode_string,
    abi_encode_uint,
    abi_word,
)


class TestPadWord:
    def test_pad_int(self):
        assert pad_word(5) == "0" * 63 + "5"
        assert len(pad_word(2**256 - 1)) == 64

    def test_pad_int_out_of_range(self):
        with pytest.raises(ValueError):
            pad_word(-1)
        with pytest.raises(ValueError):
            pad_word(2**256)

    def test_pad_address_lowercases(self):
        word = pad_word("0xABCDEF0000000000000000000000000000000001")
        assert word == "0" * 24 + "abcdef0000000000000000000000000000000001"

    def test_encode_call(self):
        assert encode_call("0x6352211e", pad_word(1)) == "0x6352211e" + "0" * 63 + "1"
        assert encode_call("0x00fdd58e", pad_word(OWNER), "0x" + pad_word(2)) == (
            "0x00fdd58e" + pad_word(OWNER) + pad_word(2)
        )


class TestDecodeDynamicBytes:
    """Test suite for the dynamic value decoder."""

    def test_empty_result(self):
        assert decode_dynamic_bytes("0x") is None

    def test_decode(self):
        assert decode_dynamic_bytes(abi_encode_bytes(b"\x01\x02\x03")) == b"\x01\x02\x03"

    def test_decode_empty_value(self):
        assert decode_dynamic_bytes(abi_encode_bytes(b"")) == b""

    def test_decode_non_standard_offset(self):
        assert decode_dynamic_bytes(abi_encode_bytes(b"abc", offset=96)) == b"abc"

    def test_decode_with_start(self):
        # Second head word points at the value.
        value = b"hello"
        buffer = (
            "0x"
            + abi_word(0)
            + abi_word(64)
            + abi_word(len(value))
            + (value + b"\x00" * 27).hex()
        )
        assert decode_dynamic_bytes(buffer, 32) == value

    def test_truncated_head(self):
        with pytest.raises(AbiDecodeFailure):
            decode_dynamic_bytes("0x" + "00" * 16)

    def test_offset_out_of_bounds(self):
        with pytest.raises(AbiDecodeFailure):
            decode_dynamic_bytes("0x" + abi_word(4096))

    def test_length_overruns_buffer(self):
        with pytest.raises(AbiDecodeFailure):
            decode_dynamic_bytes("0x" + abi_word(32) + abi_word(100) + "00" * 32)

    def test_not_hex(self):
        with pytest.raises(AbiDecodeFailure):
            decode_dynamic_bytes("0xzz")


class TestDecodeDynamicString:
    def test_foo_at_offset_zero(self):
        assert decode_dynamic_string(abi_encode_string("foo"), 0) == "foo"

    def test_unicode(self):
        assert decode_dynamic_string(abi_encode_string("ipfs://Qm/é")) == "ipfs://Qm/é"

    def test_empty_result(self):
        assert decode_dynamic_string("0x") is None

    def test_invalid_utf8_is_none(self):
        assert decode_dynamic_string(abi_encode_bytes(b"\xff\xfe")) is None

    def test_malformed_buffer_is_none(self):
        assert decode_dynamic_string("0x" + abi_word(4096)) is None


class TestDecodeUint256:
    def test_decode(self):
        assert decode_uint256(abi_encode_uint(0)) == 0
        assert decode_uint256(abi_encode_uint(42)) == 42

    def test_empty(self):
        with pytest.raises(AbiDecodeFailure):
            decode_uint256("0x")


class TestDecodeAddress:
    def test_decode(self):
        assert decode_address(abi_encode_address(OWNER)) == to_checksum_address(OWNER)

    def test_zero_address(self):
        assert decode_address("0x" + abi_word(0)) is None

    def test_wrong_length(self):
        with pytest.raises(AbiDecodeFailure):
            decode_address("0x")
        with pytest.raises(AbiDecodeFailure):
            decode_address(abi_encode_address(OWNER) + "00" * 32)
