"""Minimal ABI helpers for the contract reads used by avatar resolution.

Only what the ERC-721 and ERC-1155 metadata calls need: 32-byte word padding,
call-data concatenation and decoding of `uint256`, `address` and dynamic
`bytes`/`string` return values. Offsets are byte offsets into the return buffer.
"""

from typing import Optional, Union

from eth_utils import big_endian_to_int, decode_hex, remove_0x_prefix, to_checksum_address

from dotbit.avatar.errors import AbiDecodeFailure

EMPTY_RESULT = "0x"
WORD_SIZE = 32


def pad_word(value: Union[int, str]) -> str:
    """Left-pad an integer or hex value to one 32-byte word (64 hex digits, no `0x`)."""
    if isinstance(value, int):
        if value < 0 or value >= 2 ** (8 * WORD_SIZE):
            raise ValueError(f"{value} does not fit in a 32-byte word")
        return value.to_bytes(WORD_SIZE, "big").hex()

    digits = remove_0x_prefix(value).lower()
    if len(digits) > 2 * WORD_SIZE:
        raise ValueError(f"{value} does not fit in a 32-byte word")
    return digits.rjust(2 * WORD_SIZE, "0")


def encode_call(selector: str, *words: str) -> str:
    """Concatenate a 4-byte selector and pre-padded argument words into call data."""
    return selector + "".join(remove_0x_prefix(word) for word in words)


def _to_bytes(result: str) -> bytes:
    try:
        return decode_hex(result)
    except (TypeError, ValueError) as e:
        raise AbiDecodeFailure(f"return data is not hex: {e}") from e


def _read_word(data: bytes, offset: int) -> int:
    if offset < 0 or offset + WORD_SIZE > len(data):
        raise AbiDecodeFailure(
            f"word at offset {offset} is out of bounds for {len(data)} bytes"
        )
    return big_endian_to_int(data[offset : offset + WORD_SIZE])


def decode_dynamic_bytes(result: str, start: int = 0) -> Optional[bytes]:
    """Decode a dynamic `bytes` value from raw call return data.

    The word at `start` holds the offset of the value; the word at that offset holds
    its length; the value follows immediately after.

    Args:
        result: Hex encoded return buffer
        start: Byte offset of the head word pointing at the value

    Returns:
        The raw bytes, or None when the call returned no data

    Raises:
        AbiDecodeFailure: If the buffer is not hex or is too short
    """
    if result == EMPTY_RESULT:
        return None

    data = _to_bytes(result)
    offset = _read_word(data, start)
    length = _read_word(data, offset)

    end = offset + WORD_SIZE + length
    if end > len(data):
        raise AbiDecodeFailure(f"value of {length} bytes overruns the return data")
    return data[offset + WORD_SIZE : end]


def decode_dynamic_string(result: str, start: int = 0) -> Optional[str]:
    """Decode a dynamic `string` value, returning None instead of raising.

    Any decoding problem, including invalid UTF-8, yields None.
    """
    try:
        value = decode_dynamic_bytes(result, start)
        if value is None:
            return None
        return value.decode("utf-8")
    except (AbiDecodeFailure, UnicodeDecodeError):
        return None


def decode_uint256(result: str) -> int:
    data = _to_bytes(result)
    return _read_word(data, 0)


def decode_address(result: str) -> Optional[str]:
    """Decode an `address` return value.

    Returns:
        Checksummed address, None for the zero address

    Raises:
        AbiDecodeFailure: If the buffer is not exactly one word
    """
    data = _to_bytes(result)
    if len(data) != WORD_SIZE:
        raise AbiDecodeFailure(f"expected one 32-byte word, got {len(data)} bytes")

    raw = data[WORD_SIZE - 20 :]
    if not any(raw):
        return None
    return to_checksum_address("0x" + raw.hex())
