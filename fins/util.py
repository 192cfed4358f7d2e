"""
Helpers to parse FINS addresses and to convert between Python values and the
bytes found in FINS frames.
"""

import struct
from typing import List, Sequence

from .error import FinsAddressError
from .type import Address, max_word_count


def parse_bit_address(address: str) -> Address:
    """Split a ``"word.bit"`` address string.

    Args:
        address: address in the form ``"word.bit"``, e.g. ``"100.5"``.

    Returns:
        The parsed :class:`Address`.

    Raises:
        FinsAddressError: if the string is not two integral parts separated by
            a dot, or if word or bit are out of range.

    Examples:
        >>> parse_bit_address("100.5")
            Address(word=100, bit=5)
    """
    parts = str(address).strip().split(".")
    if len(parts) != 2 or not all(part.isascii() and part.isdigit() for part in parts):
        raise FinsAddressError(f"invalid bit address {address!r}, expected 'word.bit'")
    word, bit = int(parts[0]), int(parts[1])
    check_word_address(word)
    if not 0 <= bit <= 15:
        raise FinsAddressError(f"bit index {bit} of {address!r} out of range 0-15")
    return Address(word, bit)


def check_word_address(word: int) -> int:
    if isinstance(word, bool) or not isinstance(word, int) or not 0 <= word <= 0xFFFF:
        raise FinsAddressError(f"word address {word!r} out of range 0-65535")
    return word


def check_count(count: int) -> int:
    if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= max_word_count:
        raise ValueError(f"item count {count!r} out of range 1-{max_word_count}")
    return count


def get_int(bytearray_: bytes, byte_index: int) -> int:
    """Get int value from bytes.

    Notes:
        Datatype `int` in the PLC is represented in two bytes, big-endian,
        signed (-32768 to 32767).

    Examples:
        >>> get_int(b"\\xff\\x9c", 0)
            -100
    """
    value: int = struct.unpack_from(">h", bytearray_, byte_index)[0]
    return value


def set_int(bytearray_: bytearray, byte_index: int, _int: int) -> bytearray:
    """Set value in bytearray to int

    Examples:
        >>> set_int(bytearray(2), 0, -100)
            bytearray(b'\\xff\\x9c')
    """
    if isinstance(_int, bool) or not isinstance(_int, int) or not -0x8000 <= _int <= 0x7FFF:
        raise ValueError(f"word value {_int!r} does not fit a signed 16 bit integer")
    struct.pack_into(">h", bytearray_, byte_index, _int)
    return bytearray_


def get_words(bytearray_: bytes, byte_index: int, count: int) -> List[int]:
    """Get `count` consecutive ints starting at `byte_index`, in address order."""
    return [get_int(bytearray_, byte_index + i * 2) for i in range(count)]


def words_to_bytes(values: Sequence[int]) -> bytearray:
    data = bytearray(len(values) * 2)
    for i, value in enumerate(values):
        set_int(data, i * 2, value)
    return data


def get_real(bytearray_: bytes, byte_index: int) -> float:
    """Get real value.

    Notes:
        Datatype `real` takes two consecutive words in the PLC, low word first.
        Each word is big-endian, so the four bytes ``b0 b1 b2 b3`` hold the
        `IEEE 754 binary32` value ``b2 b3 b0 b1``.

    Examples:
        >>> get_real(b"\\xf5\\xc3\\x40\\x48", 0)
            3.140000104904175
    """
    x = bytes(bytearray_[byte_index: byte_index + 4])
    if len(x) != 4:
        raise ValueError(f"real value needs 4 bytes at index {byte_index}, got {len(x)}")
    real: float = struct.unpack(">f", x[2:4] + x[0:2])[0]
    return real


def set_real(bytearray_: bytearray, byte_index: int, real: float) -> bytearray:
    """Set Real value, low word first. Inverse of :func:`get_real`.

    Examples:
        >>> set_real(bytearray(4), 0, 3.14)
            bytearray(b'\\xf5\\xc3@H')
    """
    packed = struct.pack(">f", float(real))
    bytearray_[byte_index: byte_index + 4] = packed[2:4] + packed[0:2]
    return bytearray_
