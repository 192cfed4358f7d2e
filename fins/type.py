"""
Python equivalents for FINS specific types.
"""

from enum import IntEnum
from typing import Dict, NamedTuple, Tuple

# default FINS/TCP port of the PLC Ethernet unit
fins_port = 9600
max_word_count = 0xFFFF


class Parameter(IntEnum):
    RemotePort = 1
    PingTimeout = 2

    @property
    def default(self) -> int:
        map_: Dict[Parameter, int] = {
            Parameter.RemotePort: fins_port,
            Parameter.PingTimeout: 3000,
        }
        return map_[self]


class AccessGranularity(IntEnum):
    BIT = 0
    WORD = 1


class MemoryArea(IntEnum):
    CIO = 0
    WR = 1
    HR = 2
    AR = 3
    DM = 4

    def code(self, granularity: AccessGranularity) -> int:
        """Memory area code used on the wire for this area and access granularity.

        Raises:
            ValueError: when the combination is not a known FINS area code.
        """
        try:
            return area_codes[(MemoryArea(self), AccessGranularity(granularity))]
        except (KeyError, ValueError):
            raise ValueError(f"no FINS area code for {self!r} with {granularity!r} access") from None


area_codes: Dict[Tuple[MemoryArea, AccessGranularity], int] = {
    (MemoryArea.CIO, AccessGranularity.BIT): 0x30,
    (MemoryArea.WR, AccessGranularity.BIT): 0x31,
    (MemoryArea.HR, AccessGranularity.BIT): 0x32,
    (MemoryArea.AR, AccessGranularity.BIT): 0x33,
    (MemoryArea.DM, AccessGranularity.BIT): 0x02,
    (MemoryArea.CIO, AccessGranularity.WORD): 0xB0,
    (MemoryArea.WR, AccessGranularity.WORD): 0xB1,
    (MemoryArea.HR, AccessGranularity.WORD): 0xB2,
    (MemoryArea.AR, AccessGranularity.WORD): 0xB3,
    (MemoryArea.DM, AccessGranularity.WORD): 0x82,
}


class Command(IntEnum):
    READ = 0x0101
    WRITE = 0x0102


class BitState(IntEnum):
    OFF = 0
    ON = 1


class HeadStatus(IntEnum):
    SUCCESS = 0x00
    INVALID_HEAD = 0x01
    DATA_LENGTH_TOO_LONG = 0x02
    COMMAND_NOT_SUPPORTED = 0x03
    UNKNOWN = 0xFF

    @classmethod
    def from_code(cls, code: int) -> "HeadStatus":
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN


class NodeIdentity(NamedTuple):
    """Node numbers assigned by the PLC during the handshake."""

    local: int
    remote: int


class Address(NamedTuple):
    word: int
    bit: int = 0

    def __str__(self) -> str:
        return f"{self.word}.{self.bit}"
