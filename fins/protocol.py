"""
FINS/TCP protocol implementation.

Handles encoding of handshake and memory area read/write frames and decoding
of the matching responses. All fields sit at fixed offsets, big-endian.
"""

import struct
import logging
from typing import NamedTuple, Optional

from .error import FinsConnectionError, FinsError, FinsException, FinsFramingError, FinsHandshakeError, check_response
from .type import AccessGranularity, Address, BitState, Command, MemoryArea, NodeIdentity
from .util import check_count, check_word_address

logger = logging.getLogger(__name__)

magic = b"FINS"

handshake_request_size = 20
handshake_response_size = 24
command_header_size = 34
response_header_size = 30

# FINS/TCP frame commands
frame_command_node_address = 0x00000000
frame_command_fins = 0x00000002

# length of the FINS/TCP header after the length field plus the FINS command, without payload
command_length_base = 0x1A

icf = 0x80  # command, response required
gct = 0x02  # gateway count
sid = 0xFF  # service id

handshake_status_offset = 15
handshake_local_node_offset = 19
handshake_remote_node_offset = 23


class FinsResponse(NamedTuple):
    """A complete command response and its recoverable warning, if any."""

    data: bytes
    warning: Optional[FinsError] = None

    @property
    def payload(self) -> bytes:
        return self.data[response_header_size:]

    @property
    def recoverable(self) -> bool:
        return self.warning is not None and self.warning.recoverable


def build_handshake_request() -> bytes:
    """
    Build the node address request sent right after the TCP connect.

    Handshake frame (20 bytes):
    - Magic (4 bytes): 'FINS'
    - Length (4 bytes): 0x0000000C
    - Frame command (4 bytes): 0, node address data send
    - Error code (4 bytes): 0
    - Client node (4 bytes): 0, let the PLC assign one
    """
    return struct.pack(">4sIIII", magic, 0x0C, frame_command_node_address, 0, 0)


def build_command(
    command: Command,
    area: MemoryArea,
    granularity: AccessGranularity,
    address: Address,
    count: int,
    nodes: NodeIdentity,
    payload: bytes = b"",
) -> bytes:
    """
    Build a memory area read or write frame.

    Args:
        command: read or write
        area: PLC memory area
        granularity: bit or word access, selects the area code
        address: start word and bit offset, bit must be 0 for word access
        count: number of items
        nodes: node numbers assigned during the handshake
        payload: data appended after the 34 byte header, writes only

    Returns:
        Complete frame
    """
    if nodes is None:
        raise FinsConnectionError("no node identity, the handshake has not been performed")
    granularity = AccessGranularity(granularity)
    word, bit = address
    check_word_address(word)
    check_count(count)
    if granularity == AccessGranularity.WORD and bit != 0:
        raise ValueError(f"word access can't carry bit offset {bit}")
    if not 0 <= bit <= 15:
        raise ValueError(f"bit offset {bit} out of range 0-15")

    return struct.pack(
        ">4sIII10BHBHBH",
        magic,
        command_length_base + len(payload),  # Length
        frame_command_fins,  # Frame command
        0x00000000,  # Error code
        icf,  # ICF
        0x00,  # RSV
        gct,  # GCT
        0x00,  # DNA, local network
        nodes.remote,  # DA1
        0x00,  # DA2, CPU unit
        0x00,  # SNA, local network
        nodes.local,  # SA1
        0x00,  # SA2, CPU unit
        sid,  # SID
        Command(command),  # Command code
        MemoryArea(area).code(granularity),  # Memory area code
        word,  # Start address
        bit,  # Bit offset
        count,  # Item count
    ) + bytes(payload)


def build_read_request(
    area: MemoryArea, granularity: AccessGranularity, address: Address, count: int, nodes: NodeIdentity
) -> bytes:
    return build_command(Command.READ, area, granularity, address, count, nodes)


def build_write_request(
    area: MemoryArea, granularity: AccessGranularity, address: Address, data: bytes, nodes: NodeIdentity
) -> bytes:
    """Build a write frame, the item count follows from the data length."""
    if granularity == AccessGranularity.BIT:
        count = len(data)
    else:
        if len(data) % 2:
            raise ValueError(f"word data must have an even length, got {len(data)} bytes")
        count = len(data) // 2
    return build_command(Command.WRITE, area, granularity, address, count, nodes, data)


def build_bit_write_request(area: MemoryArea, address: Address, state: BitState, nodes: NodeIdentity) -> bytes:
    return build_write_request(area, AccessGranularity.BIT, address, bytes([BitState(state)]), nodes)


def response_length(command: Command, granularity: AccessGranularity, count: int) -> int:
    """Number of bytes the PLC answers a command with.

    Writes return the bare response header, reads append one byte per bit or
    two bytes per word.
    """
    if command == Command.WRITE:
        return response_header_size
    item_size = 1 if granularity == AccessGranularity.BIT else 2
    return response_header_size + item_size * count


def parse_handshake_response(data: bytes) -> NodeIdentity:
    """
    Parse the node address response of the handshake.

    Raises:
        FinsFramingError: response shorter than 24 bytes
        FinsHandshakeError: status byte is not zero
    """
    if len(data) < handshake_response_size:
        raise FinsFramingError(
            f"incomplete handshake response, expected {handshake_response_size} bytes, got {len(data)}"
        )
    status = data[handshake_status_offset]
    if status != 0:
        detail = data[handshake_status_offset + 1]
        error = FinsError(status, detail, "Handshake failed with error code.")
        raise FinsHandshakeError(f"handshake failed with error code {status:02X}{detail:02X}", error)
    return NodeIdentity(local=data[handshake_local_node_offset], remote=data[handshake_remote_node_offset])


def parse_response(data: bytes, expected_length: int) -> FinsResponse:
    """
    Check a command response.

    Raises:
        FinsFramingError: response shorter than expected
        FinsHeadError: head status is not zero
        FinsEndCodeError: fatal end code
    """
    if len(data) < max(expected_length, response_header_size):
        logger.error(f"incomplete response, expected {expected_length} bytes, got {len(data)}")
        raise FinsFramingError(f"incomplete response, expected {expected_length} bytes, got {len(data)}")
    try:
        warning = check_response(data)
    except FinsException as e:
        logger.error(f"PLC rejected command: {e}")
        raise
    return FinsResponse(bytes(data), warning)


def extract_bit(response: FinsResponse) -> int:
    return 1 if response.payload[0] else 0
