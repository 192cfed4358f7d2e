"""
FINS client used for connection to an Omron PLC Ethernet unit.
"""

import logging
from typing import Dict, List, Optional, Sequence, Union

from . import protocol
from .connection import TCPTransport, Transport
from .error import FinsConnectionError, FinsError, FinsFramingError
from .handshake import HandshakeNegotiator
from .protocol import FinsResponse
from .type import AccessGranularity, Address, BitState, Command, MemoryArea, NodeIdentity, Parameter
from .util import check_count, check_word_address, get_real, get_words, parse_bit_address, set_real, words_to_bytes

logger = logging.getLogger(__name__)


class Client:
    """
    A FINS/TCP client.

    One request is in flight at a time: every operation sends its frame and
    blocks until the complete response has been read. The client does no
    locking, callers sharing an instance between threads must serialize the
    calls themselves.

    Examples:
        >>> import fins
        >>> client = fins.Client()
        >>> client.connect("192.168.250.1")
        >>> client.read_words(fins.MemoryArea.DM, 100, 3)
        [12, -1, 0]
        >>> client.write_bit(fins.MemoryArea.CIO, "0.5", fins.BitState.ON)
        >>> client.disconnect()
    """

    def __init__(self, transport: Optional[Transport] = None, ping_timeout: int = Parameter.PingTimeout.default):
        """Creates a new `Client` instance.

        Args:
            transport: object providing the :class:`fins.connection.Transport`
                capabilities. A :class:`fins.connection.TCPTransport` is created
                on every connect when omitted.
            ping_timeout: reachability probe timeout in milliseconds.
        """
        self._transport = transport
        self._own_transport = transport is None
        self.nodes: Optional[NodeIdentity] = None
        self.last_warning: Optional[FinsError] = None
        self.host = ""
        self._params: Dict[Parameter, int] = {
            Parameter.RemotePort: Parameter.RemotePort.default,
            Parameter.PingTimeout: ping_timeout,
        }

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    def connect(self, address: str, port: Optional[int] = None) -> "Client":
        """
        Connect to a PLC and perform the node address handshake.

        Args:
            address: PLC IP address
            port: FINS/TCP port, defaults to the `RemotePort` parameter (9600)

        Returns:
            Self for method chaining
        """
        if port is None:
            port = self._params[Parameter.RemotePort]
        timeout = self._params[Parameter.PingTimeout]
        if self.get_connected():
            logger.info(f"Already connected to {self.host}, reconnecting")
            self.disconnect()

        logger.info(f"Connecting to PLC at {address}:{port} with timeout {timeout}ms")
        transport = self._transport
        if self._own_transport or transport is None:
            transport = TCPTransport(probe_port=port)
        self.nodes = HandshakeNegotiator(transport).negotiate(address, port, timeout)
        self._transport = transport
        self.host = address
        self._params[Parameter.RemotePort] = port
        self.last_warning = None
        logger.info(f"Connected to {address}:{port}, local node {self.nodes.local}, remote node {self.nodes.remote}")
        return self

    def disconnect(self) -> None:
        """Close the connection and forget the node identity."""
        if self._transport is not None and self.nodes is not None:
            self._transport.close()
            logger.info(f"Disconnected from {self.host}")
        self.nodes = None

    def get_connected(self) -> bool:
        """Whether the handshake succeeded and the connection wasn't torn down since."""
        return self.nodes is not None

    def get_param(self, number: Parameter) -> int:
        """Reads an internal client parameter.

        Args:
            number: parameter to read.
        """
        logger.debug(f"retrieving param number {number}")
        return self._params[Parameter(number)]

    def set_param(self, number: Parameter, value: int) -> None:
        """Writes an internal client parameter. Takes effect on the next connect.

        Args:
            number: parameter to be written.
            value: value to be written.
        """
        logger.debug(f"setting param number {number} to {value}")
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"invalid value {value!r} for {Parameter(number).name}")
        self._params[Parameter(number)] = value

    def _require_nodes(self) -> NodeIdentity:
        if self.nodes is None or self._transport is None:
            raise FinsConnectionError("Not connected to PLC")
        return self.nodes

    def request(self, frame: bytes, response_length: int) -> FinsResponse:
        """
        Send a frame and read and check its response.

        A transport failure or an incomplete response leaves the connection out
        of step with the PLC, so the connection is closed before the error
        propagates. Head and end code errors leave it usable.

        Args:
            frame: complete command frame
            response_length: exact number of bytes the PLC answers with

        Returns:
            The response, with its recoverable warning if any
        """
        transport = self._transport
        if self.nodes is None or transport is None:
            raise FinsConnectionError("Not connected to PLC")
        self.last_warning = None
        try:
            transport.send(frame)
            data = transport.receive_exact(response_length)
            response = protocol.parse_response(data, response_length)
        except (FinsConnectionError, FinsFramingError) as e:
            logger.error(f"Communication with {self.host} failed, closing connection: {e}")
            self.disconnect()
            raise

        self.last_warning = response.warning
        if response.warning is not None:
            logger.warning(f"End code detected but operation can continue: {response.warning}")
        return response

    def read_bit(self, area: MemoryArea, address: str) -> int:
        """
        Read a single bit.

        Args:
            area: memory area
            address: bit address as ``"word.bit"``

        Returns:
            0 or 1
        """
        addr = parse_bit_address(address)
        logger.debug(f"read_bit: {MemoryArea(area).name} {addr}")
        frame = protocol.build_read_request(area, AccessGranularity.BIT, addr, 1, self._require_nodes())
        response = self.request(frame, protocol.response_length(Command.READ, AccessGranularity.BIT, 1))
        return protocol.extract_bit(response)

    def write_bit(self, area: MemoryArea, address: str, state: Union[BitState, bool, int]) -> None:
        """
        Set or reset a single bit.

        Args:
            area: memory area
            address: bit address as ``"word.bit"``
            state: new state of the bit
        """
        addr = parse_bit_address(address)
        bit_state = BitState(int(state))
        logger.debug(f"write_bit: {MemoryArea(area).name} {addr} {bit_state.name}")
        frame = protocol.build_bit_write_request(area, addr, bit_state, self._require_nodes())
        self.request(frame, protocol.response_length(Command.WRITE, AccessGranularity.BIT, 1))

    def read_words(self, area: MemoryArea, address: int, count: int) -> List[int]:
        """
        Read consecutive words.

        Args:
            area: memory area
            address: first word
            count: number of words to read

        Returns:
            Signed 16 bit values in address order
        """
        check_word_address(address)
        check_count(count)
        logger.debug(f"read_words: {MemoryArea(area).name} {address}, count={count}")
        frame = protocol.build_read_request(area, AccessGranularity.WORD, Address(address), count, self._require_nodes())
        response = self.request(frame, protocol.response_length(Command.READ, AccessGranularity.WORD, count))
        return get_words(response.payload, 0, count)

    def write_words(self, area: MemoryArea, address: int, values: Sequence[int]) -> None:
        """
        Write consecutive words.

        Args:
            area: memory area
            address: first word
            values: signed 16 bit values to write, in address order
        """
        check_word_address(address)
        check_count(len(values))
        data = words_to_bytes(values)
        logger.debug(f"write_words: {MemoryArea(area).name} {address}, count={len(values)}")
        frame = protocol.build_write_request(area, AccessGranularity.WORD, Address(address), data, self._require_nodes())
        self.request(frame, protocol.response_length(Command.WRITE, AccessGranularity.WORD, len(values)))

    def read_word(self, area: MemoryArea, address: int) -> int:
        return self.read_words(area, address, 1)[0]

    def write_word(self, area: MemoryArea, address: int, value: int) -> None:
        self.write_words(area, address, [value])

    def read_real(self, area: MemoryArea, address: int) -> float:
        """
        Read a REAL stored in two consecutive words, low word first.

        Args:
            area: memory area
            address: first of the two words
        """
        check_word_address(address)
        logger.debug(f"read_real: {MemoryArea(area).name} {address}")
        frame = protocol.build_read_request(area, AccessGranularity.WORD, Address(address), 2, self._require_nodes())
        response = self.request(frame, protocol.response_length(Command.READ, AccessGranularity.WORD, 2))
        return get_real(response.payload, 0)

    def write_real(self, area: MemoryArea, address: int, value: float) -> None:
        """
        Write a REAL to two consecutive words, low word first.

        Args:
            area: memory area
            address: first of the two words
            value: value, stored as IEEE 754 single precision
        """
        check_word_address(address)
        data = set_real(bytearray(4), 0, value)
        logger.debug(f"write_real: {MemoryArea(area).name} {address} {value}")
        frame = protocol.build_write_request(area, AccessGranularity.WORD, Address(address), bytes(data), self._require_nodes())
        self.request(frame, protocol.response_length(Command.WRITE, AccessGranularity.WORD, 2))
