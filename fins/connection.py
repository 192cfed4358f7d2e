"""
TCP transport for FINS communication.

The protocol engine only relies on the :class:`Transport` capabilities, any
object providing them can be passed to :class:`fins.client.Client`.
"""

import socket
import logging
from typing import Optional, Protocol, runtime_checkable

from .error import FinsConnectionError, FinsFramingError
from .type import fins_port

logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    def probe_reachability(self, host: str, timeout_ms: int) -> bool:
        ...

    def open(self, host: str, port: int) -> None:
        ...

    def send(self, data: bytes) -> None:
        ...

    def receive_exact(self, length: int) -> bytes:
        ...

    def close(self) -> None:
        ...


class TCPTransport:
    """
    Plain TCP socket transport.

    Reachability is probed with a TCP connect to ``probe_port`` instead of an
    ICMP echo, which would need raw socket privileges. Once opened the socket
    is blocking without timeout: a silent peer blocks the caller.
    """

    def __init__(self, probe_port: int = fins_port):
        """
        Args:
            probe_port: TCP port used to check that the PLC is reachable
        """
        self.probe_port = probe_port
        self.socket: Optional[socket.socket] = None
        self.host = ""
        self.port = 0

    @property
    def connected(self) -> bool:
        return self.socket is not None

    def probe_reachability(self, host: str, timeout_ms: int) -> bool:
        """
        Check the PLC answers on ``probe_port`` within ``timeout_ms``.

        From Davide Nardella notes on Snap7: if you can ping the PLC you can connect to it.
        """
        try:
            with socket.create_connection((host, self.probe_port), timeout=timeout_ms / 1000.0):
                pass
        except OSError as e:
            logger.debug(f"probe of {host}:{self.probe_port} failed: {e}")
            return False
        return True

    def open(self, host: str, port: int) -> None:
        if self.socket is not None:
            raise FinsConnectionError(f"already connected to {self.host}:{self.port}")
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
        # Important to set TCP_NODELAY to avoid delays in the communication with the PLC
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        try:
            sock.connect((host, port))
        except OSError as e:
            sock.close()
            raise FinsConnectionError(f"TCP connection to {host}:{port} failed: {e}") from e
        self.socket = sock
        self.host = host
        self.port = port
        logger.debug(f"TCP connected to {host}:{port}")

    def send(self, data: bytes) -> None:
        if self.socket is None:
            raise FinsConnectionError("Not connected")
        try:
            self.socket.sendall(data)
        except OSError as e:
            raise FinsConnectionError(f"Send failed: {e}") from e
        logger.debug(f"Sent {len(data)} bytes")

    def receive_exact(self, length: int) -> bytes:
        """
        Receive exactly the specified number of bytes.

        Raises:
            FinsFramingError: the peer closed the connection before ``length`` bytes arrived
            FinsConnectionError: socket error
        """
        if self.socket is None:
            raise FinsConnectionError("Not connected")

        data = bytearray()
        while len(data) < length:
            try:
                chunk = self.socket.recv(length - len(data))
            except OSError as e:
                raise FinsConnectionError(f"Receive error: {e}") from e
            if not chunk:
                raise FinsFramingError(f"Connection closed by peer after {len(data)} of {length} bytes")
            data.extend(chunk)

        return bytes(data)

    def close(self) -> None:
        if self.socket is not None:
            try:
                self.socket.close()
            finally:
                self.socket = None
                logger.debug(f"TCP connection to {self.host}:{self.port} closed")

    def __enter__(self) -> "TCPTransport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
