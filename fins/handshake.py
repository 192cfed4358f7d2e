"""
FINS/TCP node address handshake.

    Client                          PLC
    ──────                          ───
    reachability probe   ──────────►
    TCP connect          ──────────►
    node address request ──────────►   (20 bytes)
                         ◄──────────   node address response (24 bytes)

The response assigns the node numbers used as source and destination in every
following command frame on the same connection.
"""

import logging
from enum import Enum

from . import protocol
from .connection import Transport
from .error import FinsConnectionError, FinsException
from .type import NodeIdentity

logger = logging.getLogger(__name__)


class HandshakeState(Enum):
    IDLE = "idle"
    REACHABILITY_CHECKED = "reachability checked"
    TRANSPORT_OPEN = "transport open"
    HANDSHAKE_SENT = "handshake sent"
    NODES_ASSIGNED = "nodes assigned"
    FAILED = "failed"


class HandshakeNegotiator:
    """Runs the handshake once over a transport and remembers how far it got."""

    def __init__(self, transport: Transport):
        self.transport = transport
        self.state = HandshakeState.IDLE

    def negotiate(self, host: str, port: int, timeout_ms: int) -> NodeIdentity:
        """
        Probe, open, and exchange the node address frames.

        Args:
            host: PLC IP address
            port: FINS/TCP port
            timeout_ms: reachability probe timeout in milliseconds

        Returns:
            The node numbers assigned by the PLC

        Raises:
            FinsConnectionError: PLC unreachable or the transport failed
            FinsFramingError: handshake response shorter than 24 bytes
            FinsHandshakeError: PLC reported a non-zero handshake status
        """
        if self.state != HandshakeState.IDLE:
            raise RuntimeError(f"handshake already run, state is {self.state.value}")

        logger.debug(f"Performing reachability check to {host} with timeout {timeout_ms}ms")
        if not self.transport.probe_reachability(host, timeout_ms):
            self.state = HandshakeState.FAILED
            logger.error(f"PLC at {host} is not reachable")
            raise FinsConnectionError(f"PLC at {host} is not reachable")
        self.state = HandshakeState.REACHABILITY_CHECKED

        try:
            self.transport.open(host, port)
        except FinsException:
            self.state = HandshakeState.FAILED
            raise
        self.state = HandshakeState.TRANSPORT_OPEN

        try:
            self.transport.send(protocol.build_handshake_request())
            self.state = HandshakeState.HANDSHAKE_SENT
            response = self.transport.receive_exact(protocol.handshake_response_size)
            nodes = protocol.parse_handshake_response(response)
        except FinsException as e:
            self.state = HandshakeState.FAILED
            logger.error(f"Handshake with {host}:{port} failed: {e}")
            self.transport.close()
            raise

        self.state = HandshakeState.NODES_ASSIGNED
        logger.debug(f"Nodes assigned, local node: {nodes.local}, remote node: {nodes.remote}")
        return nodes
