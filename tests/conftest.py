from collections import deque
from typing import Deque, List, Tuple

import pytest

from fins.client import Client
from fins.error import FinsFramingError

ip = "192.168.250.1"
tcpport = 9600
local_node = 1
remote_node = 2


def make_response(payload: bytes = b"", head: int = 0x00, end: Tuple[int, int] = (0x00, 0x00)) -> bytes:
    """Response header of 30 bytes with the given status fields, followed by payload."""
    data = bytearray(30)
    data[0:4] = b"FINS"
    data[11] = head
    data[28], data[29] = end
    return bytes(data + payload)


def make_handshake_response(local: int = local_node, remote: int = remote_node, status: int = 0x00) -> bytes:
    data = bytearray(24)
    data[0:4] = b"FINS"
    data[15] = status
    data[19] = local
    data[23] = remote
    return bytes(data)


class FakeTransport:
    """Scripted transport: answers receive_exact with queued responses."""

    def __init__(self, reachable: bool = True):
        self.reachable = reachable
        self.calls: List[str] = []
        self.sent: List[bytes] = []
        self.requested: List[int] = []
        self.responses: Deque[bytes] = deque()
        self.is_open = False

    def queue(self, data: bytes) -> None:
        self.responses.append(data)

    def probe_reachability(self, host: str, timeout_ms: int) -> bool:
        self.calls.append("probe")
        return self.reachable

    def open(self, host: str, port: int) -> None:
        self.calls.append("open")
        self.is_open = True

    def send(self, data: bytes) -> None:
        self.calls.append("send")
        self.sent.append(bytes(data))

    def receive_exact(self, length: int) -> bytes:
        self.calls.append("receive")
        self.requested.append(length)
        data = self.responses.popleft() if self.responses else b""
        if len(data) < length:
            raise FinsFramingError(f"Connection closed by peer after {len(data)} of {length} bytes")
        return data[:length]

    def close(self) -> None:
        self.calls.append("close")
        self.is_open = False


@pytest.fixture
def transport() -> FakeTransport:
    transport = FakeTransport()
    transport.queue(make_handshake_response())
    return transport


@pytest.fixture
def client(transport: FakeTransport):
    client = Client(transport=transport)
    client.connect(ip, tcpport)
    yield client
    client.disconnect()
