"""
Tests for the FINS client against a scripted transport.
"""

import logging
from unittest import mock

import pytest

from fins.client import Client
from fins.connection import TCPTransport
from fins.error import (
    FinsAddressError,
    FinsConnectionError,
    FinsEndCodeError,
    FinsFramingError,
    FinsHeadError,
)
from fins.type import BitState, MemoryArea, NodeIdentity, Parameter
from fins.util import set_real
from conftest import FakeTransport, make_handshake_response, make_response, ip, tcpport

logging.basicConfig(level=logging.WARNING)


class TestConnect:
    def test_connect(self, client: Client, transport: FakeTransport) -> None:
        assert client.get_connected()
        assert client.nodes == NodeIdentity(local=1, remote=2)
        assert client.host == ip

    def test_connect_returns_self(self, transport: FakeTransport) -> None:
        client = Client(transport=transport)
        assert client.connect(ip) is client
        assert client.get_param(Parameter.RemotePort) == 9600

    def test_connect_unreachable(self) -> None:
        transport = FakeTransport(reachable=False)
        client = Client(transport=transport)
        with pytest.raises(FinsConnectionError):
            client.connect(ip, tcpport)
        assert not client.get_connected()
        assert "open" not in transport.calls

    def test_ping_timeout_passed_to_probe(self, transport: FakeTransport) -> None:
        transport.probe_reachability = mock.Mock(return_value=True)  # type: ignore[method-assign]
        client = Client(transport=transport, ping_timeout=500)
        client.connect(ip, 9601)
        transport.probe_reachability.assert_called_once_with(ip, 500)

    def test_disconnect(self, client: Client, transport: FakeTransport) -> None:
        client.disconnect()
        assert not client.get_connected()
        assert client.nodes is None
        assert not transport.is_open

    def test_reconnect_gets_fresh_nodes(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_handshake_response(local=7, remote=8))
        client.connect(ip, tcpport)
        assert client.nodes == NodeIdentity(7, 8)
        read = len(transport.sent)
        transport.queue(make_response(b"\x00\x01"))
        client.read_words(MemoryArea.DM, 0, 1)
        assert transport.sent[read][20] == 8
        assert transport.sent[read][23] == 7

    def test_instances_do_not_share_nodes(self) -> None:
        first, second = FakeTransport(), FakeTransport()
        first.queue(make_handshake_response(local=1, remote=2))
        second.queue(make_handshake_response(local=3, remote=4))
        a = Client(transport=first).connect(ip)
        b = Client(transport=second).connect(ip)
        assert a.nodes == NodeIdentity(1, 2)
        assert b.nodes == NodeIdentity(3, 4)

    def test_default_transport(self) -> None:
        with mock.patch("fins.client.TCPTransport") as transport_class, mock.patch(
            "fins.client.HandshakeNegotiator"
        ) as negotiator:
            negotiator.return_value.negotiate.return_value = NodeIdentity(1, 2)
            client = Client()
            client.connect(ip, 9700)
            transport_class.assert_called_once_with(probe_port=9700)
            negotiator.assert_called_once_with(transport_class.return_value)
            negotiator.return_value.negotiate.assert_called_once_with(ip, 9700, 3000)

    def test_context_manager(self, transport: FakeTransport) -> None:
        with Client(transport=transport) as client:
            client.connect(ip)
        assert not client.get_connected()
        assert transport.calls[-1] == "close"

    def test_params(self) -> None:
        client = Client()
        client.set_param(Parameter.PingTimeout, 1000)
        assert client.get_param(Parameter.PingTimeout) == 1000
        with pytest.raises(ValueError):
            client.set_param(Parameter.RemotePort, -1)


class TestNotConnected:
    def test_operations_fail(self) -> None:
        client = Client(transport=FakeTransport())
        with pytest.raises(FinsConnectionError):
            client.read_words(MemoryArea.DM, 0, 1)
        with pytest.raises(FinsConnectionError):
            client.write_bit(MemoryArea.CIO, "0.0", BitState.ON)
        with pytest.raises(FinsConnectionError):
            client.read_real(MemoryArea.DM, 0)


class TestReadWrite:
    def test_read_words(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response(b"\x00\x0a\xff\xff\x12\x34"))
        values = client.read_words(MemoryArea.DM, 200, 3)
        assert values == [10, -1, 0x1234]
        frame = transport.sent[-1]
        assert frame[28] == 0x82
        assert frame[29:31] == b"\x00\xc8"
        assert frame[32:34] == b"\x00\x03"
        assert transport.requested[-1] == 36

    def test_read_word(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response(b"\x80\x00"))
        assert client.read_word(MemoryArea.HR, 1) == -32768

    def test_write_words(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response())
        client.write_words(MemoryArea.WR, 5, [1, -1])
        frame = transport.sent[-1]
        assert frame[4:8] == b"\x00\x00\x00\x1e"
        assert frame[26:28] == b"\x01\x02"
        assert frame[28] == 0xB1
        assert frame[34:] == b"\x00\x01\xff\xff"
        assert transport.requested[-1] == 30

    def test_write_word(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response())
        client.write_word(MemoryArea.DM, 5, 300)
        assert transport.sent[-1][34:] == b"\x01\x2c"

    def test_read_bit(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response(b"\x01"))
        assert client.read_bit(MemoryArea.DM, "100.5") == 1
        frame = transport.sent[-1]
        assert frame[28] == 0x02
        assert frame[29:32] == b"\x00\x64\x05"
        assert transport.requested[-1] == 31

    def test_write_bit(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response())
        client.write_bit(MemoryArea.CIO, "10.15", True)
        frame = transport.sent[-1]
        assert frame[28] == 0x30
        assert frame[31] == 15
        assert frame[34] == 1
        assert transport.requested[-1] == 30

    def test_write_bit_invalid_state(self, client: Client, transport: FakeTransport) -> None:
        sent = len(transport.sent)
        with pytest.raises(ValueError):
            client.write_bit(MemoryArea.CIO, "10.1", 2)
        assert len(transport.sent) == sent

    def test_read_real(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response(b"\x00\x00\x3f\x80"))
        assert client.read_real(MemoryArea.DM, 300) == 1.0
        assert transport.sent[-1][32:34] == b"\x00\x02"
        assert transport.requested[-1] == 34

    def test_real_round_trip(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response())
        client.write_real(MemoryArea.DM, 300, 3.14)
        written = transport.sent[-1][34:]
        assert len(written) == 4
        transport.queue(make_response(written))
        assert client.read_real(MemoryArea.DM, 300) == pytest.approx(3.14, rel=1e-6)

    def test_write_real_payload(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response())
        client.write_real(MemoryArea.DM, 300, -2.5)
        assert transport.sent[-1][34:] == bytes(set_real(bytearray(4), 0, -2.5))


class TestValidation:
    @pytest.mark.parametrize("address", ["abc.5", "100", "100.16"])
    def test_bad_bit_address_never_sends(self, client: Client, transport: FakeTransport, address: str) -> None:
        calls = list(transport.calls)
        with pytest.raises(FinsAddressError):
            client.read_bit(MemoryArea.DM, address)
        with pytest.raises(FinsAddressError):
            client.write_bit(MemoryArea.DM, address, BitState.ON)
        assert transport.calls == calls

    def test_bad_address_before_connection_check(self) -> None:
        with pytest.raises(FinsAddressError):
            Client(transport=FakeTransport()).read_bit(MemoryArea.DM, "abc.5")

    def test_bad_counts(self, client: Client, transport: FakeTransport) -> None:
        calls = list(transport.calls)
        with pytest.raises(ValueError):
            client.read_words(MemoryArea.DM, 0, 0)
        with pytest.raises(ValueError):
            client.write_words(MemoryArea.DM, 0, [])
        with pytest.raises(ValueError):
            client.write_words(MemoryArea.DM, 0, [40000])
        with pytest.raises(FinsAddressError):
            client.read_words(MemoryArea.DM, 70000, 1)
        assert transport.calls == calls


class TestErrors:
    def test_end_code_error(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response(b"\x00\x00", end=(0x02, 0x03)))
        with pytest.raises(FinsEndCodeError) as excinfo:
            client.read_words(MemoryArea.DM, 0, 1)
        assert excinfo.value.main_code == 0x02
        assert excinfo.value.sub_code == 0x03
        assert not excinfo.value.recoverable
        # a complete response was read, the connection is still in step
        assert client.get_connected()

    def test_head_error(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response(b"\x00\x00", head=0x01))
        with pytest.raises(FinsHeadError) as excinfo:
            client.read_words(MemoryArea.DM, 0, 1)
        assert excinfo.value.main_code == 0x01

    def test_recoverable_warning(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response(b"\x00\x07", end=(0x00, 0x40)))
        assert client.read_words(MemoryArea.DM, 0, 1) == [7]
        assert client.last_warning is not None
        assert client.last_warning.recoverable
        transport.queue(make_response(b"\x00\x08"))
        client.read_words(MemoryArea.DM, 0, 1)
        assert client.last_warning is None

    def test_fatal_end_code_clears_warning(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response(b"\x00\x07", end=(0x00, 0x40)))
        client.read_words(MemoryArea.DM, 0, 1)
        assert client.last_warning is not None
        transport.queue(make_response(b"\x00\x00", end=(0x02, 0x03)))
        with pytest.raises(FinsEndCodeError):
            client.read_words(MemoryArea.DM, 0, 1)
        assert client.last_warning is None

    def test_request_exposes_warning(self, client: Client, transport: FakeTransport) -> None:
        from fins import protocol
        from fins.type import AccessGranularity, Address

        transport.queue(make_response(b"\x00\x07", end=(0x00, 0x40)))
        frame = protocol.build_read_request(MemoryArea.DM, AccessGranularity.WORD, Address(0), 1, client.nodes)
        response = client.request(frame, 32)
        assert response.recoverable
        assert response.payload == b"\x00\x07"

    def test_short_read_disconnects(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response(b"\x00"))
        with pytest.raises(FinsFramingError):
            client.read_words(MemoryArea.DM, 0, 1)
        assert not client.get_connected()
        assert not transport.is_open
        with pytest.raises(FinsConnectionError):
            client.read_words(MemoryArea.DM, 0, 1)

    def test_send_failure_disconnects(self, client: Client, transport: FakeTransport) -> None:
        transport.send = mock.Mock(side_effect=FinsConnectionError("Send failed"))  # type: ignore[method-assign]
        with pytest.raises(FinsConnectionError):
            client.write_word(MemoryArea.DM, 0, 1)
        assert not client.get_connected()

    def test_no_retry(self, client: Client, transport: FakeTransport) -> None:
        transport.queue(make_response(end=(0x02, 0x05)))
        sent = len(transport.sent)
        with pytest.raises(FinsEndCodeError):
            client.write_word(MemoryArea.DM, 0, 1)
        assert len(transport.sent) == sent + 1


def test_tcp_transport_is_a_transport() -> None:
    from fins.connection import Transport

    assert isinstance(TCPTransport(), Transport)
    assert isinstance(FakeTransport(), Transport)
