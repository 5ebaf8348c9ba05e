"""Tests for the pyserial-asyncio serial transport."""

import asyncio
from types import SimpleNamespace

import pytest
import serial
import serial_asyncio

from tec2mqtt.config import SerialConfig
from tec2mqtt.exceptions import TransportError
from tec2mqtt.serial.connection import SerialTransport


class StubSerialTransport:
    """Stands in for serial_asyncio.SerialTransport."""

    def __init__(self, protocol):
        self.protocol = protocol
        self.serial = SimpleNamespace(baudrate=9600, bytesize=7, stopbits=2, parity="E")
        self.written = []
        self.fail_writes = False
        self.closed = False

    def write(self, data):
        if self.fail_writes:
            raise serial.SerialException("device unplugged")
        self.written.append(data)

    def close(self):
        self.closed = True
        asyncio.get_running_loop().call_soon(self.protocol.connection_lost, None)


@pytest.fixture
def serial_port(monkeypatch):
    """Patch create_serial_connection; records its arguments and the stub transport."""
    opened = {}

    async def create_serial_connection(loop, protocol_factory, url, **kwargs):
        if opened.get("fail"):
            raise serial.SerialException(f"could not open port {url}")
        protocol = protocol_factory()
        stub = StubSerialTransport(protocol)
        protocol.connection_made(stub)
        opened.update(url=url, kwargs=kwargs, transport=stub, protocol=protocol)
        return stub, protocol

    monkeypatch.setattr(serial_asyncio, "create_serial_connection", create_serial_connection)
    return opened


def make_transport() -> SerialTransport:
    return SerialTransport(SerialConfig(port="/dev/ttyTEC"))


class TestOpen:
    """Tests for opening the port."""

    def test_open_with_line_settings(self, serial_port):
        """Test the port is opened at 230400 8N1 with the override applied."""
        transport = make_transport()
        asyncio.run(transport.open("/dev/ttyUSB2"))

        assert transport.connected
        assert transport.port == "/dev/ttyUSB2"
        assert serial_port["url"] == "/dev/ttyUSB2"
        assert serial_port["kwargs"] == {
            "baudrate": 230400,
            "bytesize": 8,
            "parity": "N",
            "stopbits": 1,
        }

    def test_open_failure_is_wrapped(self, serial_port):
        """Test a pyserial failure surfaces as TransportError."""
        serial_port["fail"] = True
        transport = make_transport()

        with pytest.raises(TransportError) as exc_info:
            asyncio.run(transport.open())
        assert isinstance(exc_info.value.__cause__, serial.SerialException)
        assert not transport.connected


class TestBeforeOpen:
    """Tests for use of an unopened transport."""

    def test_write_requires_open_port(self):
        """Test writing before open raises TransportError."""
        with pytest.raises(TransportError):
            make_transport().write_text("*01000021\r")

    def test_configure_requires_open_port(self):
        """Test configuring before open raises TransportError."""
        with pytest.raises(TransportError):
            make_transport().configure(230400, 8, 1, "N")


class TestOpenPort:
    """Tests for an open port."""

    def test_configure(self, serial_port):
        """Test the line parameters are set on the pyserial port."""
        transport = make_transport()

        async def scenario():
            await transport.open()
            transport.configure(230400, 8, 1, "N")

        asyncio.run(scenario())
        port = serial_port["transport"].serial
        assert (port.baudrate, port.bytesize, port.stopbits, port.parity) == (230400, 8, 1, "N")

    def test_write_text(self, serial_port):
        """Test frames are written as ASCII and counted."""
        transport = make_transport()

        async def scenario():
            await transport.open()
            transport.write_text("*01000021\r")

        asyncio.run(scenario())
        assert serial_port["transport"].written == [b"*01000021\r"]
        assert transport.stats["bytes_sent"] == 10
        assert transport.stats["writes"] == 1

    def test_write_failure_is_wrapped(self, serial_port):
        """Test a failed write surfaces as TransportError and is not counted."""
        transport = make_transport()

        async def scenario():
            await transport.open()
            serial_port["transport"].fail_writes = True
            transport.write_text("*01000021\r")

        with pytest.raises(TransportError):
            asyncio.run(scenario())
        assert transport.stats["writes"] == 0

    def test_received_bytes_reach_listeners(self, serial_port):
        """Test data from the port is fanned out to every listener."""
        transport = make_transport()
        first, second = [], []

        async def scenario():
            await transport.open()
            transport.add_listener(first.append)
            transport.add_listener(second.append)
            serial_port["protocol"].data_received(b"*09c4")
            transport.remove_listener(second.append)
            serial_port["protocol"].data_received(b"00^")

        asyncio.run(scenario())
        assert first == [b"*09c4", b"00^"]
        assert second == [b"*09c4"]
        assert transport.stats["bytes_received"] == 8


class TestClose:
    """Tests for closing and losing the port."""

    def test_close_waits_for_connection_lost(self, serial_port):
        """Test close() returns once the port reports it is gone."""
        transport = make_transport()

        async def scenario():
            await transport.open()
            await transport.close()

        asyncio.run(scenario())
        assert serial_port["transport"].closed
        assert not transport.connected
        with pytest.raises(TransportError):
            transport.write_text("*01000021\r")

    def test_unexpected_connection_loss(self, serial_port):
        """Test a lost port refuses further writes."""
        transport = make_transport()

        async def scenario():
            await transport.open()
            serial_port["protocol"].connection_lost(OSError("device removed"))
            assert not transport.connected
            with pytest.raises(TransportError):
                transport.write_text("*01000021\r")
            await transport.close()

        asyncio.run(scenario())
