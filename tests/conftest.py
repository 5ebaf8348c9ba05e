"""Shared fixtures: an in-memory stand-in for the TC-720 on a serial port."""

import asyncio
from collections import deque

import pytest


class FakeTransport:
    """Records written frames and answers them like a TC-720 would.

    By default every command is answered with ``*`` + its payload + ``00^``,
    except temperature reads, which return ``temperature_payload``. Queue
    explicit replies (bytes, a list of byte chunks, or None for silence) in
    ``replies`` to override the next answers in order.
    """

    def __init__(self, temperature_payload: str = "09c4"):
        self.temperature_payload = temperature_payload
        self.replies = deque()
        self.nak_all = False
        self.silent = False
        self.written = []
        self.listeners = []
        self.connected = False
        self.closed = False
        self.opened_port = None
        self.configured = None

    async def open(self, port=None):
        self.opened_port = port
        self.connected = True

    def configure(self, baudrate, bytesize, stopbits, parity):
        self.configured = (baudrate, bytesize, stopbits, parity)

    def add_listener(self, listener):
        self.listeners.append(listener)

    def remove_listener(self, listener):
        if listener in self.listeners:
            self.listeners.remove(listener)

    def write_text(self, text):
        self.written.append(text)
        reply = self._next_reply(text)
        if reply is None:
            return
        chunks = reply if isinstance(reply, list) else [reply]
        loop = asyncio.get_running_loop()
        for chunk in chunks:
            loop.call_soon(self.feed, chunk)

    def feed(self, data: bytes):
        for listener in list(self.listeners):
            listener(data)

    async def close(self):
        self.connected = False
        self.closed = True

    def _next_reply(self, text):
        if self.replies:
            return self.replies.popleft()
        if self.silent:
            return None
        if self.nak_all:
            return b"*XXXXXX^"
        opcode, payload = text[1:3], text[3:7]
        if opcode == "01":
            payload = self.temperature_payload
        return f"*{payload}00^".encode("ascii")

    @property
    def stats(self):
        return {"connected": self.connected, "writes": len(self.written)}


@pytest.fixture
def transport():
    """A fake TC-720 on a fake serial port."""
    return FakeTransport()
