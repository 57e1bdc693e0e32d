import asyncio
import random

import pytest

from stablesocket.config import SocketPolicy
from stablesocket.network.buffered_socket import BufferedSocket
from stablesocket.network.stable_socket import StableSocket

URL = "ws://socket.test/feed"
POLICY = SocketPolicy(connect_timeout=0.1, max_attempts=1)


def _buffered(delegate, transports) -> BufferedSocket:
    inner = StableSocket(URL, delegate, POLICY, transport_factory=transports, rng=random.Random(3))
    return BufferedSocket(inner)


@pytest.mark.asyncio
async def test_interposes_as_delegate(delegate, transports):
    inner = StableSocket(URL, delegate, POLICY, transport_factory=transports)
    socket = BufferedSocket(inner)
    assert inner.delegate is socket

    await socket.open()
    assert socket.is_open()
    transports.last.receive("hi")
    assert delegate.states == ["open", "msg:hi"]

    socket.close()
    assert not socket.is_open()
    assert delegate.states == ["open", "msg:hi", "closed", "finished"]


@pytest.mark.asyncio
async def test_flushes_buffer_before_open_is_forwarded(delegate, transports):
    seen_at_open = []
    original = delegate.on_open

    def _on_open(sock):
        seen_at_open.append(list(transports.last.sent))
        original(sock)

    delegate.on_open = _on_open
    socket = _buffered(delegate, transports)
    socket.send("one")
    socket.send("two")
    assert socket.pending == 2

    await socket.open()
    assert seen_at_open == [["one", "two"]]
    assert socket.pending == 0

    socket.send("three")
    assert transports.last.sent == ["one", "two", "three"]
    socket.close()


@pytest.mark.asyncio
async def test_buffers_across_reconnect(delegate, transports):
    socket = _buffered(delegate, transports)
    await socket.open()
    socket.send("before")
    transports.last.drop(1000)

    socket.send("during-1")
    socket.send("during-2")
    assert socket.pending == 2

    await asyncio.sleep(0.2)
    assert delegate.states == ["open", "closed", "open"]
    assert transports.created[0].sent == ["before"]
    assert transports.created[1].sent == ["during-1", "during-2"]

    socket.send("after")
    assert transports.created[1].sent == ["during-1", "during-2", "after"]
    socket.close()


@pytest.mark.asyncio
async def test_send_flushes_leftovers_first(delegate, transports):
    socket = _buffered(delegate, transports)
    await socket.open()
    # messages queued behind the socket's back are still sent before new ones
    socket._buffer.append("stale")
    socket.send("fresh")
    assert transports.last.sent == ["stale", "fresh"]
    socket.close()


def test_flush_on_empty_buffer_is_noop(delegate, transports):
    socket = _buffered(delegate, transports)
    socket.flush()
    socket.flush()
    assert socket.pending == 0
    assert transports.created == []


@pytest.mark.asyncio
async def test_forwards_delegate_retry_veto(veto_delegate, transports):
    delegate = veto_delegate(4000)
    socket = _buffered(delegate, transports)
    assert socket.should_retry(socket, 1011) is True
    assert socket.should_retry(socket, 4000) is False

    await socket.open()
    transports.last.drop(4000)
    await asyncio.sleep(0.2)
    assert delegate.states == ["open", "closed", "finished"]


@pytest.mark.asyncio
async def test_default_retry_policy_without_veto(delegate, transports):
    socket = _buffered(delegate, transports)
    assert socket.should_retry(socket, 1000) is True
    assert socket.should_retry(socket, 1008) is False

    await socket.open()
    transports.last.drop(1011)
    await asyncio.sleep(0.2)
    assert delegate.states == ["open", "closed", "finished"]
