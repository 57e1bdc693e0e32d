"""Socket decorator that holds outbound messages while disconnected."""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Optional

from stablesocket.network.stable_socket import Socket, SocketDelegate, StableSocket, is_fatal

LOGGER = logging.getLogger(__name__)


class BufferedSocket(Socket):
    """Queues sends while the wrapped socket is down and replays them in order.

    Installs itself as the wrapped socket's delegate and forwards every
    callback to the delegate it replaced. Queued messages are flushed before
    ``on_open`` reaches that delegate and before any newer message is sent.
    """

    def __init__(self, socket: StableSocket) -> None:
        self._socket = socket
        self._delegate: SocketDelegate = socket.delegate
        self._buffer: Deque[str] = deque()
        socket.delegate = self

    @property
    def pending(self) -> int:
        """Number of messages waiting for the next open."""

        return len(self._buffer)

    async def open(self) -> None:
        await self._socket.open()

    def close(self, code: Optional[int] = None, reason: Optional[str] = None) -> None:
        self._socket.close(code, reason)

    def send(self, data: str) -> None:
        if self._socket.is_open():
            self.flush()
            self._socket.send(data)
        else:
            self._buffer.append(data)

    def is_open(self) -> bool:
        return self._socket.is_open()

    def flush(self) -> None:
        if self._buffer:
            LOGGER.debug("Flushing %s buffered message(s)", len(self._buffer))
        while self._buffer:
            self._socket.send(self._buffer.popleft())

    def on_open(self, socket: Socket) -> None:
        self.flush()
        self._delegate.on_open(socket)

    def on_close(self, socket: Socket, code: Optional[int], reason: Optional[str]) -> None:
        self._delegate.on_close(socket, code, reason)

    def on_finish(self, socket: Socket) -> None:
        self._delegate.on_finish(socket)

    def on_message(self, socket: Socket, message: str) -> None:
        self._delegate.on_message(socket, message)

    def should_retry(self, socket: Socket, code: int) -> bool:
        veto = getattr(self._delegate, "should_retry", None)
        if veto is not None:
            return bool(veto(socket, code))
        return not is_fatal(code)
