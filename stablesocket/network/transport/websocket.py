"""WebSocket transport implementation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from stablesocket.errors import ConnectError
from stablesocket.network.transport.base import BaseTransport, CloseObserver, MessageObserver

LOGGER = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006


@dataclass(frozen=True)
class _CloseRequest:
    code: int
    reason: str


_STOP = object()


class WebSocketTransport(BaseTransport):
    """``websockets`` client connection exposed through callbacks.

    Sends are queued and written by a single task so they hit the wire in call
    order; ``close`` is queued behind any pending sends.
    """

    def __init__(self, url: str) -> None:
        super().__init__()
        self._url = url
        self._ws: Optional[Any] = None
        self._outbox: asyncio.Queue[Any] = asyncio.Queue()
        self._reader: Optional[asyncio.Task[None]] = None
        self._writer: Optional[asyncio.Task[None]] = None
        self._closed = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._closed

    async def open(self) -> None:
        LOGGER.info("Connecting to WebSocket at %s", self._url)
        try:
            self._ws = await websockets.connect(self._url, open_timeout=None)
        except (OSError, WebSocketException) as exc:
            raise ConnectError(f"connect to {self._url} failed: {exc}") from exc
        self._writer = asyncio.create_task(self._send_loop(), name="socket-send")

    def listen(self, on_message: MessageObserver, on_close: CloseObserver) -> None:
        if self._ws is None:
            raise RuntimeError("WebSocket transport not connected")
        self.on_message = on_message
        self.on_close = on_close
        if self._reader is None:
            self._reader = asyncio.create_task(self._receive_loop(), name="socket-recv")

    def send(self, text: str) -> None:
        if not self.is_open:
            LOGGER.debug("Dropping send on closed WebSocket %s", self._url)
            return
        self._outbox.put_nowait(text)

    def close(self, code: Optional[int] = None, reason: Optional[str] = None) -> None:
        if self._ws is None or self._closed:
            return
        self._closed = True
        LOGGER.info("Closing WebSocket %s code=%s", self._url, code)
        self._outbox.put_nowait(_CloseRequest(code or NORMAL_CLOSURE, reason or ""))

    async def _send_loop(self) -> None:
        ws = self._ws
        while True:
            item = await self._outbox.get()
            if item is _STOP:
                return
            if isinstance(item, _CloseRequest):
                try:
                    await ws.close(code=item.code, reason=item.reason)
                except Exception:  # noqa: BLE001
                    LOGGER.debug("Suppress WebSocket close error", exc_info=True)
                return
            LOGGER.debug("WebSocket send: %s", item)
            try:
                await ws.send(item)
            except ConnectionClosed:
                LOGGER.debug("WebSocket closed while sending; dropping outbound queue")
                return

    async def _receive_loop(self) -> None:
        ws = self._ws
        try:
            async for raw in ws:
                if isinstance(raw, bytes):
                    raw = raw.decode("utf-8")
                LOGGER.debug("WebSocket receive: %s", raw)
                if self.on_message:
                    self.on_message(raw)
        except ConnectionClosed:
            pass
        if ws.close_code is None:
            with contextlib.suppress(Exception):
                await ws.wait_closed()
        code = ws.close_code if ws.close_code is not None else ABNORMAL_CLOSURE
        reason = ws.close_reason or ""
        if not self._closed:
            self._closed = True
            self._outbox.put_nowait(_STOP)
        LOGGER.info("WebSocket %s closed code=%s reason=%s", self._url, code, reason)
        if self.on_close:
            self.on_close(code, reason)
