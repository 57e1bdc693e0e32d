"""Persistent socket that reopens itself after non-fatal drops."""

from __future__ import annotations

import asyncio
import enum
import logging
import random
from abc import ABC, abstractmethod
from typing import Optional, Protocol

from stablesocket.config import SocketPolicy
from stablesocket.errors import AbortError
from stablesocket.network.connect import TransportFactory, connect_with_retry
from stablesocket.network.transport.base import BaseTransport
from stablesocket.network.transport.websocket import WebSocketTransport
from stablesocket.tasks import CancelToken

LOGGER = logging.getLogger(__name__)

# https://developer.mozilla.org/en-US/docs/Web/API/CloseEvent
POLICY_VIOLATION = 1008
INTERNAL_ERROR = 1011
FATAL_CLOSE_CODES = frozenset({POLICY_VIOLATION, INTERNAL_ERROR})

# seconds; fixed window, not scaled by how often the socket has dropped
REOPEN_DELAY_MIN = 0.100
REOPEN_DELAY_MAX = 0.150


def is_fatal(code: int) -> bool:
    return code in FATAL_CLOSE_CODES


class SocketState(enum.Enum):
    IDLE = "IDLE"
    OPENING = "OPENING"
    OPEN = "OPEN"
    FINISHED = "FINISHED"


class Socket(ABC):
    """Message socket capability shared by the stable and buffered sockets."""

    @abstractmethod
    async def open(self) -> None:
        ...

    @abstractmethod
    def close(self, code: Optional[int] = None, reason: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def send(self, data: str) -> None:
        ...

    @abstractmethod
    def is_open(self) -> bool:
        ...


class SocketDelegate(Protocol):
    """Lifecycle callbacks for a socket.

    A delegate may also define ``should_retry(socket, code) -> bool``; when
    present its answer decides whether a dropped socket reopens, otherwise the
    socket reopens unless the close code is fatal.
    """

    def on_open(self, socket: Socket) -> None:
        ...

    def on_close(self, socket: Socket, code: Optional[int], reason: Optional[str]) -> None:
        ...

    def on_finish(self, socket: Socket) -> None:
        ...

    def on_message(self, socket: Socket, message: str) -> None:
        ...


class StableSocket(Socket):
    """Owns one transport at a time and keeps it open until told otherwise.

    Lifecycle: IDLE -> OPENING -> OPEN -> (OPENING | FINISHED). ``open`` never
    raises; a failed open cycle is reported through ``on_finish``. Once
    finished the instance cannot be reopened.
    """

    def __init__(
        self,
        url: str,
        delegate: SocketDelegate,
        policy: SocketPolicy,
        *,
        transport_factory: TransportFactory = WebSocketTransport,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._url = str(url)
        self.delegate = delegate
        self._policy = policy
        self._transport_factory = transport_factory
        self._rng = rng or random.Random()
        self._transport: Optional[BaseTransport] = None
        self._opening: Optional[CancelToken] = None
        self._reopen: Optional[asyncio.TimerHandle] = None
        self._reopen_task: Optional[asyncio.Task[None]] = None
        self._started = False
        self._closed = False
        self._finished = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def policy(self) -> SocketPolicy:
        return self._policy

    @property
    def state(self) -> SocketState:
        if self._finished or self._closed:
            return SocketState.FINISHED
        if self._transport is not None:
            return SocketState.OPEN
        if self._opening is not None or self._reopen is not None:
            return SocketState.OPENING
        return SocketState.IDLE

    async def open(self) -> None:
        """Connect with retries and notify ``on_open``; no-op unless idle."""

        if self._closed or self._finished or self._opening or self._transport:
            return
        self._started = True
        token = CancelToken()
        self._opening = token
        try:
            transport = await connect_with_retry(
                self._url,
                self._policy,
                token,
                transport_factory=self._transport_factory,
                rng=self._rng,
            )
        except AbortError:
            LOGGER.info("Socket open to %s canceled", self._url)
            self._finish()
            return
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Socket open to %s failed: %s", self._url, exc)
            self._finish()
            return
        finally:
            if self._opening is token:
                self._opening = None

        if token.is_signaled:
            # close() ran while the connect result was on its way back
            transport.close()
            self._finish()
            return
        self._transport = transport
        transport.listen(self._handle_message, self._handle_close)
        LOGGER.info("Socket connected to %s", self._url)
        self._notify("on_open")

    def close(self, code: Optional[int] = None, reason: Optional[str] = None) -> None:
        """Stop for good: cancel any open attempt or close the live transport."""

        if self._closed or self._finished:
            return
        self._closed = True
        if self._opening is not None:
            token, self._opening = self._opening, None
            token.signal()
            return
        if self._reopen is not None:
            self._reopen.cancel()
            self._reopen = None
            self._finish()
            return
        transport = self._transport
        if transport is None:
            if self._started:
                self._finish()
            else:
                self._finished = True
            return
        transport.on_close = None
        transport.close(code, reason)
        self._transport = None
        self._notify("on_close", code, reason)
        self._finish()

    def send(self, data: str) -> None:
        if self.is_open():
            self._transport.send(data)  # type: ignore[union-attr]
        else:
            LOGGER.debug("Dropping message on socket %s that is not open", self._url)

    def is_open(self) -> bool:
        return self._transport is not None and self._transport.is_open

    def _handle_message(self, message: str) -> None:
        self._notify("on_message", message)

    def _handle_close(self, code: int, reason: str) -> None:
        self._transport = None
        LOGGER.info("Socket %s dropped code=%s reason=%s", self._url, code, reason)
        self._notify("on_close", code, reason)
        if self._closed or self._finished:
            return
        if self._should_retry(code):
            delay = REOPEN_DELAY_MIN + self._rng.random() * (REOPEN_DELAY_MAX - REOPEN_DELAY_MIN)
            LOGGER.info("Reopening socket %s in %.3fs", self._url, delay)
            self._reopen = asyncio.get_running_loop().call_later(delay, self._start_reopen)
        else:
            LOGGER.warning("Socket %s will not reconnect after close code %s", self._url, code)
            self._finish()

    def _start_reopen(self) -> None:
        self._reopen = None
        task = asyncio.ensure_future(self.open())
        self._reopen_task = task
        task.add_done_callback(self._reopen_done)

    def _reopen_done(self, task: asyncio.Task[None]) -> None:
        if self._reopen_task is task:
            self._reopen_task = None
        if not task.cancelled() and task.exception() is not None:
            LOGGER.error("Socket %s reopen failed", self._url, exc_info=task.exception())

    def _should_retry(self, code: int) -> bool:
        veto = getattr(self.delegate, "should_retry", None)
        if veto is None:
            return not is_fatal(code)
        try:
            return bool(veto(self, code))
        except Exception:  # noqa: BLE001
            LOGGER.exception("Socket delegate should_retry failed; using default close policy")
            return not is_fatal(code)

    def _finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        LOGGER.info("Socket %s finished", self._url)
        self._notify("on_finish")

    def _notify(self, name: str, *args: object) -> None:
        try:
            getattr(self.delegate, name)(self, *args)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Socket delegate %s callback failed", name)
