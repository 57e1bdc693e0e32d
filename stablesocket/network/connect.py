"""Single and retried connection attempts bounded by a deadline."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Optional

from stablesocket.config import SocketPolicy
from stablesocket.errors import AbortError, RetryExhausted
from stablesocket.network.transport.base import BaseTransport
from stablesocket.network.transport.websocket import WebSocketTransport
from stablesocket.tasks import CancelToken, delay_fail, retry

LOGGER = logging.getLogger(__name__)

TransportFactory = Callable[[str], BaseTransport]


async def connect(
    address: str,
    timeout: float,
    token: Optional[CancelToken] = None,
    *,
    transport_factory: TransportFactory = WebSocketTransport,
) -> BaseTransport:
    """Open one transport or fail after ``timeout`` seconds.

    The transport is writable once this returns. On timeout, transport error
    or cancellation the transport is not leaked: a pending open is cancelled,
    and one that completes anyway is closed straight away.

    Examples::

        try:
            transport = await connect("ws://localhost:7999", 0.1)
            transport.send("hi")
        except SocketError as exc:
            LOGGER.warning("Socket connection failed: %s", exc)
    """

    if token is not None and token.is_signaled:
        raise AbortError()
    transport = transport_factory(address)
    opening = asyncio.ensure_future(transport.open())
    deadline = asyncio.ensure_future(delay_fail(timeout, token))
    try:
        await asyncio.wait({opening, deadline}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        _shutdown(opening, transport)
        raise
    finally:
        if not deadline.done():
            deadline.cancel()

    if opening.done() and not opening.cancelled() and opening.exception() is None:
        return transport
    _shutdown(opening, transport)
    if deadline.done() and not deadline.cancelled():
        # timeout or abort outranks a transport error settling in the same turn
        raise deadline.exception()  # type: ignore[misc]
    raise opening.exception()  # type: ignore[misc]


def _shutdown(opening: asyncio.Future[None], transport: BaseTransport) -> None:
    def _close_late(fut: asyncio.Future[None]) -> None:
        if fut.cancelled() or fut.exception() is not None:
            return
        LOGGER.debug("Closing transport that opened after its attempt was abandoned")
        transport.close()

    opening.add_done_callback(_close_late)
    if not opening.done():
        opening.cancel()


async def connect_with_retry(
    address: str,
    policy: SocketPolicy,
    token: Optional[CancelToken] = None,
    *,
    transport_factory: TransportFactory = WebSocketTransport,
    rng: Optional[random.Random] = None,
) -> BaseTransport:
    """Connect with exponential backoff between failed attempts.

    Raises ``AbortError`` when ``token`` is signaled and ``RetryExhausted``
    (chained from the last failure) when every attempt failed.
    """

    def _attempt():
        return connect(address, policy.connect_timeout, token, transport_factory=transport_factory)

    try:
        return await retry(_attempt, policy.max_attempts, policy.max_backoff_delay, token, rng=rng)
    except AbortError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise RetryExhausted(policy.max_attempts, exc) from exc
