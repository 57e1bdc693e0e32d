"""Cancellable timers and retry-with-backoff for asyncio coroutines."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import random
from typing import Awaitable, Callable, List, NoReturn, Optional, TypeVar

from stablesocket.errors import AbortError, TimeoutError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class CancelToken:
    """One-shot cancellation signal shared by every wait of an open attempt.

    Signaling is terminal and idempotent. Callbacks registered before the
    signal run exactly once; callbacks registered afterwards run immediately.
    """

    def __init__(self) -> None:
        self._signaled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def is_signaled(self) -> bool:
        return self._signaled

    def signal(self) -> None:
        if self._signaled:
            return
        self._signaled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:  # noqa: BLE001
                LOGGER.debug("Suppress cancel token callback error", exc_info=True)

    def add_callback(self, callback: Callable[[], None]) -> None:
        if self._signaled:
            callback()
            return
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with contextlib.suppress(ValueError):
            self._callbacks.remove(callback)

    async def wait(self) -> None:
        """Block until the token is signaled."""

        if self._signaled:
            return
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def _wake() -> None:
            if not waiter.done():
                waiter.set_result(None)

        self.add_callback(_wake)
        try:
            await waiter
        finally:
            self.remove_callback(_wake)


async def _sleep(seconds: float, token: Optional[CancelToken]) -> None:
    if token is not None and token.is_signaled:
        raise AbortError()
    loop = asyncio.get_running_loop()
    done: asyncio.Future[None] = loop.create_future()

    def _elapsed() -> None:
        if not done.done():
            done.set_result(None)

    def _aborted() -> None:
        # a signal after the timer fired leaves the outcome alone
        if not done.done():
            done.set_exception(AbortError())

    handle = loop.call_later(max(0.0, seconds), _elapsed)
    if token is not None:
        token.add_callback(_aborted)
    try:
        await done
    finally:
        handle.cancel()
        if token is not None:
            token.remove_callback(_aborted)


async def delay_fail(seconds: float, token: Optional[CancelToken] = None) -> NoReturn:
    """Raise ``TimeoutError`` after ``seconds``, or ``AbortError`` if canceled first.

    Meant to be raced against slower work::

        deadline = asyncio.ensure_future(delay_fail(0.1, token))
        await asyncio.wait({work, deadline}, return_when=asyncio.FIRST_COMPLETED)
    """

    await _sleep(seconds, token)
    raise TimeoutError(f"timed out after {seconds:.3f}s")


async def delay_succeed(seconds: float, token: Optional[CancelToken] = None) -> None:
    """Return after ``seconds`` unless the token is signaled first (``AbortError``)."""

    await _sleep(seconds, token)


async def until_aborted(awaitable: Awaitable[T], token: Optional[CancelToken]) -> T:
    """Await ``awaitable`` but fail with ``AbortError`` as soon as ``token`` signals.

    A result that completed successfully is returned even if the token signaled
    in the same loop iteration so the caller can release it.
    """

    if token is None:
        return await awaitable
    if token.is_signaled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise AbortError()
    task = asyncio.ensure_future(awaitable)
    aborted = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({task, aborted}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        aborted.cancel()
        if not task.done():
            task.cancel()
    if task.done() and not task.cancelled() and task.exception() is None:
        return task.result()
    if token.is_signaled:
        raise AbortError()
    return task.result()


def backoff_delay(
    attempt: int,
    max_delay: float = math.inf,
    rng: Optional[random.Random] = None,
    base_delay: float = 1.0,
) -> float:
    """Delay before retrying after the zero-based ``attempt`` failed."""

    rand = rng.random if rng is not None else random.random
    try:
        delay = math.ldexp(base_delay, attempt)
    except OverflowError:
        delay = math.inf
    if delay >= max_delay:
        return max_delay
    jitter = rand() * delay * 0.1
    return min(max_delay, delay + jitter)


async def retry(
    operation: Callable[[], Awaitable[T]],
    attempts: int,
    max_delay: float = math.inf,
    token: Optional[CancelToken] = None,
    *,
    rng: Optional[random.Random] = None,
    base_delay: float = 1.0,
) -> T:
    """Await ``operation()`` until it succeeds, at most ``attempts`` times.

    Failures are separated by an exponential backoff with jitter capped at
    ``max_delay``. ``AbortError`` is never retried, whether it comes from the
    operation, the token, or the backoff wait. After the last attempt the
    operation's own exception propagates.
    """

    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    for attempt in range(attempts):
        try:
            return await until_aborted(operation(), token)
        except AbortError:
            raise
        except Exception as exc:  # noqa: BLE001
            if attempt == attempts - 1:
                raise
            delay = backoff_delay(attempt, max_delay, rng, base_delay)
            LOGGER.warning(
                "Attempt %s/%s failed: %s; retrying in %.2fs", attempt + 1, attempts, exc, delay
            )
            await delay_succeed(delay, token)
    raise AssertionError("unreachable")
