"""Error hierarchy shared by the timing, retry and socket layers."""

from __future__ import annotations

import builtins
from typing import Optional


class SocketError(RuntimeError):
    """Base class for stable socket failures."""


class TimeoutError(SocketError, builtins.TimeoutError):
    """Raised when a deadline elapses before the awaited work completes."""


class AbortError(SocketError):
    """Raised when a cancellation token is signaled. Never retried."""

    def __init__(self, message: str = "aborted") -> None:
        super().__init__(message)


class ConnectError(SocketError):
    """Raised when the transport fails to become ready."""


class RetryExhausted(SocketError):
    """Raised when every connection attempt failed."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]) -> None:
        super().__init__(f"gave up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error
