"""Resilient persistent websocket client with retry, backoff and buffering."""

from stablesocket.config import SocketPolicy, SocketSettings, get_settings
from stablesocket.errors import AbortError, ConnectError, RetryExhausted, SocketError, TimeoutError
from stablesocket.network import BufferedSocket, SocketDelegate, SocketState, StableSocket
from stablesocket.tasks import CancelToken, delay_fail, delay_succeed, retry

__all__ = [
    "AbortError",
    "BufferedSocket",
    "CancelToken",
    "ConnectError",
    "RetryExhausted",
    "SocketDelegate",
    "SocketError",
    "SocketPolicy",
    "SocketSettings",
    "SocketState",
    "StableSocket",
    "TimeoutError",
    "delay_fail",
    "delay_succeed",
    "get_settings",
    "retry",
]
