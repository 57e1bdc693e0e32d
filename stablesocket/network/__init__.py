"""Network stack (transport/connect/socket) for the stable socket client."""

from stablesocket.network.buffered_socket import BufferedSocket
from stablesocket.network.connect import connect, connect_with_retry
from stablesocket.network.stable_socket import (
    FATAL_CLOSE_CODES,
    Socket,
    SocketDelegate,
    SocketState,
    StableSocket,
    is_fatal,
)
from stablesocket.network.transport.base import BaseTransport
from stablesocket.network.transport.websocket import WebSocketTransport

__all__ = [
    "BufferedSocket",
    "StableSocket",
    "Socket",
    "SocketDelegate",
    "SocketState",
    "FATAL_CLOSE_CODES",
    "is_fatal",
    "connect",
    "connect_with_retry",
    "BaseTransport",
    "WebSocketTransport",
]
