"""Transport implementations for the stable socket."""

from .base import BaseTransport
from .websocket import WebSocketTransport

__all__ = ["BaseTransport", "WebSocketTransport"]
