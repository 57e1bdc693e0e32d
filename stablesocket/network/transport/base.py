"""Transport abstractions for the stable socket."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

MessageObserver = Callable[[str], None]
CloseObserver = Callable[[int, str], None]


class BaseTransport(ABC):
    """Abstract WebSocket-like transport carrying whole text messages.

    Observers are plain attributes so an owner can detach one by assigning
    ``None``; a transport with no close observer closes silently.
    """

    def __init__(self) -> None:
        self.on_message: Optional[MessageObserver] = None
        self.on_close: Optional[CloseObserver] = None

    @abstractmethod
    async def open(self) -> None:
        """Resolve once the transport is writable; raise ``ConnectError`` otherwise."""

    @abstractmethod
    def listen(self, on_message: MessageObserver, on_close: CloseObserver) -> None:
        """Install observers and start delivering inbound messages."""

    @abstractmethod
    def send(self, text: str) -> None:
        ...

    @abstractmethod
    def close(self, code: Optional[int] = None, reason: Optional[str] = None) -> None:
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...
