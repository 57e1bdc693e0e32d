"""Shared fakes for stable socket tests."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from stablesocket.network.transport.base import BaseTransport


class FakeTransport(BaseTransport):
    """In-memory transport; the test plays the remote side via ``receive``/``drop``."""

    def __init__(
        self,
        url: str,
        *,
        open_delay: float = 0.0,
        error: Optional[Exception] = None,
        ignore_cancel: bool = False,
    ) -> None:
        super().__init__()
        self.url = url
        self.open_delay = open_delay
        self.error = error
        self.ignore_cancel = ignore_cancel
        self.cancelled = False
        self.sent: List[str] = []
        self.closed_with: Optional[tuple] = None
        self._open = False

    async def open(self) -> None:
        if self.open_delay:
            try:
                await asyncio.sleep(self.open_delay)
            except asyncio.CancelledError:
                self.cancelled = True
                if not self.ignore_cancel:
                    raise
        if self.error is not None:
            raise self.error
        self._open = True

    def listen(self, on_message, on_close) -> None:
        self.on_message = on_message
        self.on_close = on_close

    def send(self, text: str) -> None:
        self.sent.append(text)

    def close(self, code: Optional[int] = None, reason: Optional[str] = None) -> None:
        self._open = False
        self.closed_with = (code, reason)

    @property
    def is_open(self) -> bool:
        return self._open

    def receive(self, text: str) -> None:
        assert self.on_message is not None
        self.on_message(text)

    def drop(self, code: int, reason: str = "") -> None:
        self._open = False
        if self.on_close:
            self.on_close(code, reason)


class FakeTransportFactory:
    """Builds one ``FakeTransport`` per connection attempt, following ``plan``."""

    def __init__(self) -> None:
        self.created: List[FakeTransport] = []
        self.plan: List[Dict[str, Any]] = []

    def __call__(self, url: str) -> FakeTransport:
        kwargs = self.plan.pop(0) if self.plan else {}
        transport = FakeTransport(url, **kwargs)
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]


class RecordingDelegate:
    def __init__(self) -> None:
        self.states: List[str] = []
        self.codes: List[Optional[int]] = []

    def on_open(self, socket) -> None:
        self.states.append("open")

    def on_close(self, socket, code, reason) -> None:
        self.states.append("closed")
        self.codes.append(code)

    def on_finish(self, socket) -> None:
        self.states.append("finished")

    def on_message(self, socket, message) -> None:
        self.states.append(f"msg:{message}")


class VetoDelegate(RecordingDelegate):
    def __init__(self, fatal: int) -> None:
        super().__init__()
        self.fatal = fatal

    def should_retry(self, socket, code) -> bool:
        return code != self.fatal


@pytest.fixture
def transports() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def delegate() -> RecordingDelegate:
    return RecordingDelegate()


@pytest.fixture
def veto_delegate():
    return VetoDelegate
