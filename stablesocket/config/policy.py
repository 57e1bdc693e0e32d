"""Connection policy applied to every open cycle of a stable socket."""

from __future__ import annotations

import math
from dataclasses import dataclass

from stablesocket.config.settings import SocketSettings


@dataclass(frozen=True)
class SocketPolicy:
    """Per-attempt deadline, attempt cap and backoff cap, all in seconds."""

    connect_timeout: float
    max_attempts: int
    max_backoff_delay: float = math.inf

    def __post_init__(self) -> None:
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.max_backoff_delay < 0:
            raise ValueError("max_backoff_delay must not be negative")

    @classmethod
    def from_settings(cls, settings: SocketSettings) -> SocketPolicy:
        max_delay = settings.max_backoff_delay_seconds
        return cls(
            connect_timeout=float(settings.connect_timeout_seconds),
            max_attempts=int(settings.max_attempts),
            max_backoff_delay=math.inf if max_delay is None else float(max_delay),
        )
