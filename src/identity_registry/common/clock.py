"""Time sources for the registry state machine."""

from __future__ import annotations

import time
from typing import Protocol

from identity_registry.common.types import Timestamp


class Clock(Protocol):
    """Anything callable that returns the current time in unix seconds."""

    def __call__(self) -> Timestamp: ...


class SystemClock:
    """Wall-clock time, truncated to whole seconds."""

    def __call__(self) -> Timestamp:
        return Timestamp(int(time.time()))


class ManualClock:
    """
    Clock whose value is set explicitly.

    Used by the ledger processor (block timestamps) and by tests.
    """

    def __init__(self, start: int = 0) -> None:
        self._now = start

    def __call__(self) -> Timestamp:
        return Timestamp(self._now)

    def set(self, value: int) -> None:
        self._now = value

    def advance(self, seconds: int) -> Timestamp:
        self._now += seconds
        return Timestamp(self._now)
