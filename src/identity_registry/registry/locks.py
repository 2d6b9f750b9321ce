"""Write serialization for registry state."""

from __future__ import annotations

import asyncio
from collections import defaultdict

from identity_registry.common.types import Principal


class PrincipalLocks:
    """
    One asyncio lock per principal, plus locks for the shared issuer set and
    identity counter.

    A mutation holds its subject's lock for the whole read-compute-write-emit
    sequence, so concurrent writes to one principal cannot lose updates while
    writes to different principals proceed independently.

    Lock order is subject, then issuers or counter. Operations gated on
    issuer trust hold the issuers lock through their writes, so an issuer
    removal lands either before the trust check or after the event.
    """

    def __init__(self) -> None:
        self._locks: defaultdict[Principal, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.issuers = asyncio.Lock()
        self.counter = asyncio.Lock()

    def __call__(self, principal: Principal) -> asyncio.Lock:
        return self._locks[principal]
