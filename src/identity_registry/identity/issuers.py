"""Trusted issuer membership."""

from __future__ import annotations

from identity_registry.common.types import Principal
from identity_registry.storage.backend import StateBackend

ISSUERS = "issuers"


class TrustedIssuerSet:
    """Principals allowed to verify identities and issue or revoke credentials."""

    def __init__(self, backend: StateBackend) -> None:
        self._backend = backend

    async def is_trusted(self, principal: Principal) -> bool:
        return bool(await self._backend.get(ISSUERS, principal))

    async def add(self, principal: Principal) -> None:
        await self._backend.put(ISSUERS, principal, True)

    async def remove(self, principal: Principal) -> None:
        # Membership is a flag so the key survives removal.
        await self._backend.put(ISSUERS, principal, False)

    async def members(self) -> list[Principal]:
        """Currently trusted principals, in the order they were first added."""
        return [
            Principal(key) async for key, trusted in self._backend.scan(ISSUERS) if trusted
        ]
