"""Identity store: one identity per principal."""

from __future__ import annotations

import structlog

from identity_registry.common.exceptions import (
    AlreadyExistsError,
    InvalidInputError,
    NotFoundError,
)
from identity_registry.common.types import (
    INITIAL_REPUTATION_SCORE,
    ContentHash,
    Principal,
    Timestamp,
)
from identity_registry.identity.models import Identity
from identity_registry.storage.backend import StateBackend

logger = structlog.get_logger()

IDENTITIES = "identities"
COUNTERS = "counters"
TOTAL_IDENTITIES = "total_identities"


def _require_profile_fields(name: str, email: str) -> None:
    if not name:
        raise InvalidInputError("Name cannot be empty", details={"field": "name"})
    if not email:
        raise InvalidInputError("Email cannot be empty", details={"field": "email"})


class IdentityStore:
    """
    Mapping from principal to its Identity record.

    Identities are never removed. Callers are expected to serialize writes
    per principal; this class performs no locking of its own.
    """

    def __init__(
        self,
        backend: StateBackend,
        initial_score: int = INITIAL_REPUTATION_SCORE,
    ) -> None:
        self._backend = backend
        self.initial_score = initial_score
        self._logger = logger.bind(component="identity_store")

    async def get(self, principal: Principal) -> Identity | None:
        """Get an identity, or None if the principal has none."""
        return await self._backend.get(IDENTITIES, principal)

    async def require(self, principal: Principal) -> Identity:
        """Get an identity or raise ``NotFoundError``."""
        identity = await self.get(principal)
        if identity is None:
            raise NotFoundError(
                "Identity does not exist",
                details={"principal": principal},
            )
        return identity

    async def exists(self, principal: Principal) -> bool:
        return await self._backend.exists(IDENTITIES, principal)

    async def save(self, identity: Identity) -> None:
        await self._backend.put(IDENTITIES, identity.principal, identity)

    async def total_count(self) -> int:
        return await self._backend.get(COUNTERS, TOTAL_IDENTITIES) or 0

    async def create(
        self,
        principal: Principal,
        name: str,
        email: str,
        profile_hash: ContentHash,
        now: Timestamp,
    ) -> Identity:
        """
        Create the identity for ``principal``.

        Raises:
            AlreadyExistsError: The principal already has an identity
            InvalidInputError: Name or email is empty
        """
        if await self.exists(principal):
            raise AlreadyExistsError(
                "Identity already exists",
                details={"principal": principal},
            )
        _require_profile_fields(name, email)

        identity = Identity(
            principal=principal,
            name=name,
            email=email,
            profile_hash=profile_hash,
            reputation_score=self.initial_score,
            created_at=now,
            last_updated=now,
        )
        await self.save(identity)
        total = await self._backend.increment(COUNTERS, TOTAL_IDENTITIES)

        self._logger.debug("identity_stored", principal=principal, total=total)
        return identity

    async def update_profile(
        self,
        principal: Principal,
        name: str,
        email: str,
        profile_hash: ContentHash,
        now: Timestamp,
    ) -> Identity:
        """
        Overwrite the display fields of an existing identity.

        Raises:
            NotFoundError: No identity for ``principal``
            InvalidInputError: Name or email is empty
        """
        identity = await self.require(principal)
        _require_profile_fields(name, email)

        updated = identity.touched(
            now, name=name, email=email, profile_hash=profile_hash
        )
        await self.save(updated)
        return updated

    async def set_verification(
        self,
        principal: Principal,
        verified: bool,
        now: Timestamp,
    ) -> Identity:
        """Set the verification flag. Raises ``NotFoundError`` if absent."""
        identity = await self.require(principal)
        updated = identity.touched(now, is_verified=verified)
        await self.save(updated)
        return updated
