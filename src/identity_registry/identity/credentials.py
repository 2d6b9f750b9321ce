"""Credential store: ordered credential sequences per subject."""

from __future__ import annotations

import structlog

from identity_registry.common.exceptions import IndexOutOfRangeError, InvalidInputError
from identity_registry.common.types import (
    NEVER_EXPIRES,
    ContentHash,
    Principal,
    Timestamp,
)
from identity_registry.identity.models import Credential
from identity_registry.identity.store import IdentityStore
from identity_registry.storage.backend import StateBackend

logger = structlog.get_logger()

CREDENTIALS = "credentials"


class CredentialStore:
    """
    Mapping from principal to an append-only sequence of credentials.

    A credential's index in its subject's sequence is its stable identifier.
    Credentials are only ever appended or marked invalid, never removed, so
    indices never shift.
    """

    def __init__(self, backend: StateBackend, identities: IdentityStore) -> None:
        self._backend = backend
        self._identities = identities
        self._logger = logger.bind(component="credential_store")

    async def list(self, subject: Principal) -> tuple[Credential, ...]:
        """All credentials of ``subject`` in issuance order."""
        return await self._backend.get(CREDENTIALS, subject) or ()

    async def count(self, subject: Principal) -> int:
        return len(await self.list(subject))

    async def get(self, subject: Principal, index: int) -> Credential:
        """
        Get one credential.

        Raises:
            IndexOutOfRangeError: ``index`` is past the end of the sequence
        """
        credentials = await self.list(subject)
        if not 0 <= index < len(credentials):
            raise IndexOutOfRangeError(
                "Credential index out of range",
                details={"subject": subject, "index": index, "count": len(credentials)},
            )
        return credentials[index]

    async def is_valid(self, subject: Principal, index: int, now: Timestamp) -> bool:
        """
        Whether a credential is currently valid.

        Out-of-range indices are reported as invalid rather than raising.
        """
        credentials = await self.list(subject)
        if not 0 <= index < len(credentials):
            return False
        return credentials[index].is_currently_valid(now)

    async def add(
        self,
        subject: Principal,
        credential_type: str,
        credential_hash: ContentHash,
        expires_at: Timestamp,
        issuer_name: str,
        now: Timestamp,
    ) -> int:
        """
        Append a credential to ``subject``'s sequence.

        Args:
            subject: Principal receiving the credential
            credential_type: Kind of claim
            credential_hash: Content hash of the off-record payload
            expires_at: Expiry in unix seconds, 0 for never
            issuer_name: Issuer display name snapshot
            now: Issuance time

        Returns:
            Index of the new credential

        Raises:
            NotFoundError: Subject has no identity
            InvalidInputError: Empty type or hash, or expiry not in the future
        """
        await self._identities.require(subject)

        if not credential_type:
            raise InvalidInputError(
                "Credential type cannot be empty",
                details={"field": "credential_type"},
            )
        if not credential_hash:
            raise InvalidInputError(
                "Credential hash cannot be empty",
                details={"field": "credential_hash"},
            )
        if expires_at != NEVER_EXPIRES and expires_at <= now:
            raise InvalidInputError(
                "Expiration must be in the future",
                details={"expires_at": expires_at, "now": now},
            )

        credential = Credential(
            credential_type=credential_type,
            issuer=issuer_name,
            credential_hash=credential_hash,
            issued_at=now,
            expires_at=expires_at,
        )
        credentials = await self.list(subject)
        await self._backend.put(CREDENTIALS, subject, (*credentials, credential))

        return len(credentials)

    async def revoke(self, subject: Principal, index: int) -> Credential:
        """
        Mark a credential invalid.

        Revoking an already revoked credential succeeds again.

        Raises:
            IndexOutOfRangeError: ``index`` is past the end of the sequence
        """
        credential = await self.get(subject, index)
        revoked = credential.model_copy(update={"is_valid": False})

        credentials = list(await self.list(subject))
        credentials[index] = revoked
        await self._backend.put(CREDENTIALS, subject, tuple(credentials))

        if not credential.is_valid:
            self._logger.info("credential_revoked_again", subject=subject, index=index)

        return revoked
