"""Public operation surface of the identity registry."""

from __future__ import annotations

import structlog
from pydantic import BaseModel, ConfigDict

from identity_registry.audit.events import EventType, RegistryEvent
from identity_registry.audit.log import EventLog
from identity_registry.common.clock import Clock, SystemClock
from identity_registry.common.decorators import registry_operation
from identity_registry.common.exceptions import ForbiddenError, InvalidInputError
from identity_registry.common.types import (
    NEVER_EXPIRES,
    ContentHash,
    Principal,
    Timestamp,
)
from identity_registry.config import RegistrySettings
from identity_registry.identity.credentials import CredentialStore
from identity_registry.identity.issuers import TrustedIssuerSet
from identity_registry.identity.models import Credential, Identity
from identity_registry.identity.reputation import ReputationChange, ReputationEngine
from identity_registry.identity.store import IdentityStore
from identity_registry.observability.metrics import MetricsCollector
from identity_registry.registry.locks import PrincipalLocks
from identity_registry.storage.backend import InMemoryBackend, StateBackend

logger = structlog.get_logger()


class RegistryStats(BaseModel):
    """Registry-wide counters."""

    model_config = ConfigDict(frozen=True)

    total_identities: int
    total_events: int


class IdentityRegistry:
    """
    Identity registry state machine.

    Owns every write path into identity, credential and issuer state.
    Each mutation checks authorization, validates input, applies its writes,
    adjusts reputation where the action affects trust and appends audit
    events, then returns the events it appended. A rejected operation
    raises before any write and appends nothing.

    Roles:
    - owner: manages the trusted issuer set; can never be removed
    - trusted issuer: verifies identities, issues and revokes credentials
    - self: the only principal allowed to edit its own profile

    Owner and trusted issuer are independent checks. The owner is seeded
    into the issuer set on first use.

    Example:
        ```python
        registry = IdentityRegistry(owner="0xowner")

        await registry.create_identity("0xalice", "Alice", "alice@example.com")
        await registry.verify_identity("0xowner", "0xalice", True)
        events = await registry.add_credential(
            "0xowner", "0xalice", "KYC", "bafy...",
        )

        identity = await registry.get_identity("0xalice")
        assert identity.reputation_score == 250
        ```
    """

    def __init__(
        self,
        owner: Principal,
        *,
        backend: StateBackend | None = None,
        event_log: EventLog | None = None,
        settings: RegistrySettings | None = None,
        clock: Clock | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        if not owner:
            raise InvalidInputError("Owner principal cannot be empty")

        self._owner = owner
        self.settings = settings or RegistrySettings()
        self._clock = clock or SystemClock()
        self._metrics = metrics or MetricsCollector()
        self._log = event_log or EventLog()

        backend = backend or InMemoryBackend()
        reputation = self.settings.reputation
        self._identities = IdentityStore(backend, initial_score=reputation.initial_score)
        self._credentials = CredentialStore(backend, self._identities)
        self._issuers = TrustedIssuerSet(backend)
        self._reputation = ReputationEngine(self._identities, max_score=reputation.max_score)

        self._locks = PrincipalLocks()
        self._initialized = False

        self._logger = logger.bind(registry=owner)

    @property
    def owner(self) -> Principal:
        return self._owner

    @property
    def events(self) -> tuple[RegistryEvent, ...]:
        """The audit log, oldest first."""
        return self._log.events

    @property
    def event_log(self) -> EventLog:
        return self._log

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    async def initialize(self) -> None:
        """Seed the owner into the trusted issuer set. Safe to call repeatedly."""
        if self._initialized:
            return
        async with self._locks.issuers:
            if not self._initialized:
                await self._issuers.add(self._owner)
                self._initialized = True
                self._logger.info("registry_initialized", owner=self._owner)

    #region Authorization

    def _require_owner(self, caller: Principal) -> None:
        if caller != self._owner:
            raise ForbiddenError(
                "Only the owner can manage trusted issuers",
                details={"caller": caller},
            )

    async def _require_trusted_issuer(self, caller: Principal) -> None:
        # Caller holds self._locks.issuers until its writes are done.
        if not await self._issuers.is_trusted(caller):
            raise ForbiddenError(
                "Caller is not a trusted issuer",
                details={"caller": caller},
            )

    #endregion

    #region Identity

    @registry_operation("create_identity")
    async def create_identity(
        self,
        caller: Principal,
        name: str,
        email: str,
        profile_hash: ContentHash = ContentHash(""),
    ) -> list[RegistryEvent]:
        """
        Create the caller's identity.

        Args:
            caller: Principal creating its own identity
            name: Display name (non-empty)
            email: Contact email (non-empty)
            profile_hash: Content hash of the off-record profile, may be empty

        Returns:
            Appended events: IdentityCreated

        Raises:
            AlreadyExistsError: Caller already has an identity
            InvalidInputError: Name or email is empty
        """
        async with self._locks(caller):
            now = self._clock()
            async with self._locks.counter:
                identity = await self._identities.create(
                    caller, name, email, profile_hash, now
                )
                total = await self._identities.total_count()

            event = await self._log.append(
                EventType.IDENTITY_CREATED,
                caller,
                now,
                {"name": identity.name, "profile_hash": identity.profile_hash},
            )

        self._metrics.gauge("registry_identities").set(total)
        self._logger.info("identity_created", principal=caller, total=total)
        return [event]

    @registry_operation("update_profile")
    async def update_profile(
        self,
        caller: Principal,
        name: str,
        email: str,
        profile_hash: ContentHash = ContentHash(""),
        *,
        subject: Principal | None = None,
    ) -> list[RegistryEvent]:
        """
        Overwrite the display fields of an identity.

        Args:
            caller: Principal making the change
            name: New display name (non-empty)
            email: New email (non-empty)
            profile_hash: New profile content hash
            subject: Identity to edit; defaults to the caller's own

        Returns:
            Appended events: IdentityUpdated

        Raises:
            ForbiddenError: ``subject`` is not the caller
            NotFoundError: Subject has no identity
            InvalidInputError: Name or email is empty
        """
        subject = caller if subject is None else subject
        if subject != caller:
            raise ForbiddenError(
                "Only the identity's own principal can update its profile",
                details={"caller": caller, "subject": subject},
            )

        async with self._locks(subject):
            now = self._clock()
            identity = await self._identities.update_profile(
                subject, name, email, profile_hash, now
            )
            event = await self._log.append(
                EventType.IDENTITY_UPDATED,
                subject,
                now,
                {"name": identity.name, "profile_hash": identity.profile_hash},
            )

        self._logger.info("profile_updated", principal=subject)
        return [event]

    @registry_operation("verify_identity")
    async def verify_identity(
        self,
        caller: Principal,
        subject: Principal,
        verified: bool,
    ) -> list[RegistryEvent]:
        """
        Set or clear an identity's verified flag.

        Verifying rewards the subject's reputation, un-verifying penalizes
        it; the delta applies even when the flag already had that value.

        Returns:
            Appended events: ReputationUpdated, IdentityUpdated

        Raises:
            ForbiddenError: Caller is not a trusted issuer
            NotFoundError: Subject has no identity
        """
        reputation = self.settings.reputation
        delta = reputation.verified_delta if verified else reputation.unverified_delta

        await self.initialize()
        async with self._locks(subject), self._locks.issuers:
            await self._require_trusted_issuer(caller)

            now = self._clock()
            await self._identities.set_verification(subject, verified, now)
            change = await self._reputation.adjust(subject, delta, now)
            events = [
                await self._record_reputation(change),
                await self._log.append(
                    EventType.IDENTITY_UPDATED,
                    subject,
                    now,
                    {"is_verified": verified, "verified_by": caller},
                ),
            ]

        self._logger.info(
            "identity_verification_set",
            principal=subject,
            verified=verified,
            issuer=caller,
        )
        return events

    #endregion

    #region Credentials

    @registry_operation("add_credential")
    async def add_credential(
        self,
        caller: Principal,
        subject: Principal,
        credential_type: str,
        credential_hash: ContentHash,
        expires_at: Timestamp = Timestamp(NEVER_EXPIRES),
    ) -> list[RegistryEvent]:
        """
        Issue a credential to ``subject``.

        The issuer's current display name is copied into the credential; an
        issuer without an identity is recorded under the configured unknown
        issuer name.

        Args:
            caller: Issuing principal
            subject: Principal receiving the credential
            credential_type: Kind of claim (non-empty)
            credential_hash: Content hash of the payload (non-empty)
            expires_at: Expiry in unix seconds, 0 for never

        Returns:
            Appended events: ReputationUpdated, CredentialAdded
            (``data["index"]`` holds the new credential's index)

        Raises:
            ForbiddenError: Caller is not a trusted issuer
            NotFoundError: Subject has no identity
            InvalidInputError: Empty type or hash, or expiry not in the future
        """
        await self.initialize()
        async with self._locks(subject), self._locks.issuers:
            await self._require_trusted_issuer(caller)

            now = self._clock()
            issuer_identity = await self._identities.get(caller)
            issuer_name = (
                issuer_identity.name
                if issuer_identity is not None
                else self.settings.unknown_issuer_name
            )

            index = await self._credentials.add(
                subject, credential_type, credential_hash, expires_at, issuer_name, now
            )
            change = await self._reputation.adjust(
                subject, self.settings.reputation.credential_added_delta, now
            )
            events = [
                await self._record_reputation(change),
                await self._log.append(
                    EventType.CREDENTIAL_ADDED,
                    subject,
                    now,
                    {
                        "index": index,
                        "credential_type": credential_type,
                        "credential_hash": credential_hash,
                        "issuer": issuer_name,
                        "issued_by": caller,
                        "expires_at": expires_at,
                    },
                ),
            ]

        self._logger.info(
            "credential_added",
            subject=subject,
            index=index,
            type=credential_type,
            issuer=caller,
        )
        return events

    @registry_operation("revoke_credential")
    async def revoke_credential(
        self,
        caller: Principal,
        subject: Principal,
        index: int,
    ) -> list[RegistryEvent]:
        """
        Revoke one of ``subject``'s credentials.

        Any trusted issuer may revoke any credential. Revoking an already
        revoked credential is accepted and applies the penalty again.

        Returns:
            Appended events: ReputationUpdated, CredentialRevoked

        Raises:
            ForbiddenError: Caller is not a trusted issuer
            IndexOutOfRangeError: No credential at ``index``
        """
        await self.initialize()
        async with self._locks(subject), self._locks.issuers:
            await self._require_trusted_issuer(caller)

            now = self._clock()
            await self._credentials.revoke(subject, index)
            change = await self._reputation.adjust(
                subject, self.settings.reputation.credential_revoked_delta, now
            )
            events = [
                await self._record_reputation(change),
                await self._log.append(
                    EventType.CREDENTIAL_REVOKED,
                    subject,
                    now,
                    {"index": index, "revoked_by": caller},
                ),
            ]

        self._logger.info("credential_revoked", subject=subject, index=index, issuer=caller)
        return events

    #endregion

    #region Trusted Issuers

    @registry_operation("add_trusted_issuer")
    async def add_trusted_issuer(
        self,
        caller: Principal,
        issuer: Principal,
    ) -> list[RegistryEvent]:
        """
        Trust ``issuer``. Owner only.

        Raises:
            ForbiddenError: Caller is not the owner
            InvalidInputError: ``issuer`` is empty
        """
        self._require_owner(caller)
        if not issuer:
            raise InvalidInputError("Issuer principal cannot be empty")

        await self.initialize()
        async with self._locks.issuers:
            now = self._clock()
            await self._issuers.add(issuer)
            event = await self._log.append(
                EventType.TRUSTED_ISSUER_ADDED, issuer, now, {"added_by": caller}
            )

        self._logger.info("issuer_trusted", issuer=issuer)
        return [event]

    @registry_operation("remove_trusted_issuer")
    async def remove_trusted_issuer(
        self,
        caller: Principal,
        issuer: Principal,
    ) -> list[RegistryEvent]:
        """
        Stop trusting ``issuer``. Owner only; the owner itself cannot be removed.

        Raises:
            ForbiddenError: Caller is not the owner, or ``issuer`` is the owner
        """
        self._require_owner(caller)
        if issuer == self._owner:
            raise ForbiddenError(
                "Cannot remove the owner",
                details={"issuer": issuer},
            )

        await self.initialize()
        async with self._locks.issuers:
            now = self._clock()
            await self._issuers.remove(issuer)
            event = await self._log.append(
                EventType.TRUSTED_ISSUER_REMOVED, issuer, now, {"removed_by": caller}
            )

        self._logger.info("issuer_untrusted", issuer=issuer)
        return [event]

    #endregion

    async def _record_reputation(self, change: ReputationChange) -> RegistryEvent:
        return await self._log.append(
            EventType.REPUTATION_UPDATED,
            change.principal,
            change.timestamp,
            {
                "score": change.new_score,
                "previous_score": change.previous_score,
                "delta": change.delta,
            },
        )

    #region Queries

    async def get_identity(self, subject: Principal) -> Identity:
        """Get an identity. Raises ``NotFoundError`` if absent."""
        return await self._identities.require(subject)

    async def has_identity(self, subject: Principal) -> bool:
        return await self._identities.exists(subject)

    async def get_credential(self, subject: Principal, index: int) -> Credential:
        """Get one credential. Raises ``IndexOutOfRangeError`` past the end."""
        return await self._credentials.get(subject, index)

    async def get_credentials_count(self, subject: Principal) -> int:
        return await self._credentials.count(subject)

    async def get_credentials(self, subject: Principal) -> tuple[Credential, ...]:
        return await self._credentials.list(subject)

    async def is_credential_valid(self, subject: Principal, index: int) -> bool:
        """
        Whether a credential is unrevoked and unexpired right now.

        Returns False for an out-of-range index.
        """
        return await self._credentials.is_valid(subject, index, self._clock())

    async def is_trusted_issuer(self, principal: Principal) -> bool:
        await self.initialize()
        return await self._issuers.is_trusted(principal)

    async def get_trusted_issuers(self) -> list[Principal]:
        await self.initialize()
        return await self._issuers.members()

    async def get_contract_stats(self) -> RegistryStats:
        return RegistryStats(
            total_identities=await self._identities.total_count(),
            total_events=len(self._log),
        )

    #endregion
