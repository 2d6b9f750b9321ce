"""Tests for identity, credential and issuer stores."""

import pytest
from pydantic import ValidationError

from identity_registry.common.exceptions import (
    AlreadyExistsError,
    IndexOutOfRangeError,
    InvalidInputError,
    NotFoundError,
)
from identity_registry.identity.credentials import CredentialStore
from identity_registry.identity.issuers import TrustedIssuerSet
from identity_registry.identity.models import Credential, Identity
from identity_registry.identity.store import IdentityStore
from identity_registry.storage.backend import InMemoryBackend


class TestModels:
    """Test record behavior."""

    def test_identity_is_immutable(self):
        """Identity snapshots cannot be modified in place."""
        identity = Identity(
            principal="0xalice",
            name="Alice",
            email="alice@example.com",
            created_at=10,
            last_updated=10,
        )

        with pytest.raises(ValidationError):
            identity.name = "Mallory"

    def test_identity_score_bounds(self):
        """Scores outside [0, 1000] are rejected."""
        with pytest.raises(ValidationError):
            Identity(
                principal="0xalice",
                name="Alice",
                email="alice@example.com",
                reputation_score=1001,
                created_at=10,
                last_updated=10,
            )

    def test_touched_never_moves_backwards(self):
        """last_updated is non-decreasing."""
        identity = Identity(
            principal="0xalice",
            name="Alice",
            email="alice@example.com",
            created_at=10,
            last_updated=50,
        )

        assert identity.touched(40).last_updated == 50
        assert identity.touched(60).last_updated == 60

    def test_credential_expiry(self):
        """Expiry is computed against the supplied time."""
        never = Credential(
            credential_type="KYC", issuer="Acme", credential_hash="h", issued_at=10
        )
        bounded = Credential(
            credential_type="KYC",
            issuer="Acme",
            credential_hash="h",
            issued_at=10,
            expires_at=100,
        )

        assert never.is_currently_valid(10**12) is True
        assert bounded.is_currently_valid(99) is True
        assert bounded.is_currently_valid(100) is False
        assert bounded.model_copy(update={"is_valid": False}).is_currently_valid(50) is False


@pytest.mark.asyncio
class TestIdentityStore:
    """Test identity creation and updates."""

    async def test_create(self):
        """New identities start unverified with the initial score."""
        store = IdentityStore(InMemoryBackend())

        identity = await store.create("0xalice", "Alice", "alice@example.com", "bafy1", 10)

        assert identity.reputation_score == 100
        assert identity.is_verified is False
        assert identity.created_at == identity.last_updated == 10
        assert await store.total_count() == 1
        assert await store.exists("0xalice") is True

    async def test_create_twice(self):
        """A principal gets at most one identity."""
        store = IdentityStore(InMemoryBackend())
        await store.create("0xalice", "Alice", "alice@example.com", "", 10)

        with pytest.raises(AlreadyExistsError):
            await store.create("0xalice", "Alice 2", "alice2@example.com", "", 11)

        assert await store.total_count() == 1

    @pytest.mark.parametrize("name,email", [("", "a@example.com"), ("Alice", "")])
    async def test_create_requires_name_and_email(self, name, email):
        """Empty name or email is invalid and nothing is stored."""
        store = IdentityStore(InMemoryBackend())

        with pytest.raises(InvalidInputError):
            await store.create("0xalice", name, email, "", 10)

        assert await store.exists("0xalice") is False
        assert await store.total_count() == 0

    async def test_update_profile(self):
        """Profile updates overwrite fields and keep created_at."""
        store = IdentityStore(InMemoryBackend())
        await store.create("0xalice", "Alice", "alice@example.com", "", 10)

        updated = await store.update_profile("0xalice", "Alicia", "a@example.org", "bafy2", 20)

        assert updated.name == "Alicia"
        assert updated.email == "a@example.org"
        assert updated.profile_hash == "bafy2"
        assert updated.created_at == 10
        assert updated.last_updated == 20

    async def test_update_missing(self):
        """Updating an unknown principal fails."""
        store = IdentityStore(InMemoryBackend())

        with pytest.raises(NotFoundError):
            await store.update_profile("0xalice", "Alice", "alice@example.com", "", 10)

    async def test_set_verification(self):
        """Verification flag toggles."""
        store = IdentityStore(InMemoryBackend())
        await store.create("0xalice", "Alice", "alice@example.com", "", 10)

        assert (await store.set_verification("0xalice", True, 11)).is_verified is True
        assert (await store.set_verification("0xalice", False, 12)).is_verified is False


@pytest.mark.asyncio
class TestCredentialStore:
    """Test credential sequences."""

    async def _stores(self):
        backend = InMemoryBackend()
        identities = IdentityStore(backend)
        await identities.create("0xalice", "Alice", "alice@example.com", "", 10)
        return CredentialStore(backend, identities)

    async def test_add_assigns_sequential_indices(self):
        """Index equals the sequence length before append."""
        credentials = await self._stores()

        first = await credentials.add("0xalice", "KYC", "h1", 0, "Acme", 10)
        second = await credentials.add("0xalice", "Degree", "h2", 0, "Uni", 11)

        assert (first, second) == (0, 1)
        assert await credentials.count("0xalice") == 2
        assert (await credentials.get("0xalice", 1)).credential_type == "Degree"

    async def test_add_requires_identity(self):
        """No orphan credentials."""
        credentials = await self._stores()

        with pytest.raises(NotFoundError):
            await credentials.add("0xbob", "KYC", "h1", 0, "Acme", 10)

        assert await credentials.count("0xbob") == 0

    @pytest.mark.parametrize("ctype,chash", [("", "h1"), ("KYC", "")])
    async def test_add_requires_type_and_hash(self, ctype, chash):
        """Type and hash must be non-empty."""
        credentials = await self._stores()

        with pytest.raises(InvalidInputError):
            await credentials.add("0xalice", ctype, chash, 0, "Acme", 10)

    @pytest.mark.parametrize("expires_at", [5, 10])
    async def test_add_rejects_past_expiry(self, expires_at):
        """Expiry must be strictly after issuance."""
        credentials = await self._stores()

        with pytest.raises(InvalidInputError):
            await credentials.add("0xalice", "KYC", "h1", expires_at, "Acme", 10)

    async def test_revoke(self):
        """Revocation marks the credential invalid, repeatedly."""
        credentials = await self._stores()
        await credentials.add("0xalice", "KYC", "h1", 0, "Acme", 10)

        first = await credentials.revoke("0xalice", 0)
        second = await credentials.revoke("0xalice", 0)

        assert first.is_valid is False
        assert second.is_valid is False
        assert await credentials.is_valid("0xalice", 0, 10) is False

    async def test_index_out_of_range(self):
        """Reads and revocations past the end fail; validity reads report False."""
        credentials = await self._stores()
        await credentials.add("0xalice", "KYC", "h1", 0, "Acme", 10)

        with pytest.raises(IndexOutOfRangeError):
            await credentials.get("0xalice", 1)
        with pytest.raises(IndexOutOfRangeError):
            await credentials.revoke("0xalice", 5)
        with pytest.raises(IndexOutOfRangeError):
            await credentials.get("0xalice", -1)

        assert await credentials.is_valid("0xalice", 1, 10) is False
        assert await credentials.is_valid("0xalice", -1, 10) is False


@pytest.mark.asyncio
class TestTrustedIssuerSet:
    """Test issuer membership."""

    async def test_membership_toggle(self):
        """Issuers can be added and removed."""
        issuers = TrustedIssuerSet(InMemoryBackend())

        await issuers.add("0xacme")
        await issuers.add("0xuni")
        assert await issuers.is_trusted("0xacme") is True

        await issuers.remove("0xacme")
        assert await issuers.is_trusted("0xacme") is False
        assert await issuers.members() == ["0xuni"]

    async def test_unknown_principal_is_untrusted(self):
        """Principals never added are not trusted."""
        issuers = TrustedIssuerSet(InMemoryBackend())

        assert await issuers.is_trusted("0xstranger") is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
