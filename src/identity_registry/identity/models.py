"""Identity and credential records."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from identity_registry.common.types import (
    INITIAL_REPUTATION_SCORE,
    MAX_REPUTATION_SCORE,
    NEVER_EXPIRES,
    ContentHash,
    Principal,
    Timestamp,
)


class Identity(BaseModel):
    """
    Self-owned identity of one principal.

    Records are immutable snapshots; every mutation stores a new copy.
    Profile payloads live off-record and are referenced by ``profile_hash``.
    """

    model_config = ConfigDict(frozen=True)

    principal: Principal
    name: str
    email: str
    profile_hash: ContentHash = ContentHash("")

    reputation_score: int = Field(
        default=INITIAL_REPUTATION_SCORE, ge=0, le=MAX_REPUTATION_SCORE
    )
    is_verified: bool = False

    created_at: Timestamp
    last_updated: Timestamp

    def touched(self, now: Timestamp, **changes: Any) -> Identity:
        """Copy with ``changes`` applied and ``last_updated`` advanced to ``now``."""
        return self.model_copy(
            update={**changes, "last_updated": max(self.last_updated, now)}
        )


class Credential(BaseModel):
    """
    A typed, time-bounded, revocable claim about a subject.

    ``issuer`` is the issuer's display name captured at issuance, not a
    reference to the issuer's identity.
    """

    model_config = ConfigDict(frozen=True)

    credential_type: str
    issuer: str
    credential_hash: ContentHash

    issued_at: Timestamp
    expires_at: Timestamp = Timestamp(NEVER_EXPIRES)

    is_valid: bool = True

    def is_expired(self, now: Timestamp) -> bool:
        """Check if credential is expired."""
        return self.expires_at != NEVER_EXPIRES and self.expires_at <= now

    def is_currently_valid(self, now: Timestamp) -> bool:
        """Not revoked and not expired."""
        return self.is_valid and not self.is_expired(now)
