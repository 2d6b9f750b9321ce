"""Registry audit events."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from identity_registry.common.types import Principal, Timestamp


class EventType(StrEnum):
    """Kinds of state change recorded in the audit log."""

    IDENTITY_CREATED = "IdentityCreated"
    IDENTITY_UPDATED = "IdentityUpdated"
    CREDENTIAL_ADDED = "CredentialAdded"
    CREDENTIAL_REVOKED = "CredentialRevoked"
    TRUSTED_ISSUER_ADDED = "TrustedIssuerAdded"
    TRUSTED_ISSUER_REMOVED = "TrustedIssuerRemoved"
    REPUTATION_UPDATED = "ReputationUpdated"


@dataclass
class RegistryEvent:
    """An entry in the append-only audit log."""

    sequence: int
    event_type: EventType
    timestamp: Timestamp

    # Principal whose state changed
    principal: Principal

    data: dict[str, Any] = field(default_factory=dict)

    # Integrity
    previous_hash: str | None = None
    event_hash: str | None = None

    @property
    def id(self) -> str:
        return f"evt-{self.sequence:08d}"

    def compute_hash(self) -> str:
        """Compute hash of event for integrity verification."""
        data = {
            "sequence": self.sequence,
            "event_type": str(self.event_type),
            "timestamp": self.timestamp,
            "principal": self.principal,
            "data": self.data,
            "previous_hash": self.previous_hash,
        }
        return hashlib.sha256(json.dumps(data, sort_keys=True).encode()).hexdigest()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sequence": self.sequence,
            "event_type": str(self.event_type),
            "timestamp": self.timestamp,
            "principal": self.principal,
            "data": self.data,
            "previous_hash": self.previous_hash,
            "event_hash": self.event_hash,
        }
