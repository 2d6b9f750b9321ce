"""Identity, credential and reputation state."""

from identity_registry.identity.models import Credential, Identity
from identity_registry.identity.store import IdentityStore
from identity_registry.identity.credentials import CredentialStore
from identity_registry.identity.issuers import TrustedIssuerSet
from identity_registry.identity.reputation import (
    ReputationChange,
    ReputationEngine,
    apply_delta,
)

__all__ = [
    "Identity",
    "Credential",
    "IdentityStore",
    "CredentialStore",
    "TrustedIssuerSet",
    "ReputationEngine",
    "ReputationChange",
    "apply_delta",
]
