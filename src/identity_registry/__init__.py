"""
Identity Registry

Self-owned identities, issuer-attested credentials, and a bounded
reputation score derived from verification and credential history.
"""

__version__ = "0.1.0"
__all__ = [
    "IdentityRegistry",
    "Identity",
    "Credential",
    "EventLog",
    "EventType",
    "RegistrySettings",
    "TransactionProcessor",
    "TransactionSigner",
]

from identity_registry.registry.facade import IdentityRegistry
from identity_registry.identity.models import Credential, Identity
from identity_registry.audit.log import EventLog
from identity_registry.audit.events import EventType
from identity_registry.config import RegistrySettings
from identity_registry.ledger.processor import TransactionProcessor
from identity_registry.ledger.transactions import TransactionSigner
