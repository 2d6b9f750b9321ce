"""Registry audit trail."""

from identity_registry.audit.events import EventType, RegistryEvent
from identity_registry.audit.log import EventLog

__all__ = [
    "EventType",
    "RegistryEvent",
    "EventLog",
]
