"""Registry state storage."""

from identity_registry.storage.backend import InMemoryBackend, StateBackend

__all__ = [
    "StateBackend",
    "InMemoryBackend",
]
