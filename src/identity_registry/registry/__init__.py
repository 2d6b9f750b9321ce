"""Registry facade."""

from identity_registry.registry.facade import IdentityRegistry, RegistryStats
from identity_registry.registry.locks import PrincipalLocks

__all__ = [
    "IdentityRegistry",
    "RegistryStats",
    "PrincipalLocks",
]
