"""Common utilities, types, and base classes."""

from identity_registry.common.types import (
    Principal,
    ContentHash,
    Timestamp,
    JSON,
    MAX_REPUTATION_SCORE,
    INITIAL_REPUTATION_SCORE,
    NEVER_EXPIRES,
    UNKNOWN_ISSUER,
)
from identity_registry.common.clock import Clock, ManualClock, SystemClock
from identity_registry.common.exceptions import (
    ErrorKind,
    RegistryError,
    InvalidInputError,
    NotFoundError,
    AlreadyExistsError,
    ForbiddenError,
    IndexOutOfRangeError,
)
from identity_registry.common.decorators import registry_operation

__all__ = [
    "Principal",
    "ContentHash",
    "Timestamp",
    "JSON",
    "MAX_REPUTATION_SCORE",
    "INITIAL_REPUTATION_SCORE",
    "NEVER_EXPIRES",
    "UNKNOWN_ISSUER",
    "Clock",
    "ManualClock",
    "SystemClock",
    "ErrorKind",
    "RegistryError",
    "InvalidInputError",
    "NotFoundError",
    "AlreadyExistsError",
    "ForbiddenError",
    "IndexOutOfRangeError",
    "registry_operation",
]
