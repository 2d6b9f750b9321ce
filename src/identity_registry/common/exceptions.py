"""Exception hierarchy for the Identity Registry."""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """Distinct failure kinds surfaced to callers."""

    INVALID_INPUT = "InvalidInput"
    NOT_FOUND = "NotFound"
    ALREADY_EXISTS = "AlreadyExists"
    FORBIDDEN = "Forbidden"
    INDEX_OUT_OF_RANGE = "IndexOutOfRange"


class RegistryError(Exception):
    """Base exception for all registry errors."""

    kind: ErrorKind | None = None

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or (self.kind.value if self.kind else self.__class__.__name__)
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        if self.details:
            return f"[{self.code}] {self.message} - Details: {self.details}"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "type": self.__class__.__name__,
            }
        }


class InvalidInputError(RegistryError):
    """Malformed or empty field, or a bad expiration."""

    kind = ErrorKind.INVALID_INPUT


class NotFoundError(RegistryError):
    """Referenced identity does not exist."""

    kind = ErrorKind.NOT_FOUND


class AlreadyExistsError(RegistryError):
    """Identity already created for this principal."""

    kind = ErrorKind.ALREADY_EXISTS


class ForbiddenError(RegistryError):
    """Caller is not allowed to perform the operation."""

    kind = ErrorKind.FORBIDDEN


class IndexOutOfRangeError(RegistryError):
    """Credential index past the end of the subject's sequence."""

    kind = ErrorKind.INDEX_OUT_OF_RANGE
