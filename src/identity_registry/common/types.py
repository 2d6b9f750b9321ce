"""Core type definitions for the Identity Registry."""

from __future__ import annotations

from typing import Any, NewType

# Primitive Types
Principal = NewType("Principal", str)
ContentHash = NewType("ContentHash", str)
Timestamp = NewType("Timestamp", int)  # unix seconds
JSON = dict[str, Any] | list[Any] | str | int | float | bool | None

# Reputation bounds
MAX_REPUTATION_SCORE = 1000
INITIAL_REPUTATION_SCORE = 100

# Credential expiry sentinel
NEVER_EXPIRES = 0

# Issuer name recorded when the issuing principal has no identity of its own
UNKNOWN_ISSUER = "Unknown Issuer"
