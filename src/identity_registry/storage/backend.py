"""State backend interface for registry storage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator


class StateBackend(ABC):
    """
    Abstract base class for registry state backends.

    Registry state is a handful of keyed maps (principal -> identity,
    principal -> credential sequence, principal -> issuer flag) plus scalar
    counters. Any key-value store with atomic per-key writes satisfies it.
    Entries are never deleted.
    """

    @abstractmethod
    async def put(self, namespace: str, key: str, value: Any) -> None:
        """
        Store a value.

        Args:
            namespace: Map the key belongs to
            key: Storage key
            value: Value to store
        """
        pass

    @abstractmethod
    async def get(self, namespace: str, key: str) -> Any | None:
        """
        Retrieve a value.

        Args:
            namespace: Map the key belongs to
            key: Storage key

        Returns:
            Stored value or None
        """
        pass

    @abstractmethod
    async def exists(self, namespace: str, key: str) -> bool:
        """Check if key exists."""
        pass

    @abstractmethod
    async def scan(self, namespace: str) -> AsyncIterator[tuple[str, Any]]:
        """
        Iterate over every entry in a namespace, in insertion order.

        Yields:
            (key, value) tuples
        """
        pass

    @abstractmethod
    async def increment(self, namespace: str, key: str, amount: int = 1) -> int:
        """Add to an integer counter and return the new value."""
        pass


class InMemoryBackend(StateBackend):
    """In-memory implementation for testing and single-process use."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}  # namespace -> {key: value}

    def _get_ns(self, namespace: str) -> dict[str, Any]:
        """Get or create namespace."""
        if namespace not in self._data:
            self._data[namespace] = {}
        return self._data[namespace]

    async def put(self, namespace: str, key: str, value: Any) -> None:
        self._get_ns(namespace)[key] = value

    async def get(self, namespace: str, key: str) -> Any | None:
        return self._get_ns(namespace).get(key)

    async def exists(self, namespace: str, key: str) -> bool:
        return key in self._get_ns(namespace)

    async def scan(self, namespace: str) -> AsyncIterator[tuple[str, Any]]:
        for key, value in list(self._get_ns(namespace).items()):
            yield (key, value)

    async def increment(self, namespace: str, key: str, amount: int = 1) -> int:
        ns = self._get_ns(namespace)
        ns[key] = ns.get(key, 0) + amount
        return ns[key]
