"""Append-only, hash-chained log of registry events."""

from __future__ import annotations

import csv
import io
import json
from typing import Any

import structlog

from identity_registry.audit.events import EventType, RegistryEvent
from identity_registry.common.types import Principal, Timestamp

logger = structlog.get_logger()


class EventLog:
    """
    Immutable audit trail of every registry state change.

    Features:
    - Tamper-evident logging with hash chaining
    - Deterministic event ids (sequence numbers), so replaying the same
      transactions reproduces the same chain
    - Filtered queries and compliance exports

    Example:
        ```python
        log = EventLog()

        event = await log.append(
            EventType.IDENTITY_CREATED,
            principal="0xabc",
            timestamp=1_700_000_000,
            data={"name": "Alice"},
        )

        created = await log.query(event_type=EventType.IDENTITY_CREATED)

        assert (await log.verify_chain())[0]
        ```
    """

    def __init__(self) -> None:
        self._events: list[RegistryEvent] = []
        self._last_hash: str | None = None

        self._logger = logger

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> tuple[RegistryEvent, ...]:
        """Every event, oldest first."""
        return tuple(self._events)

    async def append(
        self,
        event_type: EventType,
        principal: Principal,
        timestamp: Timestamp,
        data: dict[str, Any] | None = None,
    ) -> RegistryEvent:
        """
        Append an event to the log.

        Args:
            event_type: Kind of state change
            principal: Principal whose state changed
            timestamp: Time of the change
            data: Event payload

        Returns:
            Logged event
        """
        event = RegistryEvent(
            sequence=len(self._events),
            event_type=event_type,
            timestamp=timestamp,
            principal=principal,
            data=data or {},
            previous_hash=self._last_hash,
        )

        event.event_hash = event.compute_hash()
        self._last_hash = event.event_hash
        self._events.append(event)

        self._logger.debug(
            "audit_event_logged",
            event_id=event.id,
            event_type=str(event_type),
            principal=principal,
        )

        return event

    async def query(
        self,
        event_type: EventType | None = None,
        principal: Principal | None = None,
        since: Timestamp | None = None,
        until: Timestamp | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[RegistryEvent]:
        """
        Query events, oldest first.

        Args:
            event_type: Filter by kind
            principal: Filter by affected principal
            since: Earliest timestamp (inclusive)
            until: Latest timestamp (inclusive)
            limit: Maximum results
            offset: Skip first N results

        Returns:
            Matching events
        """
        events = []

        for event in self._events:
            if event_type and event.event_type != event_type:
                continue
            if principal and event.principal != principal:
                continue
            if since is not None and event.timestamp < since:
                continue
            if until is not None and event.timestamp > until:
                continue

            events.append(event)

        return events[offset:offset + limit]

    async def verify_chain(self) -> tuple[bool, str | None]:
        """
        Verify integrity of the audit chain.

        Returns:
            (is_valid, first_broken_event_id or None)
        """
        previous_hash: str | None = None

        for event in self._events:
            if event.previous_hash != previous_hash:
                return False, event.id

            if event.event_hash != event.compute_hash():
                return False, event.id

            previous_hash = event.event_hash

        return True, None

    async def export(self, format: str = "json") -> str:
        """
        Export the full log.

        Args:
            format: Export format (json, csv)

        Returns:
            Exported data
        """
        if format == "json":
            return json.dumps([e.to_dict() for e in self._events], indent=2)

        elif format == "csv":
            output = io.StringIO()
            writer = csv.writer(output)

            writer.writerow([
                "id", "timestamp", "event_type", "principal", "data", "event_hash",
            ])

            for event in self._events:
                writer.writerow([
                    event.id,
                    event.timestamp,
                    str(event.event_type),
                    event.principal,
                    json.dumps(event.data, sort_keys=True),
                    event.event_hash,
                ])

            return output.getvalue()

        else:
            raise ValueError(f"Unsupported format: {format}")

    def get_stats(self) -> dict[str, Any]:
        """Get event log statistics."""
        return {
            "total_events": len(self._events),
            "last_hash": self._last_hash,
        }
