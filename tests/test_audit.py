"""Tests for the audit event log."""

import csv
import io
import json

import pytest

from identity_registry.audit.events import EventType
from identity_registry.audit.log import EventLog


async def _populated_log():
    log = EventLog()
    await log.append(EventType.IDENTITY_CREATED, "0xalice", 100, {"name": "Alice"})
    await log.append(EventType.IDENTITY_CREATED, "0xbob", 110, {"name": "Bob"})
    await log.append(EventType.CREDENTIAL_ADDED, "0xalice", 120, {"index": 0})
    await log.append(EventType.REPUTATION_UPDATED, "0xalice", 120, {"score": 150})
    return log


@pytest.mark.asyncio
class TestEventLog:
    """Test audit log behavior."""

    async def test_append_chains_hashes(self):
        """Each event links to its predecessor."""
        log = await _populated_log()
        events = log.events

        assert events[0].previous_hash is None
        for previous, current in zip(events, events[1:]):
            assert current.previous_hash == previous.event_hash
        assert [e.id for e in events] == [f"evt-{i:08d}" for i in range(4)]

    async def test_verify_chain(self):
        """An untouched chain verifies."""
        log = await _populated_log()

        assert await log.verify_chain() == (True, None)
        assert await EventLog().verify_chain() == (True, None)

    async def test_tampering_detected(self):
        """Editing an event breaks the chain at that event."""
        log = await _populated_log()
        log.events[2].data["index"] = 7

        assert await log.verify_chain() == (False, "evt-00000002")

    async def test_deterministic_hashes(self):
        """The same appends produce the same chain."""
        first = await _populated_log()
        second = await _populated_log()

        assert first.get_stats() == second.get_stats()

    async def test_query_filters(self):
        """Queries filter by type, principal and time."""
        log = await _populated_log()

        alice = await log.query(principal="0xalice")
        assert [e.event_type for e in alice] == [
            EventType.IDENTITY_CREATED,
            EventType.CREDENTIAL_ADDED,
            EventType.REPUTATION_UPDATED,
        ]

        created = await log.query(event_type=EventType.IDENTITY_CREATED)
        assert [e.principal for e in created] == ["0xalice", "0xbob"]

        window = await log.query(since=110, until=119)
        assert [e.principal for e in window] == ["0xbob"]

        page = await log.query(limit=2, offset=1)
        assert [e.sequence for e in page] == [1, 2]

    async def test_export_json(self):
        """JSON export contains every event."""
        log = await _populated_log()

        data = json.loads(await log.export("json"))

        assert len(data) == 4
        assert data[0]["event_type"] == "IdentityCreated"
        assert data[2]["data"] == {"index": 0}

    async def test_export_csv(self):
        """CSV export has a header and one row per event."""
        log = await _populated_log()

        rows = list(csv.reader(io.StringIO(await log.export("csv"))))

        assert rows[0][:4] == ["id", "timestamp", "event_type", "principal"]
        assert len(rows) == 5

    async def test_export_unknown_format(self):
        """Unsupported formats raise."""
        log = await _populated_log()

        with pytest.raises(ValueError):
            await log.export("xml")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
