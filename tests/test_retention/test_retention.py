"""
Tests for the retention job.
"""

from datetime import timedelta

import pytest

from fleetalert.schemas import AlertCandidate, AlertSeverity, AlertType
from fleetalert.services.retention import RetentionJob

from conftest import NOW


def _candidate(entity_id: str, **overrides) -> AlertCandidate:
    data = dict(
        alert_type=AlertType.QUOTE_EXPIRING,
        entity_type="quote",
        entity_id=entity_id,
        severity=AlertSeverity.MEDIUM,
        title=f"Quote expiring: Q-{entity_id}",
        message="Quote is about to lapse.",
    )
    data.update(overrides)
    return AlertCandidate(**data)


class TestRetentionJob:
    @pytest.mark.asyncio
    async def test_deletes_expired_and_old_resolved_only(self, store):
        t0 = NOW - timedelta(days=45)

        # Expired (unresolved)
        expired = await store.upsert(_candidate("1", expires_at=NOW - timedelta(days=1)), now=t0)
        # Resolved 40 days ago
        old = await store.upsert(_candidate("2"), now=t0)
        await store.resolve(old.alert_id, now=NOW - timedelta(days=40))
        # Resolved 5 days ago
        recent = await store.upsert(_candidate("3"), now=t0)
        await store.resolve(recent.alert_id, now=NOW - timedelta(days=5))
        # Active, no expiry
        active = await store.upsert(_candidate("4"), now=t0)

        result = await RetentionJob(store, retention_days=30).run(now=NOW)

        assert result.ok is True
        assert result.expired_deleted == 1
        assert result.old_resolved_deleted == 1
        assert result.total == 2
        assert await store.get(expired.alert_id) is None
        assert await store.get(old.alert_id) is None
        assert await store.get(recent.alert_id) is not None
        assert await store.get(active.alert_id) is not None

    @pytest.mark.asyncio
    async def test_nothing_to_delete(self, store):
        result = await RetentionJob(store, retention_days=30).run(now=NOW)
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_expired_resolved_counts_as_expired(self, store):
        alert = await store.upsert(
            _candidate("5", expires_at=NOW - timedelta(hours=1)), now=NOW - timedelta(days=2)
        )
        await store.resolve(alert.alert_id, now=NOW - timedelta(days=1))

        result = await RetentionJob(store, retention_days=30).run(now=NOW)

        assert result.expired_deleted == 1
        assert result.old_resolved_deleted == 0
