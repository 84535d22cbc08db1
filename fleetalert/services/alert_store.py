"""
Alert Store — Atomic upsert keyed on the natural key, plus lifecycle ops.

The partial unique index on (alert_type, entity_type, entity_id)
WHERE is_resolved = false is the dedup guarantee. Upsert is a single
INSERT ... ON CONFLICT DO UPDATE, never a read-then-insert pair, so it stays
correct even if the same check ever runs twice concurrently.

Every mutation runs in its own short transaction.
"""

from datetime import datetime
from typing import Iterable, Optional, Sequence

import structlog
from sqlalchemy import delete, func, or_, select, text, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetalert.db.models import ACTIVE_ALERT_PREDICATE, Alert, utcnow
from fleetalert.errors import ConfigurationError
from fleetalert.schemas import (
    AlertCandidate,
    AlertSeverity,
    AlertStats,
    AlertType,
    UpsertOutcome,
    UpsertResult,
)

logger = structlog.get_logger(__name__)

NATURAL_KEY = ["alert_type", "entity_type", "entity_id"]


def _insert_for(session: AsyncSession):
    """Dialect-specific INSERT supporting ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise ConfigurationError(f"Alert upsert is not supported on {dialect!r}")


def _not_expired(now: datetime):
    return or_(Alert.expires_at.is_(None), Alert.expires_at > now)


class AlertStore:
    """Durable alert collection; the source of truth for which alerts are active."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ── Upsert ─────────────────────────────────────────────────────────

    async def upsert(
        self, candidate: AlertCandidate, now: Optional[datetime] = None
    ) -> UpsertResult:
        """
        Create the alert, or refresh the active one with the same natural key.

        - No active row: insert with is_read = false, is_resolved = false.
        - Active row with different severity or message: update in place
          (same id, same created_at, is_read untouched).
        - Active row with the same severity and message: left alone.
        """
        now = now or utcnow()
        if candidate.expires_at is not None and candidate.expires_at <= now:
            raise ValueError(
                f"expires_at {candidate.expires_at.isoformat()} is not after "
                f"creation time {now.isoformat()}"
            )

        alert_type, entity_type, entity_id = candidate.natural_key
        same_key = (
            Alert.alert_type == alert_type,
            Alert.entity_type == entity_type,
            Alert.entity_id == entity_id,
        )

        async with self._session_factory() as session:
            async with session.begin():
                # An expired row still holds the key until cleanup deletes it.
                await session.execute(
                    update(Alert)
                    .where(*same_key)
                    .where(Alert.is_resolved.is_(False))
                    .where(Alert.expires_at.is_not(None))
                    .where(Alert.expires_at <= now)
                    .values(is_resolved=True, resolved_at=now, updated_at=now)
                    .execution_options(synchronize_session=False)
                )

                previous = (
                    await session.execute(
                        select(Alert.id, Alert.severity)
                        .where(*same_key)
                        .where(Alert.is_resolved.is_(False))
                    )
                ).first()

                insert = _insert_for(session)
                stmt = insert(Alert).values(
                    alert_type=alert_type,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    severity=candidate.severity.value,
                    title=candidate.title,
                    message=candidate.message,
                    context=candidate.context,
                    expires_at=candidate.expires_at,
                    is_read=False,
                    is_resolved=False,
                    revision=0,
                    created_at=now,
                    updated_at=now,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=NATURAL_KEY,
                    index_where=text(ACTIVE_ALERT_PREDICATE),
                    set_={
                        "severity": stmt.excluded.severity,
                        "title": stmt.excluded.title,
                        "message": stmt.excluded.message,
                        "context": stmt.excluded.context,
                        "expires_at": stmt.excluded.expires_at,
                        "updated_at": stmt.excluded.updated_at,
                        "revision": Alert.revision + 1,
                    },
                    where=or_(
                        Alert.severity != stmt.excluded.severity,
                        Alert.message != stmt.excluded.message,
                    ),
                ).returning(Alert.id, Alert.revision)

                row = (await session.execute(stmt)).first()

        if row is None:
            return UpsertResult(
                outcome=UpsertOutcome.UNCHANGED,
                alert_id=previous.id if previous else None,
            )

        if row.revision == 0:
            logger.info(
                "alert_created",
                alert_id=row.id,
                alert_type=alert_type,
                entity_type=entity_type,
                entity_id=entity_id,
                severity=candidate.severity.value,
            )
            return UpsertResult(outcome=UpsertOutcome.CREATED, alert_id=row.id)

        escalated = (
            previous is not None
            and candidate.severity.rank > AlertSeverity(previous.severity).rank
        )
        logger.info(
            "alert_updated",
            alert_id=row.id,
            alert_type=alert_type,
            entity_id=entity_id,
            severity=candidate.severity.value,
            previous_severity=previous.severity if previous else None,
            escalated=escalated,
        )
        return UpsertResult(
            outcome=UpsertOutcome.UPDATED, alert_id=row.id, escalated=escalated
        )

    # ── Resolution ─────────────────────────────────────────────────────

    async def resolve_stale(
        self,
        alert_type: AlertType,
        still_matching: Iterable[str],
        now: Optional[datetime] = None,
    ) -> int:
        """Resolve active alerts of ``alert_type`` whose subject no longer qualifies."""
        now = now or utcnow()
        keep = list(still_matching)
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Alert)
                    .where(Alert.alert_type == alert_type.value)
                    .where(Alert.is_resolved.is_(False))
                    .where(Alert.entity_id.not_in(keep))
                    .values(is_resolved=True, resolved_at=now, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
        resolved = result.rowcount or 0
        if resolved:
            logger.info("alerts_resolved", alert_type=alert_type.value, count=resolved)
        return resolved

    async def resolve(
        self,
        alert_id: int,
        resolved_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """Resolve one alert on behalf of an external actor.

        Returns:
            True if updated, False if not found or already resolved.
        """
        now = now or utcnow()
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Alert)
                    .where(Alert.id == alert_id)
                    .where(Alert.is_resolved.is_(False))
                    .values(
                        is_resolved=True,
                        resolved_at=now,
                        resolved_by=resolved_by,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
        return (result.rowcount or 0) > 0

    # ── Read state ─────────────────────────────────────────────────────

    async def mark_read(self, alert_id: int) -> bool:
        return await self._set_read(alert_id, True)

    async def mark_unread(self, alert_id: int) -> bool:
        return await self._set_read(alert_id, False)

    async def _set_read(self, alert_id: int, value: bool) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Alert)
                    .where(Alert.id == alert_id)
                    .where(Alert.is_read.is_not(value))
                    .values(is_read=value)
                    .execution_options(synchronize_session=False)
                )
        return (result.rowcount or 0) > 0

    # ── Queries ────────────────────────────────────────────────────────

    async def get(self, alert_id: int) -> Optional[Alert]:
        async with self._session_factory() as session:
            return await session.get(Alert, alert_id)

    async def list_active(
        self,
        *,
        alert_type: Optional[AlertType] = None,
        severity: Optional[AlertSeverity] = None,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
        now: Optional[datetime] = None,
    ) -> Sequence[Alert]:
        """Unresolved, non-expired alerts, newest first."""
        now = now or utcnow()
        stmt = (
            select(Alert)
            .where(Alert.is_resolved.is_(False))
            .where(_not_expired(now))
        )
        if alert_type is not None:
            stmt = stmt.where(Alert.alert_type == alert_type.value)
        if severity is not None:
            stmt = stmt.where(Alert.severity == severity.value)
        if unread_only:
            stmt = stmt.where(Alert.is_read.is_(False))
        stmt = stmt.order_by(Alert.created_at.desc(), Alert.id.desc()).limit(limit).offset(offset)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalars().all()

    async def list_for_entity(self, entity_type: str, entity_id: str) -> Sequence[Alert]:
        """Every alert (any state) about one subject, oldest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Alert)
                .where(Alert.entity_type == entity_type)
                .where(Alert.entity_id == entity_id)
                .order_by(Alert.id)
            )
            return result.scalars().all()

    async def stats(self, now: Optional[datetime] = None) -> AlertStats:
        """Counts over non-expired alerts."""
        now = now or utcnow()
        async with self._session_factory() as session:
            rows = (
                await session.execute(
                    select(
                        Alert.severity,
                        Alert.is_read,
                        Alert.is_resolved,
                        func.count(Alert.id),
                    )
                    .where(_not_expired(now))
                    .group_by(Alert.severity, Alert.is_read, Alert.is_resolved)
                )
            ).all()

        stats = AlertStats()
        for severity, is_read, is_resolved, count in rows:
            stats.total += count
            if not is_read:
                stats.unread += count
            if not is_resolved:
                stats.unresolved += count
                stats.by_severity[severity] = stats.by_severity.get(severity, 0) + count
                if severity == AlertSeverity.CRITICAL.value:
                    stats.critical += count
        return stats

    # ── Retention ──────────────────────────────────────────────────────

    async def delete_expired(self, now: datetime) -> int:
        """Delete alerts whose expires_at has passed, resolved or not."""
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(Alert)
                    .where(Alert.expires_at.is_not(None))
                    .where(Alert.expires_at < now)
                    .execution_options(synchronize_session=False)
                )
        return result.rowcount or 0

    async def delete_resolved_before(self, cutoff: datetime) -> int:
        """Delete resolved alerts whose resolved_at is older than ``cutoff``."""
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(Alert)
                    .where(Alert.is_resolved.is_(True))
                    .where(Alert.resolved_at < cutoff)
                    .execution_options(synchronize_session=False)
                )
        return result.rowcount or 0
