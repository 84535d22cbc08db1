"""
Check contract.

A check is one alert rule: fetch subjects from the domain source, evaluate
each into an AlertCandidate (or None), upsert the candidates, then resolve
active alerts of the same type whose subject no longer qualifies.

Error isolation: one bad subject is logged and skipped; the rest of the
run continues. Source or store failures propagate to the orchestrator.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timezone
from typing import Any, Optional, Sequence
from zoneinfo import ZoneInfo

import structlog

from fleetalert.config import Settings
from fleetalert.db.models import utcnow
from fleetalert.schemas import (
    AlertCandidate,
    AlertSeverity,
    AlertType,
    CheckResult,
    UpsertOutcome,
)
from fleetalert.services.alert_store import AlertStore
from fleetalert.services.domain import DomainSource

logger = structlog.get_logger(__name__)


class MalformedCandidateError(ValueError):
    """Candidate violates an alert invariant (e.g. expiry not in the future)."""


class BaseCheck(ABC):
    """Base class for all alert checks."""

    name: str
    alert_type: AlertType
    entity_type: str

    def __init__(self, settings: Settings):
        self.settings = settings

    @abstractmethod
    async def fetch(self, source: DomainSource, now: datetime) -> Sequence[Any]:
        """Subjects that may qualify, filtered by the configured thresholds."""
        ...

    @abstractmethod
    def evaluate(self, subject: Any, now: datetime) -> Optional[AlertCandidate]:
        """Build the candidate for one subject, or None if it does not qualify."""
        ...

    def local_today(self, now: datetime) -> date:
        """Calendar day of ``now`` (naive UTC) in the scheduler timezone."""
        zone = ZoneInfo(self.settings.scheduler_timezone)
        return now.replace(tzinfo=timezone.utc).astimezone(zone).date()

    def local_midnight(self, day: date) -> datetime:
        """Start of ``day`` in the scheduler timezone, as naive UTC."""
        zone = ZoneInfo(self.settings.scheduler_timezone)
        start = datetime.combine(day, time.min, tzinfo=zone)
        return start.astimezone(timezone.utc).replace(tzinfo=None)

    def subject_id(self, subject: Any) -> str:
        return str(subject.id)

    def candidate(
        self,
        subject: Any,
        severity: AlertSeverity,
        title: str,
        message: str,
        context: Optional[dict[str, Any]] = None,
        expires_at: Optional[datetime] = None,
    ) -> AlertCandidate:
        return AlertCandidate(
            alert_type=self.alert_type,
            entity_type=self.entity_type,
            entity_id=self.subject_id(subject),
            severity=severity,
            title=title,
            message=message,
            context=context or {},
            expires_at=expires_at,
        )

    def _validate(self, candidate: AlertCandidate, now: datetime) -> None:
        if candidate.alert_type != self.alert_type:
            raise MalformedCandidateError(
                f"{self.name} produced a {candidate.alert_type} candidate"
            )
        if candidate.expires_at is not None and candidate.expires_at <= now:
            raise MalformedCandidateError(
                f"expires_at {candidate.expires_at.isoformat()} is not in the future"
            )

    async def run(
        self,
        source: DomainSource,
        store: AlertStore,
        now: Optional[datetime] = None,
    ) -> CheckResult:
        now = now or utcnow()
        result = CheckResult(check=self.name)
        subjects = await self.fetch(source, now)

        # Subjects that still qualify, or whose state is unknown this run.
        keep: set[str] = set()

        for subject in subjects:
            entity_id = None
            try:
                entity_id = self.subject_id(subject)
                candidate = self.evaluate(subject, now)
                if candidate is None:
                    continue
                self._validate(candidate, now)
            except Exception as e:
                if entity_id is not None:
                    keep.add(entity_id)
                result.skipped += 1
                logger.warning(
                    "check_subject_failed",
                    check=self.name,
                    entity_type=self.entity_type,
                    entity_id=entity_id,
                    error=str(e),
                )
                continue

            keep.add(candidate.entity_id)
            upserted = await store.upsert(candidate, now=now)
            if upserted.outcome == UpsertOutcome.CREATED:
                result.created += 1
            elif upserted.outcome == UpsertOutcome.UPDATED:
                result.updated += 1
            else:
                result.unchanged += 1

        result.resolved = await store.resolve_stale(self.alert_type, keep, now=now)

        logger.info(
            "check_completed",
            check=self.name,
            subjects=len(subjects),
            created=result.created,
            updated=result.updated,
            unchanged=result.unchanged,
            resolved=result.resolved,
            skipped=result.skipped,
            count=result.count,
        )
        return result


def days_label(days: int) -> str:
    return f"{days} day" if days == 1 else f"{days} days"
