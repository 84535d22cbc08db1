"""
Alert engine schemas.

Enums for alert type and severity, the candidate a check proposes,
and the result records returned by checks, cleanup, and the orchestrator.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field


# ── Enums ──────────────────────────────────────────────────────────────


class AlertType(StrEnum):
    MAINTENANCE_DUE = "maintenance-due"
    INSURANCE_EXPIRING = "insurance-expiring"
    RENTAL_EXPIRING = "rental-expiring"
    RENTAL_OVERDUE = "rental-overdue"
    PAYMENT_PENDING = "payment-pending"
    INVENTORY_LOW = "inventory-low"
    QUOTE_EXPIRING = "quote-expiring"
    LEAD_STALE = "lead-stale"


class AlertSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    AlertSeverity.LOW: 0,
    AlertSeverity.MEDIUM: 1,
    AlertSeverity.HIGH: 2,
    AlertSeverity.CRITICAL: 3,
}


class UpsertOutcome(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"     # Same severity + message, row untouched


# ── Candidate ──────────────────────────────────────────────────────────


class AlertCandidate(BaseModel):
    """
    Proposed alert produced by a check, not yet persisted.

    (alert_type, entity_type, entity_id) is the natural key.
    """
    alert_type: AlertType
    entity_type: str
    entity_id: str
    severity: AlertSeverity
    title: str
    message: str
    context: dict[str, Any] = Field(default_factory=dict)
    expires_at: Optional[datetime] = None

    @property
    def natural_key(self) -> tuple[str, str, str]:
        return (self.alert_type.value, self.entity_type, self.entity_id)


class UpsertResult(BaseModel):
    outcome: UpsertOutcome
    alert_id: Optional[int] = None
    escalated: bool = False     # Severity rank went up on an update


# ── Results ────────────────────────────────────────────────────────────


class CheckResult(BaseModel):
    """Outcome of one check run."""
    check: str
    ok: bool = True
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    resolved: int = 0
    skipped: int = 0            # Subjects that failed evaluation
    error: Optional[str] = None

    @property
    def count(self) -> int:
        """Alerts created, updated, or resolved by this run."""
        return self.created + self.updated + self.resolved


class CleanupResult(BaseModel):
    """Outcome of one retention pass."""
    ok: bool = True
    expired_deleted: int = 0
    old_resolved_deleted: int = 0
    total: int = 0
    error: Optional[str] = None


class SweepResult(BaseModel):
    """Aggregate of a full sweep (every registered check once)."""
    results: dict[str, CheckResult] = Field(default_factory=dict)
    total: int = 0
    failed: list[str] = Field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        return {name: r.count for name, r in self.results.items()}


class SchedulerStatus(BaseModel):
    is_running: bool
    task_count: int


class AlertStats(BaseModel):
    """Counts over non-expired alerts."""
    total: int = 0
    unread: int = 0
    unresolved: int = 0
    critical: int = 0
    by_severity: dict[str, int] = Field(default_factory=dict)
