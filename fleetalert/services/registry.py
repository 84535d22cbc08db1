"""
Scheduler wiring from settings.

Every check, the cleanup job, and the full sweep are bound to the schedule
strings in Settings. Bad schedules or inconsistent thresholds raise
ConfigurationError here, before anything starts.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetalert.checks import ALL_CHECKS
from fleetalert.config import Settings
from fleetalert.errors import ConfigurationError
from fleetalert.services.alert_store import AlertStore
from fleetalert.services.domain import db_source_factory
from fleetalert.services.retention import RetentionJob
from fleetalert.services.scheduler import AlertScheduler

# (lower breakpoint, upper breakpoint) pairs that must be strictly increasing
_ORDERED_THRESHOLDS = [
    ("insurance_critical_days", "insurance_high_days"),
    ("insurance_high_days", "insurance_lookahead_days"),
    ("maintenance_urgent_days", "maintenance_lookahead_days"),
    ("rental_overdue_high_days", "rental_overdue_critical_days"),
    ("payment_pending_high_days", "payment_pending_critical_days"),
]


def validate_thresholds(settings: Settings) -> None:
    """Severity breakpoints must be ordered or the step function is not monotonic."""
    for lower, upper in _ORDERED_THRESHOLDS:
        if getattr(settings, lower) >= getattr(settings, upper):
            raise ConfigurationError(
                f"{lower.upper()} ({getattr(settings, lower)}) must be less than "
                f"{upper.upper()} ({getattr(settings, upper)})"
            )


def build_scheduler(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> AlertScheduler:
    validate_thresholds(settings)

    store = AlertStore(session_factory)
    scheduler = AlertScheduler(
        store=store,
        source_factory=db_source_factory(session_factory),
        timezone=settings.scheduler_timezone,
    )

    for check_cls in ALL_CHECKS:
        scheduler.register(check_cls(settings), getattr(settings, f"schedule_{check_cls.name}"))

    scheduler.register_cleanup(
        RetentionJob(store, retention_days=settings.alert_retention_days),
        settings.schedule_cleanup,
    )
    scheduler.register_sweep(settings.schedule_full_sweep)
    return scheduler
