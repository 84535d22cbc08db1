"""
Retention job — deletes expired alerts and resolved alerts past the window.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog

from fleetalert.db.models import utcnow
from fleetalert.schemas import CleanupResult
from fleetalert.services.alert_store import AlertStore

logger = structlog.get_logger(__name__)


class RetentionJob:
    name = "alert_cleanup"

    def __init__(self, store: AlertStore, retention_days: int = 30):
        self.store = store
        self.retention_days = retention_days

    async def run(self, now: Optional[datetime] = None) -> CleanupResult:
        now = now or utcnow()
        cutoff = now - timedelta(days=self.retention_days)

        expired = await self.store.delete_expired(now)
        old_resolved = await self.store.delete_resolved_before(cutoff)

        result = CleanupResult(
            expired_deleted=expired,
            old_resolved_deleted=old_resolved,
            total=expired + old_resolved,
        )
        logger.info(
            "alert_cleanup_completed",
            expired_deleted=expired,
            old_resolved_deleted=old_resolved,
            total=result.total,
            cutoff=cutoff.isoformat(),
        )
        return result
