"""
Domain collaborator interface.

Checks read rentals, vehicles, payments, quotes and leads through
DomainSource only. DomainDbAdapter backs it with db.queries and a bound
session; tests can substitute any object with the same methods.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Protocol, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetalert.db import queries as db_queries


class DomainSource(Protocol):
    """Read-only queries the checks depend on."""

    async def get_vehicles_due_maintenance(self, until: date) -> Sequence[Any]: ...

    async def get_vehicles_insurance_expiring(self, since: date, until: date) -> Sequence[Any]: ...

    async def get_vehicle_type_availability(self, below: int) -> Sequence[tuple[Any, int]]: ...

    async def get_rentals_ending_between(
        self, since: datetime, until: datetime, statuses: Sequence[str]
    ) -> Sequence[Any]: ...

    async def get_overdue_rentals(self, now: datetime, statuses: Sequence[str]) -> Sequence[Any]: ...

    async def get_pending_payments(self, older_than: datetime) -> Sequence[Any]: ...

    async def get_quotes_expiring(
        self, since: datetime, until: datetime, statuses: Sequence[str]
    ) -> Sequence[Any]: ...

    async def get_stale_leads(
        self, now: datetime, idle_since: datetime, closed_statuses: Sequence[str]
    ) -> Sequence[Any]: ...


SourceFactory = Callable[[], AsyncContextManager[DomainSource]]


class DomainDbAdapter:
    """
    Adapter that wraps db.queries functions with a bound session.

    Checks call self.source.get_overdue_rentals(now, statuses).
    This adapter provides that interface backed by the queries module.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_vehicles_due_maintenance(self, until):
        return await db_queries.get_vehicles_due_maintenance(self._session, until)

    async def get_vehicles_insurance_expiring(self, since, until):
        return await db_queries.get_vehicles_insurance_expiring(self._session, since, until)

    async def get_vehicle_type_availability(self, below):
        return await db_queries.get_vehicle_type_availability(self._session, below)

    async def get_rentals_ending_between(self, since, until, statuses):
        return await db_queries.get_rentals_ending_between(self._session, since, until, statuses)

    async def get_overdue_rentals(self, now, statuses):
        return await db_queries.get_overdue_rentals(self._session, now, statuses)

    async def get_pending_payments(self, older_than):
        return await db_queries.get_pending_payments(self._session, older_than)

    async def get_quotes_expiring(self, since, until, statuses):
        return await db_queries.get_quotes_expiring(self._session, since, until, statuses)

    async def get_stale_leads(self, now, idle_since, closed_statuses):
        return await db_queries.get_stale_leads(self._session, now, idle_since, closed_statuses)


def db_source_factory(session_factory: async_sessionmaker[AsyncSession]) -> SourceFactory:
    """One session per check run, closed when the run ends."""

    @asynccontextmanager
    async def _open() -> AsyncIterator[DomainSource]:
        async with session_factory() as session:
            yield DomainDbAdapter(session)

    return _open
