"""
Read-only domain query functions for the alert checks.

Plain SELECTs against the rental back-office tables. Every threshold
arrives as a parameter; nothing here writes.
"""

from datetime import date, datetime
from typing import Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fleetalert.db.models import Lead, Payment, Quote, Rental, Vehicle, VehicleType


# ── Vehicles ─────────────────────────────────────────────────────────────


async def get_vehicles_due_maintenance(
    session: AsyncSession, until: date
) -> Sequence[Vehicle]:
    """Active vehicles whose next maintenance is on or before ``until`` (past due included)."""
    result = await session.execute(
        select(Vehicle)
        .where(Vehicle.is_active.is_(True))
        .where(Vehicle.next_maintenance.is_not(None))
        .where(Vehicle.next_maintenance <= until)
        .order_by(Vehicle.next_maintenance)
    )
    return result.scalars().all()


async def get_vehicles_insurance_expiring(
    session: AsyncSession, since: date, until: date
) -> Sequence[Vehicle]:
    """Active vehicles whose insurance expires in [since, until]."""
    result = await session.execute(
        select(Vehicle)
        .where(Vehicle.is_active.is_(True))
        .where(Vehicle.insurance_expiry >= since)
        .where(Vehicle.insurance_expiry <= until)
        .order_by(Vehicle.insurance_expiry)
    )
    return result.scalars().all()


async def get_vehicle_type_availability(
    session: AsyncSession, below: int
) -> Sequence[tuple[VehicleType, int]]:
    """Vehicle types with fewer than ``below`` available active vehicles.

    Types with zero vehicles at all are included (count 0).
    """
    available = func.count(Vehicle.id)
    result = await session.execute(
        select(VehicleType, available)
        .outerjoin(
            Vehicle,
            and_(
                Vehicle.vehicle_type_id == VehicleType.id,
                Vehicle.status == "available",
                Vehicle.is_active.is_(True),
            ),
        )
        .group_by(VehicleType.id)
        .having(available < below)
        .order_by(VehicleType.id)
    )
    return [(row[0], int(row[1])) for row in result.all()]


# ── Rentals ──────────────────────────────────────────────────────────────


async def get_rentals_ending_between(
    session: AsyncSession,
    since: datetime,
    until: datetime,
    statuses: Sequence[str],
) -> Sequence[Rental]:
    """Rentals in ``statuses`` whose end_date falls in (since, until]."""
    result = await session.execute(
        select(Rental)
        .options(selectinload(Rental.customer), selectinload(Rental.vehicle))
        .where(Rental.status.in_(list(statuses)))
        .where(Rental.end_date > since)
        .where(Rental.end_date <= until)
        .order_by(Rental.end_date)
    )
    return result.scalars().all()


async def get_overdue_rentals(
    session: AsyncSession, now: datetime, statuses: Sequence[str]
) -> Sequence[Rental]:
    """Rentals in ``statuses`` whose end_date has passed."""
    result = await session.execute(
        select(Rental)
        .options(selectinload(Rental.customer), selectinload(Rental.vehicle))
        .where(Rental.status.in_(list(statuses)))
        .where(Rental.end_date < now)
        .order_by(Rental.end_date)
    )
    return result.scalars().all()


# ── Payments ─────────────────────────────────────────────────────────────


async def get_pending_payments(
    session: AsyncSession, older_than: datetime
) -> Sequence[Payment]:
    """Pending payments registered on or before ``older_than``."""
    result = await session.execute(
        select(Payment)
        .options(selectinload(Payment.customer))
        .where(Payment.status == "pending")
        .where(Payment.transaction_date <= older_than)
        .order_by(Payment.transaction_date)
    )
    return result.scalars().all()


# ── Sales pipeline ───────────────────────────────────────────────────────


async def get_quotes_expiring(
    session: AsyncSession,
    since: datetime,
    until: datetime,
    statuses: Sequence[str],
) -> Sequence[Quote]:
    """Open quotes whose valid_until falls in (since, until]."""
    result = await session.execute(
        select(Quote)
        .options(selectinload(Quote.customer))
        .where(Quote.status.in_(list(statuses)))
        .where(Quote.valid_until > since)
        .where(Quote.valid_until <= until)
        .order_by(Quote.valid_until)
    )
    return result.scalars().all()


async def get_stale_leads(
    session: AsyncSession,
    now: datetime,
    idle_since: datetime,
    closed_statuses: Sequence[str],
) -> Sequence[Lead]:
    """Open leads with an overdue follow-up, or none scheduled and idle since ``idle_since``."""
    result = await session.execute(
        select(Lead)
        .where(Lead.status.not_in(list(closed_statuses)))
        .where(
            or_(
                and_(Lead.next_follow_up.is_not(None), Lead.next_follow_up < now),
                and_(Lead.next_follow_up.is_(None), Lead.updated_at < idle_since),
            )
        )
        .order_by(Lead.id)
    )
    return result.scalars().all()
