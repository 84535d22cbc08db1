"""
Tests for fleet checks: maintenance due, insurance expiring, low inventory.
"""

from datetime import datetime, timedelta

import pytest

from fleetalert.checks import InsuranceExpiringCheck, InventoryLowCheck, MaintenanceDueCheck
from fleetalert.db.models import Vehicle

from conftest import NOW, TODAY


def _by_entity(alerts):
    return {a.entity_id: a for a in alerts}


class TestMaintenanceDue:
    @pytest.mark.asyncio
    async def test_severity_steps(self, settings, make, seed, store, run_check):
        overdue, urgent, upcoming, far, retired = await seed(
            make.vehicle(next_maintenance=TODAY - timedelta(days=2)),
            make.vehicle(next_maintenance=TODAY + timedelta(days=3)),
            make.vehicle(next_maintenance=TODAY + timedelta(days=20)),
            make.vehicle(next_maintenance=TODAY + timedelta(days=40)),
            make.vehicle(next_maintenance=TODAY - timedelta(days=5), is_active=False),
        )

        result = await run_check(MaintenanceDueCheck(settings))

        assert result.ok is True
        assert result.created == 3
        alerts = _by_entity(await store.list_active(now=NOW))
        assert alerts[str(overdue.id)].severity == "critical"
        assert alerts[str(urgent.id)].severity == "high"
        assert alerts[str(upcoming.id)].severity == "medium"
        assert str(far.id) not in alerts
        assert str(retired.id) not in alerts
        assert alerts[str(overdue.id)].entity_type == "vehicle"
        assert alerts[str(overdue.id)].expires_at is None
        assert alerts[str(overdue.id)].context["days_until"] == -2

    @pytest.mark.asyncio
    async def test_resolves_after_maintenance_is_rescheduled(
        self, settings, make, seed, store, run_check, session_factory
    ):
        vehicle = await seed(make.vehicle(next_maintenance=TODAY + timedelta(days=1)))
        await run_check(MaintenanceDueCheck(settings))

        async with session_factory() as session:
            row = await session.get(Vehicle, vehicle.id)
            row.next_maintenance = TODAY + timedelta(days=180)
            await session.commit()

        result = await run_check(MaintenanceDueCheck(settings), now=NOW + timedelta(hours=1))

        assert result.resolved == 1
        assert list(await store.list_active(now=NOW)) == []


class TestInsuranceExpiring:
    @pytest.mark.asyncio
    async def test_severity_and_expiry(self, settings, make, seed, store, run_check):
        critical, high, medium, lapsed, later = await seed(
            make.vehicle(insurance_expiry=TODAY + timedelta(days=5)),
            make.vehicle(insurance_expiry=TODAY + timedelta(days=10)),
            make.vehicle(insurance_expiry=TODAY + timedelta(days=25)),
            make.vehicle(insurance_expiry=TODAY - timedelta(days=1)),
            make.vehicle(insurance_expiry=TODAY + timedelta(days=45)),
        )

        result = await run_check(InsuranceExpiringCheck(settings))

        assert result.created == 3
        alerts = _by_entity(await store.list_active(now=NOW))
        assert alerts[str(critical.id)].severity == "critical"
        assert alerts[str(high.id)].severity == "high"
        assert alerts[str(medium.id)].severity == "medium"
        assert str(lapsed.id) not in alerts
        assert str(later.id) not in alerts

        expiry_day = TODAY + timedelta(days=5)
        assert alerts[str(critical.id)].expires_at == datetime.combine(
            expiry_day + timedelta(days=1), datetime.min.time()
        )

    @pytest.mark.asyncio
    async def test_expiring_today_is_critical(self, settings, make, seed, store, run_check):
        vehicle = await seed(make.vehicle(insurance_expiry=TODAY))

        await run_check(InsuranceExpiringCheck(settings))

        (alert,) = await store.list_for_entity("vehicle", str(vehicle.id))
        assert alert.severity == "critical"
        assert "today" in alert.message


class TestInventoryLow:
    @pytest.mark.asyncio
    async def test_types_below_threshold(self, settings, make, seed, store, run_check):
        empty, scarce, plenty = await seed(
            make.vehicle_type(name="Van"),
            make.vehicle_type(name="SUV"),
            make.vehicle_type(name="Compact"),
        )
        await seed(
            make.vehicle(vehicle_type_id=empty.id, status="rented"),
            make.vehicle(vehicle_type_id=scarce.id, status="available"),
            make.vehicle(vehicle_type_id=scarce.id, status="available", is_active=False),
            make.vehicle(vehicle_type_id=plenty.id, status="available"),
            make.vehicle(vehicle_type_id=plenty.id, status="available"),
        )

        result = await run_check(InventoryLowCheck(settings))

        assert result.created == 2
        alerts = _by_entity(await store.list_active(now=NOW))
        assert alerts[str(empty.id)].severity == "critical"
        assert alerts[str(empty.id)].entity_type == "vehicle_type"
        assert alerts[str(scarce.id)].severity == "high"
        assert alerts[str(scarce.id)].context == {
            "vehicle_type": "SUV",
            "available": 1,
            "threshold": 2,
        }
        assert str(plenty.id) not in alerts


class TestSchedulerTimezone:
    """Day-granular windows follow the scheduler timezone, not UTC."""

    @pytest.mark.asyncio
    async def test_local_day_rolls_over_before_utc(self, settings, make, seed, store, run_check):
        local = settings.model_copy(update={"scheduler_timezone": "Asia/Ho_Chi_Minh"})
        # 20:00 UTC is 03:00 the next day in UTC+7.
        evening_utc = datetime.combine(TODAY, datetime.min.time()) + timedelta(hours=20)
        maintenance, insurance = await seed(
            make.vehicle(next_maintenance=TODAY),
            make.vehicle(insurance_expiry=TODAY + timedelta(days=1)),
        )

        await run_check(MaintenanceDueCheck(local), now=evening_utc)
        await run_check(InsuranceExpiringCheck(local), now=evening_utc)

        (overdue,) = await store.list_for_entity("vehicle", str(maintenance.id))
        assert overdue.severity == "critical"
        assert overdue.context["days_until"] == -1

        (expiring,) = await store.list_for_entity("vehicle", str(insurance.id))
        assert expiring.context["days_left"] == 0
        assert "today" in expiring.message
        # Local midnight after the expiry day, stored as naive UTC.
        assert expiring.expires_at == datetime.combine(
            TODAY + timedelta(days=1), datetime.min.time()
        ) + timedelta(hours=17)

    @pytest.mark.asyncio
    async def test_utc_default_keeps_utc_day(self, settings, make, seed, store, run_check):
        evening_utc = datetime.combine(TODAY, datetime.min.time()) + timedelta(hours=20)
        vehicle = await seed(make.vehicle(next_maintenance=TODAY))

        await run_check(MaintenanceDueCheck(settings), now=evening_utc)

        (alert,) = await store.list_for_entity("vehicle", str(vehicle.id))
        assert alert.severity == "high"
        assert alert.context["days_until"] == 0
