"""
Fleet checks: maintenance due, insurance expiring, low inventory per vehicle type.
"""

from datetime import timedelta

from fleetalert.checks.base import BaseCheck, days_label
from fleetalert.schemas import AlertSeverity, AlertType


class MaintenanceDueCheck(BaseCheck):
    """Vehicles with maintenance due within the lookahead window, or past due."""

    name = "maintenance_due"
    alert_type = AlertType.MAINTENANCE_DUE
    entity_type = "vehicle"

    async def fetch(self, source, now):
        until = self.local_today(now) + timedelta(days=self.settings.maintenance_lookahead_days)
        return await source.get_vehicles_due_maintenance(until)

    def evaluate(self, vehicle, now):
        due = vehicle.next_maintenance
        if due is None:
            return None
        days_until = (due - self.local_today(now)).days

        if days_until < 0:
            severity = AlertSeverity.CRITICAL
            title = f"Maintenance overdue: {vehicle.license_plate}"
            message = (
                f"{vehicle.label} was due for maintenance on {due.isoformat()}, "
                f"{days_label(-days_until)} ago."
            )
        else:
            severity = (
                AlertSeverity.HIGH
                if days_until <= self.settings.maintenance_urgent_days
                else AlertSeverity.MEDIUM
            )
            title = f"Maintenance due: {vehicle.license_plate}"
            message = (
                f"{vehicle.label} is due for maintenance on {due.isoformat()} "
                f"(in {days_label(days_until)})."
            )

        return self.candidate(
            vehicle,
            severity,
            title,
            message,
            context={
                "license_plate": vehicle.license_plate,
                "next_maintenance": due.isoformat(),
                "days_until": days_until,
                "mileage": vehicle.mileage,
            },
        )


class InsuranceExpiringCheck(BaseCheck):
    """Vehicles whose insurance expires within the lookahead window."""

    name = "insurance_expiring"
    alert_type = AlertType.INSURANCE_EXPIRING
    entity_type = "vehicle"

    async def fetch(self, source, now):
        today = self.local_today(now)
        until = today + timedelta(days=self.settings.insurance_lookahead_days)
        return await source.get_vehicles_insurance_expiring(today, until)

    def evaluate(self, vehicle, now):
        expiry = vehicle.insurance_expiry
        if expiry is None:
            return None
        days_left = (expiry - self.local_today(now)).days

        if days_left <= self.settings.insurance_critical_days:
            severity = AlertSeverity.CRITICAL
        elif days_left <= self.settings.insurance_high_days:
            severity = AlertSeverity.HIGH
        else:
            severity = AlertSeverity.MEDIUM

        when = "today" if days_left == 0 else f"in {days_label(days_left)}"
        return self.candidate(
            vehicle,
            severity,
            f"Insurance expiring: {vehicle.license_plate}",
            f"Insurance for {vehicle.label} expires on {expiry.isoformat()} ({when}).",
            context={
                "license_plate": vehicle.license_plate,
                "insurance_expiry": expiry.isoformat(),
                "days_left": days_left,
            },
            # Meaningless once the policy has lapsed; end of the expiry day.
            expires_at=self.local_midnight(expiry + timedelta(days=1)),
        )


class InventoryLowCheck(BaseCheck):
    """Vehicle types with fewer available vehicles than the configured minimum."""

    name = "inventory_low"
    alert_type = AlertType.INVENTORY_LOW
    entity_type = "vehicle_type"

    async def fetch(self, source, now):
        return await source.get_vehicle_type_availability(self.settings.inventory_low_threshold)

    def subject_id(self, subject):
        vehicle_type, _available = subject
        return str(vehicle_type.id)

    def evaluate(self, subject, now):
        vehicle_type, available = subject
        threshold = self.settings.inventory_low_threshold
        if available >= threshold:
            return None

        if available == 0:
            severity = AlertSeverity.CRITICAL
            message = f"No {vehicle_type.name} vehicles are available."
        else:
            severity = AlertSeverity.HIGH
            message = (
                f"Only {available} {vehicle_type.name} "
                f"{'vehicle is' if available == 1 else 'vehicles are'} available "
                f"(minimum {threshold})."
            )

        return self.candidate(
            subject,
            severity,
            f"Low inventory: {vehicle_type.name}",
            message,
            context={
                "vehicle_type": vehicle_type.name,
                "available": available,
                "threshold": threshold,
            },
        )
