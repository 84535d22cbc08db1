"""
Rental checks: rentals ending soon, and rentals past their end date.
"""

from datetime import timedelta

from fleetalert.checks.base import BaseCheck, days_label
from fleetalert.schemas import AlertSeverity, AlertType

EXPIRING_STATUSES = ("active", "reserved")
OVERDUE_STATUSES = ("active", "overdue")


def _customer_name(rental) -> str:
    return rental.customer.display_name if rental.customer else "unknown customer"


def _vehicle_label(rental) -> str:
    return rental.vehicle.label if rental.vehicle else "unassigned vehicle"


class RentalExpiringCheck(BaseCheck):
    """Active or reserved rentals ending within the lookahead window."""

    name = "rental_expiring"
    alert_type = AlertType.RENTAL_EXPIRING
    entity_type = "rental"

    async def fetch(self, source, now):
        until = now + timedelta(days=self.settings.rental_expiring_lookahead_days)
        return await source.get_rentals_ending_between(now, until, EXPIRING_STATUSES)

    def evaluate(self, rental, now):
        remaining = rental.end_date - now
        if remaining <= timedelta(days=1):
            severity = AlertSeverity.HIGH
            when = "within 24 hours"
        else:
            severity = AlertSeverity.MEDIUM
            when = f"in {days_label(remaining.days)}"

        return self.candidate(
            rental,
            severity,
            f"Rental ending: {rental.rental_code}",
            (
                f"Rental {rental.rental_code} ({_customer_name(rental)}, "
                f"{_vehicle_label(rental)}) ends {rental.end_date:%Y-%m-%d %H:%M} ({when})."
            ),
            context={
                "rental_code": rental.rental_code,
                "customer_id": rental.customer_id,
                "vehicle_id": rental.vehicle_id,
                "end_date": rental.end_date.isoformat(),
                "hours_left": int(remaining.total_seconds() // 3600),
            },
            expires_at=rental.end_date,
        )


class RentalOverdueCheck(BaseCheck):
    """Active or overdue rentals whose end date has passed."""

    name = "rental_overdue"
    alert_type = AlertType.RENTAL_OVERDUE
    entity_type = "rental"

    async def fetch(self, source, now):
        return await source.get_overdue_rentals(now, OVERDUE_STATUSES)

    def evaluate(self, rental, now):
        days_overdue = (now - rental.end_date).days

        if days_overdue < self.settings.rental_overdue_high_days:
            severity = AlertSeverity.MEDIUM
        elif days_overdue < self.settings.rental_overdue_critical_days:
            severity = AlertSeverity.HIGH
        else:
            severity = AlertSeverity.CRITICAL

        overdue = "less than a day" if days_overdue == 0 else days_label(days_overdue)
        return self.candidate(
            rental,
            severity,
            f"Rental overdue: {rental.rental_code}",
            (
                f"Rental {rental.rental_code} ({_customer_name(rental)}, "
                f"{_vehicle_label(rental)}) was due back {rental.end_date:%Y-%m-%d %H:%M}, "
                f"{overdue} overdue."
            ),
            context={
                "rental_code": rental.rental_code,
                "customer_id": rental.customer_id,
                "vehicle_id": rental.vehicle_id,
                "end_date": rental.end_date.isoformat(),
                "days_overdue": days_overdue,
            },
        )
