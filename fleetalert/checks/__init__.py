from fleetalert.checks.base import BaseCheck, MalformedCandidateError
from fleetalert.checks.fleet import InsuranceExpiringCheck, InventoryLowCheck, MaintenanceDueCheck
from fleetalert.checks.payments import PaymentPendingCheck
from fleetalert.checks.rentals import RentalExpiringCheck, RentalOverdueCheck
from fleetalert.checks.sales import LeadStaleCheck, QuoteExpiringCheck

ALL_CHECKS: tuple[type[BaseCheck], ...] = (
    MaintenanceDueCheck,
    InsuranceExpiringCheck,
    RentalExpiringCheck,
    RentalOverdueCheck,
    PaymentPendingCheck,
    InventoryLowCheck,
    QuoteExpiringCheck,
    LeadStaleCheck,
)

__all__ = [
    "ALL_CHECKS",
    "BaseCheck",
    "InsuranceExpiringCheck",
    "InventoryLowCheck",
    "LeadStaleCheck",
    "MaintenanceDueCheck",
    "MalformedCandidateError",
    "PaymentPendingCheck",
    "QuoteExpiringCheck",
    "RentalExpiringCheck",
    "RentalOverdueCheck",
]
