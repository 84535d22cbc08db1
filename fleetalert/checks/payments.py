"""
Payment check: payments left pending past the configured grace period.
"""

from datetime import timedelta

from fleetalert.checks.base import BaseCheck, days_label
from fleetalert.schemas import AlertSeverity, AlertType


class PaymentPendingCheck(BaseCheck):
    name = "payment_pending"
    alert_type = AlertType.PAYMENT_PENDING
    entity_type = "payment"

    async def fetch(self, source, now):
        older_than = now - timedelta(days=self.settings.payment_pending_after_days)
        return await source.get_pending_payments(older_than)

    def evaluate(self, payment, now):
        days_pending = (now - payment.transaction_date).days

        if days_pending < self.settings.payment_pending_high_days:
            severity = AlertSeverity.MEDIUM
        elif days_pending < self.settings.payment_pending_critical_days:
            severity = AlertSeverity.HIGH
        else:
            severity = AlertSeverity.CRITICAL

        customer = payment.customer.display_name if payment.customer else "unknown customer"
        amount = f"{payment.amount:.2f}"
        return self.candidate(
            payment,
            severity,
            f"Payment pending: {payment.payment_code}",
            f"Payment {payment.payment_code} of {amount} from {customer} "
            f"has been pending for {days_label(days_pending)}.",
            context={
                "payment_code": payment.payment_code,
                "customer_id": payment.customer_id,
                "rental_id": payment.rental_id,
                "amount": amount,
                "days_pending": days_pending,
            },
        )
