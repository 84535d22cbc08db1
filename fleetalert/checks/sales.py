"""
Sales pipeline checks: quotes about to lapse, leads nobody followed up.
"""

from datetime import timedelta

from fleetalert.checks.base import BaseCheck, days_label
from fleetalert.schemas import AlertSeverity, AlertType

OPEN_QUOTE_STATUSES = ("draft", "sent")
CLOSED_LEAD_STATUSES = ("won", "lost")


class QuoteExpiringCheck(BaseCheck):
    """Draft or sent quotes whose validity ends within the lookahead window."""

    name = "quote_expiring"
    alert_type = AlertType.QUOTE_EXPIRING
    entity_type = "quote"

    async def fetch(self, source, now):
        until = now + timedelta(days=self.settings.quote_expiring_lookahead_days)
        return await source.get_quotes_expiring(now, until, OPEN_QUOTE_STATUSES)

    def evaluate(self, quote, now):
        remaining = quote.valid_until - now
        if remaining <= timedelta(days=1):
            severity = AlertSeverity.HIGH
            when = "within 24 hours"
        else:
            severity = AlertSeverity.MEDIUM
            when = f"in {days_label(remaining.days)}"

        customer = quote.customer.display_name if quote.customer else "unknown customer"
        return self.candidate(
            quote,
            severity,
            f"Quote expiring: {quote.quote_code}",
            f"Quote {quote.quote_code} for {customer} is valid until "
            f"{quote.valid_until:%Y-%m-%d %H:%M} ({when}).",
            context={
                "quote_code": quote.quote_code,
                "customer_id": quote.customer_id,
                "status": quote.status,
                "total_amount": f"{quote.total_amount:.2f}",
                "valid_until": quote.valid_until.isoformat(),
            },
            expires_at=quote.valid_until,
        )


class LeadStaleCheck(BaseCheck):
    """
    Open leads without attention.

    A lead is stale when its scheduled follow-up has passed, or when it has
    no follow-up and has not been touched within the window.
    """

    name = "lead_stale"
    alert_type = AlertType.LEAD_STALE
    entity_type = "lead"

    async def fetch(self, source, now):
        idle_since = now - timedelta(days=self.settings.lead_stale_after_days)
        return await source.get_stale_leads(now, idle_since, CLOSED_LEAD_STATUSES)

    def evaluate(self, lead, now):
        window = self.settings.lead_stale_after_days
        if lead.next_follow_up is not None:
            stale_since = lead.next_follow_up
            reason = f"follow-up was due {lead.next_follow_up:%Y-%m-%d}"
        else:
            stale_since = lead.updated_at
            reason = f"no follow-up scheduled, last updated {lead.updated_at:%Y-%m-%d}"

        days_stale = (now - stale_since).days
        severity = AlertSeverity.HIGH if days_stale >= 2 * window else AlertSeverity.MEDIUM

        who = f"{lead.name} ({lead.company})" if lead.company else lead.name
        return self.candidate(
            lead,
            severity,
            f"Lead needs follow-up: {lead.lead_code}",
            f"Lead {lead.lead_code} for {who} is stale: {reason} "
            f"({days_label(days_stale)} ago).",
            context={
                "lead_code": lead.lead_code,
                "status": lead.status,
                "priority": lead.priority,
                "estimated_value": f"{lead.estimated_value:.2f}",
                "days_stale": days_stale,
            },
        )
