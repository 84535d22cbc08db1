"""
Tests for sales pipeline checks: expiring quotes and stale leads.
"""

from datetime import timedelta

import pytest

from fleetalert.checks import LeadStaleCheck, QuoteExpiringCheck

from conftest import NOW


class TestQuoteExpiring:
    @pytest.mark.asyncio
    async def test_open_quotes_in_window(self, settings, make, seed, store, run_check):
        tomorrow, in_two_days, next_week, accepted, lapsed, draft = await seed(
            make.quote(valid_until=NOW + timedelta(hours=12)),
            make.quote(valid_until=NOW + timedelta(days=2, hours=12)),
            make.quote(valid_until=NOW + timedelta(days=5)),
            make.quote(valid_until=NOW + timedelta(days=1), status="accepted"),
            make.quote(valid_until=NOW - timedelta(hours=1)),
            make.quote(valid_until=NOW + timedelta(days=3), status="draft"),
        )

        result = await run_check(QuoteExpiringCheck(settings))

        assert result.created == 3
        (alert,) = await store.list_for_entity("quote", str(tomorrow.id))
        assert alert.severity == "high"
        assert alert.expires_at == tomorrow.valid_until

        (alert,) = await store.list_for_entity("quote", str(in_two_days.id))
        assert alert.severity == "medium"
        assert len(await store.list_for_entity("quote", str(draft.id))) == 1

        for quote in (next_week, accepted, lapsed):
            assert await store.list_for_entity("quote", str(quote.id)) == []


class TestLeadStale:
    @pytest.mark.asyncio
    async def test_follow_up_and_idle_rules(self, settings, make, seed, store, run_check):
        missed, long_missed, idle, fresh, won, scheduled = await seed(
            make.lead(next_follow_up=NOW - timedelta(days=2)),
            make.lead(next_follow_up=NOW - timedelta(days=20)),
            make.lead(next_follow_up=None, updated_at=NOW - timedelta(days=10)),
            make.lead(next_follow_up=None, updated_at=NOW - timedelta(days=1)),
            make.lead(next_follow_up=NOW - timedelta(days=20), status="won"),
            make.lead(next_follow_up=NOW + timedelta(days=2), updated_at=NOW - timedelta(days=30)),
        )

        result = await run_check(LeadStaleCheck(settings))

        assert result.created == 3
        (alert,) = await store.list_for_entity("lead", str(missed.id))
        assert alert.severity == "medium"
        assert "follow-up was due" in alert.message

        (alert,) = await store.list_for_entity("lead", str(long_missed.id))
        assert alert.severity == "high"

        (alert,) = await store.list_for_entity("lead", str(idle.id))
        assert alert.severity == "medium"
        assert "no follow-up scheduled" in alert.message

        for lead in (fresh, won, scheduled):
            assert await store.list_for_entity("lead", str(lead.id)) == []
