"""
Tests for the pending payment check.
"""

from datetime import timedelta

import pytest

from fleetalert.checks import PaymentPendingCheck

from conftest import NOW


class TestPaymentPending:
    @pytest.mark.asyncio
    async def test_grace_period_and_severity(self, settings, make, seed, store, run_check):
        customer = await seed(make.customer(name="Northwind Ltd"))
        p4, p10, p20, recent, settled = await seed(
            make.payment(customer_id=customer.id, transaction_date=NOW - timedelta(days=4)),
            make.payment(transaction_date=NOW - timedelta(days=10)),
            make.payment(transaction_date=NOW - timedelta(days=20)),
            make.payment(transaction_date=NOW - timedelta(days=1)),
            make.payment(transaction_date=NOW - timedelta(days=20), status="completed"),
        )

        result = await run_check(PaymentPendingCheck(settings))

        assert result.created == 3
        (alert,) = await store.list_for_entity("payment", str(p4.id))
        assert alert.severity == "medium"
        assert "Northwind Ltd" in alert.message
        assert alert.context["amount"] == "250.00"
        assert alert.context["days_pending"] == 4

        (alert,) = await store.list_for_entity("payment", str(p10.id))
        assert alert.severity == "high"
        (alert,) = await store.list_for_entity("payment", str(p20.id))
        assert alert.severity == "critical"

        assert await store.list_for_entity("payment", str(recent.id)) == []
        assert await store.list_for_entity("payment", str(settled.id)) == []

    @pytest.mark.asyncio
    async def test_thresholds_come_from_settings(self, make, seed, store, run_check, settings):
        payment = await seed(make.payment(transaction_date=NOW - timedelta(days=4)))
        strict = settings.model_copy(
            update={"payment_pending_high_days": 2, "payment_pending_critical_days": 4}
        )

        await run_check(PaymentPendingCheck(strict))

        (alert,) = await store.list_for_entity("payment", str(payment.id))
        assert alert.severity == "critical"
