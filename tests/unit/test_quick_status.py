"""Unit tests for quick and batch credit status."""

from contextlib import asynccontextmanager
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.business.credit_codes import StatusColor
from app.business.errors import CreditDataSourceError
from app.services.quick_status import QuickStatusService, classify, not_found_status


MODULE = "app.services.quick_status"


@pytest.fixture
def sessions():
    opened = []

    @asynccontextmanager
    async def open_session():
        session = MagicMock()
        opened.append(session)
        yield session

    open_session.opened = opened
    return open_session


@pytest.mark.unit
class TestClassify:
    """Test cases for quick status priority."""

    def test_healthy_customer(self, factory):
        status = classify(factory.customer(credit_limit="10000", current_balance="2500"), 0)

        assert status.status_label == "OK"
        assert status.status_color == StatusColor.GREEN
        assert status.has_credit
        assert status.utilization_percent == Decimal("25.00")

    def test_blocked_wins_over_everything(self, factory):
        customer = factory.customer(current_balance="20000", is_blocked=True)

        status = classify(customer, 3)

        assert status.status_label == "Blocked"
        assert status.status_color == StatusColor.RED

    def test_overdue_before_credit(self, factory):
        status = classify(factory.customer(current_balance="20000"), 1)

        assert status.status_label == "In arrears"
        assert status.has_overdue

    def test_no_credit_when_balance_reaches_limit(self, factory):
        status = classify(factory.customer(credit_limit="5000", current_balance="5000"), 0)

        assert status.status_label == "No credit"
        assert not status.has_credit

    def test_zero_limit_has_no_credit(self, factory):
        status = classify(factory.customer(credit_limit="0", current_balance="0"), 0)

        assert status.status_label == "No credit"
        assert status.utilization_percent == Decimal("100.00")

    def test_high_credit(self, factory):
        status = classify(factory.customer(credit_limit="10000", current_balance="8000"), 0)

        assert status.status_label == "High credit"
        assert status.status_color == StatusColor.YELLOW

    def test_not_found_status(self):
        status = not_found_status()

        assert status.status_label == "Not found"
        assert status.is_blocked
        assert not status.has_credit
        assert status.status_color == StatusColor.RED
        assert status.utilization_percent == Decimal("100.00")


@pytest.mark.unit
class TestQuickStatusService:
    """Test cases for single and batch lookups."""

    @pytest.fixture
    def service(self, sessions):
        return QuickStatusService(session_factory=sessions)

    @pytest.mark.asyncio
    async def test_single_lookup(self, service, factory, company_id):
        with patch(f"{MODULE}.fetch_company_customer", new_callable=AsyncMock) as fetch_customer, \
             patch(f"{MODULE}.count_overdue_invoices", new_callable=AsyncMock) as count_overdue:
            fetch_customer.return_value = factory.customer(current_balance="1000")
            count_overdue.return_value = 2

            status = await service.get_quick_status("cus-001", company_id, "standard")

        assert status.status_label == "In arrears"
        assert count_overdue.await_args.args[1:4] == ("cus-001", company_id, ["T1"])

    @pytest.mark.asyncio
    async def test_single_lookup_not_found(self, service, company_id):
        with patch(f"{MODULE}.fetch_company_customer", new_callable=AsyncMock) as fetch_customer, \
             patch(f"{MODULE}.count_overdue_invoices", new_callable=AsyncMock) as count_overdue:
            fetch_customer.return_value = None

            status = await service.get_quick_status("ghost", company_id)

        assert status.status_label == "Not found"
        count_overdue.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_batch_with_missing_customer(self, service, sessions, factory, company_id):
        """Three ids, one unknown: three entries, the unknown one not found."""
        customers = {
            "cus-001": factory.customer("cus-001", current_balance="1000"),
            "cus-002": factory.customer("cus-002", current_balance="9000"),
        }

        with patch(f"{MODULE}.fetch_company_customers", new_callable=AsyncMock) as fetch_customers, \
             patch(f"{MODULE}.count_overdue_by_customer", new_callable=AsyncMock) as count_overdue:
            fetch_customers.return_value = customers
            count_overdue.return_value = {"cus-002": 1}

            statuses = await service.get_batch_quick_status(
                ["cus-001", "cus-002", "cus-404"], company_id, "extended"
            )

        assert set(statuses) == {"cus-001", "cus-002", "cus-404"}
        assert statuses["cus-001"].status_label == "OK"
        assert statuses["cus-002"].status_label == "In arrears"
        assert statuses["cus-404"].status_label == "Not found"
        assert statuses["cus-404"].is_blocked
        assert statuses["cus-404"].status_color == StatusColor.RED
        fetch_customers.assert_awaited_once()
        count_overdue.assert_awaited_once()
        assert len(sessions.opened) == 2

    @pytest.mark.asyncio
    async def test_batch_deduplicates_ids(self, service, factory, company_id):
        with patch(f"{MODULE}.fetch_company_customers", new_callable=AsyncMock) as fetch_customers, \
             patch(f"{MODULE}.count_overdue_by_customer", new_callable=AsyncMock) as count_overdue:
            fetch_customers.return_value = {"cus-001": factory.customer("cus-001")}
            count_overdue.return_value = {}

            statuses = await service.get_batch_quick_status(["cus-001", "cus-001"], company_id)

        assert list(statuses) == ["cus-001"]
        assert fetch_customers.await_args.args[1] == ["cus-001"]

    @pytest.mark.asyncio
    async def test_empty_batch_touches_nothing(self, service, sessions, company_id):
        statuses = await service.get_batch_quick_status([], company_id)

        assert statuses == {}
        assert sessions.opened == []

    @pytest.mark.asyncio
    async def test_batch_read_failure(self, service, company_id):
        with patch(f"{MODULE}.fetch_company_customers", new_callable=AsyncMock) as fetch_customers, \
             patch(f"{MODULE}.count_overdue_by_customer", new_callable=AsyncMock) as count_overdue:
            fetch_customers.side_effect = OperationalError("SELECT", {}, Exception("down"))
            count_overdue.return_value = {}

            with pytest.raises(CreditDataSourceError) as exc_info:
                await service.get_batch_quick_status(["cus-001"], company_id)

        assert exc_info.value.reader == "quick_status_batch"
