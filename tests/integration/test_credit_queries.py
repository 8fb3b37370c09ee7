"""Integration tests running the credit queries against a SQLite database."""

from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio

from app.business.credit_codes import BlockType, Decision, InstrumentStatus, InvoiceStatus
from app.business.visibility import DocType
from app.services.block_status import fetch_open_block_type
from app.services.check_portfolio import fetch_portfolio
from app.services.credit_validator import CreditValidator
from app.services.customer_accounts import fetch_company_customers, fetch_customer
from app.services.ledger_aggregator import sum_ledger
from app.services.overdue_analyzer import count_overdue_by_customer, fetch_pending_invoices
from app.services.policy_loader import load_credit_policy
from app.services.quick_status import QuickStatusService


@pytest_asyncio.fixture
async def seeded(seed, factory):
    """Customer with ledger, invoices, checks and a company policy."""
    t1_payment = factory.payment(doc_type=DocType.T1)
    t2_payment = factory.payment(doc_type=DocType.T2)
    other_payment = factory.payment(customer_id="cus-002")

    await seed(
        factory.customer("cus-001", credit_limit="10000", current_balance="8000"),
        factory.customer("cus-002", credit_limit="5000", current_balance="1000"),
        factory.customer("cus-x", credit_limit="5000", current_balance="0", company_id=2),
        factory.policy_record(aging_buckets=[90, 30, 60], default_check_limit=Decimal("2000")),

        # Ledger: 8000 in standard scope, 8700 in extended scope
        factory.ledger_entry(debit="10000"),
        factory.ledger_entry(credit="2000"),
        factory.ledger_entry(debit="500", is_voided=True),
        factory.ledger_entry(debit="700", doc_type=DocType.T2),
        factory.ledger_entry(customer_id="cus-002", debit="1000"),

        # Invoices
        factory.invoice(pending_balance="3000", days_overdue=40),
        factory.invoice(pending_balance="2000", days_overdue=15, status=InvoiceStatus.PARTIALLY_COLLECTED, total="2500"),
        factory.invoice(pending_balance="800", days_overdue=-20),
        factory.invoice(pending_balance="900", days_overdue=60, status=InvoiceStatus.COLLECTED),
        factory.invoice(pending_balance="900", days_overdue=60, status=InvoiceStatus.VOIDED),
        factory.invoice(pending_balance="900", days_overdue=None),
        factory.invoice(pending_balance="0", days_overdue=70),
        factory.invoice(pending_balance="400", days_overdue=5, doc_type=DocType.T2),
        factory.invoice(customer_id="cus-002", pending_balance="100", days_overdue=0),

        # Checks
        t1_payment,
        t2_payment,
        other_payment,
        factory.instrument(t1_payment, amount="1000", matures_in_days=10),
        factory.instrument(t1_payment, amount="1500", matures_in_days=45),
        factory.instrument(t1_payment, amount="500", matures_in_days=-3),
        factory.instrument(t1_payment, amount="7000", matures_in_days=5, status=InstrumentStatus.DEPOSITED),
        factory.instrument(t2_payment, amount="999", matures_in_days=30),
        factory.instrument(other_payment, amount="4000", matures_in_days=2),
    )


@pytest.mark.integration
class TestStoreReads:
    """Test cases for the individual queries."""

    @pytest.mark.asyncio
    async def test_ledger_excludes_voided_and_out_of_scope(self, seeded, session_factory, company_id):
        async with session_factory() as session:
            standard = await sum_ledger(session, "cus-001", company_id, ["T1"])
            extended = await sum_ledger(session, "cus-001", company_id, ["T1", "T2"])
            empty = await sum_ledger(session, "cus-404", company_id, ["T1"])

        assert standard.used == Decimal("8000")
        assert extended.used == Decimal("8700")
        assert empty.used == Decimal("0")

    @pytest.mark.asyncio
    async def test_pending_invoices_filtered_and_ordered(self, seeded, session_factory, company_id):
        async with session_factory() as session:
            invoices = await fetch_pending_invoices(session, "cus-001", company_id, ["T1"])

        assert [Decimal(str(invoice.pending_balance)) for invoice in invoices] == [
            Decimal("3000"), Decimal("2000"), Decimal("800")
        ]

    @pytest.mark.asyncio
    async def test_portfolio_totals_and_maturities(self, seeded, session_factory, company_id, today):
        async with session_factory() as session:
            snapshot = await fetch_portfolio(session, "cus-001", company_id, ["T1"], today)

        assert snapshot.total == Decimal("3000")
        assert snapshot.count == 3
        assert snapshot.next_maturity == today + timedelta(days=10)
        assert snapshot.maturing_within_30_days == 1

    @pytest.mark.asyncio
    async def test_open_block_type_uses_latest_open_record(self, seed, factory, session_factory, company_id):
        await seed(
            factory.block(block_type=BlockType.AUTO_CREDIT_LIMIT, days_ago=10),
            factory.block(block_type=BlockType.AUTO_OVERDUE, days_ago=3),
            factory.block(block_type=BlockType.AUTO_BOUNCED_CHECK, days_ago=1, unblocked=True),
        )

        async with session_factory() as session:
            block_type = await fetch_open_block_type(session, "cus-001", company_id)
            none = await fetch_open_block_type(session, "cus-002", company_id)

        assert block_type == "AUTO_OVERDUE"
        assert none is None

    @pytest.mark.asyncio
    async def test_policy_row_and_missing_row(self, seeded, session_factory, company_id):
        async with session_factory() as session:
            configured = await load_credit_policy(session, company_id)
            missing = await load_credit_policy(session, 2)

        assert configured.aging_buckets == (30, 60, 90)
        assert configured.default_check_limit == Decimal("2000")
        assert not missing.enforce_credit_limit

    @pytest.mark.asyncio
    async def test_customer_lookups(self, seeded, session_factory, company_id):
        async with session_factory() as session:
            unscoped = await fetch_customer(session, "cus-x")
            scoped = await fetch_company_customers(session, ["cus-001", "cus-x", "cus-404"], company_id)

        assert unscoped.company_id == 2
        assert set(scoped) == {"cus-001"}

    @pytest.mark.asyncio
    async def test_overdue_counts_grouped(self, seeded, session_factory, company_id, today):
        async with session_factory() as session:
            counts = await count_overdue_by_customer(
                session, ["cus-001", "cus-002"], company_id, ["T1", "T2"], today
            )

        assert counts == {"cus-001": 3}


@pytest.mark.integration
class TestCreditValidationEndToEnd:
    """Test cases for full validations over real queries."""

    @pytest.mark.asyncio
    async def test_standard_scope(self, seeded, session_factory, company_id, today, frozen_time):
        validator = CreditValidator(session_factory=session_factory, timeout_seconds=5)

        result = await validator.validate("cus-001", company_id, "0", "standard", caller_id=7)

        assert result.decision == Decision.BLOCKED
        assert result.requires_override
        assert result.errors == ["Customer has 2 overdue invoice(s) totaling $5000.00, oldest 40 days"]
        assert result.warnings == [
            "High credit utilization: 80.0%",
            "Check portfolio exceeds limit: $3000.00 / $2000.00",
        ]
        assert not result.credit_status.needs_reconciliation
        assert result.check_status.next_maturity == today + timedelta(days=10)

        aging = {bucket.label: (bucket.count, bucket.amount) for bucket in result.overdue_status.aging_buckets}
        assert aging["Current"] == (1, Decimal("800"))
        assert aging["1–30 days"] == (1, Decimal("2000"))
        assert aging["31–60 days"] == (1, Decimal("3000"))
        assert aging["> 90 days"][0] == 0

    @pytest.mark.asyncio
    async def test_extended_scope_sees_secondary_documents(self, seeded, session_factory, company_id, frozen_time):
        validator = CreditValidator(session_factory=session_factory, timeout_seconds=5)

        result = await validator.validate("cus-001", company_id, "0", "extended", caller_id=7)

        assert result.credit_status.used_from_ledger == Decimal("8700")
        assert result.credit_status.needs_reconciliation
        assert result.credit_status.difference_amount == Decimal("700")
        assert result.overdue_status.overdue_amount == Decimal("5400")
        assert result.check_status.total_in_portfolio == Decimal("3999")
        assert "Balance mismatch detected: cached=$8000.00, ledger=$8700.00" in result.warnings

    @pytest.mark.asyncio
    async def test_company_without_policy_is_permissive(self, seed, factory, session_factory, frozen_time):
        await seed(factory.customer("cus-x", credit_limit="100", current_balance="0", company_id=2))
        validator = CreditValidator(session_factory=session_factory, timeout_seconds=5)

        result = await validator.validate("cus-x", 2, "5000", "standard", caller_id=7)

        assert result.can_proceed
        assert result.decision == Decision.OK


@pytest.mark.integration
class TestQuickStatusEndToEnd:
    """Test cases for quick status over real queries."""

    @pytest.mark.asyncio
    async def test_batch(self, seeded, session_factory, company_id, frozen_time):
        service = QuickStatusService(session_factory=session_factory)

        statuses = await service.get_batch_quick_status(["cus-001", "cus-002", "cus-x"], company_id)

        assert statuses["cus-001"].status_label == "In arrears"
        assert statuses["cus-002"].status_label == "OK"
        assert statuses["cus-x"].status_label == "Not found"

    @pytest.mark.asyncio
    async def test_single_is_company_scoped(self, seeded, session_factory, frozen_time):
        service = QuickStatusService(session_factory=session_factory)

        status = await service.get_quick_status("cus-001", 2)

        assert status.status_label == "Not found"
