"""Data factories for generating credit test data."""

import itertools
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Iterator, Optional

from app.business.credit_codes import BlockType, InstrumentStatus, InvoiceStatus
from app.business.visibility import DocType
from app.services.policy_loader import CreditPolicy
from app.storage.models import (
    CreditPolicyConfig,
    Customer,
    CustomerBlockHistory,
    CustomerLedgerEntry,
    CustomerPayment,
    PaymentInstrument,
    SalesInvoice,
)


def _money(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def make_policy(**overrides: Any) -> CreditPolicy:
    """Create an effective policy with everything enforced unless overridden."""
    values = {
        "enforce_credit_limit": True,
        "block_on_credit_exceeded": True,
        "block_on_overdue": True,
        "overdue_grace_days": 0,
        "aging_enabled": True,
        "aging_buckets": (30, 60, 90, 120),
        "credit_alert_threshold": Decimal("80"),
        "enforce_check_limit": True,
        "default_check_limit": None,
    }
    values.update(overrides)
    return CreditPolicy(**values)


@dataclass
class CreditDataFactory:
    """Factory for customers and the documents hanging off them."""

    company_id: int = 1
    today: date = field(default_factory=date.today)
    _ids: Iterator[int] = field(default_factory=lambda: itertools.count(1), repr=False)

    def _next_id(self) -> int:
        return next(self._ids)

    def customer(
        self,
        customer_id: str = "cus-001",
        credit_limit: Any = "10000",
        current_balance: Any = "0",
        company_id: Optional[int] = None,
        **overrides: Any
    ) -> Customer:
        """Create a customer."""
        values = {
            "id": customer_id,
            "company_id": company_id or self.company_id,
            "name": "Acme Distribution",
            "legal_name": "Acme Distribution S.A.",
            "tax_id": "30-71234567-9",
            "credit_limit": _money(credit_limit),
            "current_balance": _money(current_balance),
            "payment_terms_days": 30,
            "is_blocked": False,
            "blocked_reason": None,
            "blocked_at": None,
            "has_check_limit": False,
            "check_limit": None,
        }
        values.update(overrides)
        return Customer(**values)

    def ledger_entry(
        self,
        customer_id: str = "cus-001",
        debit: Any = "0",
        credit: Any = "0",
        doc_type: DocType = DocType.T1,
        is_voided: bool = False
    ) -> CustomerLedgerEntry:
        """Create a ledger movement."""
        return CustomerLedgerEntry(
            id=self._next_id(),
            customer_id=customer_id,
            company_id=self.company_id,
            doc_type=doc_type.value,
            debit=_money(debit),
            credit=_money(credit),
            is_voided=is_voided,
            created_at=datetime(self.today.year, self.today.month, self.today.day)
        )

    def invoice(
        self,
        customer_id: str = "cus-001",
        pending_balance: Any = "1000",
        days_overdue: Optional[int] = 0,
        status: InvoiceStatus = InvoiceStatus.ISSUED,
        doc_type: DocType = DocType.T1,
        total: Any = None
    ) -> SalesInvoice:
        """Create an invoice due ``days_overdue`` days before today."""
        invoice_id = self._next_id()
        due_date = None if days_overdue is None else self.today - timedelta(days=days_overdue)
        return SalesInvoice(
            id=invoice_id,
            customer_id=customer_id,
            company_id=self.company_id,
            doc_type=doc_type.value,
            number=f"A-0001-{invoice_id:08d}",
            total=_money(total if total is not None else pending_balance),
            pending_balance=_money(pending_balance),
            due_date=due_date,
            status=status.value
        )

    def payment(self, customer_id: str = "cus-001", doc_type: DocType = DocType.T1) -> CustomerPayment:
        """Create a collection receipt."""
        return CustomerPayment(
            id=self._next_id(),
            customer_id=customer_id,
            company_id=self.company_id,
            doc_type=doc_type.value
        )

    def instrument(
        self,
        payment: CustomerPayment,
        amount: Any = "1000",
        matures_in_days: int = 15,
        status: InstrumentStatus = InstrumentStatus.IN_PORTFOLIO
    ) -> PaymentInstrument:
        """Create a post-dated check received through ``payment``."""
        return PaymentInstrument(
            id=self._next_id(),
            payment_id=payment.id,
            company_id=self.company_id,
            amount=_money(amount),
            maturity_date=self.today + timedelta(days=matures_in_days),
            status=status.value
        )

    def block(
        self,
        customer_id: str = "cus-001",
        block_type: BlockType = BlockType.AUTO_OVERDUE,
        days_ago: int = 1,
        unblocked: bool = False
    ) -> CustomerBlockHistory:
        """Create a block history record."""
        blocked_at = datetime(self.today.year, self.today.month, self.today.day) - timedelta(days=days_ago)
        return CustomerBlockHistory(
            id=self._next_id(),
            customer_id=customer_id,
            company_id=self.company_id,
            block_type=block_type.value,
            reason="Automatic block",
            blocked_at=blocked_at,
            unblocked_at=blocked_at + timedelta(hours=1) if unblocked else None
        )

    def policy_record(self, **overrides: Any) -> CreditPolicyConfig:
        """Create a company policy row."""
        values = {
            "id": self._next_id(),
            "company_id": self.company_id,
            "enforce_credit_limit": True,
            "block_on_credit_exceeded": True,
            "block_on_overdue": True,
            "overdue_grace_days": 0,
            "aging_enabled": True,
            "aging_buckets": [30, 60, 90],
            "credit_alert_threshold": Decimal("80"),
            "enforce_check_limit": True,
            "default_check_limit": None,
        }
        values.update(overrides)
        return CreditPolicyConfig(**values)
