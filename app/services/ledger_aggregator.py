# ==== LEDGER AGGREGATOR SERVICE ==== #

"""
Ledger aggregation and cache reconciliation.

The ledger is the source of truth for what a customer owes. The cached
balance on the customer row is only compared against it and any drift beyond
one cent is reported for reconciliation.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.business.money import RECONCILIATION_TOLERANCE, ZERO, to_decimal
from app.observability.tracing import get_tracer
from app.storage.models import CustomerLedgerEntry


tracer = get_tracer(__name__)


@dataclass(frozen=True)
class LedgerBalance:
    """Debit and credit totals of a customer's non-voided ledger entries."""

    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO

    @property
    def used(self) -> Decimal:
        """Outstanding balance; positive means the customer owes."""
        return self.total_debit - self.total_credit


@dataclass(frozen=True)
class Reconciliation:
    """Comparison of the ledger balance against the cached balance."""

    needs_reconciliation: bool
    difference: Decimal


async def sum_ledger(
    session: AsyncSession,
    customer_id: str,
    company_id: int,
    doc_types: Sequence[str]
) -> LedgerBalance:
    """
    Sum debit and credit over the customer's ledger entries in scope.

    Args:
        session: Read session
        customer_id: Customer identifier
        company_id: Company scope
        doc_types: Document types visible to the caller

    Returns:
        LedgerBalance: Totals, zero when there are no entries
    """
    with tracer.start_as_current_span("sum_ledger") as span:
        span.set_attribute("customer_id", customer_id)
        span.set_attribute("company_id", company_id)

        query = select(
            func.coalesce(func.sum(CustomerLedgerEntry.debit), 0),
            func.coalesce(func.sum(CustomerLedgerEntry.credit), 0)
        ).where(
            CustomerLedgerEntry.customer_id == customer_id,
            CustomerLedgerEntry.company_id == company_id,
            CustomerLedgerEntry.doc_type.in_(list(doc_types)),
            CustomerLedgerEntry.is_voided.is_(False)
        )

        result = await session.execute(query)
        total_debit, total_credit = result.one()

        return LedgerBalance(
            total_debit=to_decimal(total_debit),
            total_credit=to_decimal(total_credit)
        )


def reconcile(used_from_ledger: Decimal, cached_balance: Decimal) -> Reconciliation:
    """
    Compare the ledger balance with the cached balance.

    Drift up to ``RECONCILIATION_TOLERANCE`` inclusive counts as equal.
    """
    difference = abs(used_from_ledger - cached_balance)
    return Reconciliation(
        needs_reconciliation=difference > RECONCILIATION_TOLERANCE,
        difference=difference
    )
