# ==== OVERDUE ANALYZER SERVICE ==== #

"""
Overdue receivables analysis and aging.

A single read returns every pending invoice of a customer; the same rows feed
both the overdue selection (past the grace period) and the aging
distribution (every pending invoice, overdue or not).
"""

import datetime as dt
from typing import Dict, Iterable, List, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.business.credit_codes import PENDING_INVOICE_STATUSES
from app.business.money import ZERO, to_decimal
from app.observability.tracing import get_tracer
from app.schemas.credit import AgingBucket, OverdueInvoiceInfo, OverdueStatus
from app.services.policy_loader import CreditPolicy
from app.storage.models import SalesInvoice


tracer = get_tracer(__name__)


def _pending_statuses() -> List[str]:
    return [status.value for status in PENDING_INVOICE_STATUSES]


# ==== STORE READS ==== #


async def fetch_pending_invoices(
    session: AsyncSession,
    customer_id: str,
    company_id: int,
    doc_types: Sequence[str]
) -> List[SalesInvoice]:
    """
    Fetch pending invoices with a due date, oldest due date first.

    Args:
        session: Read session
        customer_id: Customer identifier
        company_id: Company scope
        doc_types: Document types visible to the caller

    Returns:
        List[SalesInvoice]: Issued or partially collected invoices with a
            positive pending balance
    """
    with tracer.start_as_current_span("fetch_pending_invoices") as span:
        span.set_attribute("customer_id", customer_id)
        span.set_attribute("company_id", company_id)

        query = select(SalesInvoice).where(
            SalesInvoice.customer_id == customer_id,
            SalesInvoice.company_id == company_id,
            SalesInvoice.doc_type.in_(list(doc_types)),
            SalesInvoice.status.in_(_pending_statuses()),
            SalesInvoice.pending_balance > 0,
            SalesInvoice.due_date.is_not(None)
        ).order_by(SalesInvoice.due_date.asc(), SalesInvoice.id.asc())

        result = await session.execute(query)
        invoices = list(result.scalars().all())

        span.set_attribute("pending_invoices", len(invoices))
        return invoices


async def count_overdue_invoices(
    session: AsyncSession,
    customer_id: str,
    company_id: int,
    doc_types: Sequence[str],
    today: dt.date
) -> int:
    """Count pending invoices due strictly before ``today``."""
    query = select(func.count(SalesInvoice.id)).where(
        SalesInvoice.customer_id == customer_id,
        SalesInvoice.company_id == company_id,
        SalesInvoice.doc_type.in_(list(doc_types)),
        SalesInvoice.status.in_(_pending_statuses()),
        SalesInvoice.pending_balance > 0,
        SalesInvoice.due_date < today
    )
    result = await session.execute(query)
    return int(result.scalar_one())


async def count_overdue_by_customer(
    session: AsyncSession,
    customer_ids: Iterable[str],
    company_id: int,
    doc_types: Sequence[str],
    today: dt.date
) -> Dict[str, int]:
    """
    Count pending invoices due before ``today`` for many customers at once.

    Customers without overdue invoices are absent from the mapping.
    """
    ids = list(customer_ids)
    if not ids:
        return {}

    query = select(
        SalesInvoice.customer_id,
        func.count(SalesInvoice.id)
    ).where(
        SalesInvoice.customer_id.in_(ids),
        SalesInvoice.company_id == company_id,
        SalesInvoice.doc_type.in_(list(doc_types)),
        SalesInvoice.status.in_(_pending_statuses()),
        SalesInvoice.pending_balance > 0,
        SalesInvoice.due_date < today
    ).group_by(SalesInvoice.customer_id)

    result = await session.execute(query)
    return {customer_id: int(count) for customer_id, count in result.all()}


# ==== OVERDUE SELECTION ==== #


def days_past_due(due_date: dt.date | dt.datetime, today: dt.date) -> int:
    """Whole days between a due date and today; negative when not yet due."""
    if isinstance(due_date, dt.datetime):
        due_date = due_date.date()
    return (today - due_date).days


def select_overdue(
    invoices: Iterable[SalesInvoice],
    today: dt.date,
    grace_days: int = 0
) -> List[OverdueInvoiceInfo]:
    """
    Select invoices past due beyond the grace period.

    An invoice is overdue when ``days_overdue > grace_days``, that is its due
    date falls before ``today - grace_days``.
    """
    overdue = []
    for invoice in invoices:
        if invoice.due_date is None:
            continue
        days = days_past_due(invoice.due_date, today)
        if days > grace_days:
            overdue.append(OverdueInvoiceInfo(
                id=invoice.id,
                number=invoice.number,
                total=to_decimal(invoice.total),
                pending_balance=to_decimal(invoice.pending_balance),
                due_date=invoice.due_date,
                days_overdue=days
            ))
    return overdue


# ==== AGING ==== #


def build_aging_buckets(boundaries: Sequence[int]) -> List[AgingBucket]:
    """
    Build empty aging buckets from ascending day boundaries.

    ``[30, 60]`` gives ``Current``, ``1–30 days``, ``31–60 days`` and
    ``> 60 days``.
    """
    buckets = [AgingBucket(label="Current", min_days=None, max_days=0)]

    previous = 0
    for boundary in boundaries:
        buckets.append(AgingBucket(
            label=f"{previous + 1}–{boundary} days",
            min_days=previous + 1,
            max_days=boundary
        ))
        previous = boundary

    buckets.append(AgingBucket(label=f"> {previous} days", min_days=previous + 1, max_days=None))
    return buckets


def calculate_aging(
    invoices: Iterable[SalesInvoice],
    boundaries: Sequence[int],
    today: dt.date
) -> List[AgingBucket]:
    """
    Distribute pending invoices into aging buckets.

    Every invoice with a due date lands in exactly one bucket (first match),
    so bucket amounts add up to the total pending balance.
    """
    buckets = build_aging_buckets(boundaries)

    for invoice in invoices:
        if invoice.due_date is None:
            continue
        days = days_past_due(invoice.due_date, today)
        for bucket in buckets:
            if bucket.contains(days):
                bucket.amount += to_decimal(invoice.pending_balance)
                bucket.count += 1
                break

    return buckets


def analyze_overdue(
    invoices: Sequence[SalesInvoice],
    policy: CreditPolicy,
    today: dt.date
) -> OverdueStatus:
    """
    Build the overdue status of a customer.

    Args:
        invoices: Pending invoices from ``fetch_pending_invoices``
        policy: Effective company policy (grace days, aging switches)
        today: Evaluation date

    Returns:
        OverdueStatus: Overdue totals, invoices and aging when enabled
    """
    overdue = select_overdue(invoices, today, policy.overdue_grace_days)

    overdue_amount = sum((info.pending_balance for info in overdue), ZERO)
    oldest = max((info.days_overdue for info in overdue), default=0)

    aging = calculate_aging(invoices, policy.aging_buckets, today) if policy.aging_enabled else []

    return OverdueStatus(
        has_overdue=bool(overdue),
        overdue_amount=overdue_amount,
        oldest_overdue_days=oldest,
        overdue_invoices=overdue,
        aging_buckets=aging
    )
