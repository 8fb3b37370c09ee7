# ==== CHECK PORTFOLIO TRACKER ==== #

"""
Post-dated instrument (check) portfolio of a customer.

Instruments reach a customer through their payment, so every query joins
``payment_instruments`` to ``customer_payments`` and applies the customer,
company and document-type scope on the payment side.
"""

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.business.credit_codes import InstrumentStatus
from app.business.money import ZERO, to_decimal
from app.observability.tracing import get_tracer
from app.schemas.credit import CheckPortfolioStatus
from app.services.policy_loader import CreditPolicy
from app.storage.models import Customer, CustomerPayment, PaymentInstrument


tracer = get_tracer(__name__)

NEAR_TERM_DAYS = 30


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Raw portfolio figures before the limit is applied."""

    total: Decimal = ZERO
    count: int = 0
    next_maturity: Optional[dt.date] = None
    maturing_within_30_days: int = 0


def _in_portfolio(query, customer_id: str, company_id: int, doc_types: Sequence[str]):
    return query.join(
        CustomerPayment, PaymentInstrument.payment_id == CustomerPayment.id
    ).where(
        CustomerPayment.customer_id == customer_id,
        CustomerPayment.company_id == company_id,
        CustomerPayment.doc_type.in_(list(doc_types)),
        PaymentInstrument.status == InstrumentStatus.IN_PORTFOLIO.value
    )


async def fetch_portfolio(
    session: AsyncSession,
    customer_id: str,
    company_id: int,
    doc_types: Sequence[str],
    today: dt.date
) -> PortfolioSnapshot:
    """
    Read the customer's in-portfolio instruments.

    Args:
        session: Read session
        customer_id: Customer identifier
        company_id: Company scope
        doc_types: Document types visible to the caller
        today: Evaluation date for the maturity figures

    Returns:
        PortfolioSnapshot: Total, count, nearest maturity and near-term count
    """
    with tracer.start_as_current_span("fetch_check_portfolio") as span:
        span.set_attribute("customer_id", customer_id)
        span.set_attribute("company_id", company_id)

        totals_query = _in_portfolio(
            select(
                func.coalesce(func.sum(PaymentInstrument.amount), 0),
                func.count(PaymentInstrument.id)
            ),
            customer_id, company_id, doc_types
        )
        total, count = (await session.execute(totals_query)).one()

        next_maturity_query = _in_portfolio(
            select(func.min(PaymentInstrument.maturity_date)),
            customer_id, company_id, doc_types
        ).where(PaymentInstrument.maturity_date >= today)
        next_maturity = (await session.execute(next_maturity_query)).scalar_one_or_none()

        near_term_query = _in_portfolio(
            select(func.count(PaymentInstrument.id)),
            customer_id, company_id, doc_types
        ).where(
            PaymentInstrument.maturity_date >= today,
            PaymentInstrument.maturity_date <= today + dt.timedelta(days=NEAR_TERM_DAYS)
        )
        near_term = (await session.execute(near_term_query)).scalar_one()

        span.set_attribute("instruments", int(count))

        return PortfolioSnapshot(
            total=to_decimal(total),
            count=int(count),
            next_maturity=next_maturity,
            maturing_within_30_days=int(near_term)
        )


def resolve_check_limit(customer: Customer, policy: CreditPolicy) -> Optional[Decimal]:
    """
    Pick the portfolio limit for a customer.

    The customer's own limit applies when ``has_check_limit`` is set, the
    company default otherwise; None when neither is configured.
    """
    if customer.has_check_limit and customer.check_limit is not None:
        return to_decimal(customer.check_limit)
    return policy.default_check_limit


def evaluate_portfolio(snapshot: PortfolioSnapshot, limit: Optional[Decimal]) -> CheckPortfolioStatus:
    """Compare the portfolio total with its limit; a zero or missing limit never trips."""
    exceeds = limit is not None and not limit.is_zero() and snapshot.total > limit
    return CheckPortfolioStatus(
        total_in_portfolio=snapshot.total,
        count=snapshot.count,
        exceeds_limit=exceeds,
        limit=limit,
        next_maturity=snapshot.next_maturity,
        maturing_within_30_days=snapshot.maturing_within_30_days
    )
