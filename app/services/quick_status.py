# ==== QUICK STATUS SERVICE ==== #

"""
Quick credit status for list views.

Quick status avoids the ledger entirely: it classifies a customer from the
cached balance, the block flag and a count of overdue invoices (due before
today, without grace). The batch variant resolves any number of customers
with two aggregate reads.
"""

import asyncio
import datetime as dt
from decimal import Decimal
from typing import Dict, Iterable, Optional

from app.business.credit_codes import QuickStatusLabel, StatusColor
from app.business.errors import CreditDataSourceError
from app.business.money import HUNDRED, cap_percent, percent_of, to_decimal
from app.business.visibility import VisibilityMode, doc_type_values
from app.observability.logging import ContextualLogger
from app.observability.metrics import (
    credit_data_source_errors_total,
    quick_status_customers_total,
    quick_status_lookups_total,
)
from app.observability.tracing import get_tracer
from app.schemas.credit import QuickCreditStatus
from app.services.customer_accounts import fetch_company_customer, fetch_company_customers
from app.services.overdue_analyzer import count_overdue_by_customer, count_overdue_invoices
from app.storage.db import SessionFactory, get_session
from app.storage.models import Customer


tracer = get_tracer(__name__)
logger = ContextualLogger(__name__)

# Utilization at or above this percent is flagged as high credit
HIGH_UTILIZATION_PERCENT = Decimal("80")


# ==== CLASSIFICATION ==== #


def classify(customer: Customer, overdue_count: int) -> QuickCreditStatus:
    """
    Classify a customer for list views.

    Priority: blocked, in arrears, no usable credit, high utilization, OK.

    Args:
        customer: Customer row with limit, cached balance and block flag
        overdue_count: Pending invoices due before today

    Returns:
        QuickCreditStatus: Colour and label for rendering
    """
    limit = to_decimal(customer.credit_limit)
    balance = to_decimal(customer.current_balance)

    utilization = percent_of(balance, limit)
    has_credit = limit > 0 and balance < limit
    has_overdue = overdue_count > 0

    if customer.is_blocked:
        color, label = StatusColor.RED, QuickStatusLabel.BLOCKED
    elif has_overdue:
        color, label = StatusColor.RED, QuickStatusLabel.IN_ARREARS
    elif not has_credit:
        color, label = StatusColor.RED, QuickStatusLabel.NO_CREDIT
    elif utilization >= HIGH_UTILIZATION_PERCENT:
        color, label = StatusColor.YELLOW, QuickStatusLabel.HIGH_CREDIT
    else:
        color, label = StatusColor.GREEN, QuickStatusLabel.OK

    return QuickCreditStatus(
        has_credit=has_credit,
        is_blocked=bool(customer.is_blocked),
        has_overdue=has_overdue,
        utilization_percent=cap_percent(utilization),
        status_color=color,
        status_label=label.value
    )


def not_found_status() -> QuickCreditStatus:
    """Status for an id that does not resolve in the company."""
    return QuickCreditStatus(
        has_credit=False,
        is_blocked=True,
        has_overdue=False,
        utilization_percent=cap_percent(HUNDRED),
        status_color=StatusColor.RED,
        status_label=QuickStatusLabel.NOT_FOUND.value
    )


# ==== QUICK STATUS SERVICE CLASS ==== #


class QuickStatusService:
    """Service computing quick credit status for one or many customers."""

    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    async def get_quick_status(
        self,
        customer_id: str,
        company_id: int,
        visibility_mode: VisibilityMode | str = VisibilityMode.STANDARD
    ) -> QuickCreditStatus:
        """
        Get the quick status of one customer.

        Raises:
            ValueError: If ``visibility_mode`` is unknown
            CreditDataSourceError: If the store cannot be read
        """
        doc_types = doc_type_values(visibility_mode)
        today = dt.date.today()

        with tracer.start_as_current_span("quick_status") as span:
            span.set_attribute("company_id", company_id)
            span.set_attribute("customer_id", customer_id)

            quick_status_lookups_total.labels(company=str(company_id), mode="single").inc()

            try:
                async with self._session_factory() as session:
                    customer = await fetch_company_customer(session, customer_id, company_id)
                    if customer is None:
                        status = not_found_status()
                    else:
                        overdue_count = await count_overdue_invoices(
                            session, customer_id, company_id, doc_types, today
                        )
                        status = classify(customer, overdue_count)
            except Exception as exc:
                raise self._data_source_error("quick_status", exc) from exc

            quick_status_customers_total.labels(
                company=str(company_id), label=status.status_label
            ).inc()
            span.set_attribute("status_label", status.status_label)
            return status

    async def get_batch_quick_status(
        self,
        customer_ids: Iterable[str],
        company_id: int,
        visibility_mode: VisibilityMode | str = VisibilityMode.STANDARD
    ) -> Dict[str, QuickCreditStatus]:
        """
        Get quick status for many customers with two concurrent reads.

        Every requested id gets an entry; ids that do not resolve in the
        company are reported as not found. An empty request touches nothing.

        Args:
            customer_ids: Requested customer ids, duplicates allowed
            company_id: Company scope
            visibility_mode: Document scope of the caller

        Returns:
            Dict[str, QuickCreditStatus]: Status keyed by customer id
        """
        ids = list(dict.fromkeys(customer_ids))
        if not ids:
            return {}

        doc_types = doc_type_values(visibility_mode)
        today = dt.date.today()

        with tracer.start_as_current_span("quick_status_batch") as span:
            span.set_attribute("company_id", company_id)
            span.set_attribute("customer_count", len(ids))

            quick_status_lookups_total.labels(company=str(company_id), mode="batch").inc()

            customers, overdue_counts = await self._read_batch(ids, company_id, doc_types, today)

            statuses: Dict[str, QuickCreditStatus] = {}
            for customer_id in ids:
                customer = customers.get(customer_id)
                if customer is None:
                    statuses[customer_id] = not_found_status()
                else:
                    statuses[customer_id] = classify(customer, overdue_counts.get(customer_id, 0))

                quick_status_customers_total.labels(
                    company=str(company_id), label=statuses[customer_id].status_label
                ).inc()

            logger.debug(
                "Batch quick status computed",
                company_id=company_id,
                requested=len(ids),
                resolved=len(customers)
            )
            return statuses

    async def _read_batch(self, ids, company_id, doc_types, today):
        async def read_customers():
            async with self._session_factory() as session:
                return await fetch_company_customers(session, ids, company_id)

        async def read_overdue_counts():
            async with self._session_factory() as session:
                return await count_overdue_by_customer(session, ids, company_id, doc_types, today)

        try:
            async with asyncio.TaskGroup() as tg:
                customers = tg.create_task(read_customers())
                overdue_counts = tg.create_task(read_overdue_counts())
        except ExceptionGroup as group:
            exc = group.exceptions[0]
            raise self._data_source_error("quick_status_batch", exc) from exc

        return customers.result(), overdue_counts.result()

    @staticmethod
    def _data_source_error(reader: str, exc: BaseException) -> CreditDataSourceError:
        credit_data_source_errors_total.labels(reader=reader).inc()
        logger.error(
            "Quick status read failed",
            reader=reader,
            error=str(exc),
            error_type=type(exc).__name__
        )
        return CreditDataSourceError(f"Failed to read {reader}: {exc}", reader=reader)


# ==== GLOBAL SERVICE INSTANCE ==== #


_quick_status_service: Optional[QuickStatusService] = None


def get_quick_status_service() -> QuickStatusService:
    """Get global quick status service instance."""
    global _quick_status_service
    if _quick_status_service is None:
        _quick_status_service = QuickStatusService()
    return _quick_status_service
