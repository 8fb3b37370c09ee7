# ==== CREDIT VALIDATOR SERVICE ==== #

"""
Full credit validation for Credit Gate.

This module orchestrates one validation: it issues every read the decision
needs concurrently, each on its own session, joins them under a single
deadline and hands the results to the policy evaluator. A failed or slow
read aborts the whole validation with ``CreditDataSourceError``; a decision
is never made on partial data.
"""

import asyncio
import datetime as dt
import time
from typing import Any, Awaitable, Callable, Optional

from app.business.credit_codes import Decision
from app.business.errors import CreditDataSourceError, InvalidAmountError
from app.business.money import AmountLike, to_decimal
from app.business.visibility import VisibilityMode, doc_type_values
from app.observability.logging import ContextualLogger, log_business_event, log_performance
from app.observability.metrics import (
    credit_data_source_errors_total,
    credit_overrides_total,
    credit_reconciliation_drift_total,
    credit_validation_duration_seconds,
    credit_validations_total,
)
from app.observability.tracing import get_tracer
from app.schemas.credit import CreditValidationResult, CustomerInfo
from app.services.block_status import fetch_open_block_type, resolve_block_status
from app.services.check_portfolio import evaluate_portfolio, fetch_portfolio, resolve_check_limit
from app.services.customer_accounts import fetch_customer
from app.services.ledger_aggregator import sum_ledger
from app.services.overdue_analyzer import analyze_overdue, fetch_pending_invoices
from app.services.policy_evaluator import PolicyEvaluator, build_credit_status
from app.services.policy_loader import load_credit_policy
from app.settings import settings
from app.storage.db import SessionFactory, get_session


# ==== MODULE INITIALIZATION ==== #


tracer = get_tracer(__name__)
logger = ContextualLogger(__name__)

_UNSET: Any = object()

NOT_FOUND_ERROR = "Customer not found"
UNKNOWN_CUSTOMER_NAME = "Unknown"


def not_found_result(customer_id: str) -> CreditValidationResult:
    """Worst-case result for a customer id that does not resolve."""
    return CreditValidationResult(
        can_proceed=False,
        requires_override=False,
        decision=Decision.BLOCKED,
        warnings=[],
        errors=[NOT_FOUND_ERROR],
        customer_info=CustomerInfo(
            id=customer_id,
            name=UNKNOWN_CUSTOMER_NAME,
            tax_id=None,
            payment_terms_days=0
        )
    )


# ==== CREDIT VALIDATOR CLASS ==== #


class CreditValidator:
    """
    Validator deciding whether a customer may place an order.

    Each read opens its own session from ``session_factory``; reads run as an
    ``asyncio.TaskGroup`` under ``asyncio.timeout``, so a failed read cancels
    its siblings and caller cancellation reaches every in-flight query.
    """

    def __init__(
        self,
        session_factory: SessionFactory = get_session,
        evaluator: Optional[PolicyEvaluator] = None,
        timeout_seconds: Optional[float] = _UNSET
    ):
        """
        Initialize the validator.

        Args:
            session_factory: Callable returning an async context manager
                that yields a read session
            evaluator: Policy evaluator, a default one when omitted
            timeout_seconds: Deadline for the concurrent reads; defaults to
                ``CREDIT_READ_TIMEOUT_SECONDS``, None disables it
        """
        self._session_factory = session_factory
        self._evaluator = evaluator or PolicyEvaluator()
        if timeout_seconds is _UNSET:
            timeout_seconds = settings.CREDIT_READ_TIMEOUT_SECONDS
        self._timeout_seconds = timeout_seconds

    async def validate(
        self,
        customer_id: str,
        company_id: int,
        order_amount: AmountLike,
        visibility_mode: VisibilityMode | str,
        caller_id: int,
        skip_validation: bool = False
    ) -> CreditValidationResult:
        """
        Run a full credit validation.

        Args:
            customer_id: Customer placing the order
            company_id: Company scope of the caller
            order_amount: Amount of the order being validated
            visibility_mode: Document scope of the caller
            caller_id: User requesting the validation, recorded on overrides
            skip_validation: Privileged override; still returns diagnostics

        Returns:
            CreditValidationResult: Decision with every signal behind it

        Raises:
            InvalidAmountError: If ``order_amount`` is not a valid amount or is negative
            ValueError: If ``visibility_mode`` is unknown
            CreditDataSourceError: If any read fails or the deadline passes
        """
        amount = to_decimal(order_amount)
        if amount < 0:
            raise InvalidAmountError(f"Order amount must not be negative: {order_amount!r}")
        doc_types = doc_type_values(visibility_mode)
        today = dt.date.today()
        start_time = time.perf_counter()

        with tracer.start_as_current_span("credit_validation") as span:
            span.set_attribute("company_id", company_id)
            span.set_attribute("customer_id", customer_id)
            span.set_attribute("skip_validation", skip_validation)

            customer, policy, ledger, invoices, snapshot, open_block_type = await self._gather(
                customer_id, company_id, doc_types, today
            )

            if customer is None:
                result = not_found_result(customer_id)
                self._record(result, company_id, customer_id, caller_id, start_time)
                span.set_attribute("decision", result.decision.value)
                return result

            credit_status = build_credit_status(customer, ledger, amount)
            overdue_status = analyze_overdue(invoices, policy, today)
            check_status = evaluate_portfolio(snapshot, resolve_check_limit(customer, policy))
            block_status = resolve_block_status(customer, open_block_type)

            verdict = self._evaluator.evaluate(
                policy=policy,
                credit_status=credit_status,
                overdue_status=overdue_status,
                check_status=check_status,
                block_status=block_status,
                order_amount=amount,
                company_mismatch=customer.company_id != company_id,
                skip_validation=skip_validation
            )

            result = CreditValidationResult(
                can_proceed=verdict.can_proceed,
                requires_override=verdict.requires_override,
                decision=verdict.decision,
                warnings=verdict.warnings,
                errors=verdict.errors,
                credit_status=credit_status,
                overdue_status=overdue_status,
                check_status=check_status,
                block_status=block_status,
                customer_info=CustomerInfo(
                    id=customer.id,
                    name=customer.display_name,
                    tax_id=customer.tax_id,
                    payment_terms_days=customer.payment_terms_days or 0
                )
            )

            if credit_status.needs_reconciliation:
                credit_reconciliation_drift_total.labels(company=str(company_id)).inc()

            if skip_validation:
                # Audit trail: record what the override suppressed
                suppressed = self._evaluator.evaluate(
                    policy=policy,
                    credit_status=credit_status,
                    overdue_status=overdue_status,
                    check_status=check_status,
                    block_status=block_status,
                    order_amount=amount,
                    company_mismatch=customer.company_id != company_id
                )
                credit_overrides_total.labels(company=str(company_id)).inc()
                logger.warning(
                    "Credit validation bypassed by override",
                    company_id=company_id,
                    customer_id=customer_id,
                    caller_id=caller_id,
                    order_amount=str(amount),
                    suppressed_decision=suppressed.decision.value,
                    suppressed_errors=suppressed.errors
                )

            self._record(result, company_id, customer_id, caller_id, start_time)
            span.set_attribute("decision", result.decision.value)
            return result

    # ==== CONCURRENT READS ==== #

    async def _gather(
        self,
        customer_id: str,
        company_id: int,
        doc_types: list[str],
        today: dt.date
    ) -> tuple:
        """Issue every read of one validation concurrently and join them."""
        try:
            async with asyncio.timeout(self._timeout_seconds):
                async with asyncio.TaskGroup() as tg:
                    customer = tg.create_task(self._read(
                        "customer", lambda s: fetch_customer(s, customer_id)
                    ))
                    policy = tg.create_task(self._read(
                        "policy", lambda s: load_credit_policy(s, company_id)
                    ))
                    ledger = tg.create_task(self._read(
                        "ledger", lambda s: sum_ledger(s, customer_id, company_id, doc_types)
                    ))
                    invoices = tg.create_task(self._read(
                        "invoices", lambda s: fetch_pending_invoices(s, customer_id, company_id, doc_types)
                    ))
                    portfolio = tg.create_task(self._read(
                        "check_portfolio", lambda s: fetch_portfolio(s, customer_id, company_id, doc_types, today)
                    ))
                    block_history = tg.create_task(self._read(
                        "block_history", lambda s: fetch_open_block_type(s, customer_id, company_id)
                    ))

        except TimeoutError as exc:
            credit_data_source_errors_total.labels(reader="timeout").inc()
            logger.error(
                "Credit reads timed out",
                company_id=company_id,
                customer_id=customer_id,
                timeout_seconds=self._timeout_seconds
            )
            raise CreditDataSourceError(
                f"Credit data reads exceeded {self._timeout_seconds}s",
                reader="timeout"
            ) from exc

        except ExceptionGroup as group:
            # Every read wraps its failures, so the group only holds CreditDataSourceError
            raise group.exceptions[0]

        return (
            customer.result(),
            policy.result(),
            ledger.result(),
            invoices.result(),
            portfolio.result(),
            block_history.result()
        )

    async def _read(self, reader: str, query: Callable[[Any], Awaitable[Any]]) -> Any:
        """Run one read on its own session, wrapping failures."""
        try:
            async with self._session_factory() as session:
                return await query(session)
        except Exception as exc:
            credit_data_source_errors_total.labels(reader=reader).inc()
            logger.error(
                "Credit data read failed",
                reader=reader,
                error=str(exc),
                error_type=type(exc).__name__
            )
            raise CreditDataSourceError(f"Failed to read {reader}: {exc}", reader=reader) from exc

    # ==== OBSERVABILITY ==== #

    def _record(
        self,
        result: CreditValidationResult,
        company_id: int,
        customer_id: str,
        caller_id: int,
        start_time: float
    ) -> None:
        duration = time.perf_counter() - start_time
        company = str(company_id)

        credit_validations_total.labels(company=company, decision=result.decision.value).inc()
        credit_validation_duration_seconds.labels(company=company).observe(duration)

        log_performance("credit_validation", duration, company_id=company_id, customer_id=customer_id)
        log_business_event(
            "credit_validation",
            company_id,
            customer_id=customer_id,
            caller_id=caller_id,
            decision=result.decision.value,
            can_proceed=result.can_proceed,
            errors=len(result.errors),
            warnings=len(result.warnings),
            duration_ms=round(duration * 1000, 2)
        )


# ==== GLOBAL SERVICE INSTANCE ==== #


_credit_validator: Optional[CreditValidator] = None


def get_credit_validator() -> CreditValidator:
    """
    Get global credit validator instance.

    Returns:
        CreditValidator: Global validator bound to the application sessions
    """
    global _credit_validator
    if _credit_validator is None:
        _credit_validator = CreditValidator()
    return _credit_validator


async def validate_credit(
    customer_id: str,
    company_id: int,
    order_amount: AmountLike,
    visibility_mode: VisibilityMode | str = VisibilityMode.STANDARD,
    caller_id: int = 0,
    skip_validation: bool = False
) -> CreditValidationResult:
    """Convenience wrapper around the global validator."""
    return await get_credit_validator().validate(
        customer_id,
        company_id,
        order_amount,
        visibility_mode,
        caller_id,
        skip_validation=skip_validation
    )
