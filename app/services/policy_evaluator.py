# ==== POLICY EVALUATOR SERVICE ==== #

"""
Policy evaluation for credit validation in Credit Gate.

This module turns the signals gathered for one customer (ledger usage,
overdue receivables, check portfolio, account block) into a decision under
the company's credit policy. Errors are blocking; warnings are advisory and
make a blocked decision eligible for a privileged override.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from app.business.credit_codes import Decision
from app.business.money import ZERO, cap_percent, format_money, percent_of, to_decimal
from app.schemas.credit import (
    BlockStatus,
    CheckPortfolioStatus,
    CreditStatus,
    OverdueStatus,
)
from app.services.ledger_aggregator import LedgerBalance, reconcile
from app.services.policy_loader import CreditPolicy
from app.storage.models import Customer


# ==== MESSAGES ==== #


OVERRIDE_WARNING = "Credit validation bypassed by override"
COMPANY_MISMATCH_ERROR = "Customer does not belong to this company"
NO_BLOCK_REASON = "No reason given"


def credit_exceeded_message(exceeded_by: Decimal) -> str:
    return f"Credit limit exceeded by {format_money(exceeded_by)}"


def high_utilization_message(utilization: Decimal) -> str:
    return f"High credit utilization: {utilization:.1f}%"


def overdue_message(overdue: OverdueStatus) -> str:
    return (
        f"Customer has {len(overdue.overdue_invoices)} overdue invoice(s) totaling "
        f"{format_money(overdue.overdue_amount)}, oldest {overdue.oldest_overdue_days} days"
    )


def check_limit_message(check_status: CheckPortfolioStatus) -> str:
    return (
        f"Check portfolio exceeds limit: {format_money(check_status.total_in_portfolio)}"
        f" / {format_money(check_status.limit or ZERO)}"
    )


def reconciliation_message(credit_status: CreditStatus) -> str:
    return (
        f"Balance mismatch detected: cached={format_money(credit_status.cached_debt)}, "
        f"ledger={format_money(credit_status.used_from_ledger)}"
    )


# ==== CREDIT STATUS ==== #


def build_credit_status(customer: Customer, ledger: LedgerBalance, order_amount: Decimal) -> CreditStatus:
    """
    Build the credit status for a projected order.

    ``available`` is clamped at zero for display; utilization includes the
    order and is capped at 999.

    Args:
        customer: Customer row with limit and cached balance
        ledger: Ledger totals in the caller's visibility scope
        order_amount: Amount of the order being validated

    Returns:
        CreditStatus: Limit usage and reconciliation figures
    """
    limit = to_decimal(customer.credit_limit)
    cached = to_decimal(customer.current_balance)
    used = ledger.used

    available = limit - used - order_amount
    reconciliation = reconcile(used, cached)

    return CreditStatus(
        limit=limit,
        used_from_ledger=used,
        cached_debt=cached,
        available=max(available, ZERO),
        utilization_percent=cap_percent(percent_of(used + order_amount, limit)),
        needs_reconciliation=reconciliation.needs_reconciliation,
        difference_amount=reconciliation.difference
    )


# ==== VERDICT ==== #


@dataclass
class Verdict:
    """Aggregated outcome of the policy checks."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    can_proceed: bool = True
    requires_override: bool = False
    decision: Decision = Decision.OK


class PolicyEvaluator:
    """
    Evaluator applying a company credit policy to a customer's signals.

    Checks run in a fixed order: account block, credit limit, overdue
    invoices, check portfolio, reconciliation drift.
    """

    def evaluate(
        self,
        *,
        policy: CreditPolicy,
        credit_status: CreditStatus,
        overdue_status: OverdueStatus,
        check_status: CheckPortfolioStatus,
        block_status: BlockStatus,
        order_amount: Decimal,
        company_mismatch: bool = False,
        skip_validation: bool = False
    ) -> Verdict:
        """
        Evaluate the policy.

        Args:
            policy: Effective company policy
            credit_status: Output of ``build_credit_status``
            overdue_status: Overdue analysis
            check_status: Check portfolio evaluation
            block_status: Account block
            order_amount: Amount of the order being validated
            company_mismatch: Customer belongs to another company
            skip_validation: Privileged override requested by the caller

        Returns:
            Verdict: Errors, warnings and the resulting decision
        """
        if skip_validation:
            return Verdict(
                errors=[],
                warnings=[OVERRIDE_WARNING],
                can_proceed=True,
                requires_override=False,
                decision=Decision.WARN
            )

        errors: List[str] = []
        warnings: List[str] = []

        if company_mismatch:
            errors.append(COMPANY_MISMATCH_ERROR)

        if block_status.is_blocked:
            errors.append(f"Account blocked: {block_status.reason or NO_BLOCK_REASON}")

        if policy.enforce_credit_limit:
            self._check_credit_limit(policy, credit_status, order_amount, errors, warnings)

        if policy.block_on_overdue and overdue_status.has_overdue:
            errors.append(overdue_message(overdue_status))

        if policy.enforce_check_limit and check_status.exceeds_limit:
            warnings.append(check_limit_message(check_status))

        if credit_status.needs_reconciliation:
            warnings.append(reconciliation_message(credit_status))

        return self._verdict(errors, warnings)

    def _check_credit_limit(
        self,
        policy: CreditPolicy,
        credit_status: CreditStatus,
        order_amount: Decimal,
        errors: List[str],
        warnings: List[str]
    ) -> None:
        # credit_status.available is clamped, so the raw figure is recomputed
        projected = credit_status.used_from_ledger + order_amount
        available = credit_status.limit - projected

        if available < ZERO:
            message = credit_exceeded_message(abs(available))
            if policy.block_on_credit_exceeded:
                errors.append(message)
            else:
                warnings.append(message)
            return

        utilization = percent_of(projected, credit_status.limit)
        if utilization >= policy.credit_alert_threshold:
            warnings.append(high_utilization_message(utilization))

    @staticmethod
    def _verdict(errors: List[str], warnings: List[str]) -> Verdict:
        can_proceed = not errors
        requires_override = not can_proceed and bool(warnings)

        if not can_proceed:
            decision = Decision.BLOCKED
        elif warnings:
            decision = Decision.WARN
        else:
            decision = Decision.OK

        return Verdict(
            errors=errors,
            warnings=warnings,
            can_proceed=can_proceed,
            requires_override=requires_override,
            decision=decision
        )
