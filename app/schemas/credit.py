"""Pydantic schemas for credit validation results and requests."""

import datetime as dt
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.business.credit_codes import Decision, StatusColor
from app.business.money import ZERO
from app.business.visibility import VisibilityMode


# ==== SUB-STATUSES ==== #


class CreditStatus(BaseModel):
    """Credit limit usage derived from the ledger and the cached balance."""

    limit: Decimal = ZERO
    used_from_ledger: Decimal = ZERO
    cached_debt: Decimal = ZERO
    available: Decimal = ZERO
    utilization_percent: Decimal = ZERO
    needs_reconciliation: bool = False
    difference_amount: Decimal = ZERO


class OverdueInvoiceInfo(BaseModel):
    """Invoice past due beyond the grace period."""

    id: int
    number: str
    total: Decimal
    pending_balance: Decimal
    due_date: dt.date
    days_overdue: int


class AgingBucket(BaseModel):
    """Day range of receivables age with its accumulated balance."""

    label: str
    min_days: Optional[int] = None  # None: open lower bound
    max_days: Optional[int] = None  # None: open upper bound
    amount: Decimal = ZERO
    count: int = 0

    def contains(self, days: int) -> bool:
        """Whether an invoice ``days`` past due belongs to this bucket."""
        if self.min_days is not None and days < self.min_days:
            return False
        if self.max_days is not None and days > self.max_days:
            return False
        return True


class OverdueStatus(BaseModel):
    """Overdue receivables and their aging."""

    has_overdue: bool = False
    overdue_amount: Decimal = ZERO
    oldest_overdue_days: int = 0
    overdue_invoices: List[OverdueInvoiceInfo] = Field(default_factory=list)
    aging_buckets: List[AgingBucket] = Field(default_factory=list)


class CheckPortfolioStatus(BaseModel):
    """Post-dated instruments still held for the customer."""

    total_in_portfolio: Decimal = ZERO
    count: int = 0
    exceeds_limit: bool = False
    limit: Optional[Decimal] = None
    next_maturity: Optional[dt.date] = None
    maturing_within_30_days: int = 0


class BlockStatus(BaseModel):
    """Explicit account block."""

    is_blocked: bool = False
    reason: Optional[str] = None
    blocked_at: Optional[dt.datetime] = None
    block_type: Optional[str] = None


class CustomerInfo(BaseModel):
    """Customer identity echoed back for rendering."""

    id: str
    name: str
    tax_id: Optional[str] = None
    payment_terms_days: int = 0


# ==== RESULTS ==== #


class CreditValidationResult(BaseModel):
    """Decision of a full credit validation with every signal behind it."""

    can_proceed: bool
    requires_override: bool
    decision: Decision
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    credit_status: CreditStatus = Field(default_factory=CreditStatus)
    overdue_status: OverdueStatus = Field(default_factory=OverdueStatus)
    check_status: CheckPortfolioStatus = Field(default_factory=CheckPortfolioStatus)
    block_status: BlockStatus = Field(default_factory=BlockStatus)
    customer_info: CustomerInfo

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "can_proceed": False,
                "requires_override": False,
                "decision": "BLOCKED",
                "warnings": [],
                "errors": ["Credit limit exceeded by $1000.00"],
                "credit_status": {
                    "limit": "10000.00",
                    "used_from_ledger": "8000.00",
                    "cached_debt": "8000.00",
                    "available": "0",
                    "utilization_percent": "110.00",
                    "needs_reconciliation": False,
                    "difference_amount": "0.00"
                },
                "customer_info": {
                    "id": "cus-001",
                    "name": "Acme Distribution",
                    "tax_id": "30-71234567-9",
                    "payment_terms_days": 30
                }
            }
        }
    )


class QuickCreditStatus(BaseModel):
    """Cheap status for list views."""

    has_credit: bool
    is_blocked: bool
    has_overdue: bool
    utilization_percent: Decimal
    status_color: StatusColor
    status_label: str


# ==== REQUESTS ==== #


class CreditValidationRequest(BaseModel):
    """Body of a full validation request."""

    customer_id: str = Field(..., min_length=1, max_length=64)
    order_amount: Decimal = Field(..., ge=0, max_digits=18, decimal_places=2)
    visibility_mode: VisibilityMode = VisibilityMode.STANDARD
    caller_id: int
    skip_validation: bool = False


class BatchQuickStatusRequest(BaseModel):
    """Body of a batch quick status request."""

    customer_ids: List[str] = Field(..., max_length=500)
    visibility_mode: VisibilityMode = VisibilityMode.STANDARD


class BatchQuickStatusResponse(BaseModel):
    """Quick status for every requested customer id."""

    statuses: Dict[str, QuickCreditStatus]
