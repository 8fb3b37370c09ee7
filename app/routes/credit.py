# ==== CREDIT ROUTES MODULE ==== #

"""
Credit routes for order validation and list-view status.

This module exposes the full credit validation used before an order is
committed and the quick status used by customer lists, both scoped to the
company of the request.
"""

from fastapi import APIRouter, Depends, Query, Request

from app.business.visibility import VisibilityMode
from app.middleware.company_scope import get_company_id
from app.observability.tracing import get_tracer
from app.schemas.credit import (
    BatchQuickStatusRequest,
    BatchQuickStatusResponse,
    CreditValidationRequest,
    CreditValidationResult,
    QuickCreditStatus,
)
from app.services.credit_validator import CreditValidator, get_credit_validator
from app.services.quick_status import QuickStatusService, get_quick_status_service


router = APIRouter()
tracer = get_tracer(__name__)


# ==== FULL VALIDATION ==== #


@router.post("/validate", response_model=CreditValidationResult)
async def validate_credit(
    body: CreditValidationRequest,
    request: Request,
    validator: CreditValidator = Depends(get_credit_validator)
) -> CreditValidationResult:
    """
    Validate whether a customer may place an order.

    Args:
        body (CreditValidationRequest): Customer, amount, scope and override flag
        request (Request): HTTP request object
        validator (CreditValidator): Credit validator dependency

    Returns:
        CreditValidationResult: Decision with every signal behind it
    """
    company_id = get_company_id(request)

    with tracer.start_as_current_span("validate_credit_endpoint") as span:
        span.set_attribute("company_id", company_id)
        span.set_attribute("customer_id", body.customer_id)

        return await validator.validate(
            body.customer_id,
            company_id,
            body.order_amount,
            body.visibility_mode,
            body.caller_id,
            skip_validation=body.skip_validation
        )


# ==== QUICK STATUS ==== #


@router.get("/customers/{customer_id}/quick-status", response_model=QuickCreditStatus)
async def get_quick_status(
    customer_id: str,
    request: Request,
    visibility_mode: VisibilityMode = Query(VisibilityMode.STANDARD),
    service: QuickStatusService = Depends(get_quick_status_service)
) -> QuickCreditStatus:
    """
    Get the quick credit status of one customer.

    Args:
        customer_id (str): Customer identifier
        request (Request): HTTP request object
        visibility_mode (VisibilityMode): Document scope
        service (QuickStatusService): Quick status service dependency

    Returns:
        QuickCreditStatus: Colour and label for list rendering
    """
    company_id = get_company_id(request)
    return await service.get_quick_status(customer_id, company_id, visibility_mode)


@router.post("/quick-status/batch", response_model=BatchQuickStatusResponse)
async def get_batch_quick_status(
    body: BatchQuickStatusRequest,
    request: Request,
    service: QuickStatusService = Depends(get_quick_status_service)
) -> BatchQuickStatusResponse:
    """Get quick credit status for a page of customers."""
    company_id = get_company_id(request)

    with tracer.start_as_current_span("batch_quick_status_endpoint") as span:
        span.set_attribute("company_id", company_id)
        span.set_attribute("customer_count", len(body.customer_ids))

        statuses = await service.get_batch_quick_status(
            body.customer_ids,
            company_id,
            body.visibility_mode
        )
        return BatchQuickStatusResponse(statuses=statuses)
