"""Block status of a customer account."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.business.credit_codes import BlockType
from app.schemas.credit import BlockStatus
from app.storage.models import Customer, CustomerBlockHistory


async def fetch_open_block_type(
    session: AsyncSession,
    customer_id: str,
    company_id: int
) -> Optional[str]:
    """Block type of the most recent block still open, if any."""
    query = select(CustomerBlockHistory.block_type).where(
        CustomerBlockHistory.customer_id == customer_id,
        CustomerBlockHistory.company_id == company_id,
        CustomerBlockHistory.unblocked_at.is_(None)
    ).order_by(
        CustomerBlockHistory.blocked_at.desc(),
        CustomerBlockHistory.id.desc()
    ).limit(1)

    result = await session.execute(query)
    return result.scalar_one_or_none()


def resolve_block_status(customer: Customer, open_block_type: Optional[str]) -> BlockStatus:
    """
    Build the block status from the customer flags.

    The history block type is used only when the account is blocked;
    ``MANUAL`` when no open record exists.
    """
    if not customer.is_blocked:
        return BlockStatus(is_blocked=False)

    return BlockStatus(
        is_blocked=True,
        reason=customer.blocked_reason,
        blocked_at=customer.blocked_at,
        block_type=open_block_type or BlockType.MANUAL.value
    )
