"""Customer account reads shared by the full validation and quick status."""

from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.storage.models import Customer


async def fetch_customer(session: AsyncSession, customer_id: str) -> Optional[Customer]:
    """
    Fetch a customer by id regardless of company.

    Callers compare ``company_id`` themselves and report a mismatch.
    """
    query = select(Customer).where(Customer.id == customer_id)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def fetch_company_customer(
    session: AsyncSession,
    customer_id: str,
    company_id: int
) -> Optional[Customer]:
    """Fetch a customer inside a company scope."""
    query = select(Customer).where(
        Customer.id == customer_id,
        Customer.company_id == company_id
    )
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def fetch_company_customers(
    session: AsyncSession,
    customer_ids: Iterable[str],
    company_id: int
) -> Dict[str, Customer]:
    """Fetch several customers of a company in one query, keyed by id."""
    ids = list(customer_ids)
    if not ids:
        return {}

    query = select(Customer).where(
        Customer.id.in_(ids),
        Customer.company_id == company_id
    )
    result = await session.execute(query)
    return {customer.id: customer for customer in result.scalars().all()}
