# ==== POLICY LOADER SERVICE ==== #

"""
Credit policy loader for per-company configuration.

Company policies live in the ``credit_policies`` table. Values a row leaves
empty (grace days, aging boundaries, alert threshold) are filled from the
YAML defaults file once, when the row becomes a frozen ``CreditPolicy``.
An absent row yields a policy with every enforcement switch off.
"""

import functools
import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple

import yaml
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.business.money import to_decimal
from app.observability.logging import ContextualLogger
from app.observability.tracing import get_tracer
from app.settings import settings
from app.storage.models import CreditPolicyConfig


tracer = get_tracer(__name__)
logger = ContextualLogger(__name__)


DEFAULT_POLICY_PATH = os.path.join(
    os.path.dirname(__file__),
    "..",
    "business",
    "policies",
    "default_credit_policy.yaml"
)

FALLBACK_DEFAULTS: Dict[str, Any] = {
    "overdue_grace_days": 0,
    "aging_buckets": [30, 60, 90, 120],
    "credit_alert_threshold": 80,
}


# ==== POLICY MODEL ==== #


@dataclass(frozen=True)
class CreditPolicy:
    """Effective credit policy of one company with defaults applied."""

    enforce_credit_limit: bool = False
    block_on_credit_exceeded: bool = False
    block_on_overdue: bool = False
    overdue_grace_days: int = 0
    aging_enabled: bool = False
    aging_buckets: Tuple[int, ...] = (30, 60, 90, 120)
    credit_alert_threshold: Decimal = Decimal("80")
    enforce_check_limit: bool = False
    default_check_limit: Optional[Decimal] = None


# ==== DEFAULTS LOADING ==== #


@functools.lru_cache(maxsize=1)
def get_policy_defaults() -> Dict[str, Any]:
    """
    Get policy defaults from the YAML file.

    Uses ``CREDIT_POLICY_DEFAULTS_PATH`` when set, the bundled file otherwise.
    A missing file falls back to hardcoded defaults.

    Returns:
        Dict[str, Any]: Grace days, aging boundaries and alert threshold
    """
    config_path = settings.CREDIT_POLICY_DEFAULTS_PATH or DEFAULT_POLICY_PATH

    with tracer.start_as_current_span("load_credit_policy_defaults") as span:
        span.set_attribute("config_path", config_path)

        try:
            with open(config_path, "r") as f:
                loaded = yaml.safe_load(f) or {}

            span.set_attribute("config_loaded", True)
            return {**FALLBACK_DEFAULTS, **loaded}

        except FileNotFoundError:
            span.set_attribute("config_loaded", False)
            span.set_attribute("fallback_used", True)
            logger.warning("Credit policy defaults file not found", path=config_path)

            return dict(FALLBACK_DEFAULTS)


def normalize_aging_buckets(
    boundaries: Optional[Iterable[Any]],
    fallback: Iterable[int]
) -> Tuple[int, ...]:
    """
    Normalize aging boundaries to positive, unique, ascending day counts.

    Args:
        boundaries: Configured boundaries, possibly None or unsorted
        fallback: Boundaries used when nothing usable remains

    Returns:
        Tuple[int, ...]: Sorted boundaries
    """
    cleaned = set()
    for value in boundaries or ():
        if isinstance(value, bool):
            continue
        try:
            days = int(value)
        except (TypeError, ValueError):
            continue
        if days > 0:
            cleaned.add(days)

    if not cleaned:
        return tuple(sorted({int(days) for days in fallback}))

    return tuple(sorted(cleaned))


def build_policy(record: Optional[CreditPolicyConfig]) -> CreditPolicy:
    """
    Turn a ``credit_policies`` row into an effective policy.

    Args:
        record: Policy row of the company, or None when it has none

    Returns:
        CreditPolicy: Frozen policy with defaults applied
    """
    defaults = get_policy_defaults()
    default_buckets = normalize_aging_buckets(defaults["aging_buckets"], FALLBACK_DEFAULTS["aging_buckets"])
    default_grace = max(int(defaults["overdue_grace_days"]), 0)
    default_threshold = to_decimal(defaults["credit_alert_threshold"])

    if record is None:
        return CreditPolicy(
            overdue_grace_days=default_grace,
            aging_buckets=default_buckets,
            credit_alert_threshold=default_threshold
        )

    grace_days = record.overdue_grace_days
    threshold = record.credit_alert_threshold
    default_check_limit = record.default_check_limit

    return CreditPolicy(
        enforce_credit_limit=bool(record.enforce_credit_limit),
        block_on_credit_exceeded=bool(record.block_on_credit_exceeded),
        block_on_overdue=bool(record.block_on_overdue),
        overdue_grace_days=max(grace_days, 0) if grace_days is not None else default_grace,
        aging_enabled=bool(record.aging_enabled),
        aging_buckets=normalize_aging_buckets(record.aging_buckets, default_buckets),
        credit_alert_threshold=to_decimal(threshold) if threshold is not None else default_threshold,
        enforce_check_limit=bool(record.enforce_check_limit),
        default_check_limit=to_decimal(default_check_limit) if default_check_limit is not None else None
    )


# ==== DATABASE LOADING ==== #


async def load_credit_policy(session: AsyncSession, company_id: int) -> CreditPolicy:
    """
    Load the effective credit policy of a company.

    Args:
        session: Read session
        company_id: Company scope

    Returns:
        CreditPolicy: Policy with defaults applied
    """
    with tracer.start_as_current_span("load_credit_policy") as span:
        span.set_attribute("company_id", company_id)

        query = select(CreditPolicyConfig).where(CreditPolicyConfig.company_id == company_id)
        result = await session.execute(query)
        record = result.scalar_one_or_none()

        span.set_attribute("policy_configured", record is not None)
        return build_policy(record)


# ==== CACHE MANAGEMENT ==== #


def clear_cache() -> None:
    """Clear the cached policy defaults."""
    get_policy_defaults.cache_clear()
