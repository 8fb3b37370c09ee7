"""Unit tests for credit policy loading."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.services import policy_loader
from app.services.policy_loader import (
    CreditPolicy,
    build_policy,
    get_policy_defaults,
    load_credit_policy,
    normalize_aging_buckets,
)


@pytest.mark.unit
class TestPolicyDefaults:
    """Test cases for the YAML defaults."""

    def test_bundled_defaults_loaded(self):
        defaults = get_policy_defaults()

        assert defaults["aging_buckets"] == [30, 60, 90, 120]
        assert defaults["overdue_grace_days"] == 0
        assert defaults["credit_alert_threshold"] == 80

    def test_missing_file_falls_back(self, tmp_path):
        with patch.object(policy_loader.settings, "CREDIT_POLICY_DEFAULTS_PATH", str(tmp_path / "missing.yaml")):
            defaults = get_policy_defaults()

        assert defaults == policy_loader.FALLBACK_DEFAULTS

    def test_custom_file_overrides_defaults(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("overdue_grace_days: 5\ncredit_alert_threshold: 90\n")

        with patch.object(policy_loader.settings, "CREDIT_POLICY_DEFAULTS_PATH", str(path)):
            policy = build_policy(None)

        assert policy.overdue_grace_days == 5
        assert policy.credit_alert_threshold == Decimal("90")
        assert policy.aging_buckets == (30, 60, 90, 120)


@pytest.mark.unit
class TestNormalizeAgingBuckets:
    """Test cases for aging boundary normalization."""

    def test_sorts_and_deduplicates(self):
        assert normalize_aging_buckets([90, 30, 60, 30], (1,)) == (30, 60, 90)

    def test_drops_non_positive_and_garbage(self):
        assert normalize_aging_buckets([0, -5, "x", True, "45"], (1,)) == (45,)

    def test_empty_uses_fallback(self):
        assert normalize_aging_buckets([], (60, 30)) == (30, 60)
        assert normalize_aging_buckets(None, (30,)) == (30,)


@pytest.mark.unit
class TestBuildPolicy:
    """Test cases for turning rows into effective policies."""

    def test_absent_row_turns_everything_off(self):
        policy = build_policy(None)

        assert policy == CreditPolicy()
        assert not policy.enforce_credit_limit
        assert not policy.block_on_overdue
        assert not policy.enforce_check_limit

    def test_row_values_win_over_defaults(self, factory):
        record = factory.policy_record(
            overdue_grace_days=7,
            aging_buckets=[15, 45],
            credit_alert_threshold=Decimal("75.50"),
            default_check_limit=Decimal("20000")
        )

        policy = build_policy(record)

        assert policy.enforce_credit_limit
        assert policy.overdue_grace_days == 7
        assert policy.aging_buckets == (15, 45)
        assert policy.credit_alert_threshold == Decimal("75.50")
        assert policy.default_check_limit == Decimal("20000")

    def test_empty_row_fields_take_defaults(self, factory):
        record = factory.policy_record(
            overdue_grace_days=None,
            aging_buckets=None,
            credit_alert_threshold=None
        )

        policy = build_policy(record)

        assert policy.overdue_grace_days == 0
        assert policy.aging_buckets == (30, 60, 90, 120)
        assert policy.credit_alert_threshold == Decimal("80")

    def test_policy_is_frozen(self):
        policy = build_policy(None)

        with pytest.raises(AttributeError):
            policy.block_on_overdue = True

    @pytest.mark.asyncio
    async def test_load_credit_policy_reads_company_row(self, factory):
        record = factory.policy_record(block_on_overdue=False)
        result = MagicMock()
        result.scalar_one_or_none.return_value = record
        session = AsyncMock()
        session.execute.return_value = result

        policy = await load_credit_policy(session, 1)

        session.execute.assert_awaited_once()
        assert policy.enforce_credit_limit
        assert not policy.block_on_overdue
