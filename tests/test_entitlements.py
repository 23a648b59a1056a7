"""Tests for plan entitlements and the usage summary."""
from __future__ import annotations

import json
import os
from unittest.mock import patch

import pytest

from noah_ai.usage import (
    PLAN_TOKEN_LIMITS,
    UNLIMITED,
    Entitlement,
    LedgerError,
    get_entitlement,
    get_usage_summary,
    increment_usage,
    save_entitlement,
)


@pytest.fixture
def temp_storage(tmp_path):
    """Point usage and settings storage at a temporary directory."""
    with patch.dict(os.environ, {
        "NOAH_USAGE_FORCE_FILE": "1",
        "NOAH_USAGE_STORAGE_DIR": str(tmp_path),
    }):
        yield tmp_path


class TestEntitlement:

    def test_plan_limits(self):
        assert PLAN_TOKEN_LIMITS == {"free": 0, "premium": 500_000, "team": 2_000_000}

    def test_free_plan_has_no_access(self):
        entitlement = Entitlement("u1")
        assert entitlement.plan == "free"
        assert not entitlement.has_ai_access

    @pytest.mark.parametrize("plan", ["premium", "team"])
    def test_paid_plans_have_access(self, plan):
        assert Entitlement("u1", plan=plan).has_ai_access

    def test_admin_on_free_plan_has_access(self):
        entitlement = Entitlement("u1", plan="free", is_admin=True)
        assert entitlement.has_ai_access
        assert entitlement.token_limit == UNLIMITED

    def test_budget_boundary(self):
        """Usage one below the budget passes; usage at the budget is blocked."""
        premium = Entitlement("u1", plan="premium")
        assert not premium.is_over_budget(499_999)
        assert premium.is_over_budget(500_000)
        assert premium.is_over_budget(750_000)

    def test_admin_never_over_budget(self):
        assert not Entitlement("u1", plan="team", is_admin=True).is_over_budget(10**9)

    def test_unknown_plan_is_free(self):
        entitlement = Entitlement.from_dict("u1", {"plan": "enterprise"})
        assert entitlement.plan == "free"
        assert not entitlement.has_ai_access

    def test_admin_flag_must_be_true(self):
        assert not Entitlement.from_dict("u1", {"isAdmin": "yes"}).is_admin
        assert Entitlement.from_dict("u1", {"isAdmin": True}).is_admin

    def test_missing_document(self):
        assert Entitlement.from_dict("u1", None) == Entitlement("u1")


class TestEntitlementStorage:

    def test_defaults_when_unset(self, temp_storage):
        assert get_entitlement("nobody") == Entitlement("nobody")

    def test_save_merges_into_settings(self, temp_storage):
        path = temp_storage / "u1" / "settings" / "app.json"
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"theme": "dark", "plan": "free"}), encoding="utf-8")

        save_entitlement(Entitlement("u1", plan="team"))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == {"theme": "dark", "plan": "team", "isAdmin": False}
        assert get_entitlement("u1").plan == "team"

    def test_corrupt_settings_raise_ledger_error(self, temp_storage):
        path = temp_storage / "u1" / "settings" / "app.json"
        path.parent.mkdir(parents=True)
        path.write_text("nope", encoding="utf-8")

        with pytest.raises(LedgerError):
            get_entitlement("u1")


class TestUsageSummary:

    def test_premium_summary(self, temp_storage):
        save_entitlement(Entitlement("u1", plan="premium"))
        increment_usage("u1", 1000, 500)

        summary = get_usage_summary("u1")
        assert summary["plan"] == "premium"
        assert summary["isAdmin"] is False
        assert summary["used"] == 1500
        assert summary["inputTokens"] == 1000
        assert summary["outputTokens"] == 500
        assert summary["requestCount"] == 1
        assert summary["limit"] == 500_000
        assert summary["remaining"] == 498_500

    def test_remaining_never_negative(self, temp_storage):
        save_entitlement(Entitlement("u1", plan="premium"))
        increment_usage("u1", 600_000, 0)
        assert get_usage_summary("u1")["remaining"] == 0

    def test_admin_summary_is_unlimited(self, temp_storage):
        save_entitlement(Entitlement("u1", plan="free", is_admin=True))
        summary = get_usage_summary("u1")
        assert summary["limit"] == -1
        assert summary["remaining"] == -1

    def test_free_account_summary(self, temp_storage):
        summary = get_usage_summary("u1")
        assert summary["plan"] == "free"
        assert summary["limit"] == 0
        assert summary["used"] == 0
