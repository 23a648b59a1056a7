"""Plan entitlements for Noah AI.

The plan tier and admin flag live in the account's app settings document,
which the web app owns. The gateway only reads it; a missing document means a
free, non-admin account.

Firestore Structure:
    users/{uid}/settings/app -> plan, isAdmin

File Storage (dev mode):
    <storage dir>/{uid}/settings/app.json
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..firestore import user_document
from .files import account_path, force_file_fallback, read_json, write_json_atomic
from .ledger import LedgerError, get_monthly_usage

logger = logging.getLogger(__name__)

PLAN_FREE = "free"
PLAN_PREMIUM = "premium"
PLAN_TEAM = "team"

# Monthly token budget per plan. 0 means the plan has no AI access.
PLAN_TOKEN_LIMITS: Dict[str, int] = {
    PLAN_FREE: 0,
    PLAN_PREMIUM: 500_000,
    PLAN_TEAM: 2_000_000,
}

UNLIMITED = -1

SETTINGS_COLLECTION = "settings"
SETTINGS_DOCUMENT = "app"


@dataclass(frozen=True)
class Entitlement:
    """What an account may do with Noah AI."""
    account_id: str
    plan: str = PLAN_FREE
    is_admin: bool = False

    @property
    def has_ai_access(self) -> bool:
        return self.is_admin or self.plan != PLAN_FREE

    @property
    def token_limit(self) -> int:
        """Monthly budget, or ``UNLIMITED`` (-1) for admins."""
        if self.is_admin:
            return UNLIMITED
        return PLAN_TOKEN_LIMITS.get(self.plan, 0)

    def is_over_budget(self, used_tokens: int) -> bool:
        """True once usage has met the budget. Admins are never over budget."""
        limit = self.token_limit
        if limit <= 0:
            return False
        return used_tokens >= limit

    def to_dict(self) -> Dict[str, Any]:
        return {"plan": self.plan, "isAdmin": self.is_admin}

    @classmethod
    def from_dict(cls, account_id: str, data: Optional[Dict[str, Any]]) -> "Entitlement":
        data = data or {}
        plan = data.get("plan") or PLAN_FREE
        if plan not in PLAN_TOKEN_LIMITS:
            logger.warning(f"Unknown plan {plan!r} for {account_id}; treating as free")
            plan = PLAN_FREE
        return cls(account_id=account_id, plan=plan, is_admin=data.get("isAdmin") is True)


def get_entitlement(account_id: str) -> Entitlement:
    """Return the account's plan and admin flag (free/non-admin when unset).

    Raises:
        LedgerError: if the settings store cannot be read.
    """
    if force_file_fallback():
        data = _read_settings_file(account_id)
    else:
        data = _read_settings_firestore(account_id)
    return Entitlement.from_dict(account_id, data)


def save_entitlement(entitlement: Entitlement) -> None:
    """Write plan and admin flag, merging into the app settings document.

    The web app owns this document; this is for dev mode and operator tooling.
    """
    if force_file_fallback():
        path = _settings_file(entitlement.account_id)
        data = read_json(path) or {}
        data.update(entitlement.to_dict())
        write_json_atomic(path, data)
        return

    _settings_doc_ref(entitlement.account_id).set(entitlement.to_dict(), merge=True)


def _settings_file(account_id: str):
    return account_path(account_id, SETTINGS_COLLECTION, f"{SETTINGS_DOCUMENT}.json")


def _read_settings_file(account_id: str) -> Optional[Dict[str, Any]]:
    try:
        return read_json(_settings_file(account_id))
    except (OSError, json.JSONDecodeError) as exc:
        raise LedgerError(f"Could not read settings for {account_id}: {exc}") from exc


def _settings_doc_ref(account_id: str):
    return user_document(account_id).collection(SETTINGS_COLLECTION).document(SETTINGS_DOCUMENT)


def _read_settings_firestore(account_id: str) -> Optional[Dict[str, Any]]:
    try:
        snapshot = _settings_doc_ref(account_id).get()
    except Exception as exc:
        raise LedgerError(f"Firestore settings read failed for {account_id}: {exc}") from exc
    if not snapshot.exists:
        return None
    return snapshot.to_dict()


# =============================================================================
# Combined Operations
# =============================================================================

def get_usage_summary(account_id: str) -> Dict[str, Any]:
    """Get plan plus this month's usage for the API and the usage bar.

    ``limit`` and ``remaining`` are -1 for admins.

    Raises:
        LedgerError: if either document cannot be read.
    """
    entitlement = get_entitlement(account_id)
    usage = get_monthly_usage(account_id)

    limit = entitlement.token_limit
    remaining = UNLIMITED if limit == UNLIMITED else max(0, limit - usage.total_tokens)
    summary = usage.to_api_dict()
    summary.update({
        "plan": entitlement.plan,
        "isAdmin": entitlement.is_admin,
        "limit": limit,
        "remaining": remaining,
    })
    return summary
