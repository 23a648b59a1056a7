"""Usage metering: monthly token ledger and plan entitlements."""
from .entitlements import (
    PLAN_TOKEN_LIMITS,
    UNLIMITED,
    Entitlement,
    get_entitlement,
    get_usage_summary,
    save_entitlement,
)
from .ledger import (
    LedgerError,
    UsageRecord,
    current_month_key,
    get_monthly_usage,
    get_total_tokens_used,
    increment_usage,
)

__all__ = [
    "PLAN_TOKEN_LIMITS",
    "UNLIMITED",
    "Entitlement",
    "get_entitlement",
    "get_usage_summary",
    "save_entitlement",
    "LedgerError",
    "UsageRecord",
    "current_month_key",
    "get_monthly_usage",
    "get_total_tokens_used",
    "increment_usage",
]
