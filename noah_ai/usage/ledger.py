"""Monthly AI token usage ledger.

One usage document per account per calendar month. Counters only ever grow:
every successful model call adds its input/output tokens and bumps the request
count through an atomic increment, so concurrent calls for the same account
never lose an update.

Month keys are derived from the current UTC date on both the read and the
write path.

Firestore Structure:
    users/{uid}/ai_usage/{YYYY-MM} -> totalInputTokens, totalOutputTokens,
                                      requestCount, lastRequestAt

File Storage (dev mode):
    <storage dir>/{uid}/ai_usage/{YYYY-MM}.json
"""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..firestore import user_document
from .files import account_path, force_file_fallback, read_json, write_json_atomic

logger = logging.getLogger(__name__)

USAGE_COLLECTION = "ai_usage"

# Serialises read-modify-write cycles on the file backend within a process.
_FILE_LOCK = threading.Lock()


class LedgerError(RuntimeError):
    """Raised when the usage store cannot be read or written."""


def _now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


def current_month_key(now: Optional[datetime] = None) -> str:
    """Return the ``YYYY-MM`` key for ``now`` (default: current UTC time)."""
    moment = now or _now()
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return f"{moment.year:04d}-{moment.month:02d}"


# =============================================================================
# Dataclasses
# =============================================================================

@dataclass
class UsageRecord:
    """Token usage for one account in one month.

    Attributes:
        account_id: Owning account (Firebase uid)
        month: Calendar month key, ``YYYY-MM``
        total_input_tokens: Prompt tokens billed this month
        total_output_tokens: Completion tokens billed this month
        request_count: Successful model calls this month
        last_request_at: When the last call was recorded (None before the first)
    """
    account_id: str
    month: str
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    request_count: int = 0
    last_request_at: Optional[datetime] = None

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stored document shape."""
        return {
            "totalInputTokens": self.total_input_tokens,
            "totalOutputTokens": self.total_output_tokens,
            "requestCount": self.request_count,
            "lastRequestAt": self.last_request_at.isoformat() if self.last_request_at else None,
        }

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "inputTokens": self.total_input_tokens,
            "outputTokens": self.total_output_tokens,
            "used": self.total_tokens,
            "requestCount": self.request_count,
            "lastRequestAt": self.last_request_at.isoformat() if self.last_request_at else None,
        }

    @classmethod
    def from_dict(cls, account_id: str, month: str, data: Dict[str, Any]) -> "UsageRecord":
        """Create from a stored document."""
        last = data.get("lastRequestAt")
        if isinstance(last, str):
            last = datetime.fromisoformat(last)
        elif not isinstance(last, datetime):
            last = None

        return cls(
            account_id=account_id,
            month=month,
            total_input_tokens=int(data.get("totalInputTokens") or 0),
            total_output_tokens=int(data.get("totalOutputTokens") or 0),
            request_count=int(data.get("requestCount") or 0),
            last_request_at=last,
        )


# =============================================================================
# Reads
# =============================================================================

def get_monthly_usage(account_id: str) -> UsageRecord:
    """Return this month's usage, or a zero record if nothing was recorded yet.

    Raises:
        LedgerError: if the store cannot be read.
    """
    month = current_month_key()
    if force_file_fallback():
        data = _read_usage_file(account_id, month)
    else:
        data = _read_usage_firestore(account_id, month)

    if data is None:
        return UsageRecord(account_id=account_id, month=month)
    return UsageRecord.from_dict(account_id, month, data)


def get_total_tokens_used(account_id: str) -> int:
    """Return input + output tokens used this month."""
    return get_monthly_usage(account_id).total_tokens


def _usage_file(account_id: str, month: str):
    return account_path(account_id, USAGE_COLLECTION, f"{month}.json")


def _read_usage_file(account_id: str, month: str) -> Optional[Dict[str, Any]]:
    try:
        return read_json(_usage_file(account_id, month))
    except (OSError, json.JSONDecodeError) as exc:
        raise LedgerError(f"Could not read usage for {account_id} ({month}): {exc}") from exc


def _usage_doc_ref(account_id: str, month: str):
    return user_document(account_id).collection(USAGE_COLLECTION).document(month)


def _read_usage_firestore(account_id: str, month: str) -> Optional[Dict[str, Any]]:
    try:
        snapshot = _usage_doc_ref(account_id, month).get()
    except Exception as exc:
        raise LedgerError(f"Firestore usage read failed for {account_id}: {exc}") from exc

    if not snapshot.exists:
        return None
    return snapshot.to_dict() or {}


# =============================================================================
# Writes
# =============================================================================

def increment_usage(account_id: str, input_tokens: int, output_tokens: int) -> None:
    """Atomically add one request's tokens to this month's counters.

    Creates the month's document on first use.

    Raises:
        ValueError: if a token count is negative.
        LedgerError: if the store rejects the write.
    """
    if input_tokens < 0 or output_tokens < 0:
        raise ValueError("Token counts must be non-negative")

    month = current_month_key()
    if force_file_fallback():
        _increment_usage_file(account_id, month, input_tokens, output_tokens)
    else:
        _increment_usage_firestore(account_id, month, input_tokens, output_tokens)

    logger.debug(
        f"Recorded {input_tokens}+{output_tokens} tokens for {account_id} ({month})"
    )


def _increment_usage_file(account_id: str, month: str, input_tokens: int, output_tokens: int) -> None:
    path = _usage_file(account_id, month)
    with _FILE_LOCK:
        try:
            data = read_json(path) or {}
            record = UsageRecord.from_dict(account_id, month, data)
            record.total_input_tokens += input_tokens
            record.total_output_tokens += output_tokens
            record.request_count += 1
            record.last_request_at = _now()
            write_json_atomic(path, record.to_dict())
        except (OSError, json.JSONDecodeError) as exc:
            raise LedgerError(f"Could not record usage for {account_id} ({month}): {exc}") from exc


def _increment_usage_firestore(account_id: str, month: str, input_tokens: int, output_tokens: int) -> None:
    from firebase_admin import firestore

    try:
        _usage_doc_ref(account_id, month).set(
            {
                "totalInputTokens": firestore.Increment(input_tokens),
                "totalOutputTokens": firestore.Increment(output_tokens),
                "requestCount": firestore.Increment(1),
                "lastRequestAt": firestore.SERVER_TIMESTAMP,
            },
            merge=True,
        )
    except Exception as exc:
        raise LedgerError(f"Firestore usage write failed for {account_id}: {exc}") from exc
