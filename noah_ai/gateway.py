"""Noah AI request gateway.

Handles one AI call end to end:

1. authenticate the caller
2. narrow the action and its context
3. load the plan entitlement and reject free accounts
4. check the monthly token budget (admins skip this)
5. fetch the YouTube transcript for the video actions
6. build the prompt and invoke the model
7. record the billed tokens
8. parse the model output into the response envelope

The budget check and the usage write are not atomic together. Concurrent
calls from one account can all pass the check and overshoot the budget by the
cost of the calls in flight; the counters themselves never lose an update.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional

from .actions import ActionRequest, VideoContext, parse_action
from .config import DEFAULT_MAX_TRANSCRIPT_CHARS
from .errors import (
    FailedPrecondition,
    Internal,
    PermissionDenied,
    ResourceExhausted,
    Unauthenticated,
)
from .llm import ModelInvoker, ModelResponse
from .prompts import build_request_prompt
from .transcripts import INVALID_URL, TranscriptError, TranscriptFetcher, truncate_transcript
from .usage import (
    Entitlement,
    LedgerError,
    get_entitlement,
    get_total_tokens_used,
    get_usage_summary,
    increment_usage,
)

logger = logging.getLogger(__name__)

AI_FAILED_MESSAGE = "AI processing failed. Please try again."
STORAGE_FAILED_MESSAGE = "Usage service unavailable. Please try again."


@dataclass(frozen=True)
class GatewayResponse:
    """Successful call result in the shape the web client expects."""
    result: Any
    input_tokens: int
    output_tokens: int
    monthly_used: int
    monthly_limit: int

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "result": self.result,
            "tokensUsed": {"input": self.input_tokens, "output": self.output_tokens},
            "monthlyUsage": {"used": self.monthly_used, "limit": self.monthly_limit},
        }


def parse_model_output(text: str) -> Any:
    """Parse model text as JSON, wrapping anything unparseable as ``{"text": raw}``.

    Markdown code fences around the JSON are tolerated.
    """
    candidate = text.strip()
    if candidate.startswith("```"):
        start = candidate.find("\n")
        end = candidate.rfind("```")
        if start != -1 and end > start:
            candidate = candidate[start + 1:end].strip()
    try:
        return json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return {"text": text}


def account_usage_summary(account_id: Optional[str]) -> Dict[str, Any]:
    """Return the caller's plan and this month's usage for the usage bar.

    Reads storage only, so it works without a configured model.
    """
    if not account_id:
        raise Unauthenticated("Authentication required")
    try:
        return get_usage_summary(account_id)
    except LedgerError as exc:
        logger.error(f"Usage summary failed for {account_id}: {exc}")
        raise Internal(STORAGE_FAILED_MESSAGE) from exc


class AIGateway:
    """Orchestrates a single Noah AI call. Holds no per-request state."""

    def __init__(
        self,
        invoker: ModelInvoker,
        transcripts: TranscriptFetcher,
        *,
        max_transcript_chars: int = DEFAULT_MAX_TRANSCRIPT_CHARS,
    ) -> None:
        self.invoker = invoker
        self.transcripts = transcripts
        self.max_transcript_chars = max_transcript_chars

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def call(
        self,
        account_id: Optional[str],
        action: Any,
        context: Optional[Mapping[str, Any]] = None,
        language: Optional[str] = None,
    ) -> GatewayResponse:
        """Run one AI action for ``account_id``.

        Raises:
            GatewayError: one of the caller-facing errors in ``noah_ai.errors``.
        """
        if not account_id:
            raise Unauthenticated("Authentication required")

        request = parse_action(action, context, language)
        entitlement = self._load_entitlement(account_id)
        prior_used = self._check_quota(entitlement)

        request = self._enrich(request)
        prompt = build_request_prompt(request)
        response = self._invoke(request, prompt.system, prompt.user)

        self._record_usage(account_id, response)
        used = self._monthly_used(account_id, prior_used, response)

        logger.info(
            f"Noah AI {request.action.value} for {account_id}: "
            f"{response.input_tokens}+{response.output_tokens} tokens "
            f"({used} used this month, plan {entitlement.plan})"
        )
        return GatewayResponse(
            result=parse_model_output(response.text),
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            monthly_used=used,
            monthly_limit=entitlement.token_limit,
        )

    def usage_summary(self, account_id: Optional[str]) -> Dict[str, Any]:
        return account_usage_summary(account_id)

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def _load_entitlement(self, account_id: str) -> Entitlement:
        try:
            entitlement = get_entitlement(account_id)
        except LedgerError as exc:
            logger.error(f"Entitlement lookup failed for {account_id}: {exc}")
            raise Internal(STORAGE_FAILED_MESSAGE) from exc

        if not entitlement.has_ai_access:
            logger.warning(f"Noah AI denied for {account_id}: plan {entitlement.plan}")
            raise PermissionDenied("AI features require Premium or Team plan")
        return entitlement

    def _check_quota(self, entitlement: Entitlement) -> Optional[int]:
        """Return tokens used so far, or None when the check is skipped (admins)."""
        if entitlement.is_admin:
            return None
        try:
            used = get_total_tokens_used(entitlement.account_id)
        except LedgerError as exc:
            logger.error(f"Usage lookup failed for {entitlement.account_id}: {exc}")
            raise Internal(STORAGE_FAILED_MESSAGE) from exc

        if entitlement.is_over_budget(used):
            logger.warning(
                f"Noah AI budget reached for {entitlement.account_id}: "
                f"{used}/{entitlement.token_limit}"
            )
            raise ResourceExhausted("Monthly AI token limit reached")
        return used

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    def _enrich(self, request: ActionRequest) -> ActionRequest:
        if not request.action.uses_video:
            return request

        context: VideoContext = request.context  # type: ignore[assignment]
        failure: Optional[TranscriptError] = None

        if context.url:
            try:
                transcript = self.transcripts.fetch_transcript(context.url)
                context = context.with_transcript(transcript)
            except TranscriptError as exc:
                if exc.kind == INVALID_URL:
                    raise FailedPrecondition(exc.message) from exc
                failure = exc
                context = context.with_metadata(self.transcripts.fetch_metadata(context.url))

        if context.has_transcript:
            context = context.with_transcript(
                truncate_transcript(context.transcript, self.max_transcript_chars)
            )
        elif context.metadata.is_usable():
            logger.warning(
                f"Using metadata-only prompt for {request.action.value} "
                f"({failure.kind if failure else 'no transcript supplied'})"
            )
        else:
            message = failure.message if failure else "A YouTube URL or transcript is required"
            raise FailedPrecondition(message)

        return replace(request, context=context)

    # ------------------------------------------------------------------
    # Model call and billing
    # ------------------------------------------------------------------

    def _invoke(self, request: ActionRequest, system: str, user: str) -> ModelResponse:
        try:
            return self.invoker.invoke(system, user, structured_output=True)
        except Exception:
            logger.exception(f"Model call failed for {request.action.value}")
            raise Internal(AI_FAILED_MESSAGE) from None

    def _record_usage(self, account_id: str, response: ModelResponse) -> None:
        try:
            increment_usage(account_id, response.input_tokens, response.output_tokens)
        except (LedgerError, ValueError) as exc:
            logger.error(
                f"Failed to record {response.input_tokens}+{response.output_tokens} "
                f"tokens for {account_id}: {exc}"
            )
            raise Internal(STORAGE_FAILED_MESSAGE) from exc

    def _monthly_used(self, account_id: str, prior_used: Optional[int], response: ModelResponse) -> int:
        try:
            return get_total_tokens_used(account_id)
        except LedgerError as exc:
            # Already billed; report an estimate.
            logger.warning(f"Usage re-read failed for {account_id}: {exc}")
            return (prior_used or 0) + response.input_tokens + response.output_tokens
