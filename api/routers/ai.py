"""AI Router - the Noah AI gateway endpoints.

Handles:
- POST /ai/call: run one Noah AI action
- GET /ai/usage: plan and monthly token usage for the usage bar
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.dependencies import get_current_user, get_gateway
from noah_ai.gateway import AIGateway, account_usage_summary

router = APIRouter()


class CallNoahAIRequest(BaseModel):
    """Request body for a Noah AI call."""
    # Validated by the gateway so unknown actions surface as invalid-argument.
    action: Optional[str] = Field(None, description="One of the Noah AI action names")
    context: Dict[str, Any] = Field(default_factory=dict, description="Action-specific context")
    language: Optional[str] = Field(None, description="Response language code (default ko)")


@router.post("/call")
def call_noah_ai(
    request: CallNoahAIRequest,
    user: str = Depends(get_current_user),
    gateway: AIGateway = Depends(get_gateway),
) -> dict:
    """Run one AI action and return {result, tokensUsed, monthlyUsage}."""
    response = gateway.call(user, request.action, request.context, request.language)
    return response.to_api_dict()


@router.get("/usage")
def get_ai_usage(user: str = Depends(get_current_user)) -> dict:
    return account_usage_summary(user)
