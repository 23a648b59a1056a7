#!/usr/bin/env python3
"""Noah AI gateway operator CLI."""
from __future__ import annotations

import argparse
import json
import sys

from noah_ai.actions import DEFAULT_LANGUAGE, ActionKind
from noah_ai.config import ConfigError, load_settings
from noah_ai.errors import GatewayError
from noah_ai.gateway import AIGateway
from noah_ai.llm import GeminiConfig, GeminiError, GeminiInvoker
from noah_ai.prompts import build_prompt
from noah_ai.transcripts import YouTubeTranscriptFetcher
from noah_ai.usage import (
    PLAN_TOKEN_LIMITS,
    Entitlement,
    LedgerError,
    get_entitlement,
    get_usage_summary,
    save_entitlement,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="noah-ai",
        description="Inspect plans and usage, preview prompts, and run Noah AI actions.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "check-key",
        help="Validate that the Gemini API key is available in the environment.",
    )

    usage_parser = subparsers.add_parser(
        "usage",
        help="Show an account's plan and this month's token usage.",
    )
    usage_parser.add_argument("uid", help="Firebase uid of the account.")

    plan_parser = subparsers.add_parser(
        "set-plan",
        help="Set an account's plan tier (dev mode and support use).",
    )
    plan_parser.add_argument("uid", help="Firebase uid of the account.")
    plan_parser.add_argument("plan", choices=sorted(PLAN_TOKEN_LIMITS))
    plan_parser.add_argument(
        "--admin",
        action="store_true",
        help="Mark the account as an administrator (no budget).",
    )

    actions = [kind.value for kind in ActionKind]
    for name, help_text in (
        ("prompt", "Print the prompt an action would send, without calling the model."),
        ("call", "Run an action through the full gateway for an account."),
    ):
        action_parser = subparsers.add_parser(name, help=help_text)
        if name == "call":
            action_parser.add_argument("uid", help="Firebase uid of the caller.")
        action_parser.add_argument("action", choices=actions)
        action_parser.add_argument(
            "--context",
            default="{}",
            help="Action context as a JSON object.",
        )
        action_parser.add_argument(
            "--language",
            default=DEFAULT_LANGUAGE,
            help="Response language code (ko, en, ja, es, pt, fr).",
        )

    return parser


def _parse_context(raw: str) -> dict | None:
    try:
        context = json.loads(raw)
    except json.JSONDecodeError as exc:
        print(f"--context is not valid JSON: {exc}", file=sys.stderr)
        return None
    if not isinstance(context, dict):
        print("--context must be a JSON object.", file=sys.stderr)
        return None
    return context


def _cmd_check_key() -> int:
    try:
        settings = load_settings()
        key = settings.require_gemini_key()
    except ConfigError as exc:
        print(f"Key check failed: {exc}", file=sys.stderr)
        return 1

    print(
        "Gemini key is configured",
        f"(preview {key[:4]}...)",
        f"model={settings.gemini_model}",
        f"environment={settings.environment}",
    )
    return 0


def _cmd_usage(uid: str) -> int:
    try:
        summary = get_usage_summary(uid)
    except LedgerError as exc:
        print(f"Usage lookup failed: {exc}", file=sys.stderr)
        return 1

    limit = "unlimited" if summary["limit"] == -1 else f"{summary['limit']:,}"
    print(f"Account: {uid}")
    print(f"Plan: {summary['plan']}{' (admin)' if summary['isAdmin'] else ''}")
    print(f"Month: {summary['month']}")
    print(f"Tokens: {summary['used']:,} / {limit}")
    print(f"  input {summary['inputTokens']:,} | output {summary['outputTokens']:,}")
    print(f"Requests: {summary['requestCount']}")
    return 0


def _cmd_set_plan(uid: str, plan: str, admin: bool) -> int:
    try:
        current = get_entitlement(uid)
        save_entitlement(Entitlement(account_id=uid, plan=plan, is_admin=admin))
    except LedgerError as exc:
        print(f"Could not update plan: {exc}", file=sys.stderr)
        return 1
    print(f"{uid}: {current.plan} -> {plan}{' (admin)' if admin else ''}")
    return 0


def _cmd_prompt(action: str, raw_context: str, language: str) -> int:
    context = _parse_context(raw_context)
    if context is None:
        return 2
    try:
        prompt = build_prompt(action, context, language)
    except GatewayError as exc:
        print(f"Prompt build failed: {exc.message}", file=sys.stderr)
        return 1
    print("=== system ===")
    print(prompt.system)
    print("\n=== user ===")
    print(prompt.user)
    return 0


def _cmd_call(uid: str, action: str, raw_context: str, language: str) -> int:
    context = _parse_context(raw_context)
    if context is None:
        return 2
    try:
        settings = load_settings()
        invoker = GeminiInvoker(GeminiConfig.from_settings(settings))
    except (ConfigError, GeminiError) as exc:
        print(f"Gemini is not configured: {exc}", file=sys.stderr)
        return 1

    gateway = AIGateway(
        invoker,
        YouTubeTranscriptFetcher(),
        max_transcript_chars=settings.max_transcript_chars,
    )
    try:
        response = gateway.call(uid, action, context, language)
    except GatewayError as exc:
        print(f"{exc.code}: {exc.message}", file=sys.stderr)
        return 1

    print(json.dumps(response.to_api_dict(), ensure_ascii=False, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "check-key":
        return _cmd_check_key()
    if args.command == "usage":
        return _cmd_usage(args.uid)
    if args.command == "set-plan":
        return _cmd_set_plan(args.uid, args.plan, args.admin)
    if args.command == "prompt":
        return _cmd_prompt(args.action, args.context, args.language)
    if args.command == "call":
        return _cmd_call(args.uid, args.action, args.context, args.language)

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
