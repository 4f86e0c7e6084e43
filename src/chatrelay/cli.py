"""CLI entry point for chatrelay."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time

from .ai.costing import format_cost_usd
from .ai.registry import ProviderRegistry
from .ai.types import Message
from .config import load_relay_config
from .constants import DEFAULT_SECRETS_PATH
from .domain.config import RelayConfig
from .errors import RelayError
from .keys import resolve_provider_keys
from .logging import (
    build_run_log_path,
    log_event,
    mask_key,
    sanitize_error_message,
    setup_logging,
)
from .relay import ChatRelay
from .routing import preview_route
from .timeouts import DEFAULT_READ_TIMEOUT_SEC

__all__ = ["main"]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chatrelay",
        description="chatrelay - route chat messages to the right LLM tier",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to models/routing config JSON (default: $CHATRELAY_CONFIG or ~/.chatrelay/models.json)",
    )
    parser.add_argument(
        "-k",
        "--keys",
        default=DEFAULT_SECRETS_PATH,
        help="Path to secrets JSON with an 'apiKeys' object (environment variables take precedence)",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        default=DEFAULT_READ_TIMEOUT_SEC,
        help="Provider read timeout in seconds (0 disables timeouts)",
    )
    log_group = parser.add_mutually_exclusive_group()
    log_group.add_argument("-l", "--log", help="Path to log file (optional)")
    log_group.add_argument(
        "--log-dir", help="Directory for a timestamped per-run log file (optional)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    route = subparsers.add_parser("route", help="Show which model would answer a message")
    route.add_argument("message", help="Message text")
    route.add_argument("--files", action="store_true", help="Treat the message as having attachments")

    ask = subparsers.add_parser("ask", help="Stream an answer to stdout")
    ask.add_argument("message", help="Message text")
    ask.add_argument("--model", help="Model key to use instead of routing (e.g. fast, full)")
    ask.add_argument("--system", help="System prompt")
    ask.add_argument("--files", action="store_true", help="Treat the message as having attachments")

    subparsers.add_parser("status", help="Show which providers have API keys")
    return parser


def _build_registry(keys: dict[str, str | None], timeout: float) -> ProviderRegistry:
    return ProviderRegistry.from_keys(keys, timeout=timeout)


def _run_route(config: RelayConfig, message: str, has_files: bool) -> None:
    preview = preview_route(message, config, has_files)
    print(f"Model: {preview.display_name} ({preview.model_key})")
    print(f"Reason: {preview.reason}")


async def _run_status(keys_path: str | None, timeout: float) -> None:
    keys = resolve_provider_keys(keys_path)
    registry = _build_registry(keys, timeout)
    try:
        for provider, available in registry.status().items():
            if available:
                print(f"{provider}: available ({mask_key(keys.get(provider))})")
            else:
                print(f"{provider}: not configured")
    finally:
        await registry.aclose()


async def _run_ask(
    config: RelayConfig,
    keys_path: str | None,
    timeout: float,
    message: str,
    *,
    model_override: str | None,
    system_prompt: str | None,
    has_files: bool,
) -> None:
    registry = _build_registry(resolve_provider_keys(keys_path), timeout)
    relay = ChatRelay(config, registry)
    messages: list[Message] = [{"role": "user", "content": message}]
    try:
        result = await relay.respond(
            messages,
            system_prompt,
            has_files=has_files,
            model_override=model_override,
            on_text=lambda text: print(text, end="", flush=True),
        )
    finally:
        await registry.aclose()

    print()
    print(f"[{result.model.display_name}] {result.route_reason}")
    print(
        f"Tokens: {result.input_tokens} in / {result.output_tokens} out, "
        f"cost {format_cost_usd(result.cost)}"
    )
    if result.finish_reason != "stop":
        print(f"Finish reason: {result.finish_reason}")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the chatrelay CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    started = time.perf_counter()

    try:
        if args.log:
            setup_logging(args.log)
        elif args.log_dir:
            setup_logging(build_run_log_path(args.log_dir))
        else:
            setup_logging(None)

        log_event("app_start", level=logging.INFO, command=args.command, config=args.config)

        if args.command == "status":
            asyncio.run(_run_status(args.keys, args.timeout))
        else:
            config = load_relay_config(args.config)
            if args.command == "route":
                _run_route(config, args.message, args.files)
            else:
                asyncio.run(
                    _run_ask(
                        config,
                        args.keys,
                        args.timeout,
                        args.message,
                        model_override=args.model,
                        system_prompt=args.system,
                        has_files=args.files,
                    )
                )

        log_event(
            "app_stop",
            level=logging.INFO,
            reason="normal",
            uptime_ms=round((time.perf_counter() - started) * 1000, 1),
        )
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(0)
    except RelayError as e:
        print(f"Error: {sanitize_error_message(str(e))}")
        log_event(
            "app_stop",
            level=logging.ERROR,
            reason="fatal_error",
            error_type=type(e).__name__,
            error=str(e),
            uptime_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
