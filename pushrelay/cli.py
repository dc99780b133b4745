"""
Command line sender for checking push delivery without the HTTP server.

Usage:
    python -m pushrelay.cli test "ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]"
    python -m pushrelay.cli broadcast "Hello" "Test message" "ExponentPushToken[xxx],ExponentPushToken[yyy]"
"""
import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

from .config import settings
from .notifications.schemas import AggregateResult
from .notifications.service import BROADCAST_DATA, build_dispatcher


def _result_summary(result: AggregateResult) -> dict:
    return {
        "success": result.success,
        "failed": result.failed,
        "total": result.total,
        "invalidTokens": result.invalid_tokens,
        "outcomes": [
            {
                "token": outcome.masked_token,
                "provider": outcome.provider.value,
                "success": outcome.success,
                "error": outcome.error,
            }
            for outcome in result.outcomes
        ],
    }


async def _send(tokens: List[str], title: str, message: str, data: dict) -> AggregateResult:
    dispatcher = build_dispatcher(settings)
    try:
        return await dispatcher.dispatch(tokens, title, message, data)
    finally:
        await dispatcher.expo_client.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send push notifications through Expo and FCM")
    subparsers = parser.add_subparsers(dest="command", required=True)

    test_parser = subparsers.add_parser("test", help="Send a test notification to one token")
    test_parser.add_argument("token", help="Expo or FCM push token")

    broadcast_parser = subparsers.add_parser("broadcast", help="Send a notification to several tokens")
    broadcast_parser.add_argument("title")
    broadcast_parser.add_argument("message")
    broadcast_parser.add_argument("tokens", help="Comma-separated push tokens")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=settings.log_level.upper())

    if args.command == "test":
        tokens = [args.token]
        title = "Test Notification"
        message = "This is a test notification from the server!"
        data = {
            "screen": "More",
            "test": True,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    else:
        tokens = [token.strip() for token in args.tokens.split(",") if token.strip()]
        title = args.title
        message = args.message
        data = dict(BROADCAST_DATA)

    result = asyncio.run(_send(tokens, title, message, data))
    print(json.dumps(_result_summary(result), indent=2))
    return 0 if result.success > 0 else 1


if __name__ == "__main__":
    sys.exit(main())
