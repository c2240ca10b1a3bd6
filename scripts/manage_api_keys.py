#!/usr/bin/env python3
"""
CLI for API key and usage administration.

Provides commands to issue a key, inspect a key, print its usage and read
its last-seen watermark from the ledger.
"""

import argparse
import asyncio
import sys
from typing import Optional

from usage_audit.auth.api_key import mask_api_key
from usage_audit.config import settings
from usage_audit.exceptions import LedgerSubmitFailedError, StoreUnavailableError
from usage_audit.ledger.adapter import LedgerAdapter
from usage_audit.repositories.api_key_repository import ApiKeyRepository
from usage_audit.repositories.usage_repository import UsageRepository
from usage_audit.services.key_service import KeyService
from usage_audit.services.usage_service import UsageService
from usage_audit.utils.fingerprint import key_fingerprint


async def cmd_issue(owner_id: Optional[str]) -> None:
    """
    Issue a new API key and print it.

    Args:
        owner_id: Owner identifier (defaults to the configured default owner)
    """
    service = KeyService(repository=ApiKeyRepository())
    try:
        response = await service.issue(owner_id)
    except StoreUnavailableError as e:
        print(f"✗ Error: {e.message}")
        sys.exit(1)

    print("✓ API key created successfully")
    print(f"\nAPI Key: {response.api_key}")
    print(f"Owner: {response.user_id}")
    print(f"Ledger fingerprint: {key_fingerprint(response.api_key)}")


async def cmd_show(api_key: str) -> None:
    """
    Print the stored record for a key.

    Args:
        api_key: Raw key
    """
    record = await ApiKeyRepository().get(api_key)
    if not record:
        print(f"✗ Error: API key {mask_api_key(api_key)} not found")
        sys.exit(1)

    print(f"API Key: {mask_api_key(record.api_key)}")
    print(f"Owner: {record.owner_id}")
    print(f"Created: {record.created_at}")
    print(f"Status: {'active' if record.active else 'inactive'}")


async def cmd_usage(api_key: str) -> None:
    """
    Print total usage and recent calls for a key.

    Args:
        api_key: Raw key
    """
    report = await UsageService(repository=UsageRepository()).report(api_key)
    data = report.data

    print(f"API Key: {data.api_key}")
    print(f"Total usage: {data.total_usage}")
    if not data.recent_logs:
        print("No recent calls.")
        return

    print(f"\n{'Created':<29} {'Method':<7} {'Status':<7} {'Endpoint':<30} {'Tag':<20}")
    print("-" * 96)
    for log in data.recent_logs:
        print(
            f"{log.created_at:<29} {log.method:<7} {log.status:<7}"
            f" {log.endpoint:<30} {log.tag:<20}"
        )


async def cmd_last_seen(api_key: str) -> None:
    """
    Print the ledger watermark for a key.

    Args:
        api_key: Raw key (only its fingerprint is sent to the ledger)
    """
    adapter = LedgerAdapter.from_settings(settings)
    fingerprint = key_fingerprint(api_key)
    try:
        last_seen = await adapter.last_seen_at(fingerprint)
    except LedgerSubmitFailedError as e:
        print(f"✗ Error: {e.message}")
        sys.exit(1)

    print(f"Key fingerprint: {fingerprint}")
    if last_seen == 0:
        print("Last seen: never")
    else:
        print(f"Last seen: {last_seen}")


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description="Manage API keys for the usage audit proxy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    issue_parser = subparsers.add_parser("issue", help="Issue a new API key")
    issue_parser.add_argument(
        "--owner",
        type=str,
        default=None,
        help=f"Owner id (default: {settings.default_owner_id})",
    )

    show_parser = subparsers.add_parser("show", help="Show a stored API key")
    show_parser.add_argument("api_key", type=str, help="API key")

    usage_parser = subparsers.add_parser("usage", help="Show usage for a key")
    usage_parser.add_argument("api_key", type=str, help="API key")

    last_seen_parser = subparsers.add_parser(
        "last-seen", help="Read the ledger last-seen watermark for a key"
    )
    last_seen_parser.add_argument("api_key", type=str, help="API key")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "issue":
        asyncio.run(cmd_issue(args.owner))
    elif args.command == "show":
        asyncio.run(cmd_show(args.api_key))
    elif args.command == "usage":
        asyncio.run(cmd_usage(args.api_key))
    elif args.command == "last-seen":
        asyncio.run(cmd_last_seen(args.api_key))


if __name__ == "__main__":
    main()
