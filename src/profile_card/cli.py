#!/usr/bin/env python3
"""
Fetch a profile from the command line and print it as JSON.

Usage:
    uv run profile-card-fetch octocat
    uv run profile-card-fetch octocat --no-languages
"""

import argparse
import asyncio
import sys

from profile_card.app import configure_logging
from profile_card.config import settings
from profile_card.errors import ProfileCardError
from profile_card.models import ProfileRecord
from profile_card.service import ProfileService


async def fetch_profile(username: str, include_languages: bool = True) -> ProfileRecord:
    """
    Fetch one profile through the full cache stack.

    Args:
        username: GitHub login
        include_languages: Whether to fetch the language breakdown

    Returns:
        The assembled profile
    """
    service = ProfileService.from_settings(settings)
    try:
        return await service.fetch_profile(username, include_languages)
    finally:
        await service.close()


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Fetch GitHub profile statistics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  uv run profile-card-fetch octocat
  uv run profile-card-fetch octocat --no-languages --verbose
        """,
    )

    parser.add_argument("username", help="GitHub login")

    parser.add_argument(
        "--no-languages",
        action="store_true",
        help="Skip the language breakdown (faster query)",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()
    configure_logging("DEBUG" if args.verbose else settings.log_level)

    try:
        profile = asyncio.run(fetch_profile(args.username, not args.no_languages))
    except ProfileCardError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(profile.model_dump_json(by_alias=True, indent=2))


if __name__ == "__main__":
    main()
