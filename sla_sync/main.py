from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

import httpx
from dotenv import load_dotenv

from .config import ConfigError, load_config
from .notion_client import NotionAPIError, NotionClient
from .pipeline import synchronize

LOGGER = logging.getLogger("sla_sync")


def _load_env_files(config_path: Path | None) -> None:
    """Load environment variables from .env files."""

    load_dotenv(override=False)

    if config_path is not None:
        config_env = config_path.parent / ".env"
        if config_env.exists():
            load_dotenv(dotenv_path=config_env, override=False)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Synchronize the SLA property of Notion database pages"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional YAML file with property names, labels and API settings",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute SLA changes without writing them to Notion",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config_path = Path(args.config).expanduser().resolve() if args.config else None
    _load_env_files(config_path)
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        LOGGER.error("%s", exc)
        return 1

    try:
        with NotionClient(config.notion) as client:
            summary = synchronize(config, client, dry_run=args.dry_run)
    except NotionAPIError as exc:
        LOGGER.error("Notion API request failed: %s", exc)
        return 1
    except httpx.HTTPError as exc:
        LOGGER.error("Notion API transport error: %s", exc)
        return 1
    except ValueError as exc:
        LOGGER.error("%s", exc)
        return 1

    LOGGER.info(
        "Processed %s pages: %s updated, %s unchanged, %s not tracked",
        summary.fetched,
        summary.updated,
        summary.unchanged,
        summary.skipped,
    )
    if summary.dry_run:
        print(f"SLA would be updated for {summary.updated} pages")
    else:
        print(f"SLA updated for {summary.updated} pages")
    return 0


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
