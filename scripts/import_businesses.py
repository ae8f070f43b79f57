from __future__ import annotations

# ruff: noqa: E402

import argparse
import asyncio
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import cast

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from src.cache import cache_delete, enumeration_cache_keys
from src.db.session import session_context
from src.listings.ingestion import load_records
from src.logging_config import configure_logging
from src.services.listing_service import ListingService
from src.taskiq_app.broker import broker
from src.taskiq_app.tasks import enqueue_import_business_records


@dataclass(frozen=True)
class CliArgs:
    path: Path
    limit: int | None
    enqueue: bool
    clear_cache: bool


def _parse_args(argv: list[str] | None = None) -> CliArgs:
    parser = argparse.ArgumentParser(
        description="Import business registry records (JSON array or CSV)."
    )
    _ = parser.add_argument("path", type=Path, help="Path to a .json or .csv file.")
    _ = parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Import only the first N records.",
    )
    _ = parser.add_argument(
        "--enqueue",
        action="store_true",
        help="Submit the batch to the task queue instead of importing inline.",
    )
    parser.set_defaults(clear_cache=True)
    _ = parser.add_argument(
        "--no-clear-cache",
        dest="clear_cache",
        action="store_false",
        help="Keep cached category and capital-range counts.",
    )
    namespace = parser.parse_args(argv)
    return CliArgs(
        path=cast(Path, namespace.path),
        limit=cast(int | None, namespace.limit),
        enqueue=cast(bool, namespace.enqueue),
        clear_cache=cast(bool, namespace.clear_cache),
    )


async def _run(args: CliArgs) -> dict[str, object]:
    records = load_records(args.path)
    if args.limit is not None:
        records = records[: max(args.limit, 0)]

    if args.enqueue:
        await broker.startup()
        try:
            return await enqueue_import_business_records(records)
        finally:
            await broker.shutdown()

    async with session_context() as session:
        result = await ListingService(session).import_records(records)

    if args.clear_cache and result.count:
        await cache_delete(*enumeration_cache_keys())

    return {
        "source": str(args.path),
        "received": len(records),
        "imported": result.count,
        "errors": result.errors,
    }


async def _async_main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if not args.path.is_file():
        print(f"File not found: {args.path}", file=sys.stderr)
        return 2

    summary = await _run(args)
    print(json.dumps(summary, ensure_ascii=False, indent=2))
    return 0


def main() -> None:
    configure_logging()
    raise SystemExit(asyncio.run(_async_main()))


if __name__ == "__main__":
    main()
