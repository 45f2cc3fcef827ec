#!/usr/bin/env python3
"""Dump the picture metadata held in the local store.

Loads every stored picture through the repository and prints it ordered
by time.  Optionally reconciles the store against the picture files that
still exist on disk first.

Usage
-----
::

    export GEOCAM_DATABASE_URL="sqlite:///picture_data.db"
    python scripts/dump_pictures.py

Options::

    --database-url URL   Override GEOCAM_DATABASE_URL
    --reconcile DIR      Drop rows whose file no longer exists below DIR
    --delete KEY         Delete the picture stored under KEY (repeatable)
    --json               Output as machine-readable JSON
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pygeocam import Failure, GeoCamConfig, PictureData, PictureDataRepository, Success  # noqa: E402


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _format_time(timestamp: int) -> str:
    # Pictures carry epoch milliseconds; marker snippets show local wall time.
    moment = datetime.fromtimestamp(timestamp / 1000.0, tz=UTC).astimezone()
    return moment.strftime("%d/%m/%Y, %I:%M %p")


def _format_picture(picture: PictureData) -> str:
    return f"  {_format_time(picture.timestamp)}  ({picture.latitude:.6f}, {picture.longitude:.6f})  {picture.key}"


async def main() -> int:
    parser = argparse.ArgumentParser(
        description="Dump the picture metadata stored by pygeocam.",
    )
    parser.add_argument("--database-url", help="SQLAlchemy URL of the picture store")
    parser.add_argument("--reconcile", metavar="DIR", help="Remove rows whose file no longer exists below DIR")
    parser.add_argument("--delete", action="append", default=[], metavar="KEY", help="Delete the picture under KEY")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.database_url:
        overrides["database_url"] = args.database_url
    config = GeoCamConfig.from_env(**overrides)

    async with PictureDataRepository.from_config(config) as repository:
        for key in args.delete:
            deleted = await repository.delete(key)
            if isinstance(deleted, Failure):
                print(f"delete {key} failed: {deleted.error}", file=sys.stderr)
                return 1

        if args.reconcile:
            reconciled = await repository.clear_deleted(args.reconcile)
            if isinstance(reconciled, Failure):
                print(f"reconcile failed: {reconciled.error}", file=sys.stderr)
                return 1

        match await repository.get_all():
            case Success(value=pictures):
                pass
            case Failure(error=err):
                print(f"loading pictures failed: {err}", file=sys.stderr)
                return 1

    if args.json_mode:
        payload = [picture.model_dump() for picture in pictures]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    out: list[str] = [_section("pygeocam dump_pictures")]
    out.append(f"  store     : {config.database_url}")
    out.append(f"  pictures  : {len(pictures)}")
    out.append(_section("PICTURES"))
    out.extend(_format_picture(picture) for picture in pictures)
    print("\n".join(out))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
