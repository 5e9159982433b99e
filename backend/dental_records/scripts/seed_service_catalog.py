from __future__ import annotations

import argparse
import json
import sys

from dental_records.db.session import SessionLocal
from dental_records.services.service_catalog import DEFAULT_SERVICES, ensure_service_catalog


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the clinic service catalog.")
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Apply changes to the database.",
    )
    parser.add_argument(
        "--file",
        help="JSON list of {\"name\", \"description\"} objects to seed instead of the defaults.",
    )
    return parser.parse_args()


def load_entries(path: str | None) -> list[tuple[str, str | None]]:
    if not path:
        return list(DEFAULT_SERVICES)
    with open(path, encoding="utf-8") as handle:
        rows = json.load(handle)
    return [(row["name"], row.get("description")) for row in rows]


def main() -> int:
    args = parse_args()
    entries = load_entries(args.file)
    if not args.apply:
        print(f"Would seed up to {len(entries)} services. Pass --apply to write them.")
        return 2
    session = SessionLocal()
    try:
        added = ensure_service_catalog(session, entries)
        session.commit()
        print(json.dumps({"added": added, "requested": len(entries)}, indent=2))
        return 0
    except KeyError as exc:
        print(f"Invalid catalog file: missing {exc}", file=sys.stderr)
        return 1
    finally:
        session.close()


if __name__ == "__main__":
    raise SystemExit(main())
