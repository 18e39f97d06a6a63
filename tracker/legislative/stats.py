#!/usr/bin/env python3
"""
Dataset statistics export.

Reads data/bills.json and writes public/api/stats.json for the dashboard:
totals of oppose items (bills + riders), how many are pending and how many
have passed, plus the list of passed bills.

Usage:
    python -m tracker.legislative.stats
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from tracker.shared.bill_utils import is_passed
from tracker.shared.config import DEFAULT_CONFIG, load_config, resolve_path
from tracker.shared.errors import ConfigError
from tracker.shared.utils import read_json_strict, save_json, setup_logging


def build_stats(data: dict) -> dict:
    """Summary counts for the dashboard. Riders are always pending oppose items."""
    bills = data.get("bills") or []
    riders = data.get("riders") or []
    support_bills = data.get("supportBills") or []

    passed = [b for b in bills if is_passed(b)]
    pending = [b for b in bills if not is_passed(b)]

    return {
        "lastUpdated": data.get("lastUpdated"),
        "totalBills": len(bills) + len(riders),
        "pendingBills": len(pending) + len(riders),
        "passedBills": len(passed),
        "breakdown": {
            "bills": len(bills),
            "riders": len(riders),
            "supportBills": len(support_bills),
        },
        "passed": [
            {
                "id": b.get("id"),
                "number": (b.get("billNumbers") or [""])[0],
                "title": b.get("title", ""),
                "stage": b["status"]["stage"],
            }
            for b in passed
        ],
    }


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Generate stats.json from bills.json")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Path to config YAML file (default: {DEFAULT_CONFIG})",
    )
    args = parser.parse_args(argv)

    log = setup_logging("tracker")
    try:
        config = load_config(args.config)
        stats = build_stats(read_json_strict(resolve_path(config, "bills_file")))
        stats_path = resolve_path(config, "stats_file")
        save_json(stats, stats_path, logger=log)
    except ConfigError as exc:
        log.error(f"❌ {exc}")
        return 1
    except Exception as exc:
        log.exception(f"Fatal error: {exc}")
        return 1

    print("✓ Generated stats.json")
    print(f"  Total bills: {stats['totalBills']}")
    print(f"  Pending: {stats['pendingBills']}")
    print(f"  Passed: {stats['passedBills']}")
    print(f"  Last updated: {stats['lastUpdated']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
