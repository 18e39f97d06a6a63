#!/usr/bin/env python3
"""
DC Home Rule Bill Monitor
=========================
Checks every tracked bill in data/bills.json against Congress.gov and
records status, activity flags, passage stage, roll-call vote tallies and a
priority tier.

Pipeline:  load → fetch (per bill, sequential) → analyze → merge → store → report

For each bill (first billNumbers entry only):
  1. GET bill, actions, cosponsors          (3 calls, rate limited)
  2. Analyze actions → hearing / markup / floor flags, passage, stage
  3. If a passage action cites a roll call, GET the chamber's tally
  4. Priority cascade (first matching rule wins)
  5. Merge: stage forward-only, vote tallies first-write-wins

The dataset is re-read immediately before the write so hand edits made
while the run was in progress survive. lastUpdated is always rewritten
(DC local date), and a {timestamp, changes, errors} entry is appended to
the run history (last 30 runs kept).

Usage:
    python -m tracker.legislative.monitor
    python -m tracker.legislative.monitor --config path/to/config.yaml

Environment variables:
    CONGRESS_API_KEY   Free key from https://api.congress.gov/sign-up/
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from tracker.legislative.action_analyzer import analyze_actions, simplified_status
from tracker.legislative.congress_client import (
    CongressClient,
    fetch_or_default,
    session_for_date,
)
from tracker.legislative.merge import append_history, merge_bill_status, pinned_priority
from tracker.shared.bill_utils import (
    congress_gov_link,
    display_bill_number,
    iter_records,
    parse_bill_number,
)
from tracker.shared.config import (
    DEFAULT_CONFIG,
    load_config,
    logging_options,
    require_api_key,
    resolve_path,
)
from tracker.shared.errors import ConfigError, TrackerError
from tracker.shared.utils import (
    DC_TIMEZONE,
    load_json,
    read_json_strict,
    save_json,
    setup_logging,
    today_in_tz,
)

PRIORITY_ORDER = ("high", "medium", "watching", "low")


# ===========================================================================
# Priority cascade
# ===========================================================================

def calculate_priority(
    fresh: dict,
    record: dict,
    cosponsors_high: int = 20,
    cosponsors_medium: int = 5,
) -> dict:
    """Priority tier for a bill: the first matching rule decides.

    manual high > FreeDC-listed > floor vote > markup > hearing
    > cosponsors >= high > cosponsors >= medium > in committee
    > recently introduced > default.
    """
    cosponsors = fresh.get("cosponsors", 0)

    pinned = pinned_priority(record)
    if pinned:
        source = pinned["prioritySource"]
        reason = "Manually flagged" if source == "manual" else "Listed on FreeDC"
        return {"priority": pinned["priority"], "source": source, "reason": reason}
    if fresh.get("has_floor_vote"):
        return {"priority": "high", "source": "legislative", "reason": "Floor vote occurred"}
    if fresh.get("has_committee_markup"):
        return {"priority": "high", "source": "legislative", "reason": "Committee markup held"}
    if fresh.get("has_committee_hearing"):
        return {"priority": "high", "source": "legislative", "reason": "Committee hearing held"}
    if cosponsors >= cosponsors_high:
        return {"priority": "high", "source": "legislative", "reason": f"{cosponsors} cosponsors"}
    if cosponsors >= cosponsors_medium:
        return {"priority": "medium", "source": "legislative", "reason": f"{cosponsors} cosponsors"}
    if fresh.get("simple_status") == "IN_COMMITTEE":
        return {"priority": "medium", "source": "legislative", "reason": "In committee"}
    if fresh.get("simple_status") == "INTRODUCED":
        return {"priority": "watching", "source": "legislative", "reason": "Recently introduced"}
    return {"priority": "low", "source": "legislative", "reason": "No significant activity"}


# ===========================================================================
# BillMonitor
# ===========================================================================

class BillMonitor:
    """
    Status/passage monitor for the tracked DC bills.

    Bills are processed one at a time in document order; every request
    goes through the client's shared rate gate. A bill that cannot be
    parsed or fetched is recorded as an error and the run continues.
    """

    def __init__(
        self,
        config_path: Path = DEFAULT_CONFIG,
        config: Optional[dict] = None,
        client: Optional[CongressClient] = None,
    ):
        self.config = config if config is not None else load_config(config_path)
        self.client = client
        self.bills_path = resolve_path(self.config, "bills_file")
        self.history_path = resolve_path(self.config, "history_file")

        monitor_cfg = self.config.get("monitor", {})
        self.sections = tuple(monitor_cfg.get("sections", ("bills", "supportBills")))
        self.history_cap = int(monitor_cfg.get("history_cap", 30))
        self.tz_name = monitor_cfg.get("timezone", DC_TIMEZONE)
        self.cosponsors_high = int(monitor_cfg.get("cosponsors_high", 20))
        self.cosponsors_medium = int(monitor_cfg.get("cosponsors_medium", 5))

        self.logger = logging.getLogger("tracker.monitor")

    # -----------------------------------------------------------------------
    # Main entry point
    # -----------------------------------------------------------------------

    def run(self) -> dict:
        """Check every tracked bill. Returns {checked, changes, errors, results}."""
        if self.client is None:
            api_key = require_api_key(self.config)
            self.client = CongressClient.from_config(self.config, api_key)

        self.logger.info("🔍 Starting bill monitoring...")
        data = read_json_strict(self.bills_path)
        records = list(iter_records(data, self.sections))
        self.logger.info(f"📊 Checking {len(records)} bills")

        updates: dict[str, dict] = {}
        results: list[dict] = []
        errors: list[dict] = []

        for i, record in enumerate(records, start=1):
            citation = (record.get("billNumbers") or [""])[0]
            self.logger.info(f"[{i}/{len(records)}] Checking {citation or record.get('id')}...")

            parsed = parse_bill_number(citation)
            if parsed is None:
                self.logger.warning(f"  ⚠️  Could not parse bill number: {citation!r}")
                errors.append({"id": record.get("id"), "billNumber": citation,
                               "error": "Could not parse bill number"})
                continue

            try:
                fresh = self.fetch_bill_status(parsed["bill_type"], parsed["number"])
            except TrackerError as exc:
                self.logger.error(f"  ❌ Error fetching {citation}: {exc}")
                errors.append({"id": record.get("id"), "billNumber": citation, "error": str(exc)})
                continue

            if fresh is None:
                self.logger.warning(f"  ❌ Bill not found in API: {citation}")
                errors.append({"id": record.get("id"), "billNumber": citation,
                               "error": "Bill not found"})
                continue

            priority = calculate_priority(
                fresh, record, self.cosponsors_high, self.cosponsors_medium
            )
            badge = {"high": "🔴", "medium": "🟡"}.get(priority["priority"], "⚪")
            self.logger.info(f"  {badge} Priority: {priority['priority']} ({priority['reason']})")

            updates[record.get("id")] = self._build_update(fresh, priority)
            results.append({
                "id": record.get("id"),
                "billNumber": citation,
                "title": record.get("title", ""),
                "url": fresh["url"],
                "status": fresh["simple_status"],
                "stage": fresh["stage"],
                "latestAction": fresh["latest_action"],
                "latestActionDate": fresh["latest_action_date"],
                "cosponsorsCount": fresh["cosponsors"],
                "hasCommitteeHearing": fresh["has_committee_hearing"],
                "hasCommitteeMarkup": fresh["has_committee_markup"],
                "hasFloorVote": fresh["has_floor_vote"],
                "priority": priority["priority"],
                "prioritySource": priority["source"],
                "priorityReason": priority["reason"],
            })

        changes = self._store(updates)
        self._append_history(changes, errors)
        self._print_report(results, errors)

        return {"checked": len(records), "changes": changes, "errors": errors, "results": results}

    # -----------------------------------------------------------------------
    # Fetch + analyze one bill
    # -----------------------------------------------------------------------

    def fetch_bill_status(self, bill_type: str, number: str) -> Optional[dict]:
        """Fetch and analyze one bill. None if the API has no such bill.

        Only the core bill fetch may raise; actions, cosponsors and vote
        tallies degrade to empty defaults.
        """
        client = self.client
        bill = client.get_bill(bill_type, number)
        if bill is None:
            return None

        label = display_bill_number(bill_type, number)
        actions = fetch_or_default(
            lambda: client.get_actions(bill_type, number), [], f"actions for {label}"
        )
        cosponsors = fetch_or_default(
            lambda: client.get_cosponsor_count(bill_type, number), 0, f"cosponsors for {label}"
        )

        signals = analyze_actions(actions)
        latest = bill.get("latestAction") or {}

        votes: dict = {"house": None, "senate": None}
        for chamber, info in signals["passage"].items():
            if not info or not info.get("roll_call"):
                continue
            roll = int(info["roll_call"])
            session = session_for_date(client.congress, info.get("date"))
            tally = fetch_or_default(
                lambda: client.get_vote(chamber, session, roll),
                None,
                f"{chamber} roll call {roll} for {label}",
            )
            if tally:
                votes[chamber] = {"date": info.get("date"), "vote": tally}
                self.logger.info(
                    f"  🗳️  {chamber.title()} roll call {roll}: {tally['yeas']}-{tally['nays']}"
                )

        return {
            "title": bill.get("title", ""),
            "latest_action": latest.get("text") or "No recent action",
            "latest_action_date": latest.get("actionDate"),
            "simple_status": simplified_status(latest.get("text") or ""),
            "introduced_date": bill.get("introducedDate"),
            "url": congress_gov_link(client.congress, bill_type, number),
            "cosponsors": cosponsors,
            "has_committee_hearing": signals["has_committee_hearing"],
            "has_committee_markup": signals["has_committee_markup"],
            "has_floor_vote": signals["has_floor_vote"],
            "committees": signals["committees"],
            "passage": signals["passage"],
            "stage": signals["stage"],
            "votes": votes,
        }

    @staticmethod
    def _build_update(fresh: dict, priority: dict) -> dict:
        return {
            "stage": fresh["stage"],
            "lastAction": fresh["latest_action"],
            "lastActionDate": fresh["latest_action_date"],
            "hasCommitteeHearing": fresh["has_committee_hearing"],
            "hasCommitteeMarkup": fresh["has_committee_markup"],
            "hasFloorVote": fresh["has_floor_vote"],
            "cosponsors": fresh["cosponsors"],
            "committees": fresh["committees"],
            "passage": fresh["votes"],
            "priority": priority["priority"],
            "prioritySource": priority["source"],
        }

    # -----------------------------------------------------------------------
    # Store
    # -----------------------------------------------------------------------

    def _store(self, updates: dict[str, dict]) -> list[dict]:
        """Re-read bills.json, merge updates by id, stamp lastUpdated, write."""
        data = read_json_strict(self.bills_path)
        changes: list[dict] = []

        for record in iter_records(data, self.sections):
            update = updates.get(record.get("id"))
            if update is None:
                continue
            changed = merge_bill_status(record, update)
            if changed:
                changes.append({
                    "id": record.get("id"),
                    "billNumber": (record.get("billNumbers") or [""])[0],
                    "changed": changed,
                })
                self.logger.info(
                    f"  ✏️  {record.get('id')}: {', '.join(sorted(changed))}"
                )

        data["lastUpdated"] = today_in_tz(self.tz_name)
        save_json(data, self.bills_path, logger=self.logger)
        self.logger.info(
            f"💾 Saved {self.bills_path.name} — {len(changes)} bill(s) changed, "
            f"lastUpdated {data['lastUpdated']}"
        )
        return changes

    def _append_history(self, changes: list[dict], errors: list[dict]) -> None:
        history = load_json(self.history_path, default=[], logger=self.logger)
        if not isinstance(history, list):
            self.logger.warning(f"{self.history_path.name} is not a list — starting fresh")
            history = []
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "changes": changes,
            "errors": errors,
        }
        save_json(append_history(history, entry, self.history_cap), self.history_path,
                  logger=self.logger)
        self.logger.info(f"💾 Results saved to: {self.history_path}")

    # -----------------------------------------------------------------------
    # Report
    # -----------------------------------------------------------------------

    def _print_report(self, results: list[dict], errors: list[dict]) -> None:
        print(render_report(results, errors))


def render_report(results: list[dict], errors: list[dict]) -> str:
    """Terminal report: bills grouped by priority tier, then errors."""
    by_priority: dict[str, list[dict]] = {p: [] for p in PRIORITY_ORDER}
    for result in results:
        by_priority.setdefault(result.get("priority") or "low", []).append(result)

    lines = [
        "",
        "📋 BILL STATUS REPORT",
        "=" * 80,
        f"Successful checks: {len(results)}",
        f"Errors: {len(errors)}",
        "",
        f"🔴 HIGH PRIORITY BILLS ({len(by_priority['high'])})",
        "=" * 80,
    ]
    for r in by_priority["high"]:
        lines += [
            f"  {r['billNumber']}: {r['title']}",
            f"    Status: {r['status']}" + (f" | Stage: {r['stage']}" if r.get("stage") else ""),
            f"    Priority reason: {r['priorityReason']}",
            f"    Latest: {r['latestAction']} ({r['latestActionDate'] or 'Unknown'})",
            f"    Cosponsors: {r['cosponsorsCount']}",
        ]
        if r["hasCommitteeHearing"]:
            lines.append("    ✓ Committee hearing held")
        if r["hasCommitteeMarkup"]:
            lines.append("    ✓ Committee markup held")
        if r["hasFloorVote"]:
            lines.append("    ✓ Floor vote occurred")
        lines.append(f"    URL: {r['url']}")

    lines += ["", f"🟡 MEDIUM PRIORITY BILLS ({len(by_priority['medium'])})", "=" * 80]
    for r in by_priority["medium"]:
        lines += [
            f"  {r['billNumber']}: {r['title']}",
            f"    Status: {r['status']} | Cosponsors: {r['cosponsorsCount']}",
        ]

    lines += ["", f"⚪ WATCHING ({len(by_priority['watching'])})", "=" * 80]
    lines += [f"  {r['billNumber']}: {r['title']}" for r in by_priority["watching"]]

    lines += ["", f"⚪ LOW ({len(by_priority['low'])})", "=" * 80]
    lines += [f"  {r['billNumber']}: {r['title']}" for r in by_priority["low"]]

    if errors:
        lines += ["", "❌ ERRORS", "-" * 80]
        lines += [f"  {e.get('billNumber') or e.get('id')}: {e['error']}" for e in errors]

    lines.append("=" * 80)
    return "\n".join(lines)


# ===========================================================================
# CLI entry point
# ===========================================================================

def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "DC Home Rule Bill Monitor — checks every tracked bill on Congress.gov "
            "for status, passage and vote updates."
        ),
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Path to config YAML file (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable DEBUG logging",
    )
    args = parser.parse_args(argv)

    log = logging.getLogger("tracker.monitor")
    try:
        config = load_config(args.config)
        setup_logging("tracker", **logging_options(config, verbose=args.verbose))
        summary = BillMonitor(config=config).run()
    except ConfigError as exc:
        setup_logging("tracker")
        log.error(f"❌ {exc}")
        return 1
    except Exception as exc:
        setup_logging("tracker")
        log.exception(f"Fatal error: {exc}")
        return 1

    log.info(
        f"✅ Monitoring complete — {summary['checked']} checked, "
        f"{len(summary['changes'])} changed, {len(summary['errors'])} errors"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
