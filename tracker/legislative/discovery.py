#!/usr/bin/env python3
"""
DC Home Rule Bill Discovery
===========================
Surfaces Congressional bills that may affect DC home rule and are not yet
tracked in data/bills.json.

Pipeline:  tracked set → channels → dedup → details → score → tier → store → report

Channels (merged by canonical id; a bill found twice carries both sources):
  1. Committee   bills referred to House Oversight (and its DC subcommittee)
                 and Senate HSGAC, current congress only
  2. Title scan  every hr / s / hjres / sjres bill updated since the last run,
                 filtered by the DC positive/negative title patterns
  3. Subject     contributes no candidates; the "District of Columbia"
                 legislative subject is scored during the detail phase

Tiers (see relevance.py):
  score >= 40   auto-add     appended to bills.json as a provisional entry
  score >= 20   review       listed in the report for a human decision
  otherwise     skip

Usage:
    python -m tracker.legislative.discovery               # incremental
    python -m tracker.legislative.discovery --full        # whole congress
    python -m tracker.legislative.discovery --dry-run --verbose

Environment variables:
    CONGRESS_API_KEY   Free key from https://api.congress.gov/sign-up/
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Optional

from tracker.legislative.congress_client import CongressClient, fetch_or_default
from tracker.legislative.merge import append_bill_entries
from tracker.legislative.relevance import (
    TIER_AUTO_ADD,
    TIER_REVIEW,
    TIER_SKIP,
    build_rules,
    matches_dc_title,
    score_relevance,
    tier_for_score,
)
from tracker.shared.bill_utils import (
    build_tracked_set,
    congress_gov_link,
    display_bill_number,
    normalize_bill_id,
)
from tracker.shared.config import (
    DEFAULT_CONFIG,
    PROJECT_ROOT,
    load_config,
    logging_options,
    require_api_key,
    resolve_path,
)
from tracker.shared.errors import ConfigError, TrackerError
from tracker.shared.utils import (
    DC_TIMEZONE,
    ensure_dir,
    load_json,
    read_json_strict,
    save_json,
    setup_logging,
    today_in_tz,
)

CHANNEL_TITLE_SCAN = "title-scan"


# ===========================================================================
# Candidate map helpers
# ===========================================================================

def make_candidate(bill_type: str, number, title: str, source: str) -> dict:
    return {
        "billType": bill_type.lower(),
        "number": str(number),
        "title": title or "",
        "source": [source],
    }


def merge_candidates(into: dict[str, dict], found: dict[str, dict]) -> dict[str, dict]:
    """Merge one channel's candidates into the combined map, appending sources."""
    for bill_id, candidate in found.items():
        if bill_id in into:
            into[bill_id]["source"].extend(candidate["source"])
        else:
            into[bill_id] = {**candidate, "source": list(candidate["source"])}
    return into


def build_bill_entry(
    candidate: dict,
    details: dict,
    score: int,
    congress: int,
    today: str,
    description_max_chars: int = 300,
) -> dict:
    """Provisional bills.json entry for an auto-added candidate."""
    bill_type = candidate["billType"]
    number = candidate["number"]

    description = "Auto-discovered."
    summary = details.get("summary") or ""
    if summary:
        if len(summary) > description_max_chars:
            summary = summary[:description_max_chars] + "..."
        description += f" {summary}"

    return {
        "id": normalize_bill_id(bill_type, number),
        "billNumbers": [display_bill_number(bill_type, number)],
        "title": details.get("title") or "Unknown Title",
        "sponsors": details.get("sponsors") or [],
        "description": description,
        "category": "other",
        "position": "oppose",
        "type": "bill",
        "priority": "watching",
        "prioritySource": "auto-discovered",
        "provisional": True,
        "autoDiscovered": True,
        "discoveredDate": today,
        "relevanceScore": score,
        "congressGovLink": congress_gov_link(congress, bill_type, number),
        "status": {
            "stage": None,
            "lastAction": details.get("latestAction") or "Unknown",
            "lastActionDate": details.get("latestActionDate") or today,
            "hasCommitteeHearing": False,
            "hasCommitteeMarkup": False,
            "hasFloorVote": False,
            "cosponsors": details.get("cosponsorsCount") or 0,
            "committees": details.get("committees") or [],
        },
        "attackType": "unknown",
    }


# ===========================================================================
# BillDiscovery
# ===========================================================================

class BillDiscovery:
    """
    Multi-channel discovery of DC-related bills.

    Requests are issued one at a time through the client's shared rate
    gate. A failing channel or sub-fetch is logged and skipped; only a
    failed primary bill fetch drops a candidate.
    """

    def __init__(
        self,
        config_path: Path = DEFAULT_CONFIG,
        config: Optional[dict] = None,
        client: Optional[CongressClient] = None,
    ):
        self.config = config if config is not None else load_config(config_path)
        self.client = client
        self.rules = build_rules(self.config)

        self.bills_path = resolve_path(self.config, "bills_file")
        self.last_run_path = resolve_path(self.config, "last_run_file")
        self.reports_dir = resolve_path(self.config, "reports_dir")

        disc = self.config.get("discovery", {})
        self.committees = disc.get("committees") or []
        self.bill_types = disc.get("bill_types") or ["hr", "s", "hjres", "sjres"]
        self.page_size = int(disc.get("page_size", 250))
        self.max_offset = int(disc.get("max_offset", 1000))
        self.lookback_days = int(disc.get("default_lookback_days", 30))
        self.description_max_chars = int(disc.get("description_max_chars", 300))
        self.tz_name = self.config.get("monitor", {}).get("timezone", DC_TIMEZONE)

        self.verbose = False
        self.logger = logging.getLogger("tracker.discovery")

    @property
    def congress(self) -> int:
        if self.client is not None:
            return self.client.congress
        return int(self.config.get("congress", {}).get("number", 119))

    # -----------------------------------------------------------------------
    # Main entry point
    # -----------------------------------------------------------------------

    def run(self, full: bool = False, dry_run: bool = False, verbose: bool = False) -> dict:
        """
        Run one discovery pass.

        Args:
            full:     Ignore the incremental window and scan the whole congress.
            dry_run:  Score and report, but do not add bills to bills.json.
            verbose:  Log per-candidate reasoning and skipped candidates.

        Returns:
            {"tracked", "candidates", "already_tracked", "auto_add", "review",
             "skipped", "added", "report"}
        """
        self.verbose = verbose
        if self.client is None:
            api_key = require_api_key(self.config)
            self.client = CongressClient.from_config(self.config, api_key)

        mode = " | ".join([
            "Full scan" if full else "Incremental",
            "Dry run" if dry_run else "Live",
            "Verbose" if verbose else "Normal",
        ])
        self.logger.info("=" * 60)
        self.logger.info("🔎 DC Bill Discovery — pipeline start")
        self.logger.info(f"Mode      : {mode}")
        self.logger.info(f"Bills file: {self.bills_path}")

        # ------------------------------------------------------------------
        # Stage 1: Tracked set + incremental window
        # ------------------------------------------------------------------
        data = read_json_strict(self.bills_path)
        tracked = build_tracked_set(data)
        self.logger.info(f"📊 Currently tracking {len(tracked)} bill identifiers")

        from_date = None if full else self._from_date()
        if from_date:
            self.logger.info(f"📅 Scanning bills updated since: {from_date}")
        else:
            self.logger.info(f"📅 Full scan of the {self.congress}th Congress")

        # ------------------------------------------------------------------
        # Stage 2: Channels
        # ------------------------------------------------------------------
        candidates: dict[str, dict] = {}
        merge_candidates(candidates, self.discover_from_committees())
        merge_candidates(candidates, self.discover_from_titles(from_date))
        merge_candidates(candidates, self.discover_from_subjects())
        self.logger.info(f"📦 Total unique candidates across all channels: {len(candidates)}")

        # ------------------------------------------------------------------
        # Stage 3: Drop tracked bills
        # ------------------------------------------------------------------
        new_candidates: dict[str, dict] = {}
        already_tracked = 0
        for bill_id, candidate in candidates.items():
            if bill_id in tracked:
                already_tracked += 1
                self._detail(
                    f"  ✓ Already tracked: "
                    f"{display_bill_number(candidate['billType'], candidate['number'])}"
                )
            else:
                new_candidates[bill_id] = candidate
        self.logger.info(f"✅ Already tracked: {already_tracked}")
        self.logger.info(f"🆕 New candidates to evaluate: {len(new_candidates)}")

        # ------------------------------------------------------------------
        # Stage 4: Details + scoring
        # ------------------------------------------------------------------
        results = self._evaluate(new_candidates)

        # ------------------------------------------------------------------
        # Stage 5: Store
        # ------------------------------------------------------------------
        added: list[dict] = []
        if results[TIER_AUTO_ADD] and not dry_run:
            added = self._store(results[TIER_AUTO_ADD])
        elif results[TIER_AUTO_ADD]:
            self.logger.info("📋 DRY RUN — would have added these bills to bills.json:")
            for entry in results[TIER_AUTO_ADD]:
                self.logger.info(f"  {entry['displayNumber']}: {entry['title']}")

        self._save_last_run()

        # ------------------------------------------------------------------
        # Stage 6: Report
        # ------------------------------------------------------------------
        report_path = self._report(results, already_tracked, from_date, dry_run)
        self.logger.info(f"📝 Report: {report_path}")
        self.logger.info("=" * 60)

        print(render_summary(results, report_path, dry_run, len(added), verbose))

        return {
            "tracked": len(tracked),
            "candidates": len(candidates),
            "already_tracked": already_tracked,
            "auto_add": results[TIER_AUTO_ADD],
            "review": results[TIER_REVIEW],
            "skipped": results[TIER_SKIP],
            "added": added,
            "report": report_path,
        }

    # -----------------------------------------------------------------------
    # Stage 2: Channels
    # -----------------------------------------------------------------------

    def discover_from_committees(self) -> dict[str, dict]:
        """Channel 1: bills referred to the DC-relevant committees."""
        self.logger.info("📋 Channel 1: Committee-based discovery")
        found: dict[str, dict] = {}

        for committee in self.committees:
            code, name = committee["code"], committee.get("name", committee["code"])
            self._detail(f"  Checking {name} ({code})...")
            try:
                bills = self.client.list_committee_bills(code)
            except TrackerError as exc:
                self.logger.warning(f"  ⚠️  Error querying {name}: {exc}")
                continue
            self._detail(f"    Found {len(bills)} bills")

            for bill in bills:
                if str(bill.get("congress")) != str(self.congress):
                    continue
                bill_type, number = str(bill.get("type") or "").lower(), bill.get("number")
                if not bill_type or not number:
                    continue
                bill_id = normalize_bill_id(bill_type, number)
                if bill_id in found:
                    found[bill_id]["source"].append(name)
                else:
                    found[bill_id] = make_candidate(bill_type, number, bill.get("title"), name)

        self.logger.info(f"  Found {len(found)} candidates from committees")
        return found

    def discover_from_titles(self, from_date: Optional[str] = None) -> dict[str, dict]:
        """Channel 2: page through recently updated bills and keep DC titles."""
        self.logger.info("🔍 Channel 2: Title scanning")
        found: dict[str, dict] = {}

        for bill_type in self.bill_types:
            self._detail(f"  Scanning {bill_type} bills...")
            offset = 0
            while True:
                try:
                    bills = self.client.list_bills(
                        bill_type, offset=offset, limit=self.page_size, from_date=from_date
                    )
                except TrackerError as exc:
                    self.logger.warning(
                        f"  ⚠️  Error scanning {bill_type} at offset {offset}: {exc}"
                    )
                    break

                self._detail(f"    Fetched {len(bills)} {bill_type} bills (offset {offset})")
                for bill in bills:
                    number = bill.get("number")
                    title = bill.get("title") or ""
                    if not number or not matches_dc_title(title, self.rules):
                        continue
                    bill_id = normalize_bill_id(bill_type, number)
                    if bill_id not in found:
                        found[bill_id] = make_candidate(
                            bill_type, number, title, CHANNEL_TITLE_SCAN
                        )

                if len(bills) < self.page_size or offset >= self.max_offset:
                    break
                offset += self.page_size

        self.logger.info(f"  Found {len(found)} candidates from title scanning")
        return found

    def discover_from_subjects(self) -> dict[str, dict]:
        """Channel 3: no independent candidates.

        Congress.gov has no list-by-subject endpoint; subject matches are
        scored for candidates surfaced by the other channels.
        """
        self.logger.info("🏷️  Channel 3: Subject-based discovery (scored during detail fetch)")
        return {}

    # -----------------------------------------------------------------------
    # Stage 4: Details + scoring
    # -----------------------------------------------------------------------

    def fetch_candidate_details(self, bill_type: str, number: str) -> Optional[dict]:
        """Full details for one candidate, or None if the primary fetch fails."""
        client = self.client
        try:
            bill = client.get_bill(bill_type, number)
        except TrackerError as exc:
            self.logger.warning(f"  ⚠️  Error fetching {bill_type}{number}: {exc}")
            return None
        if bill is None:
            return None

        label = display_bill_number(bill_type, number)
        committees = fetch_or_default(
            lambda: client.get_committees(bill_type, number), [], f"committees for {label}"
        )
        subjects = fetch_or_default(
            lambda: client.get_subjects(bill_type, number), [], f"subjects for {label}"
        )
        summary = fetch_or_default(
            lambda: client.get_latest_summary(bill_type, number), "", f"summary for {label}"
        )
        cosponsors = fetch_or_default(
            lambda: client.get_cosponsor_count(bill_type, number), 0, f"cosponsors for {label}"
        )

        latest = bill.get("latestAction") or {}
        return {
            "title": bill.get("title") or "",
            "sponsors": [s["fullName"] for s in bill.get("sponsors") or [] if s.get("fullName")],
            "latestAction": latest.get("text") or "",
            "latestActionDate": latest.get("actionDate") or "",
            "introducedDate": bill.get("introducedDate") or "",
            "committees": committees,
            "subjects": subjects,
            "summary": summary,
            "cosponsorsCount": cosponsors,
            "congressUrl": congress_gov_link(self.congress, bill_type, number),
        }

    def _evaluate(self, candidates: dict[str, dict]) -> dict[str, list[dict]]:
        results: dict[str, list[dict]] = {TIER_AUTO_ADD: [], TIER_REVIEW: [], TIER_SKIP: []}
        badges = {TIER_AUTO_ADD: "🟢 AUTO-ADD", TIER_REVIEW: "🟡 REVIEW NEEDED",
                  TIER_SKIP: "⚪ SKIPPED"}

        for i, (bill_id, candidate) in enumerate(candidates.items(), start=1):
            display = display_bill_number(candidate["billType"], candidate["number"])
            self.logger.info(f"[{i}/{len(candidates)}] Evaluating {display}...")
            self._detail(f"  Title: {candidate['title']}")
            self._detail(f"  Sources: {', '.join(candidate['source'])}")

            details = self.fetch_candidate_details(candidate["billType"], candidate["number"])
            if details is None:
                self.logger.warning("  ⚠️  Could not fetch details, skipping")
                continue

            scored = score_relevance(candidate, details, self.rules)
            tier = tier_for_score(scored["score"], self.rules)
            for reason in scored["reasons"]:
                self._detail(f"    {reason}")
            self.logger.info(f"  {badges[tier]} (score {scored['score']})")

            results[tier].append({
                "id": bill_id,
                "displayNumber": display,
                "title": details["title"] or candidate["title"],
                "score": scored["score"],
                "reasons": scored["reasons"],
                "details": details,
                "candidate": candidate,
            })
        return results

    # -----------------------------------------------------------------------
    # Stage 5: Store
    # -----------------------------------------------------------------------

    def _store(self, auto_add: list[dict]) -> list[dict]:
        """Append auto-add entries to a freshly re-read bills.json."""
        self.logger.info("💾 Adding high-confidence bills to bills.json...")
        today = today_in_tz(self.tz_name)
        entries = [
            build_bill_entry(
                e["candidate"], e["details"], e["score"], self.congress, today,
                self.description_max_chars,
            )
            for e in auto_add
        ]

        data = read_json_strict(self.bills_path)
        added, skipped = append_bill_entries(data, entries)
        for entry in added:
            self.logger.info(f"  ✓ Added {entry['billNumbers'][0]}: {entry['title']}")
        for entry in skipped:
            self.logger.info(f"  ↷ {entry['id']} was added elsewhere during this run, skipping")

        if added:
            data["lastUpdated"] = today
            save_json(data, self.bills_path, logger=self.logger)
            self.logger.info(f"💾 Saved {len(added)} new bills to {self.bills_path.name}")
        return added

    def _from_date(self) -> str:
        """Incremental lower bound: the last run date, else the default lookback."""
        state = load_json(self.last_run_path, default={}, logger=self.logger)
        last_run = state.get("lastRun") if isinstance(state, dict) else None
        if last_run:
            self._detail(f"  Using last run date: {last_run}")
            return last_run
        today = date.fromisoformat(today_in_tz(self.tz_name))
        return (today - timedelta(days=self.lookback_days)).isoformat()

    def _save_last_run(self) -> None:
        save_json({"lastRun": today_in_tz(self.tz_name)}, self.last_run_path, logger=self.logger)

    # -----------------------------------------------------------------------
    # Stage 6: Report
    # -----------------------------------------------------------------------

    def _report(
        self,
        results: dict[str, list[dict]],
        already_tracked: int,
        from_date: Optional[str],
        dry_run: bool,
    ) -> Path:
        """Write the markdown digest to reports_dir and return its path."""
        ensure_dir(self.reports_dir)
        date_str = today_in_tz(self.tz_name)
        content = render_report(date_str, results, already_tracked, from_date, dry_run)

        path = self.reports_dir / f"discovery_{date_str}.md"
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def _detail(self, message: str) -> None:
        """Per-candidate reasoning: INFO with --verbose, DEBUG otherwise."""
        self.logger.log(logging.INFO if self.verbose else logging.DEBUG, message)


# ===========================================================================
# Rendering
# ===========================================================================

def render_report(
    date_str: str,
    results: dict[str, list[dict]],
    already_tracked: int,
    from_date: Optional[str],
    dry_run: bool,
) -> str:
    """
    Markdown discovery digest.

    Sections:
      1. Header + At a Glance table
      2. Auto-add (with reasons)
      3. Needs review (with reasons)
      4. Skipped (one line each)
    """
    auto_add, review, skipped = results[TIER_AUTO_ADD], results[TIER_REVIEW], results[TIER_SKIP]
    lines: list[str] = [
        "# DC Home Rule — Bill Discovery Report",
        f"## {date_str}",
        "",
        (
            f"> **Window:** {'bills updated since ' + from_date if from_date else 'full congress'}  \n"
            f"> **Mode:** {'dry run (nothing written)' if dry_run else 'live'}"
        ),
        "",
        "## At a Glance",
        "",
        "| | Count |",
        "|---|:---:|",
        f"| 🟢 Auto-add (score 40+) | **{len(auto_add)}** |",
        f"| 🟡 Needs review (score 20-39) | **{len(review)}** |",
        f"| ⚪ Skipped (score <20) | **{len(skipped)}** |",
        f"| ✅ Already tracked | **{already_tracked}** |",
        "",
    ]

    for heading, entries in (
        (f"## 🟢 Auto-add ({len(auto_add)})", auto_add),
        (f"## 🟡 Needs Review ({len(review)})", review),
    ):
        lines += ["---", "", heading, ""]
        if not entries:
            lines += ["*None.*", ""]
        for entry in entries:
            lines += _render_entry_block(entry)

    lines += ["---", "", f"## ⚪ Skipped ({len(skipped)})", ""]
    if skipped:
        lines += [f"- {e['displayNumber']} (score {e['score']}) — {e['title']}" for e in skipped]
    else:
        lines.append("*None.*")
    lines.append("")
    return "\n".join(lines)


def _render_entry_block(entry: dict) -> list[str]:
    details = entry["details"]
    lines = [
        f"### {entry['displayNumber']} — {entry['title']}",
        "",
        f"- **Score:** {entry['score']}",
        f"- **Sources:** {', '.join(entry['candidate']['source'])}",
        f"- **Sponsors:** {', '.join(details.get('sponsors') or []) or 'Unknown'}",
        f"- **Cosponsors:** {details.get('cosponsorsCount', 0)}",
    ]
    if details.get("latestAction"):
        lines.append(
            f"- **Latest action:** {details['latestAction']} ({details.get('latestActionDate') or '—'})"
        )
    lines.append(f"- **Link:** [{details['congressUrl']}]({details['congressUrl']})")
    lines += [f"  - {r}" for r in entry["reasons"]]
    lines.append("")
    return lines


def render_summary(
    results: dict[str, list[dict]],
    report_path: Path,
    dry_run: bool,
    added: int,
    verbose: bool = False,
) -> str:
    """Boxed terminal summary printed at the end of a run."""
    try:
        shown_path = report_path.relative_to(PROJECT_ROOT)
    except ValueError:
        shown_path = report_path

    lines = [
        "",
        "=" * 55,
        "  DC Bill Discovery — scan complete",
        "=" * 55,
        f"  Auto-add       : {len(results[TIER_AUTO_ADD])}",
        f"  Needs review   : {len(results[TIER_REVIEW])}",
        f"  Skipped        : {len(results[TIER_SKIP])}",
        f"  Added to data  : {'0 (dry run)' if dry_run else added}",
        f"  Report         : {shown_path}",
        "=" * 55,
    ]
    for entry in results[TIER_REVIEW]:
        lines.append(f"  🟡 {entry['displayNumber']} (score {entry['score']}) {entry['title']}")
    if verbose:
        for entry in results[TIER_SKIP]:
            lines.append(f"  ⚪ {entry['displayNumber']} (score {entry['score']}) {entry['title']}")
    lines.append("")
    return "\n".join(lines)


# ===========================================================================
# CLI entry point
# ===========================================================================

def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "DC Home Rule Bill Discovery — finds new Congressional bills that may "
            "affect DC and adds high-confidence matches to bills.json."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  python -m tracker.legislative.discovery
  python -m tracker.legislative.discovery --full
  python -m tracker.legislative.discovery --dry-run --verbose

environment variables:
  CONGRESS_API_KEY   Free API key from https://api.congress.gov/sign-up/
        """,
    )
    parser.add_argument(
        "--full",
        action="store_true",
        help="Scan every bill in the current congress instead of the incremental window",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Score and report candidates without modifying bills.json",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show per-candidate scoring reasons and skipped candidates",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Path to config YAML file (default: {DEFAULT_CONFIG})",
    )
    args = parser.parse_args(argv)

    log = logging.getLogger("tracker.discovery")
    try:
        config = load_config(args.config)
        setup_logging("tracker", **logging_options(config))
        BillDiscovery(config=config).run(
            full=args.full, dry_run=args.dry_run, verbose=args.verbose
        )
    except ConfigError as exc:
        setup_logging("tracker")
        log.error(f"❌ {exc}")
        return 1
    except Exception as exc:
        setup_logging("tracker")
        log.exception(f"Fatal error: {exc}")
        return 1

    log.info("✅ Discovery complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
