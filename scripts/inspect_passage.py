#!/usr/bin/env python3
"""
Inspect how passage and roll calls are read from a bill's actions.

Lists every passage action the monitor would consider, the roll-call number
extracted from it, and (with --votes) the tally fetched for that roll call.
Read-only: nothing is written to bills.json.

Usage:
    .venv/bin/python scripts/inspect_passage.py "H.R. 2056"
    .venv/bin/python scripts/inspect_passage.py hr4922 --votes
    .venv/bin/python scripts/inspect_passage.py "S. 1234" --congress 118
"""

from __future__ import annotations

import argparse
import re
import sys
from pathlib import Path

# Bootstrap path so we can import from tracker/
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tracker.legislative.action_analyzer import (
    analyze_actions,
    extract_roll_call,
    is_house_passage,
    is_senate_passage,
    sort_actions_desc,
)
from tracker.legislative.congress_client import CongressClient, session_for_date
from tracker.shared.bill_utils import display_bill_number, parse_bill_number
from tracker.shared.config import DEFAULT_CONFIG, load_config, require_api_key
from tracker.shared.errors import ConfigError, TrackerError

_ID_PATTERN = re.compile(r"^(hconres|sconres|hjres|sjres|hr|s)(\d+)$", re.IGNORECASE)


def parse_target(text: str) -> dict | None:
    """Accept a citation ("H.R. 2056") or a canonical id ("hr2056")."""
    parsed = parse_bill_number(text)
    if parsed:
        return parsed
    match = _ID_PATTERN.match(text.strip().replace(" ", ""))
    if match:
        return {"bill_type": match.group(1).lower(), "number": str(int(match.group(2)))}
    return None


def inspect(client: CongressClient, bill_type: str, number: str, votes: bool) -> None:
    label = display_bill_number(bill_type, number)
    print(f"\n📋 Checking actions for {label} ({client.congress}th Congress)...\n")

    actions = client.get_actions(bill_type, number)
    if not actions:
        print("No actions found")
        return

    passage_actions = [
        a for a in sort_actions_desc(actions)
        if is_house_passage(a.get("text") or "") or is_senate_passage(a.get("text") or "")
    ]
    print(f"Found {len(passage_actions)} passage action(s):\n")

    for i, action in enumerate(passage_actions, start=1):
        text = action.get("text") or ""
        chamber = "house" if is_house_passage(text) else "senate"
        roll = extract_roll_call(text)
        print(f"{i}. Date: {action.get('actionDate')}  [{chamber}]")
        print(f"   Text: {text}")
        if not roll:
            print("   → No roll call number found\n")
            continue
        print(f"   → EXTRACTED ROLL CALL: {roll}")
        if votes:
            session = session_for_date(client.congress, action.get("actionDate"))
            tally = client.get_vote(chamber, session, int(roll))
            if tally is None:
                print("   → Tally not available")
            else:
                rep, dem = tally["byParty"]["republican"], tally["byParty"]["democrat"]
                print(f"   → TOTAL: {tally['yeas']}-{tally['nays']} "
                      f"(R {rep['yeas']}-{rep['nays']}, D {dem['yeas']}-{dem['nays']})")
        print()

    signals = analyze_actions(actions)
    print(f"Stage (as the monitor would record it): {signals['stage']}")
    print(f"Hearing: {signals['has_committee_hearing']}  "
          f"Markup: {signals['has_committee_markup']}  "
          f"Floor vote: {signals['has_floor_vote']}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Inspect passage detection for one bill")
    parser.add_argument("bill", help='Bill citation or id, e.g. "H.R. 2056" or hr2056')
    parser.add_argument("--congress", type=int, help="Congress number (default: from config)")
    parser.add_argument("--votes", action="store_true", help="Also fetch roll-call tallies")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    args = parser.parse_args()

    target = parse_target(args.bill)
    if target is None:
        print(f"❌ Could not parse bill: {args.bill!r}")
        return 1

    try:
        config = load_config(args.config)
        if args.congress:
            config["congress"]["number"] = args.congress
        client = CongressClient.from_config(config, require_api_key(config))
        inspect(client, target["bill_type"], target["number"], args.votes)
    except ConfigError as exc:
        print(f"❌ {exc}")
        return 1
    except TrackerError as exc:
        print(f"❌ Error: {exc}")
        return 1

    print("\n✅ Done\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
