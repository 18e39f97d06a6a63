"""
action_analyzer.py — Structured signals from Congress.gov action text.

Given a bill's action records ({"text", "actionDate", "type"?, ...}) this
module answers three questions:

  1. Activity flags — has the bill had a committee hearing, a markup, a
     floor vote? Each is an OR over all actions, so order does not matter.
  2. Passage — which chambers have passed it, on what date, and under which
     roll-call number? Actions are scanned most recent first; the first
     match per chamber wins.
  3. Stage — enacted / passed-both / passed-house / passed-senate / None,
     recomputed from the full action list on every run.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

# ---------------------------------------------------------------------------
# Activity keywords (matched case-insensitively against text and type)
# ---------------------------------------------------------------------------

HEARING_KEYWORDS = ("hearing",)
MARKUP_KEYWORDS = ("markup", "ordered to be reported")
FLOOR_KEYWORDS = ("floor", "vote", "passed", "failed")

# ---------------------------------------------------------------------------
# Passage phrases
# ---------------------------------------------------------------------------

HOUSE_PASSAGE_PHRASES = (
    "On passage Passed by recorded vote",
    "On passage Passed by the Yeas and Nays",
    "Passed House",
)
# "Passed/agreed to in House" restates a House floor result under a
# different action type; it is not counted as a passage event.
HOUSE_PASSAGE_EXCLUSIONS = ("Passed/agreed to in House",)

SENATE_PASSAGE_PHRASES = ("Passed Senate",)
SENATE_PASSAGE_EXCLUSIONS = ("passed in Senate", "Received in the Senate")

ENACTED_PHRASES = ("became public law", "signed by president")

# Tried in order; the first pattern that matches anywhere in the text wins.
ROLL_CALL_PATTERNS: list[tuple[re.Pattern, int]] = [
    (re.compile(r"Roll no\.\s*(\d+)", re.IGNORECASE), 1),
    (re.compile(r"recorded vote:\s*(\d+)", re.IGNORECASE), 1),
    (re.compile(r"Yeas and Nays:\s*(\d+)", re.IGNORECASE), 1),
    (re.compile(r"Record Vote Number:\s*(\d+)", re.IGNORECASE), 1),
]

STAGE_PASSED_HOUSE = "passed-house"
STAGE_PASSED_SENATE = "passed-senate"
STAGE_PASSED_BOTH = "passed-both"
STAGE_ENACTED = "enacted"


# ---------------------------------------------------------------------------
# Matching helpers
# ---------------------------------------------------------------------------

def _contains_any(haystack: str, needles: Iterable[str]) -> bool:
    return any(n in haystack for n in needles)


def _contains_any_ci(haystack: str, needles: Iterable[str]) -> bool:
    lowered = haystack.lower()
    return any(n.lower() in lowered for n in needles)


def is_house_passage(text: str) -> bool:
    return (
        _contains_any(text, HOUSE_PASSAGE_PHRASES)
        and not _contains_any_ci(text, HOUSE_PASSAGE_EXCLUSIONS)
    )


def is_senate_passage(text: str) -> bool:
    return (
        _contains_any(text, SENATE_PASSAGE_PHRASES)
        and not _contains_any_ci(text, SENATE_PASSAGE_EXCLUSIONS)
    )


def extract_roll_call(text: str) -> Optional[str]:
    """Return the roll-call number cited in an action, or None."""
    for pattern, group in ROLL_CALL_PATTERNS:
        match = pattern.search(text or "")
        if match and match.group(group):
            return match.group(group)
    return None


def sort_actions_desc(actions: list[dict]) -> list[dict]:
    """Most recent first. Stable: same-date actions keep their original order."""
    return sorted(actions, key=lambda a: a.get("actionDate") or "", reverse=True)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

def activity_flags(actions: list[dict]) -> dict:
    flags = {
        "has_committee_hearing": False,
        "has_committee_markup": False,
        "has_floor_vote": False,
    }
    for action in actions:
        text = (action.get("text") or "").lower()
        action_type = (action.get("type") or "").lower()
        if _contains_any(text, HEARING_KEYWORDS) or _contains_any(action_type, HEARING_KEYWORDS):
            flags["has_committee_hearing"] = True
        if _contains_any(text, MARKUP_KEYWORDS) or _contains_any(action_type, MARKUP_KEYWORDS):
            flags["has_committee_markup"] = True
        if _contains_any(text, FLOOR_KEYWORDS) or _contains_any(action_type, FLOOR_KEYWORDS):
            flags["has_floor_vote"] = True
    return flags


def detect_passage(actions: list[dict]) -> dict:
    """{"house": {...} | None, "senate": {...} | None} from the newest matching action."""
    passage: dict = {"house": None, "senate": None}
    for action in sort_actions_desc(actions):
        text = action.get("text") or ""
        for chamber, matcher in (("house", is_house_passage), ("senate", is_senate_passage)):
            if passage[chamber] is None and matcher(text):
                passage[chamber] = {
                    "date": action.get("actionDate"),
                    "roll_call": extract_roll_call(text),
                    "text": text,
                }
    return passage


def is_enacted(actions: list[dict]) -> bool:
    return any(_contains_any_ci(a.get("text") or "", ENACTED_PHRASES) for a in actions)


def derive_stage(passage: dict, enacted: bool = False) -> Optional[str]:
    if enacted:
        return STAGE_ENACTED
    if passage.get("house") and passage.get("senate"):
        return STAGE_PASSED_BOTH
    if passage.get("house"):
        return STAGE_PASSED_HOUSE
    if passage.get("senate"):
        return STAGE_PASSED_SENATE
    return None


def committees_from_actions(actions: list[dict]) -> list[str]:
    """Committee names attached to action records, first appearance order."""
    names: list[str] = []
    for action in actions:
        for committee in action.get("committees") or []:
            name = committee.get("name", "")
            if name and name not in names:
                names.append(name)
    return names


def analyze_actions(actions: list[dict]) -> dict:
    """Run every analysis over one bill's actions."""
    actions = actions or []
    passage = detect_passage(actions)
    return {
        **activity_flags(actions),
        "passage": passage,
        "stage": derive_stage(passage, is_enacted(actions)),
        "committees": committees_from_actions(actions),
    }


def simplified_status(latest_action_text: str) -> str:
    """Coarse status label of a bill's latest action, used for priority."""
    action = (latest_action_text or "").lower()
    if "became public law" in action or "signed by president" in action:
        return "ENACTED"
    if "passed senate" in action and "passed house" in action:
        return "PASSED_BOTH"
    if "passed senate" in action or "passed house" in action:
        return "PASSED_ONE_CHAMBER"
    if "reported" in action or "committee" in action:
        return "IN_COMMITTEE"
    if "introduced" in action:
        return "INTRODUCED"
    return "UNKNOWN"
