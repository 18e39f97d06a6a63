"""
merge.py — Merge policies for writing fresh API data into bills.json.

The dataset is edited by hand as well as by the agents, so every write
goes through one of these policies:

  advance_stage      stage only moves forward, never reverts
  merge_vote_record  first write wins for per-chamber vote tallies
  merge_bill_status  apply one monitor result to one bill record
  pinned_priority    manual-high and FreeDC priorities the monitor never replaces
  append_bill_entries  add discovered bills, skipping ids already present
  append_history     rolling run log, oldest entries evicted first
"""

from __future__ import annotations

from typing import Optional

from tracker.shared.bill_utils import build_tracked_set

STAGE_RANK = {
    None:            0,
    "passed-house":  1,
    "passed-senate": 1,
    "passed-both":   2,
    "enacted":       3,
}

STATUS_FIELDS = (
    "lastAction",
    "lastActionDate",
    "hasCommitteeHearing",
    "hasCommitteeMarkup",
    "hasFloorVote",
    "cosponsors",
)


def stage_rank(stage: Optional[str]) -> int:
    return STAGE_RANK.get(stage, 0)


def advance_stage(current: Optional[str], detected: Optional[str]) -> Optional[str]:
    """Return detected only if it ranks strictly above current."""
    if stage_rank(detected) > stage_rank(current):
        return detected
    return current


def merge_vote_record(existing: Optional[dict], detected: Optional[dict]) -> Optional[dict]:
    """Keep an existing tally (possibly hand-corrected); otherwise take the new one."""
    return existing if existing else detected


def pinned_priority(record: dict) -> Optional[dict]:
    """Priority fixed by hand (manual high) or by the FreeDC list, else None."""
    if record.get("priority") == "high" and record.get("prioritySource") == "manual":
        return {"priority": "high", "prioritySource": "manual"}
    if record.get("prioritySource") == "freedc":
        return {"priority": "high", "prioritySource": "freedc"}
    return None


def merge_bill_status(record: dict, update: dict) -> dict:
    """Apply a monitor update to a bill record in place.

    `update` keys: stage, lastAction, lastActionDate, hasCommitteeHearing,
    hasCommitteeMarkup, hasFloorVote, cosponsors, committees,
    passage {house, senate}, priority, prioritySource.

    Returns {field: [old, new]} for every field that changed.
    """
    changed: dict = {}
    status = record.setdefault("status", {})

    new_stage = advance_stage(status.get("stage"), update.get("stage"))
    if new_stage != status.get("stage"):
        changed["stage"] = [status.get("stage"), new_stage]
    status["stage"] = new_stage

    for field in STATUS_FIELDS:
        if field not in update:
            continue
        if status.get(field) != update[field]:
            changed[field] = [status.get(field), update[field]]
        status[field] = update[field]

    # An empty committee list from the API never wipes known committees
    committees = update.get("committees") or []
    if committees and committees != status.get("committees"):
        changed["committees"] = [status.get("committees"), committees]
        status["committees"] = committees
    status.setdefault("committees", [])

    detected_passage = update.get("passage") or {}
    if any(detected_passage.values()):
        passage = record.setdefault("passage", {})
        for chamber in ("house", "senate"):
            merged = merge_vote_record(passage.get(chamber), detected_passage.get(chamber))
            if merged is not None and merged is not passage.get(chamber):
                changed[f"passage.{chamber}"] = [None, merged]
                passage[chamber] = merged

    # Overrides are checked again on the re-read record so a mid-run hand edit stands.
    if "priority" in update or "prioritySource" in update:
        target = pinned_priority(record) or update
        for field in ("priority", "prioritySource"):
            if field in target and record.get(field) != target[field]:
                changed[field] = [record.get(field), target[field]]
                record[field] = target[field]

    return changed


def append_bill_entries(data: dict, entries: list[dict]) -> tuple[list[dict], list[dict]]:
    """Append new bill entries to data["bills"], skipping any already tracked.

    Returns (added, skipped).
    """
    tracked = build_tracked_set(data)
    bills = data.setdefault("bills", [])
    added, skipped = [], []
    for entry in entries:
        if entry["id"] in tracked:
            skipped.append(entry)
            continue
        bills.append(entry)
        tracked.add(entry["id"])
        added.append(entry)
    return added, skipped


def append_history(history: list, entry: dict, cap: int = 30) -> list:
    """Append entry and keep only the most recent `cap` runs."""
    history = list(history or [])
    history.append(entry)
    if len(history) > cap:
        history = history[-cap:]
    return history
