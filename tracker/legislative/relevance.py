"""
relevance.py — Heuristic DC-relevance scoring for discovery candidates.

Scoring (each rule independent unless noted; point values come from the
`scoring` section of config.yaml):

    +30  title says "District of Columbia"
    +20  …else title has a looser DC reference (D.C., Washington DC, DC)
    +25  a legislative subject is "District of Columbia"
    +15  referred to Oversight / HSGAC
    +5   per DC mention in the summary, capped at +20
    +15  title or summary mentions "home rule"
    -30  a negative pattern (Washington State, DC Comics, direct current…)
    +5   surfaced by more than one discovery channel

No clamp: negative totals are valid and land in the skip tier.

Tiers: score >= auto_add (40) → auto-add, >= review (20) → review, else skip.
"""

from __future__ import annotations

import re
from typing import Optional

TIER_AUTO_ADD = "auto-add"
TIER_REVIEW = "review"
TIER_SKIP = "skip"

DEFAULT_POSITIVE_PATTERNS = [
    r"(?i)district\s+of\s+columbia",
    r"\bD\.C\.(?!\w)",
    r"\bDC\b(?!\s*(Comics?|power|current|voltage|motor|circuit|Universe))",
    r"(?i)home\s+rule",
    r"DC\s+Council",
    r"DC\s+Mayor",
    r"DC\s+government",
    r"(?i)Washington,?\s+D\.?C\.?",
]

DEFAULT_NEGATIVE_PATTERNS = [
    r"(?i)washington\s+state",
    r"(?i)state\s+of\s+washington",
    r"(?i)DC\s+Comics",
    r"(?i)DC\s+(power|current|voltage|motor|circuit)",
    r"(?i)direct\s+current",
]

DEFAULT_SCORING = {
    "title_dc_full": 30,
    "title_dc_loose": 20,
    "title_full_pattern": r"(?i)district\s+of\s+columbia",
    "title_loose_patterns": [
        r"\bD\.C\.(?!\w)",
        r"(?i)Washington,?\s+D\.?C\.?",
        r"\bDC\b",
    ],
    "subject_dc": 25,
    "subject_pattern": r"(?i)district\s+of\s+columbia",
    "committee_dc": 15,
    "committee_keywords": ["oversight", "homeland security and governmental affairs", "hsgac"],
    "summary_per_mention": 5,
    "summary_cap": 20,
    "home_rule": 15,
    "home_rule_pattern": r"(?i)home\s+rule",
    "negative_penalty": -30,
    "multi_channel": 5,
    "auto_add": 40,
    "review": 20,
}


# ---------------------------------------------------------------------------
# Rule compilation
# ---------------------------------------------------------------------------

def build_rules(config: Optional[dict] = None) -> dict:
    """Merge config["scoring"] / config["discovery"] over the defaults and compile."""
    config = config or {}
    scoring = {**DEFAULT_SCORING, **(config.get("scoring") or {})}
    discovery = config.get("discovery") or {}
    positive = discovery.get("positive_patterns") or DEFAULT_POSITIVE_PATTERNS
    negative = discovery.get("negative_patterns") or DEFAULT_NEGATIVE_PATTERNS

    return {
        **scoring,
        "title_full_re": re.compile(scoring["title_full_pattern"]),
        "title_loose_res": [re.compile(p) for p in scoring["title_loose_patterns"]],
        "subject_re": re.compile(scoring["subject_pattern"]),
        "home_rule_re": re.compile(scoring["home_rule_pattern"]),
        "committee_keywords": [k.lower() for k in scoring["committee_keywords"]],
        "positive_res": [re.compile(p) for p in positive],
        # Summary mentions are counted case-insensitively for every pattern
        "positive_res_ci": [re.compile(p, re.IGNORECASE) for p in positive],
        "negative_res": [re.compile(p) for p in negative],
    }


DEFAULT_RULES = build_rules()


# ---------------------------------------------------------------------------
# Title filter (title-scan discovery channel)
# ---------------------------------------------------------------------------

def matches_dc_title(title: str, rules: dict = DEFAULT_RULES) -> bool:
    """True if a title hits a positive pattern and no negative pattern."""
    title = title or ""
    if not any(p.search(title) for p in rules["positive_res"]):
        return False
    return not any(p.search(title) for p in rules["negative_res"])


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def count_summary_mentions(summary: str, rules: dict = DEFAULT_RULES) -> int:
    return sum(len(p.findall(summary or "")) for p in rules["positive_res_ci"])


def score_relevance(candidate: dict, details: dict, rules: dict = DEFAULT_RULES) -> dict:
    """Score a candidate bill. Pure: same input, same {score, reasons}."""
    score = 0
    reasons: list[str] = []

    title = details.get("title") or ""
    summary = details.get("summary") or ""
    subjects = details.get("subjects") or []
    committees = details.get("committees") or []

    if rules["title_full_re"].search(title):
        pts = rules["title_dc_full"]
        score += pts
        reasons.append(f'Title: "District of Columbia" (+{pts})')
    elif any(p.search(title) for p in rules["title_loose_res"]):
        pts = rules["title_dc_loose"]
        score += pts
        reasons.append(f"Title: DC reference (+{pts})")

    if any(rules["subject_re"].search(s) for s in subjects):
        pts = rules["subject_dc"]
        score += pts
        reasons.append(f'Subject: "District of Columbia" (+{pts})')

    if any(k in c.lower() for c in committees for k in rules["committee_keywords"]):
        pts = rules["committee_dc"]
        score += pts
        reasons.append(f"Committee: DC-relevant (+{pts})")

    mentions = count_summary_mentions(summary, rules)
    summary_pts = min(mentions * rules["summary_per_mention"], rules["summary_cap"])
    if summary_pts > 0:
        score += summary_pts
        reasons.append(f"Summary: {mentions} DC mentions (+{summary_pts})")

    if rules["home_rule_re"].search(summary) or rules["home_rule_re"].search(title):
        pts = rules["home_rule"]
        score += pts
        reasons.append(f'Mentions "home rule" (+{pts})')

    if any(p.search(title) or p.search(summary) for p in rules["negative_res"]):
        pts = rules["negative_penalty"]
        score += pts
        reasons.append(f"Negative signal: likely not DC-targeted ({pts})")

    sources = candidate.get("source") or []
    if len(sources) > 1:
        pts = rules["multi_channel"]
        score += pts
        reasons.append(f"Multi-channel: {len(sources)} sources (+{pts})")

    return {"score": score, "reasons": reasons}


def tier_for_score(score: int, rules: dict = DEFAULT_RULES) -> str:
    if score >= rules["auto_add"]:
        return TIER_AUTO_ADD
    if score >= rules["review"]:
        return TIER_REVIEW
    return TIER_SKIP
