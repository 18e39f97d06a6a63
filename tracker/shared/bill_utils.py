"""
bill_utils.py — Bill identifier normalization and dataset traversal.

Provides parse_bill_number, normalize_bill_id, format_bill_type,
display_bill_number, congress_gov_link, iter_records, build_tracked_set
and is_passed.

Shared by the discovery and monitor agents, which both key bills by the
canonical id (bill type code + number, e.g. "hr2056").
"""

from __future__ import annotations

import re
from typing import Iterator, Optional

from tracker.shared.errors import ParseError


# ---------------------------------------------------------------------------
# Bill type tables
# ---------------------------------------------------------------------------

# Canonical type code → punctuated display label
BILL_TYPE_LABELS = {
    "hr":      "H.R.",
    "s":       "S.",
    "hjres":   "H.J.Res.",
    "sjres":   "S.J.Res.",
    "hconres": "H.Con.Res.",
    "sconres": "S.Con.Res.",
}

# Canonical type code → congress.gov URL slug
BILL_TYPE_SLUGS = {
    "hr":      "house-bill",
    "s":       "senate-bill",
    "hjres":   "house-joint-resolution",
    "sjres":   "senate-joint-resolution",
    "hconres": "house-concurrent-resolution",
    "sconres": "senate-concurrent-resolution",
}

DATASET_SECTIONS = ("bills", "riders", "supportBills")

# Longer prefixes first so "S.Con.Res." is never read as "S." + junk.
# A prefix never starts mid-citation, so "H.Res. 5" does not read as "S. 5".
# Whitespace is allowed around the dots: "H. R. 5214", "s.j. res. 3".
_CITATION_PATTERN = re.compile(
    r"(?<![A-Za-z.])(?P<prefix>"
    r"H\s*\.\s*Con\s*\.\s*Res\s*\."
    r"|S\s*\.\s*Con\s*\.\s*Res\s*\."
    r"|H\s*\.\s*J\s*\.\s*Res\s*\."
    r"|S\s*\.\s*J\s*\.\s*Res\s*\."
    r"|H\s*\.\s*R\s*\."
    r"|S\s*\."
    r")\s*(?P<number>\d+)",
    re.IGNORECASE,
)

_PREFIX_TO_TYPE = {
    "h.con.res.": "hconres",
    "s.con.res.": "sconres",
    "h.j.res.":   "hjres",
    "s.j.res.":   "sjres",
    "h.r.":       "hr",
    "s.":         "s",
}


# ---------------------------------------------------------------------------
# Parsing and formatting
# ---------------------------------------------------------------------------

def parse_bill_number(citation: str) -> Optional[dict]:
    """Parse a citation like "H.R. 5214" into {"bill_type": "hr", "number": "5214"}.

    Matching is case-insensitive and tolerant of whitespace inside the
    prefix. Returns None when no known prefix is found.
    """
    if not citation:
        return None
    match = _CITATION_PATTERN.search(citation)
    if not match:
        return None
    prefix = re.sub(r"\s+", "", match.group("prefix")).lower()
    number = str(int(match.group("number")))
    return {"bill_type": _PREFIX_TO_TYPE[prefix], "number": number}


def require_bill_number(citation: str) -> dict:
    """Like parse_bill_number, but raise ParseError instead of returning None."""
    parsed = parse_bill_number(citation)
    if parsed is None:
        raise ParseError(citation)
    return parsed


def normalize_bill_id(bill_type: str, number) -> str:
    """Canonical id used for dedup and lookup: "hr" + "2056" → "hr2056"."""
    return f"{bill_type.lower()}{number}"


def canonical_id(citation: str) -> Optional[str]:
    parsed = parse_bill_number(citation)
    if parsed is None:
        return None
    return normalize_bill_id(parsed["bill_type"], parsed["number"])


def format_bill_type(bill_type: str) -> str:
    """"hr" → "H.R.", "sjres" → "S.J.Res."; unknown codes are upper-cased."""
    return BILL_TYPE_LABELS.get(bill_type.lower(), bill_type.upper())


def display_bill_number(bill_type: str, number) -> str:
    return f"{format_bill_type(bill_type)} {number}"


def congress_gov_link(congress: int, bill_type: str, number) -> str:
    """Deep link to the bill page on congress.gov."""
    slug = BILL_TYPE_SLUGS.get(bill_type.lower(), bill_type.lower())
    return f"https://www.congress.gov/bill/{congress}th-congress/{slug}/{number}"


# ---------------------------------------------------------------------------
# Dataset traversal
# ---------------------------------------------------------------------------

def iter_records(data: dict, sections=DATASET_SECTIONS) -> Iterator[dict]:
    """Yield every bill record across the given dataset arrays, in document order."""
    for section in sections:
        yield from data.get(section) or []


def build_tracked_set(data: dict) -> set[str]:
    """Every identity the dataset already tracks.

    Each record contributes its `id` verbatim plus the canonical form of
    every parseable entry in `billNumbers`, so seed records whose id does
    not follow the type+number convention ("hr4922-s2686") still block
    rediscovery of H.R. 4922 and S. 2686.
    """
    tracked: set[str] = set()
    for record in iter_records(data):
        if record.get("id"):
            tracked.add(record["id"])
        for citation in record.get("billNumbers") or []:
            bill_id = canonical_id(citation)
            if bill_id:
                tracked.add(bill_id)
    return tracked


def is_passed(record: dict) -> bool:
    """A bill has passed when its stage starts with "passed-" or is "enacted"."""
    stage = (record.get("status") or {}).get("stage")
    return bool(stage) and (stage.startswith("passed-") or stage == "enacted")
