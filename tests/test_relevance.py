"""Tests: relevance.py — DC relevance scoring and tiering."""
import pytest

from tracker.legislative.relevance import (
    DEFAULT_RULES,
    TIER_AUTO_ADD,
    TIER_REVIEW,
    TIER_SKIP,
    build_rules,
    count_summary_mentions,
    matches_dc_title,
    score_relevance,
    tier_for_score,
)


def _details(title="", summary="", subjects=None, committees=None):
    return {
        "title": title,
        "summary": summary,
        "subjects": subjects or [],
        "committees": committees or [],
    }


SINGLE_SOURCE = {"billType": "hr", "number": "7000", "source": ["title-scan"]}


# ---------------------------------------------------------------------------
# Worked examples
# ---------------------------------------------------------------------------

def test_home_rule_title_scores_auto_add():
    result = score_relevance(
        SINGLE_SOURCE, _details(title="District of Columbia Home Rule Protection Act")
    )
    assert result["score"] == 45
    assert result["reasons"] == [
        'Title: "District of Columbia" (+30)',
        'Mentions "home rule" (+15)',
    ]
    assert tier_for_score(result["score"]) == TIER_AUTO_ADD


def test_dc_comics_title_goes_negative():
    result = score_relevance(SINGLE_SOURCE, _details(title="DC Comics Copyright Extension Act"))
    assert result["score"] == -10
    assert result["reasons"] == [
        "Title: DC reference (+20)",
        "Negative signal: likely not DC-targeted (-30)",
    ]
    assert tier_for_score(result["score"]) == TIER_SKIP


def test_scoring_is_deterministic():
    details = _details(
        title="To amend the District of Columbia Home Rule Act",
        summary="The bill affects the District of Columbia Council.",
        subjects=["District of Columbia"],
        committees=["Oversight and Government Reform Committee"],
    )
    assert score_relevance(SINGLE_SOURCE, details) == score_relevance(SINGLE_SOURCE, details)


# ---------------------------------------------------------------------------
# Individual rules
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("title", [
    "D.C. Criminal Code Modernization Act",
    "Washington, DC Parking Reform Act",
    "Washington D.C. Budget Autonomy Act",
])
def test_loose_title_reference(title):
    assert score_relevance(SINGLE_SOURCE, _details(title=title))["score"] == 20


def test_full_and_loose_title_are_exclusive():
    result = score_relevance(
        SINGLE_SOURCE, _details(title="District of Columbia (D.C.) Courts Act")
    )
    assert result["score"] == 30


def test_subject_match():
    result = score_relevance(
        SINGLE_SOURCE, _details(title="A bill", subjects=["Law enforcement", "District of Columbia"])
    )
    assert result["score"] == 25
    assert result["reasons"] == ['Subject: "District of Columbia" (+25)']


@pytest.mark.parametrize("committee", [
    "Oversight and Government Reform Committee",
    "Homeland Security and Governmental Affairs Committee",
    "HSGAC",
])
def test_committee_match(committee):
    result = score_relevance(SINGLE_SOURCE, _details(title="A bill", committees=[committee]))
    assert result["score"] == 15


def test_committee_non_match():
    result = score_relevance(SINGLE_SOURCE, _details(title="A bill", committees=["Judiciary Committee"]))
    assert result["score"] == 0
    assert result["reasons"] == []


def test_summary_mentions_scaled():
    result = score_relevance(SINGLE_SOURCE, _details(title="A bill", summary="Affects the District of Columbia."))
    assert result["score"] == 5
    assert result["reasons"] == ["Summary: 1 DC mentions (+5)"]


def test_summary_mentions_capped():
    summary = "District of Columbia. " * 5
    assert count_summary_mentions(summary) == 5
    result = score_relevance(SINGLE_SOURCE, _details(title="A bill", summary=summary))
    assert result["score"] == 20


def test_home_rule_in_summary():
    result = score_relevance(
        SINGLE_SOURCE, _details(title="A bill", summary="Restricts home rule authority.")
    )
    # one positive-pattern mention (+5) and the home rule rule (+15)
    assert result["score"] == 20


def test_negative_signal_in_summary():
    result = score_relevance(
        SINGLE_SOURCE, _details(title="A bill", summary="Applies to the State of Washington.")
    )
    assert result["score"] == -30


def test_multi_channel_bonus_applied_once():
    candidate = {"billType": "hr", "number": "7000",
                 "source": ["House Oversight - DC Subcommittee", "title-scan"]}
    result = score_relevance(candidate, _details(title="A bill"))
    assert result["score"] == 5
    assert result["reasons"] == ["Multi-channel: 2 sources (+5)"]


def test_no_clamp_on_low_scores():
    result = score_relevance(
        SINGLE_SOURCE, _details(title="Direct current grid standards", summary="Washington State grid.")
    )
    assert result["score"] == -30


# ---------------------------------------------------------------------------
# Tiering
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("score,tier", [
    (45, TIER_AUTO_ADD),
    (40, TIER_AUTO_ADD),
    (39, TIER_REVIEW),
    (20, TIER_REVIEW),
    (19, TIER_SKIP),
    (-10, TIER_SKIP),
])
def test_tier_boundaries(score, tier):
    assert tier_for_score(score) == tier


def test_thresholds_come_from_config():
    rules = build_rules({"scoring": {"auto_add": 50, "review": 30}})
    assert tier_for_score(45, rules) == TIER_REVIEW
    assert tier_for_score(25, rules) == TIER_SKIP
    # unrelated defaults survive the override
    assert rules["title_dc_full"] == DEFAULT_RULES["title_dc_full"]


# ---------------------------------------------------------------------------
# Title filter
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("title,expected", [
    ("District of Columbia Home Rule Protection Act", True),
    ("DC CRIMES Act of 2025", True),
    ("To amend the D.C. Code", True),
    ("DC Comics Copyright Extension Act", False),
    ("Washington State Salmon Recovery Act", False),
    ("Direct current transmission study", False),
    ("DC power grid modernization", False),
    ("National Defense Authorization Act", False),
])
def test_matches_dc_title(title, expected):
    assert matches_dc_title(title) is expected
