"""Shared pytest fixtures for the DC bill tracker test suite.

No test touches the network: agents are given a FakeCongressClient whose
responses are plain dicts keyed by (bill_type, number), and every persisted
file (bills.json, history, last-run state, reports) lives under tmp_path.

Dates are compatible with freeze_time("2026-03-10 15:00:00") (UTC), which
is 2026-03-10 in DC.
"""
import json
from pathlib import Path

import pytest

from tracker.shared.config import DEFAULT_CONFIG, load_config
from tracker.shared.errors import ApiError


# ---------------------------------------------------------------------------
# Fake Congress.gov client
# ---------------------------------------------------------------------------

class FakeCongressClient:
    """Stands in for CongressClient. Values that are exceptions are raised."""

    def __init__(self, congress=119):
        self.congress = congress
        self.bills = {}
        self.actions = {}
        self.cosponsors = {}
        self.subjects = {}
        self.summaries = {}
        self.committees = {}
        self.committee_bills = {}
        self.bill_pages = {}
        self.votes = {}
        self.calls = []

    @staticmethod
    def _key(bill_type, number):
        return (bill_type.lower(), str(number))

    def _answer(self, table, key, default):
        value = table.get(key, default)
        if isinstance(value, Exception):
            raise value
        return value

    def get_bill(self, bill_type, number):
        self.calls.append(("bill", bill_type, str(number)))
        return self._answer(self.bills, self._key(bill_type, number), None)

    def get_actions(self, bill_type, number):
        self.calls.append(("actions", bill_type, str(number)))
        return self._answer(self.actions, self._key(bill_type, number), [])

    def get_cosponsor_count(self, bill_type, number):
        self.calls.append(("cosponsors", bill_type, str(number)))
        return self._answer(self.cosponsors, self._key(bill_type, number), 0)

    def get_subjects(self, bill_type, number):
        self.calls.append(("subjects", bill_type, str(number)))
        return self._answer(self.subjects, self._key(bill_type, number), [])

    def get_latest_summary(self, bill_type, number):
        self.calls.append(("summary", bill_type, str(number)))
        return self._answer(self.summaries, self._key(bill_type, number), "")

    def get_committees(self, bill_type, number):
        self.calls.append(("committees", bill_type, str(number)))
        return self._answer(self.committees, self._key(bill_type, number), [])

    def list_committee_bills(self, committee_code, limit=250):
        self.calls.append(("committee-bills", committee_code))
        return self._answer(self.committee_bills, committee_code, [])

    def list_bills(self, bill_type, offset=0, limit=250, from_date=None):
        self.calls.append(("list", bill_type, offset, from_date))
        return self._answer(self.bill_pages, (bill_type, offset), [])

    def get_vote(self, chamber, session, roll):
        self.calls.append(("vote", chamber, session, roll))
        return self._answer(self.votes, (chamber, session, roll), None)


@pytest.fixture
def fake_client():
    return FakeCongressClient()


@pytest.fixture
def not_found():
    return ApiError(404, "https://api.congress.gov/v3/bill", "Not Found")


# ---------------------------------------------------------------------------
# Dataset fixtures
# ---------------------------------------------------------------------------

def _bill(bill_id, citation, title, **extra):
    record = {
        "id": bill_id,
        "billNumbers": [citation],
        "title": title,
        "description": "",
        "sponsors": [],
        "category": "governance",
        "position": "oppose",
        "type": "bill",
        "priority": "medium",
        "prioritySource": "legislative",
        "status": {
            "stage": None,
            "lastAction": "Referred to the Committee on Oversight and Government Reform.",
            "lastActionDate": "2025-02-01",
            "hasCommitteeHearing": False,
            "hasCommitteeMarkup": False,
            "hasFloorVote": False,
            "cosponsors": 0,
            "committees": [],
        },
    }
    record.update(extra)
    return record


@pytest.fixture
def dataset():
    """A small bills.json document: two oppose bills, one rider, one support bill."""
    return {
        "lastUpdated": "2026-01-05",
        "categories": [{"id": "governance", "name": "Governance"}],
        "bills": [
            _bill("hr2056", "H.R. 2056", "DC CRIMES Act of 2025"),
            _bill("hr4922-s2686", "H.R. 4922", "District of Columbia Policing Act",
                  priority="high", prioritySource="manual"),
        ],
        "riders": [
            {
                "id": "rider-abortion",
                "billNumbers": ["FY26 Appropriations rider"],
                "title": "Abortion funding restriction",
                "type": "rider",
                "position": "oppose",
            },
        ],
        "supportBills": [
            _bill("hr51", "H.R. 51", "Washington, D.C. Admission Act",
                  position="support", priority="watching"),
        ],
    }


@pytest.fixture
def config(tmp_path):
    """The shipped config.yaml with every path redirected under tmp_path."""
    cfg = load_config(DEFAULT_CONFIG)
    cfg["paths"] = {
        "bills_file": str(tmp_path / "data" / "bills.json"),
        "last_run_file": str(tmp_path / "data" / ".discover-last-run.json"),
        "history_file": str(tmp_path / "data" / "bill-status-history.json"),
        "reports_dir": str(tmp_path / "outputs" / "discovery_reports"),
        "stats_file": str(tmp_path / "public" / "api" / "stats.json"),
    }
    cfg["logging"] = {"level": "INFO"}
    return cfg


@pytest.fixture
def bills_file(config, dataset):
    """Write the dataset fixture to the configured bills path and return it."""
    path = Path(config["paths"]["bills_file"])
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(dataset, indent=2), encoding="utf-8")
    return path


def read_json(path):
    return json.loads(Path(path).read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Action fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def house_passed_actions():
    return [
        {"actionDate": "2025-01-10", "text": "Referred to Committee", "type": "IntroReferral"},
        {"actionDate": "2025-03-01", "text": "On passage Passed by recorded vote: 215",
         "type": "Floor"},
    ]


@pytest.fixture
def house_tally():
    return {
        "yeas": 240,
        "nays": 179,
        "byParty": {
            "republican": {"yeas": 214, "nays": 0},
            "democrat":   {"yeas": 26, "nays": 179},
        },
    }
