"""Tests: congress_client.py — rate gate, retry policy, error mapping, vote parsing.

HTTP is mocked with unittest.mock; no request leaves the process.
"""
from unittest.mock import MagicMock

import pytest
import requests

from tracker.legislative.congress_client import (
    CongressClient,
    RateGate,
    committee_chamber,
    fetch_or_default,
    parse_house_vote,
    parse_senate_vote,
    session_for_date,
    strip_html,
)
from tracker.shared.errors import ApiError, NetworkError


def _response(status=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.reason = {404: "Not Found", 429: "Too Many Requests", 500: "Server Error"}.get(status, "OK")
    resp.json.return_value = payload if payload is not None else {}
    resp.text = text
    return resp


class FakeClock:
    def __init__(self, start=100.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session, clock):
    return CongressClient(
        api_key="test-key",
        congress=119,
        min_interval=0.3,
        rate_limit_cooldown=2.0,
        session=session,
        gate=RateGate(clock=clock, sleep=clock.sleep),
        sleep=clock.sleep,
    )


# ---------------------------------------------------------------------------
# RateGate
# ---------------------------------------------------------------------------

def test_rate_gate_first_request_does_not_wait(clock):
    gate = RateGate(clock=clock, sleep=clock.sleep)
    gate.wait(0.3)
    assert clock.sleeps == []


def test_rate_gate_spaces_requests(clock):
    gate = RateGate(clock=clock, sleep=clock.sleep)
    gate.wait(0.3)
    clock.now += 0.1
    gate.wait(0.3)
    assert clock.sleeps == [pytest.approx(0.2)]


def test_rate_gate_no_wait_after_interval_elapsed(clock):
    gate = RateGate(clock=clock, sleep=clock.sleep)
    gate.wait(0.3)
    clock.now += 5
    gate.wait(0.3)
    assert clock.sleeps == []


def test_rate_gate_is_shared_between_clients(session, clock):
    gate = RateGate(clock=clock, sleep=clock.sleep)
    session.get.return_value = _response(payload={"bill": {}})
    a = CongressClient("k", session=session, gate=gate, sleep=clock.sleep, min_interval=0.3)
    b = CongressClient("k", session=session, gate=gate, sleep=clock.sleep, min_interval=0.3)
    a.get_bill("hr", "1")
    b.get_bill("hr", "2")
    assert clock.sleeps == [pytest.approx(0.3)]


# ---------------------------------------------------------------------------
# Retry and error mapping
# ---------------------------------------------------------------------------

def test_get_json_adds_key_and_format(client, session):
    session.get.return_value = _response(payload={"bill": {"title": "X"}})
    client.get_json("bill/119/hr/1", limit=250, fromDateTime=None)
    _, kwargs = session.get.call_args
    assert kwargs["params"] == {"api_key": "test-key", "format": "json", "limit": 250}
    assert session.get.call_args[0][0] == "https://api.congress.gov/v3/bill/119/hr/1"


def test_429_waits_cooldown_and_retries_once(client, session, clock):
    session.get.side_effect = [_response(429), _response(payload={"bill": {"title": "ok"}})]
    assert client.get_bill("hr", "2056") == {"title": "ok"}
    assert session.get.call_count == 2
    assert 2.0 in clock.sleeps


def test_repeated_429_is_api_error(client, session):
    session.get.side_effect = [_response(429), _response(429)]
    with pytest.raises(ApiError) as exc_info:
        client.get_actions("hr", "2056")
    assert exc_info.value.status == 429
    assert session.get.call_count == 2


def test_non_2xx_is_api_error_with_status(client, session):
    session.get.return_value = _response(500)
    with pytest.raises(ApiError) as exc_info:
        client.get_actions("hr", "2056")
    assert exc_info.value.status == 500
    assert session.get.call_count == 1


def test_transport_failure_is_network_error(client, session):
    session.get.side_effect = requests.ConnectionError("connection reset")
    with pytest.raises(NetworkError):
        client.get_bill("hr", "2056")


def test_get_bill_404_is_none(client, session):
    session.get.return_value = _response(404)
    assert client.get_bill("hr", "99999") is None


def test_fetch_or_default_degrades_on_tracker_errors():
    def boom():
        raise ApiError(500)

    assert fetch_or_default(boom, [], "subjects") == []
    assert fetch_or_default(lambda: ["x"], [], "subjects") == ["x"]


# ---------------------------------------------------------------------------
# Endpoint helpers
# ---------------------------------------------------------------------------

def test_cosponsor_count_from_pagination(client, session):
    session.get.return_value = _response(payload={"pagination": {"count": 23}, "cosponsors": []})
    assert client.get_cosponsor_count("hr", "2056") == 23


def test_subjects_include_policy_area(client, session):
    session.get.return_value = _response(payload={"subjects": {
        "legislativeSubjects": [{"name": "District of Columbia"}, {"name": "Law enforcement"}],
        "policyArea": {"name": "Crime and Law Enforcement"},
    }})
    assert client.get_subjects("hr", "2056") == [
        "District of Columbia", "Law enforcement", "Crime and Law Enforcement",
    ]


def test_latest_summary_strips_html(client, session):
    session.get.return_value = _response(payload={"summaries": [
        {"text": "<p>Old</p>"},
        {"text": "<p><strong>DC CRIMES Act</strong> This bill  limits the District.</p>"},
    ]})
    assert client.get_latest_summary("hr", "2056") == "DC CRIMES Act This bill limits the District."


def test_list_committee_bills_normalizes_wrapper(client, session):
    session.get.return_value = _response(payload={"committee-bills": {"bills": [
        {"congress": 119, "type": "HR", "number": "2056", "title": "DC CRIMES Act"},
        {"congress": 119, "billType": "S", "billNumber": "10"},
    ]}})
    bills = client.list_committee_bills("hsgo10")
    assert session.get.call_args[0][0].endswith("/committee/house/hsgo10/bills")
    assert bills == [
        {"congress": 119, "type": "HR", "number": "2056", "title": "DC CRIMES Act"},
        {"congress": 119, "type": "S", "number": "10", "title": ""},
    ]


def test_list_bills_passes_window(client, session):
    session.get.return_value = _response(payload={"bills": [{"number": "1"}]})
    assert client.list_bills("hr", offset=250, from_date="2026-02-08") == [{"number": "1"}]
    params = session.get.call_args[1]["params"]
    assert params["offset"] == 250
    assert params["sort"] == "updateDate desc"
    assert params["fromDateTime"] == "2026-02-08T00:00:00Z"


@pytest.mark.parametrize("code,chamber", [("hsgo10", "house"), ("ssga00", "senate"), ("jsec00", "joint")])
def test_committee_chamber(code, chamber):
    assert committee_chamber(code) == chamber


def test_senate_vote_url(client, session):
    session.get.return_value = _response(text="<roll_call_vote></roll_call_vote>")
    client.get_senate_vote(1, 372)
    assert session.get.call_args[0][0] == (
        "https://www.senate.gov/legislative/LIS/roll_call_votes/"
        "vote1191/vote_119_1_00372.xml"
    )


def test_get_vote_rejects_unknown_chamber(client):
    with pytest.raises(ValueError):
        client.get_vote("joint", 1, 1)


# ---------------------------------------------------------------------------
# Vote parsing and sessions
# ---------------------------------------------------------------------------

def test_parse_house_vote_party_totals():
    payload = {"houseRollCallVote": {"votePartyTotal": [
        {"voteParty": "R", "yeaTotal": 214, "nayTotal": 0},
        {"voteParty": "D", "yeaTotal": 26, "nayTotal": 179},
        {"voteParty": "I", "yeaTotal": 0, "nayTotal": 0},
    ]}}
    assert parse_house_vote(payload) == {
        "yeas": 240,
        "nays": 179,
        "byParty": {
            "republican": {"yeas": 214, "nays": 0},
            "democrat": {"yeas": 26, "nays": 179},
        },
    }


def test_parse_house_vote_without_totals_is_none():
    assert parse_house_vote({"houseRollCallVote": {}}) is None


SENATE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<roll_call_vote>
  <congress>119</congress>
  <session>1</session>
  <count><yeas>52</yeas><nays>47</nays><present/><absent>1</absent></count>
  <members>
    <member><last_name>A</last_name><party>R</party><vote_cast>Yea</vote_cast></member>
    <member><last_name>B</last_name><party>R</party><vote_cast>Yea</vote_cast></member>
    <member><last_name>C</last_name><party>D</party><vote_cast>Nay</vote_cast></member>
    <member><last_name>D</last_name><party>I</party><vote_cast>Nay</vote_cast></member>
    <member><last_name>E</last_name><party>D</party><vote_cast>Not Voting</vote_cast></member>
  </members>
</roll_call_vote>
"""


def test_parse_senate_vote_counts_and_parties():
    tally = parse_senate_vote(SENATE_XML)
    assert tally["yeas"] == 52
    assert tally["nays"] == 47
    assert tally["byParty"]["republican"] == {"yeas": 2, "nays": 0}
    assert tally["byParty"]["democrat"] == {"yeas": 0, "nays": 1}


def test_parse_senate_vote_empty_document_is_none():
    assert parse_senate_vote("<roll_call_vote></roll_call_vote>") is None


def test_parse_senate_vote_malformed_count_is_none():
    xml = SENATE_XML.replace("<yeas>52</yeas>", "<yeas>fifty-two</yeas>")
    assert parse_senate_vote(xml) is None


def test_parse_house_vote_malformed_totals_is_none():
    payload = {"houseRollCallVote": {"votePartyTotal": [
        {"voteParty": "R", "yeaTotal": "n/a", "nayTotal": 0},
    ]}}
    assert parse_house_vote(payload) is None


@pytest.mark.parametrize("date_str,session", [
    ("2025-03-01", 1),
    ("2025-12-31", 1),
    ("2026-01-06", 2),
    (None, 1),
    ("", 1),
])
def test_session_for_date_119th(date_str, session):
    assert session_for_date(119, date_str) == session


def test_strip_html_empty():
    assert strip_html("") == ""
