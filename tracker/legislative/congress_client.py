"""
congress_client.py — Rate-limited client for the Congress.gov v3 API.

Every outbound request (Congress.gov and the senate.gov roll-call feed)
passes through one process-wide RateGate, so the discovery and monitor
agents never issue two requests closer together than `min_interval`.

Failure policy:
  - HTTP 429      → wait `rate_limit_cooldown` seconds, retry exactly once
  - other non-2xx → ApiError(status)
  - transport     → NetworkError

API docs: https://api.congress.gov/
Free tier: 5,000 requests/hour per key.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import requests
from bs4 import BeautifulSoup

from tracker.shared.errors import ApiError, NetworkError, TrackerError

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.congress.gov/v3"
SENATE_VOTE_URL = (
    "https://www.senate.gov/legislative/LIS/roll_call_votes/"
    "vote{congress}{session}/vote_{congress}_{session}_{roll:05d}.xml"
)
PAGE_LIMIT = 250

_PARTY_KEYS = {"R": "republican", "D": "democrat"}


# ---------------------------------------------------------------------------
# Throttling
# ---------------------------------------------------------------------------

class RateGate:
    """Minimum wall-clock spacing between requests, shared by every client."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._clock = clock
        self._sleep = sleep
        self.last_request = float("-inf")

    def wait(self, min_interval: float) -> None:
        elapsed = self._clock() - self.last_request
        if elapsed < min_interval:
            self._sleep(min_interval - elapsed)
        self.last_request = self._clock()


_SHARED_GATE = RateGate()


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class CongressClient:
    """Thin wrapper over Congress.gov v3 endpoints used by the tracker."""

    def __init__(
        self,
        api_key: str,
        congress: int = 119,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 30,
        min_interval: float = 0.3,
        rate_limit_cooldown: float = 2.0,
        session: Optional[requests.Session] = None,
        gate: Optional[RateGate] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.congress = int(congress)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.min_interval = float(min_interval)
        self.rate_limit_cooldown = float(rate_limit_cooldown)
        self.session = session or requests.Session()
        self.gate = gate or _SHARED_GATE
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: dict, api_key: str) -> "CongressClient":
        congress_cfg = config.get("congress", {})
        http_cfg = config.get("http", {})
        return cls(
            api_key=api_key,
            congress=congress_cfg.get("number", 119),
            base_url=congress_cfg.get("api_base_url", DEFAULT_BASE_URL),
            timeout=http_cfg.get("timeout", 30),
            min_interval=http_cfg.get("min_interval", 0.3),
            rate_limit_cooldown=http_cfg.get("rate_limit_cooldown", 2.0),
        )

    # -----------------------------------------------------------------------
    # Transport
    # -----------------------------------------------------------------------

    def _send(self, url: str, params: Optional[dict]) -> requests.Response:
        self.gate.wait(self.min_interval)
        try:
            return self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise NetworkError(url, exc) from exc

    def fetch(self, url: str, params: Optional[dict] = None) -> requests.Response:
        """GET url with throttling and a single retry on HTTP 429."""
        resp = self._send(url, params)
        if resp.status_code == 429:
            log.warning(f"Rate limited, waiting {self.rate_limit_cooldown:.0f}s... ({url})")
            self._sleep(self.rate_limit_cooldown)
            resp = self._send(url, params)
        if not resp.ok:
            raise ApiError(resp.status_code, url, resp.reason or "")
        return resp

    def get_json(self, path: str, **params: Any) -> dict:
        url = f"{self.base_url}/{path.lstrip('/')}"
        query = {"api_key": self.api_key, "format": "json"}
        query.update({k: v for k, v in params.items() if v is not None})
        resp = self.fetch(url, query)
        try:
            return resp.json()
        except ValueError:
            raise ApiError(resp.status_code, url, "response was not valid JSON") from None

    def _bill_path(self, bill_type: str, number, sub: str = "") -> str:
        path = f"bill/{self.congress}/{bill_type.lower()}/{number}"
        return f"{path}/{sub}" if sub else path

    # -----------------------------------------------------------------------
    # Bill endpoints
    # -----------------------------------------------------------------------

    def get_bill(self, bill_type: str, number) -> Optional[dict]:
        """Core bill record, or None when the API reports 404."""
        try:
            return self.get_json(self._bill_path(bill_type, number)).get("bill") or {}
        except ApiError as exc:
            if exc.not_found:
                return None
            raise

    def get_actions(self, bill_type: str, number) -> list[dict]:
        data = self.get_json(self._bill_path(bill_type, number, "actions"), limit=PAGE_LIMIT)
        return data.get("actions") or []

    def get_cosponsor_count(self, bill_type: str, number) -> int:
        data = self.get_json(self._bill_path(bill_type, number, "cosponsors"))
        return int((data.get("pagination") or {}).get("count") or 0)

    def get_subjects(self, bill_type: str, number) -> list[str]:
        """Legislative subject names plus the policy area, if any."""
        data = self.get_json(self._bill_path(bill_type, number, "subjects"))
        subjects_obj = data.get("subjects") or {}
        subjects = [
            s["name"] for s in subjects_obj.get("legislativeSubjects") or [] if s.get("name")
        ]
        policy_area = (subjects_obj.get("policyArea") or {}).get("name")
        if policy_area:
            subjects.append(policy_area)
        return subjects

    def get_latest_summary(self, bill_type: str, number) -> str:
        """Text of the most recent CRS summary with HTML markup stripped."""
        data = self.get_json(self._bill_path(bill_type, number, "summaries"))
        summaries = data.get("summaries") or []
        if not summaries:
            return ""
        return strip_html(summaries[-1].get("text") or "")

    def get_committees(self, bill_type: str, number) -> list[str]:
        data = self.get_json(self._bill_path(bill_type, number, "committees"))
        return [c["name"] for c in data.get("committees") or [] if c.get("name")]

    def list_bills(
        self,
        bill_type: str,
        offset: int = 0,
        limit: int = PAGE_LIMIT,
        from_date: Optional[str] = None,
    ) -> list[dict]:
        """One page of bills of a type, most recently updated first."""
        data = self.get_json(
            f"bill/{self.congress}/{bill_type.lower()}",
            limit=limit,
            offset=offset,
            sort="updateDate desc",
            fromDateTime=f"{from_date}T00:00:00Z" if from_date else None,
        )
        return data.get("bills") or []

    def list_committee_bills(self, committee_code: str, limit: int = PAGE_LIMIT) -> list[dict]:
        """Bills referred to a committee, normalized to {congress, type, number, title}."""
        chamber = committee_chamber(committee_code)
        data = self.get_json(f"committee/{chamber}/{committee_code}/bills", limit=limit)
        container = data.get("committee-bills") or data
        bills = []
        for raw in container.get("bills") or []:
            bills.append({
                "congress": raw.get("congress"),
                "type": raw.get("type") or raw.get("billType") or "",
                "number": raw.get("number") or raw.get("billNumber") or "",
                "title": raw.get("title") or "",
            })
        return bills

    # -----------------------------------------------------------------------
    # Roll-call votes
    # -----------------------------------------------------------------------

    def get_house_vote(self, session: int, roll: int) -> Optional[dict]:
        try:
            data = self.get_json(f"house-vote/{self.congress}/{session}/{roll}")
        except ApiError as exc:
            if exc.not_found:
                return None
            raise
        return parse_house_vote(data)

    def get_senate_vote(self, session: int, roll: int) -> Optional[dict]:
        url = SENATE_VOTE_URL.format(congress=self.congress, session=session, roll=int(roll))
        try:
            resp = self.fetch(url)
        except ApiError as exc:
            if exc.not_found:
                return None
            raise
        return parse_senate_vote(resp.text)

    def get_vote(self, chamber: str, session: int, roll: int) -> Optional[dict]:
        if chamber == "house":
            return self.get_house_vote(session, roll)
        if chamber == "senate":
            return self.get_senate_vote(session, roll)
        raise ValueError(f"Unknown chamber: {chamber}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def fetch_or_default(call: Callable[[], Any], default: Any, what: str) -> Any:
    """Run an optional sub-resource fetch; degrade to `default` on API/network errors."""
    try:
        return call()
    except TrackerError as exc:
        log.warning(f"  ⚠️  Could not fetch {what}: {exc}")
        return default


def strip_html(text: str) -> str:
    if not text:
        return ""
    return " ".join(BeautifulSoup(text, "lxml").get_text(" ").split())


def committee_chamber(code: str) -> str:
    """Committee system codes start with h (house), s (senate) or j (joint)."""
    return {"h": "house", "s": "senate", "j": "joint"}.get(code[:1].lower(), "house")


def session_for_date(congress: int, date_str: Optional[str]) -> int:
    """Session number of a congress for a given action date.

    The Nth congress convenes in 1789 + 2*(N-1); its first calendar year is
    session 1 and the second is session 2.
    """
    first_year = 1789 + 2 * (int(congress) - 1)
    try:
        year = int(str(date_str)[:4])
    except (TypeError, ValueError):
        return 1
    return 2 if year > first_year else 1


def _empty_tally() -> dict:
    return {
        "yeas": 0,
        "nays": 0,
        "byParty": {
            "republican": {"yeas": 0, "nays": 0},
            "democrat":   {"yeas": 0, "nays": 0},
        },
    }


def parse_house_vote(payload: dict) -> Optional[dict]:
    """Congress.gov house-vote payload → {yeas, nays, byParty}."""
    vote = payload.get("houseRollCallVote") or payload.get("houseVote") or {}
    party_totals = vote.get("votePartyTotal") or []
    if not party_totals:
        return None

    tally = _empty_tally()
    for party_data in party_totals:
        party = party_data.get("voteParty") or (party_data.get("party") or {}).get("type") or ""
        try:
            yeas = int(party_data.get("yeaTotal") or 0)
            nays = int(party_data.get("nayTotal") or 0)
        except (TypeError, ValueError):
            log.warning(f"  ⚠️  Malformed House vote totals: {party_data!r}")
            return None
        tally["yeas"] += yeas
        tally["nays"] += nays
        key = _PARTY_KEYS.get(party[:1].upper()) if party else None
        if key:
            tally["byParty"][key]["yeas"] += yeas
            tally["byParty"][key]["nays"] += nays

    return tally


def parse_senate_vote(xml_text: str) -> Optional[dict]:
    """senate.gov LIS roll-call XML → {yeas, nays, byParty}."""
    soup = BeautifulSoup(xml_text, "xml")
    members = soup.find_all("member")
    count = soup.find("count")
    if not members and count is None:
        return None

    tally = _empty_tally()
    for member in members:
        cast = _text(member, "vote_cast")
        key = _PARTY_KEYS.get(_text(member, "party")[:1].upper())
        if key and cast == "Yea":
            tally["byParty"][key]["yeas"] += 1
        elif key and cast == "Nay":
            tally["byParty"][key]["nays"] += 1

    if count is not None and count.find("yeas") is not None:
        try:
            tally["yeas"] = int(_text(count, "yeas") or 0)
            tally["nays"] = int(_text(count, "nays") or 0)
        except ValueError:
            log.warning(f"  ⚠️  Malformed Senate vote count: {count.get_text(' ', strip=True)!r}")
            return None
    else:
        tally["yeas"] = sum(1 for m in members if _text(m, "vote_cast") == "Yea")
        tally["nays"] = sum(1 for m in members if _text(m, "vote_cast") == "Nay")
    return tally


def _text(tag, name: str) -> str:
    child = tag.find(name)
    return child.get_text(strip=True) if child is not None else ""
