from datetime import datetime, timedelta, timezone

import pytest
import requests

from gigscout.models import Budget
from gigscout.sources import MockSource, UpworkSource, get_source
from gigscout.sources.base import FetchFilters, apply_filters
from gigscout.sources.upwork import extract_job_id, parse_budget, parse_feed, parse_posted_at

NOW = datetime(2024, 3, 2, 12, 0, tzinfo=timezone.utc)

FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
<title>All jobs | upwork.com</title>
<item>
  <title><![CDATA[Build a React analytics dashboard - Upwork]]></title>
  <link>https://www.upwork.com/jobs/React-analytics-dashboard_~01abc123def?source=rss</link>
  <guid>https://www.upwork.com/jobs/React-analytics-dashboard_~01abc123def?source=rss</guid>
  <description><![CDATA[We need a React developer for an analytics dashboard &amp; reports.<br /><br /><b>Hourly Range</b>: $30.00-$50.00
<br /><b>Posted On</b>: March 02, 2024 10:12 UTC<br /><b>Category</b>: Web Development<br /><b>Skills</b>:React,     JavaScript,     TypeScript
<br /><b>Country</b>: United States
<br /><a href="https://www.upwork.com/jobs/~01abc123def">click to apply</a>]]></description>
</item>
<item>
  <title><![CDATA[Flutter app for a bakery - Upwork]]></title>
  <link>https://www.upwork.com/jobs/Flutter-app_~02xyz?source=rss</link>
  <guid>https://www.upwork.com/jobs/Flutter-app_~02xyz?source=rss</guid>
  <description><![CDATA[Cross-platform ordering app.<br /><b>Budget</b>: $1,500
<br /><b>Posted On</b>: 3 hours ago<br /><b>Skills</b>:Flutter, Dart
<br /><b>Country</b>: Canada
<br />]]></description>
</item>
<item>
  <title><![CDATA[Duplicate React dashboard - Upwork]]></title>
  <link>https://www.upwork.com/jobs/React-analytics-dashboard_~01abc123def?source=rss</link>
  <description><![CDATA[Same posting again.]]></description>
</item>
</channel>
</rss>
"""


class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append({"url": url, "params": params, "timeout": timeout})
        return self.response


# ── Parsing ──────────────────────────────────────────────────────────────


def test_extract_job_id():
    assert extract_job_id("https://www.upwork.com/jobs/Thing_~01abc?source=rss") == "01abc"
    assert extract_job_id("https://example.com/jobs/42") is None


@pytest.mark.parametrize("text, kind, expected", [
    ("$500", "fixed", Budget(kind="fixed", min=500)),
    ("$25.00-$50.00", "hourly", Budget(kind="hourly", min=25, max=50)),
    ("$30-$50 /hr", None, Budget(kind="hourly", min=30, max=50)),
    ("$1,000 fixed", None, Budget(kind="fixed", min=1000)),
    ("$700", None, Budget(kind="unknown", min=700)),
])
def test_parse_budget(text, kind, expected):
    assert parse_budget(text, kind=kind) == expected


def test_parse_budget_without_amount():
    assert parse_budget("") is None
    assert parse_budget("Negotiable") is None


def test_parse_posted_at():
    assert parse_posted_at("March 02, 2024 10:12 UTC") == datetime(2024, 3, 2, 10, 12, tzinfo=timezone.utc)
    assert parse_posted_at("3 hours ago", now=NOW) == NOW - timedelta(hours=3)
    assert parse_posted_at("2 days ago", now=NOW) == NOW - timedelta(days=2)
    assert parse_posted_at("yesterday-ish", now=NOW) == NOW


def test_parse_feed_items():
    jobs = parse_feed(FEED, now=NOW)
    assert len(jobs) == 3

    react = jobs[0]
    assert react.external_id == "01abc123def"
    assert react.title == "Build a React analytics dashboard"
    assert react.description == "We need a React developer for an analytics dashboard & reports."
    assert react.budget == Budget(kind="hourly", min=30, max=50)
    assert react.skills == ["React", "JavaScript", "TypeScript"]
    assert react.location == "United States"
    assert react.created_at == datetime(2024, 3, 2, 10, 12, tzinfo=timezone.utc)
    assert react.source == "upwork"

    flutter = jobs[1]
    assert flutter.external_id == "02xyz"
    assert flutter.budget == Budget(kind="fixed", min=1500)
    assert flutter.skills == ["Flutter", "Dart"]
    assert flutter.location == "Canada"
    assert flutter.created_at == NOW - timedelta(hours=3)


# ── UpworkSource ─────────────────────────────────────────────────────────


def test_fetch_dedupes_and_sends_query():
    session = FakeSession(FakeResponse(200, FEED))
    jobs = UpworkSource(session=session).fetch_new_jobs(FetchFilters(query="react", limit=10))
    assert [j.external_id for j in jobs] == ["01abc123def", "02xyz"]
    params = session.requests[0]["params"]
    assert params["q"] == "react"
    assert params["paging"] == "0;10"


def test_fetch_applies_filters_and_limit():
    session = FakeSession(FakeResponse(200, FEED))
    source = UpworkSource(session=session)
    assert [j.external_id for j in source.fetch_new_jobs(FetchFilters(skills=["dart"]))] == ["02xyz"]
    assert session.requests[0]["params"]["q"] == "dart"
    assert len(source.fetch_new_jobs(FetchFilters(limit=1))) == 1


def test_forbidden_feed_falls_back_to_mock_jobs():
    source = UpworkSource(session=FakeSession(FakeResponse(403, "blocked")))
    jobs = source.fetch_new_jobs(FetchFilters())
    assert [j.external_id for j in jobs] == ["mock-1", "mock-2", "mock-3"]


def test_forbidden_feed_raises_without_fallback():
    source = UpworkSource(fallback_on_forbidden=False, session=FakeSession(FakeResponse(403, "blocked")))
    with pytest.raises(requests.HTTPError):
        source.fetch_new_jobs(FetchFilters())


def test_malformed_feed_yields_no_jobs():
    source = UpworkSource(session=FakeSession(FakeResponse(200, "<rss><channel>")))
    assert source.fetch_new_jobs(FetchFilters()) == []


# ── Filters & factory ────────────────────────────────────────────────────


def test_apply_filters(make_job):
    job = make_job(category="frontend", budget=Budget(kind="hourly", min=50, max=80))
    assert apply_filters(job, FetchFilters())
    assert apply_filters(job, FetchFilters(category="Frontend"))
    assert not apply_filters(job, FetchFilters(category="mobile"))
    assert not apply_filters(job, FetchFilters(min_budget=60))
    assert not apply_filters(job, FetchFilters(max_budget=70))
    assert apply_filters(job, FetchFilters(skills=["javascript", "go"]))
    assert not apply_filters(job, FetchFilters(skills=["go"]))


def test_mock_source_respects_filters():
    jobs = MockSource().fetch_new_jobs(FetchFilters(skills=["Flutter"]))
    assert [j.external_id for j in jobs] == ["mock-3"]
    assert len(MockSource().fetch_new_jobs(FetchFilters(limit=2))) == 2


def test_filters_from_settings():
    filters = FetchFilters.from_settings({"fetch": {"query": "python", "limit": 5, "skills": ["Django"]}})
    assert filters.query == "python"
    assert filters.limit == 5
    assert filters.skills == ["Django"]
    assert filters.min_budget is None


def test_get_source():
    assert isinstance(get_source({"fetch": {"source": "mock"}}), MockSource)
    upwork = get_source({"fetch": {"source": "upwork", "mock_on_forbidden": False}})
    assert isinstance(upwork, UpworkSource)
    assert upwork.fallback_on_forbidden is False
    assert isinstance(get_source({"fetch": {"source": "craigslist"}}), UpworkSource)
