"""Upwork job search RSS feed.

Each feed item carries the posting text followed by ``<b>Label</b>: value``
lines (budget, hourly range, skills, country, posted-on). The job id is the
``~01abc...`` token in the item link.
"""
from __future__ import annotations

import hashlib
import html
import re
from datetime import datetime, timedelta, timezone
from xml.etree import ElementTree

import requests

from gigscout.log import get_logger
from gigscout.models import Budget, Job, utcnow
from gigscout.retry import retry
from gigscout.sources.base import FetchFilters, JobSource, apply_filters
from gigscout.sources.mock import MockSource

log = get_logger(__name__)

FEED_URL = "https://www.upwork.com/ab/feed/jobs/rss"
HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/rss+xml, application/xml;q=0.9, */*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

_ID_RE = re.compile(r"~([a-zA-Z0-9]+)")
_FIELD_RE = re.compile(r"<b>\s*([^<]+?)\s*</b>\s*:\s*(.*?)(?=<br\s*/?>|<b>|$)", re.S | re.I)
_TAG_RE = re.compile(r"<[^>]+>")
_MONEY_RE = re.compile(r"\$\s*([\d,]+(?:\.\d+)?)")
_RELATIVE_RE = re.compile(r"(\d+)\s*(minute|hour|day|week)", re.I)


def extract_job_id(url: str) -> str | None:
    found = _ID_RE.search(url or "")
    return found.group(1) if found else None


def _strip_tags(text: str) -> str:
    text = re.sub(r"<br\s*/?>", "\n", text, flags=re.I)
    text = html.unescape(_TAG_RE.sub("", text))
    return re.sub(r"[ \t]+", " ", re.sub(r"\n{3,}", "\n\n", text)).strip()


def parse_budget(text: str, kind: str | None = None) -> Budget | None:
    """``$500`` / ``$25.00-$50.00`` / ``$30-$50 /hr`` / ``$1,000 fixed``."""
    if not text:
        return None
    amounts = [float(a.replace(",", "")) for a in _MONEY_RE.findall(text)]
    if not amounts:
        return None
    if kind is None:
        low = text.lower()
        if "/hr" in low or "hour" in low:
            kind = "hourly"
        elif "fixed" in low:
            kind = "fixed"
        else:
            kind = "unknown"
    return Budget(kind=kind, min=amounts[0], max=amounts[1] if len(amounts) > 1 else None)


def parse_posted_at(text: str, now: datetime | None = None) -> datetime:
    """Absolute ``March 02, 2024 10:12 UTC`` or relative ``3 hours ago``."""
    now = now or utcnow()
    if not text:
        return now
    text = text.strip()
    try:
        return datetime.strptime(text, "%B %d, %Y %H:%M UTC").replace(tzinfo=timezone.utc)
    except ValueError:
        pass
    found = _RELATIVE_RE.search(text)
    if found:
        amount, unit = int(found.group(1)), found.group(2).lower()
        return now - timedelta(**{f"{unit}s": amount})
    return now


def parse_item(item: ElementTree.Element, now: datetime | None = None) -> Job | None:
    title = html.unescape((item.findtext("title") or "").strip())
    title = re.sub(r"\s*-\s*Upwork\s*$", "", title)
    link = (item.findtext("link") or "").strip()
    guid = (item.findtext("guid") or link).strip()
    raw = item.findtext("description") or ""

    external_id = extract_job_id(link) or extract_job_id(guid)
    if not external_id:
        if not guid:
            return None
        external_id = hashlib.sha256(guid.encode()).hexdigest()[:12]

    fields = {label.lower(): _strip_tags(value) for label, value in _FIELD_RE.findall(raw)}
    first_field = _FIELD_RE.search(raw)
    description = _strip_tags(raw[:first_field.start()] if first_field else raw)

    budget = None
    if "hourly range" in fields:
        budget = parse_budget(fields["hourly range"], kind="hourly")
    elif "budget" in fields:
        budget = parse_budget(fields["budget"], kind="fixed")

    skills = [s.strip() for s in fields.get("skills", "").split(",") if s.strip()]

    return Job(
        external_id=external_id,
        title=title,
        description=description,
        url=link,
        budget=budget,
        skills=skills,
        location=fields.get("country") or fields.get("location"),
        client_info=fields.get("client") or None,
        experience_level=(fields.get("experience level") or "").lower() or None,
        created_at=parse_posted_at(fields.get("posted on", ""), now=now),
        source="upwork",
    )


def parse_feed(xml_text: str, now: datetime | None = None) -> list[Job]:
    root = ElementTree.fromstring(xml_text)
    jobs: list[Job] = []
    for i, item in enumerate(root.iter("item")):
        job = parse_item(item, now=now)
        if job is None:
            log.warning("Skipping feed item %d without a usable id", i)
            continue
        jobs.append(job)
    return jobs


class UpworkSource(JobSource):
    name = "upwork"

    def __init__(self, fallback_on_forbidden: bool = True, session: requests.Session | None = None) -> None:
        self.fallback_on_forbidden = fallback_on_forbidden
        self.session = session or requests.Session()

    @retry(max_attempts=3, base_delay=2.0, retryable=(requests.RequestException, OSError))
    def _fetch(self, filters: FetchFilters) -> requests.Response:
        params = {"sort": "recency", "paging": f"0;{filters.limit}"}
        if filters.query:
            params["q"] = filters.query
        if filters.skills and not filters.query:
            params["q"] = " OR ".join(filters.skills)
        r = self.session.get(FEED_URL, params=params, headers=HEADERS, timeout=15)
        if r.status_code != 403:
            r.raise_for_status()
        return r

    def fetch_new_jobs(self, filters: FetchFilters) -> list[Job]:
        r = self._fetch(filters)
        if r.status_code == 403:
            log.warning("Upwork returned 403 — the feed may be behind anti-bot protection")
            if self.fallback_on_forbidden:
                log.info("Returning mock job data instead")
                return MockSource().fetch_new_jobs(filters)
            r.raise_for_status()

        try:
            jobs = parse_feed(r.text)
        except ElementTree.ParseError as exc:
            log.error("Upwork feed is not valid XML: %s", exc)
            return []

        seen: set[str] = set()
        result: list[Job] = []
        for job in jobs:
            if job.external_id in seen or not apply_filters(job, filters):
                continue
            seen.add(job.external_id)
            result.append(job)
            if len(result) >= filters.limit:
                break
        log.info("Fetched %d jobs from Upwork (%d in feed)", len(result), len(jobs))
        return result
