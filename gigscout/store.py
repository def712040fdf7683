"""Persist jobs in a locked CSV table and profiles in a YAML document."""
from __future__ import annotations

import csv
import fcntl
import json
import threading
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import yaml

from gigscout.config import JOBS_CSV, PROFILES_PATH
from gigscout.log import get_logger
from gigscout.models import Budget, Job, Profile, ValidationError, utcnow

log = get_logger(__name__)

HEADERS: list[str] = [
    "external_id", "title", "description", "url",
    "budget_kind", "budget_min", "budget_max", "skills",
    "category", "score", "location", "client_info", "experience_level",
    "applied", "applied_at", "saved", "saved_at",
    "created_at", "updated_at", "source",
]

_JOB_FIELDS = {f.name for f in fields(Job)}
_IMMUTABLE = {"external_id", "created_at"}


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


def _fmt_time(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def _parse_time(value: str) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _fmt_num(value: float | None) -> str:
    return repr(float(value)) if value is not None else ""


def _parse_num(value: str) -> float | None:
    return float(value) if value else None


def job_to_row(job: Job) -> dict[str, str]:
    budget = job.budget
    return {
        "external_id": job.external_id,
        "title": job.title,
        "description": job.description,
        "url": job.url,
        "budget_kind": budget.kind if budget else "",
        "budget_min": _fmt_num(budget.min) if budget else "",
        "budget_max": _fmt_num(budget.max) if budget else "",
        "skills": json.dumps(job.skills),
        "category": job.category or "",
        "score": _fmt_num(job.score),
        "location": job.location or "",
        "client_info": job.client_info or "",
        "experience_level": job.experience_level or "",
        "applied": "1" if job.applied else "0",
        "applied_at": _fmt_time(job.applied_at),
        "saved": "1" if job.saved else "0",
        "saved_at": _fmt_time(job.saved_at),
        "created_at": _fmt_time(job.created_at),
        "updated_at": _fmt_time(job.updated_at),
        "source": job.source,
    }


def row_to_job(row: dict[str, str]) -> Job:
    budget = None
    if row.get("budget_kind"):
        budget = Budget(
            kind=row["budget_kind"],
            min=_parse_num(row.get("budget_min", "")),
            max=_parse_num(row.get("budget_max", "")),
        )
    return Job(
        external_id=row["external_id"],
        title=row.get("title", ""),
        description=row.get("description", ""),
        url=row.get("url", ""),
        budget=budget,
        skills=json.loads(row.get("skills") or "[]"),
        category=row.get("category") or None,
        score=_parse_num(row.get("score", "")) or 0.0,
        location=row.get("location") or None,
        client_info=row.get("client_info") or None,
        experience_level=row.get("experience_level") or None,
        applied=row.get("applied") == "1",
        applied_at=_parse_time(row.get("applied_at", "")),
        saved=row.get("saved") == "1",
        saved_at=_parse_time(row.get("saved_at", "")),
        created_at=_parse_time(row.get("created_at", "")) or utcnow(),
        updated_at=_parse_time(row.get("updated_at", "")),
        source=row.get("source") or "unknown",
    )


@dataclass
class JobQuery:
    category: str | None = None
    min_score: float | None = None
    max_score: float | None = None
    skills: list[str] = field(default_factory=list)
    min_budget: float | None = None
    max_budget: float | None = None
    keyword: str | None = None
    applied: bool | None = None
    saved: bool | None = None
    since: datetime | None = None
    until: datetime | None = None
    order_by: str = "created_at"
    limit: int | None = 50

    def matches(self, job: Job) -> bool:
        if self.category and (job.category or "").lower() != self.category.lower():
            return False
        if self.min_score is not None and job.score < self.min_score:
            return False
        if self.max_score is not None and job.score > self.max_score:
            return False
        if self.skills:
            have = {s.lower() for s in job.skills}
            if not any(s.lower() in have for s in self.skills):
                return False
        if self.min_budget is not None and (job.budget is None or (job.budget.min or 0) < self.min_budget):
            return False
        if self.max_budget is not None and job.budget is not None and job.budget.max is not None \
                and job.budget.max > self.max_budget:
            return False
        if self.keyword:
            kw = self.keyword.lower()
            if kw not in job.title.lower() and kw not in job.description.lower():
                return False
        if self.applied is not None and job.applied != self.applied:
            return False
        if self.saved is not None and job.saved != self.saved:
            return False
        if self.since is not None and job.created_at < self.since:
            return False
        if self.until is not None and job.created_at > self.until:
            return False
        return True


class JobStore:
    """CRUD over a CSV table keyed by ``external_id``.

    Reads take a shared lock, writes rewrite the whole file under an
    exclusive one. I/O errors propagate to the caller.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or JOBS_CSV
        self._mutex = threading.RLock()

    def ensure(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            with open(self.path, "w", newline="", encoding="utf-8") as f:
                _lock(f)
                csv.writer(f).writerow(HEADERS)
                _unlock(f)
            log.info("Created job table → %s", self.path.name)

    def _read(self) -> list[Job]:
        self.ensure()
        with open(self.path, "r", newline="", encoding="utf-8") as f:
            _lock(f, exclusive=False)
            rows = list(csv.DictReader(f))
            _unlock(f)
        return [row_to_job(r) for r in rows]

    def _write(self, jobs: list[Job]) -> None:
        with open(self.path, "w", newline="", encoding="utf-8") as f:
            _lock(f)
            w = csv.DictWriter(f, fieldnames=HEADERS)
            w.writeheader()
            w.writerows(job_to_row(j) for j in jobs)
            _unlock(f)

    def create(self, job: Job) -> Job:
        job.validate()
        with self._mutex:
            if self.find_by_external_id(job.external_id) is not None:
                raise ValidationError(f"Job {job.external_id} already exists")
            self.ensure()
            with open(self.path, "a", newline="", encoding="utf-8") as f:
                _lock(f)
                csv.DictWriter(f, fieldnames=HEADERS).writerow(job_to_row(job))
                _unlock(f)
        log.debug("Stored job %s (%s)", job.external_id, job.title)
        return job

    def find_by_external_id(self, external_id: str) -> Job | None:
        with self._mutex:
            for job in self._read():
                if job.external_id == external_id:
                    return job
        return None

    def update(self, external_id: str, patch: dict[str, Any]) -> Job | None:
        """Apply *patch* to one job; None when the id is unknown."""
        unknown = set(patch) - _JOB_FIELDS
        if unknown:
            raise ValidationError(f"Unknown job field(s): {', '.join(sorted(unknown))}")
        frozen = set(patch) & _IMMUTABLE
        if frozen:
            raise ValidationError(f"Job field(s) cannot change: {', '.join(sorted(frozen))}")

        with self._mutex:
            jobs = self._read()
            for i, job in enumerate(jobs):
                if job.external_id == external_id:
                    # replace() re-runs __post_init__, which clamps the score
                    updated = replace(job, **{**patch, "updated_at": utcnow()})
                    jobs[i] = updated
                    self._write(jobs)
                    log.debug("Updated %s → %s", external_id, sorted(patch))
                    return updated
        return None

    def delete(self, external_id: str) -> bool:
        with self._mutex:
            jobs = self._read()
            kept = [j for j in jobs if j.external_id != external_id]
            if len(kept) == len(jobs):
                return False
            self._write(kept)
        log.info("Deleted job %s", external_id)
        return True

    def find_all(self, query: JobQuery | None = None) -> list[Job]:
        query = query or JobQuery()
        with self._mutex:
            jobs = [j for j in self._read() if query.matches(j)]
        if query.order_by == "score":
            jobs.sort(key=lambda j: (-j.score, -j.created_at.timestamp()))
        else:
            jobs.sort(key=lambda j: -j.created_at.timestamp())
        return jobs[:query.limit] if query.limit is not None else jobs

    def stats(self, now: datetime | None = None) -> dict[str, Any]:
        jobs = self.find_all(JobQuery(limit=None))
        now = now or utcnow()
        by_category: dict[str, int] = {}
        by_score: dict[str, int] = {}
        for job in jobs:
            key = job.category or "uncategorized"
            by_category[key] = by_category.get(key, 0) + 1
            band = _score_band(job.score)
            by_score[band] = by_score.get(band, 0) + 1
        return {
            "total": len(jobs),
            "average_score": round(sum(j.score for j in jobs) / len(jobs), 2) if jobs else 0.0,
            "by_category": dict(sorted(by_category.items(), key=lambda kv: -kv[1])),
            "by_score": by_score,
            "recent": sum(1 for j in jobs if j.created_at >= now - timedelta(days=1)),
            "last_created": jobs[0].created_at if jobs else None,
        }


def _score_band(score: float) -> str:
    if score >= 8:
        return "High (8-10)"
    if score >= 6:
        return "Medium (6-7.9)"
    if score >= 4:
        return "Low (4-5.9)"
    return "Very Low (0-3.9)"


class ProfileStore:
    """Freelancer profiles kept as a YAML list, one entry per unique name."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or PROFILES_PATH
        self._mutex = threading.RLock()

    def _load(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        entries = data.get("profiles", []) if isinstance(data, dict) else data
        return list(entries or [])

    def _dump(self, profiles: list[Profile]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        header = (
            "# ============================================================\n"
            "# Freelancer profiles — matched against incoming jobs\n"
            "# ============================================================\n\n"
        )
        body = yaml.dump(
            {"profiles": [p.to_dict() for p in profiles]},
            default_flow_style=False, sort_keys=False, allow_unicode=True,
        )
        self.path.write_text(header + body, encoding="utf-8")

    def list_profiles(self) -> list[Profile]:
        with self._mutex:
            entries = self._load()
        profiles: list[Profile] = []
        for entry in entries:
            try:
                profiles.append(Profile.from_dict(entry))
            except ValidationError as exc:
                log.warning("Skipping invalid profile %r in %s: %s",
                            (entry or {}).get("name"), self.path.name, exc)
        return profiles

    def get(self, name: str) -> Profile | None:
        key = name.strip().lower()
        for profile in self.list_profiles():
            if profile.name.lower() == key:
                return profile
        return None

    def create(self, data: dict[str, Any] | Profile) -> Profile:
        profile = data if isinstance(data, Profile) else Profile.from_dict(data)
        profile.validate()
        with self._mutex:
            profiles = self.list_profiles()
            if any(p.name.lower() == profile.name.lower() for p in profiles):
                raise ValidationError(f"Profile {profile.name!r} already exists")
            profiles.append(profile)
            self._dump(profiles)
        log.info("Created profile %s", profile.name)
        return profile

    def update(self, name: str, patch: dict[str, Any]) -> Profile | None:
        with self._mutex:
            profiles = self.list_profiles()
            for i, profile in enumerate(profiles):
                if profile.name.lower() != name.strip().lower():
                    continue
                merged = profile.to_dict()
                if isinstance(patch.get("experience"), dict):
                    merged["experience"] = {**merged["experience"], **patch["experience"]}
                merged.update({k: v for k, v in patch.items() if k != "experience"})
                updated = Profile.from_dict(merged)
                clash = any(
                    j != i and p.name.lower() == updated.name.lower()
                    for j, p in enumerate(profiles)
                )
                if clash:
                    raise ValidationError(f"Profile {updated.name!r} already exists")
                profiles[i] = updated
                self._dump(profiles)
                log.info("Updated profile %s", updated.name)
                return updated
        return None

    def delete(self, name: str) -> bool:
        with self._mutex:
            profiles = self.list_profiles()
            kept = [p for p in profiles if p.name.lower() != name.strip().lower()]
            if len(kept) == len(profiles):
                return False
            self._dump(kept)
        log.info("Deleted profile %s", name)
        return True
