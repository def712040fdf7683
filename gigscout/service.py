"""Query and command operations behind the CLI and the dashboard."""
from __future__ import annotations

from datetime import timedelta
from typing import Any

from gigscout.log import get_logger
from gigscout.matcher import find_best_match, rank_profiles
from gigscout.models import Job, MatchResult, Profile, ValidationError, utcnow
from gigscout.scoring import ScoringOrchestrator
from gigscout.store import JobQuery, JobStore, ProfileStore

log = get_logger(__name__)


class JobService:
    def __init__(
        self,
        store: JobStore,
        orchestrator: ScoringOrchestrator | None = None,
        profiles: ProfileStore | None = None,
    ) -> None:
        self.store = store
        self.orchestrator = orchestrator or ScoringOrchestrator()
        self.profiles = profiles

    # ── Queries ──────────────────────────────────────────────────────────

    def get_jobs(self, query: JobQuery | None = None) -> list[Job]:
        return self.store.find_all(query)

    def get_job(self, external_id: str) -> Job | None:
        return self.store.find_by_external_id(external_id)

    def by_category(self, category: str, limit: int = 50) -> list[Job]:
        return self.store.find_all(JobQuery(category=category, limit=limit))

    def high_scoring(self, min_score: float = 7.0, limit: int = 50) -> list[Job]:
        return self.store.find_all(JobQuery(min_score=min_score, order_by="score", limit=limit))

    def recent(self, hours: int = 24, limit: int = 50) -> list[Job]:
        return self.store.find_all(JobQuery(since=utcnow() - timedelta(hours=hours), limit=limit))

    def search(self, keyword: str, limit: int = 50) -> list[Job]:
        if not keyword or not keyword.strip():
            raise ValidationError("Search keyword must not be empty")
        return self.store.find_all(JobQuery(keyword=keyword.strip(), limit=limit))

    def by_skills(self, skills: list[str], limit: int = 50) -> list[Job]:
        skills = [s.strip() for s in skills if s and s.strip()]
        if not skills:
            raise ValidationError("At least one skill is required")
        return self.store.find_all(JobQuery(skills=skills, limit=limit))

    def by_budget(self, min_budget: float | None = None, max_budget: float | None = None,
                  limit: int = 50) -> list[Job]:
        if min_budget is not None and max_budget is not None and min_budget > max_budget:
            raise ValidationError("min_budget cannot exceed max_budget")
        return self.store.find_all(JobQuery(min_budget=min_budget, max_budget=max_budget, limit=limit))

    def applied(self, limit: int = 50) -> list[Job]:
        return self.store.find_all(JobQuery(applied=True, limit=limit))

    def saved(self, limit: int = 50) -> list[Job]:
        return self.store.find_all(JobQuery(saved=True, limit=limit))

    def job_stats(self) -> dict[str, Any]:
        return self.store.stats()

    # ── Commands ─────────────────────────────────────────────────────────

    def mark_applied(self, external_id: str) -> Job | None:
        job = self.store.update(external_id, {"applied": True, "applied_at": utcnow()})
        if job is None:
            log.warning("Cannot mark %s as applied: no such job", external_id)
        return job

    def mark_saved(self, external_id: str) -> Job | None:
        job = self.store.update(external_id, {"saved": True, "saved_at": utcnow()})
        if job is None:
            log.warning("Cannot mark %s as saved: no such job", external_id)
        return job

    def delete_job(self, external_id: str) -> bool:
        return self.store.delete(external_id)

    def rescore(self, external_ids: list[str]) -> list[Job]:
        """Re-run scoring for the given jobs; unknown ids are skipped."""
        updated: list[Job] = []
        for external_id in external_ids:
            job = self.store.find_by_external_id(external_id)
            if job is None:
                log.warning("Rescore: job %s not found", external_id)
                continue
            score = self.orchestrator.score_job(job)
            result = self.store.update(external_id, {"score": score})
            if result is not None:
                updated.append(result)
        log.info("Rescored %d/%d jobs", len(updated), len(external_ids))
        return updated

    # ── Matching ─────────────────────────────────────────────────────────

    def _profiles(self) -> list[Profile]:
        if self.profiles is None:
            return []
        return self.profiles.list_profiles()

    def best_match(self, external_id: str, use_remote: bool = False) -> MatchResult | None:
        """Best profile for a stored job; None when the job is unknown."""
        job = self.store.find_by_external_id(external_id)
        if job is None:
            return None
        profiles = self._profiles()
        if use_remote:
            return self.orchestrator.match_profiles(job, profiles)
        return find_best_match(job, profiles)

    def ranked_matches(self, external_id: str, limit: int | None = None) -> list[MatchResult]:
        job = self.store.find_by_external_id(external_id)
        if job is None:
            return []
        return rank_profiles(job, self._profiles(), limit=limit)


class ProfileService:
    def __init__(self, store: ProfileStore) -> None:
        self.store = store

    def create(self, data: dict[str, Any]) -> Profile:
        return self.store.create(data)

    def update(self, name: str, patch: dict[str, Any]) -> Profile | None:
        return self.store.update(name, patch)

    def delete(self, name: str) -> bool:
        return self.store.delete(name)

    def list(self) -> list[Profile]:
        return self.store.list_profiles()

    def get(self, name: str) -> Profile | None:
        return self.store.get(name)

    def stats(self) -> dict[str, Any]:
        profiles = self.store.list_profiles()
        skills: dict[str, int] = {}
        categories: dict[str, int] = {}
        for p in profiles:
            for s in p.skills:
                skills[s] = skills.get(s, 0) + 1
            for c in p.categories:
                categories[c] = categories.get(c, 0) + 1
        return {
            "total": len(profiles),
            "average_rate": round(sum(p.hourly_rate for p in profiles) / len(profiles), 2) if profiles else 0.0,
            "skills": dict(sorted(skills.items(), key=lambda kv: -kv[1])),
            "categories": dict(sorted(categories.items(), key=lambda kv: -kv[1])),
        }
