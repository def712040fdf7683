from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from gigscout.models import Job


@dataclass
class FetchFilters:
    query: str = ""
    limit: int = 50
    category: str | None = None
    min_budget: float | None = None
    max_budget: float | None = None
    skills: list[str] = field(default_factory=list)

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> FetchFilters:
        cfg = settings.get("fetch", {})
        return cls(
            query=cfg.get("query") or "",
            limit=int(cfg.get("limit") or 50),
            category=cfg.get("category") or None,
            min_budget=cfg.get("min_budget"),
            max_budget=cfg.get("max_budget"),
            skills=list(cfg.get("skills") or []),
        )


def apply_filters(job: Job, filters: FetchFilters) -> bool:
    """True when *job* passes every filter that is set."""
    if filters.category and (job.category or "").lower() != filters.category.lower():
        return False
    budget = job.budget
    if filters.min_budget is not None and budget is not None and budget.min is not None \
            and budget.min < filters.min_budget:
        return False
    if filters.max_budget is not None and budget is not None and budget.max is not None \
            and budget.max > filters.max_budget:
        return False
    if filters.skills:
        have = {s.lower() for s in job.skills}
        if not any(s.lower() in have for s in filters.skills):
            return False
    return True


class JobSource(ABC):
    name: str = "unknown"

    @abstractmethod
    def fetch_new_jobs(self, filters: FetchFilters) -> list[Job]:
        pass
