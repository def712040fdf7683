"""Match freelancer profiles against a job."""
from __future__ import annotations

from gigscout.log import get_logger
from gigscout.models import Budget, Job, MatchResult, Profile, clamp_score

log = get_logger(__name__)

MATCH_WEIGHTS: dict[str, float] = {
    "skills": 0.4,
    "experience": 0.3,
    "rate": 0.2,
    "category": 0.1,
}

_LEVEL_ORDINALS: list[tuple[str, int]] = [
    ("entry", 1),
    ("junior", 1),
    ("intermediate", 2),
    ("mid", 2),
    ("expert", 3),
    ("senior", 3),
]
_DEFAULT_ORDINAL = 1


def level_ordinal(level: str | None) -> int:
    text = (level or "").lower()
    for keyword, ordinal in _LEVEL_ORDINALS:
        if keyword in text:
            return ordinal
    return _DEFAULT_ORDINAL


def skill_match(profile_skills: list[str] | None, job_skills: list[str] | None) -> float:
    """Share of the job's skills the profile covers, scaled to 0-10."""
    if not profile_skills or not job_skills:
        return 0.0
    have = {s.lower().strip() for s in profile_skills}
    need = {s.lower().strip() for s in job_skills}
    return len(need & have) / len(need) * 10


def experience_match(profile_level: str | None, job_level: str | None) -> float:
    difference = abs(level_ordinal(profile_level) - level_ordinal(job_level))
    return float(max(0, 10 - difference * 3))


def rate_match(hourly_rate: float | None, budget: Budget | None) -> float:
    if budget is None or budget.is_empty or not hourly_rate:
        return 5.0

    low = budget.min or 0
    high = budget.max or hourly_rate * 2
    if low <= hourly_rate <= high:
        return 10.0
    if hourly_rate < low:
        return max(0.0, 10 - (low - hourly_rate) / 10)
    return max(0.0, 10 - (hourly_rate - high) / 10)


def category_match(profile_categories: list[str] | None, job_category: str | None) -> float:
    if not profile_categories or not job_category:
        return 5.0
    return 10.0 if job_category.lower() in {c.lower() for c in profile_categories} else 0.0


def match_breakdown(profile: Profile, job: Job) -> dict[str, float]:
    return {
        "skills": skill_match(profile.skills, job.skills),
        "experience": experience_match(profile.experience.level, job.experience_level),
        "rate": rate_match(profile.hourly_rate, job.budget),
        "category": category_match(profile.categories, job.category),
    }


def _result(profile: Profile, job: Job) -> MatchResult:
    factors = match_breakdown(profile, job)
    score = clamp_score(sum(factors[name] * weight for name, weight in MATCH_WEIGHTS.items()))
    return MatchResult(profile=profile, score=score, breakdown=factors)


def match_score(profile: Profile, job: Job) -> float:
    return _result(profile, job).score


def find_best_match(job: Job, profiles: list[Profile]) -> MatchResult:
    """Highest-scoring profile; the earliest one wins a tie."""
    best: MatchResult | None = None
    for profile in profiles:
        result = _result(profile, job)
        if best is None or result.score > best.score:
            best = result

    if best is None:
        log.warning("No profiles available for matching %s", job.external_id)
        return MatchResult(profile=None, score=0.0)

    log.info("Best profile for %r: %s (%.1f)", job.title, best.profile.name, best.score)
    return best


def rank_profiles(job: Job, profiles: list[Profile], limit: int | None = None) -> list[MatchResult]:
    ranked = sorted((_result(p, job) for p in profiles), key=lambda r: -r.score)
    return ranked[:limit] if limit is not None else ranked
