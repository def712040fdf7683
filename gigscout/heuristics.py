"""Deterministic job scoring, categorization and analysis.

Everything here is pure: no I/O, no randomness, no exceptions for odd
input. Each factor maps one job attribute to a 0-10 sub-score through an
ordered rule table; the first matching rule wins.
"""
from __future__ import annotations

import re

from gigscout.models import (
    DEFAULT_CATEGORY,
    Budget,
    Job,
    JobAnalysis,
    ScoreBreakdown,
    clamp_score,
)

NEUTRAL = 5.0

WEIGHTS: dict[str, float] = {
    "budget": 0.25,
    "skills": 0.20,
    "experience": 0.15,
    "location": 0.10,
    "description": 0.15,
    "client_info": 0.15,
}

# (minimum, score), checked top-down against budget.min
HOURLY_TIERS: list[tuple[float, float]] = [(50, 10), (30, 8), (20, 6), (10, 4)]
FIXED_TIERS: list[tuple[float, float]] = [(5000, 10), (2000, 8), (1000, 6), (500, 4)]
LOWEST_TIER_SCORE = 2.0

HIGH_DEMAND_SKILLS: list[str] = [
    "javascript", "react", "node.js", "python", "java", "c#", "php",
    "angular", "vue.js", "typescript", "aws", "docker", "kubernetes",
    "machine learning", "ai", "data science", "blockchain", "mobile",
    "ios", "android", "flutter", "react native",
]

MEDIUM_DEMAND_SKILLS: list[str] = [
    "html", "css", "sass", "less", "bootstrap", "jquery", "express",
    "django", "flask", "laravel", "wordpress", "shopify", "magento",
    "mysql", "postgresql", "mongodb", "redis", "elasticsearch",
]

EXPERIENCE_RULES: list[tuple[str, float]] = [
    ("expert", 10),
    ("senior", 9),
    ("intermediate", 7),
    ("mid", 7),
    ("entry", 5),
    ("junior", 5),
    ("beginner", 3),
]

LOCATION_TIERS: list[tuple[tuple[str, ...], float]] = [
    (("united states", "us", "usa"), 10),
    (("canada",), 9),
    (("united kingdom", "uk"), 8),
    (("australia",), 8),
    (("germany", "france", "japan"), 7),
    (("singapore", "sweden", "netherlands", "switzerland"), 6),
    (("india", "philippines"), 4),
    (("pakistan", "bangladesh"), 3),
]

QUALITY_KEYWORDS: list[str] = [
    "detailed", "comprehensive", "thorough", "professional",
    "experience", "expertise", "skills", "requirements",
    "timeline", "budget", "scope", "deliverables",
]

NEGATIVE_KEYWORDS: list[str] = [
    "urgent", "asap", "quick", "fast", "cheap", "low budget",
    "simple", "easy", "basic", "beginner", "student",
]

CLIENT_RULES: list[tuple[str, float]] = [
    ("verified", 2),
    ("payment verified", 2),
    ("top rated", 1),
    ("plus", 1),
    ("enterprise", 1),
    ("new", -1),
    ("0%", -2),
    ("no feedback", -1),
]

# Ordered: the first rule whose keywords hit any job skill decides.
CATEGORY_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("mobile", ("react native", "flutter", "ios", "android")),
    ("full-stack-ai", ("machine learning", "ai", "tensorflow", "pytorch")),
    ("frontend", ("react", "vue", "angular", "frontend")),
    ("backend", ("node.js", "python", "java", "backend")),
    ("full-stack", ("full stack", "fullstack")),
]
US_ONLY_PHRASES: tuple[str, ...] = ("us only", "united states")

# Terms this short collide with ordinary words ("us" in "business",
# "ai" in "email"), so they only count as standalone tokens.
_SHORT_TERM_LEN = 3


def _normalize(s: str | None) -> str:
    return (s or "").lower().strip()


def has_term(text: str, term: str) -> bool:
    """Case-insensitive containment; short terms must stand alone."""
    text = _normalize(text)
    term = term.lower()
    if len(term) > _SHORT_TERM_LEN:
        return term in text
    return re.search(rf"(?<![a-z0-9]){re.escape(term)}(?![a-z0-9])", text) is not None


def _any_term(text: str, terms) -> bool:
    return any(has_term(text, t) for t in terms)


# ── Factor scores ────────────────────────────────────────────────────────


def score_budget(budget: Budget | None) -> float:
    if budget is None or budget.min is None:
        return NEUTRAL
    if budget.kind == "hourly":
        tiers = HOURLY_TIERS
    elif budget.kind == "fixed":
        tiers = FIXED_TIERS
    else:
        return NEUTRAL
    for minimum, score in tiers:
        if budget.min >= minimum:
            return float(score)
    return LOWEST_TIER_SCORE


def classify_skill(skill: str) -> float:
    if _any_term(skill, HIGH_DEMAND_SKILLS):
        return 10.0
    if _any_term(skill, MEDIUM_DEMAND_SKILLS):
        return 7.0
    return NEUTRAL


def score_skills(skills: list[str] | None) -> float:
    if not skills:
        return NEUTRAL
    return sum(classify_skill(s) for s in skills) / len(skills)


def score_experience(level: str | None) -> float:
    text = _normalize(level)
    if not text:
        return NEUTRAL
    for keyword, score in EXPERIENCE_RULES:
        if keyword in text:
            return float(score)
    return NEUTRAL


def score_location(location: str | None) -> float:
    text = _normalize(location)
    if not text:
        return NEUTRAL
    for names, score in LOCATION_TIERS:
        if _any_term(text, names):
            return float(score)
    return NEUTRAL


def score_description(description: str | None) -> float:
    if not description:
        return NEUTRAL

    score = NEUTRAL
    length = len(description)
    if length > 500:
        score += 2
    elif length > 200:
        score += 1
    elif length < 50:
        score -= 2

    text = description.lower()
    score += 0.5 * sum(1 for k in QUALITY_KEYWORDS if k in text)
    score -= 0.5 * sum(1 for k in NEGATIVE_KEYWORDS if k in text)
    return clamp_score(score)


def score_client_info(client_info: str | None) -> float:
    text = _normalize(client_info)
    if not text:
        return NEUTRAL
    score = NEUTRAL + sum(delta for term, delta in CLIENT_RULES if has_term(text, term))
    return clamp_score(score)


# ── Combination ──────────────────────────────────────────────────────────


def combine(subscores: dict[str, float | None], weights: dict[str, float] | None = None) -> float:
    """Weighted mean over the factors that produced a sub-score."""
    weights = weights or WEIGHTS
    total = 0.0
    applied = 0.0
    for name, weight in weights.items():
        value = subscores.get(name)
        if value is None:
            continue
        total += value * weight
        applied += weight
    if applied <= 0:
        return NEUTRAL
    return clamp_score(total / applied)


def score_breakdown(job: Job) -> ScoreBreakdown:
    subscores = {
        "budget": score_budget(job.budget),
        "skills": score_skills(job.skills),
        "experience": score_experience(job.experience_level),
        "location": score_location(job.location),
        "description": score_description(job.description),
        "client_info": score_client_info(job.client_info),
    }
    return ScoreBreakdown(final=combine(subscores), **subscores)


def score_heuristic(job: Job) -> float:
    return score_breakdown(job).final


# ── Categorization & analysis ────────────────────────────────────────────


def categorize_by_rules(job: Job) -> str:
    if not job.skills:
        return DEFAULT_CATEGORY

    for category, keywords in CATEGORY_RULES:
        if any(_any_term(skill, keywords) for skill in job.skills):
            return category

    text = f"{_normalize(job.title)} {_normalize(job.description)}"
    if any(phrase in text for phrase in US_ONLY_PHRASES):
        return "us-only"

    return DEFAULT_CATEGORY


def extract_experience_level(description: str | None) -> str:
    text = _normalize(description)
    if "expert" in text or "senior" in text:
        return "expert"
    if "entry" in text or "junior" in text or "beginner" in text:
        return "entry"
    return "intermediate"


def extract_duration(description: str | None) -> str:
    text = _normalize(description)
    if "short" in text or "quick" in text or "1-2 weeks" in text:
        return "short"
    if "long" in text or "months" in text or "ongoing" in text:
        return "long"
    return "medium"


def extract_complexity(description: str | None) -> str:
    text = _normalize(description)
    if "simple" in text or "basic" in text or "easy" in text:
        return "simple"
    if "complex" in text or "advanced" in text or "sophisticated" in text:
        return "complex"
    return "moderate"


def analyze_manually(job: Job) -> JobAnalysis:
    return JobAnalysis(
        skills=list(job.skills),
        experience=extract_experience_level(job.description),
        budget=job.budget or Budget(kind="unknown", min=0, max=0),
        duration=extract_duration(job.description),
        complexity=extract_complexity(job.description),
        location=job.location or "Unknown",
        category=categorize_by_rules(job),
    )
