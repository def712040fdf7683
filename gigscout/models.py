"""Data models for jobs, profiles and scoring results."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

CATEGORIES: tuple[str, ...] = (
    "mobile", "full-stack", "full-stack-ai", "frontend", "backend", "us-only", "other",
)
DEFAULT_CATEGORY = "other"

BUDGET_KINDS: tuple[str, ...] = ("fixed", "hourly", "unknown")
JOB_LEVELS: tuple[str, ...] = ("entry", "intermediate", "expert")
PROFILE_LEVELS: tuple[str, ...] = ("junior", "mid-level", "senior", "expert")

MIN_SCORE = 0.0
MAX_SCORE = 10.0


class ValidationError(ValueError):
    """Rejected input: a required field is missing or malformed."""


def clamp_score(value: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, float(value)))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dedupe(items: list[str] | None) -> list[str]:
    """Strip blanks and drop case-insensitive duplicates, keeping order."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items or []:
        text = str(item).strip()
        key = text.lower()
        if text and key not in seen:
            seen.add(key)
            out.append(text)
    return out


@dataclass
class Budget:
    kind: str = "unknown"
    min: float | None = None
    max: float | None = None

    def __post_init__(self) -> None:
        self.kind = (self.kind or "unknown").lower()
        if self.kind not in BUDGET_KINDS:
            self.kind = "unknown"

    @property
    def is_empty(self) -> bool:
        return self.min is None and self.max is None

    def describe(self) -> str:
        if self.min is None:
            return "Not specified"
        suffix = "/hr" if self.kind == "hourly" else " fixed" if self.kind == "fixed" else ""
        if self.max is not None and self.max != self.min:
            return f"${self.min:g}-${self.max:g}{suffix}"
        return f"${self.min:g}+{suffix}"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Budget | None:
        if not data:
            return None
        return cls(
            kind=data.get("kind") or data.get("type") or "unknown",
            min=_as_float(data.get("min")),
            max=_as_float(data.get("max")),
        )


def _as_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class Job:
    external_id: str
    title: str
    description: str = ""
    url: str = ""
    budget: Budget | None = None
    skills: list[str] = field(default_factory=list)
    category: str | None = None
    score: float = 0.0
    location: str | None = None
    client_info: str | None = None
    experience_level: str | None = None
    applied: bool = False
    applied_at: datetime | None = None
    saved: bool = False
    saved_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    source: str = "unknown"

    def __post_init__(self) -> None:
        self.skills = _dedupe(self.skills)
        self.score = clamp_score(self.score)

    def validate(self) -> None:
        if not self.external_id or not str(self.external_id).strip():
            raise ValidationError("Job external_id is required")
        if not self.title or not self.title.strip():
            raise ValidationError(f"Job {self.external_id} has no title")


@dataclass
class Experience:
    years: int = 0
    level: str = "junior"
    specialties: list[str] = field(default_factory=list)


@dataclass
class Profile:
    name: str
    description: str
    skills: list[str]
    experience: Experience
    hourly_rate: float = 0.0
    categories: list[str] = field(default_factory=list)
    portfolio: str = ""

    def __post_init__(self) -> None:
        self.skills = _dedupe(self.skills)
        self.categories = [c.lower() for c in _dedupe(self.categories)]

    def validate(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Profile name is required and must be a string")
        if not isinstance(self.description, str) or not self.description.strip():
            raise ValidationError("Profile description is required and must be a string")
        if not self.skills:
            raise ValidationError("Profile must have at least one skill")
        if not isinstance(self.experience, Experience):
            raise ValidationError("Profile experience is required")
        if not isinstance(self.experience.years, int) or self.experience.years < 0:
            raise ValidationError("Experience years must be a non-negative integer")
        if self.experience.level not in PROFILE_LEVELS:
            raise ValidationError(
                f"Experience level must be one of {', '.join(PROFILE_LEVELS)}"
            )
        if isinstance(self.hourly_rate, bool) or not isinstance(self.hourly_rate, (int, float)) \
                or self.hourly_rate < 0:
            raise ValidationError("Profile hourly rate must be a non-negative number")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Profile:
        """Build and validate a profile from loosely typed input."""
        if not isinstance(data, dict):
            raise ValidationError("Profile data must be a mapping")
        exp = data.get("experience")
        if not isinstance(exp, dict):
            raise ValidationError("Profile experience is required")
        try:
            years = int(exp.get("years", 0) or 0)
        except (TypeError, ValueError):
            raise ValidationError("Experience years must be a non-negative integer") from None
        rate = data.get("hourly_rate", data.get("hourlyRate", 0))
        if isinstance(rate, str):
            rate = _as_float(rate)
            if rate is None:
                raise ValidationError("Profile hourly rate must be a non-negative number")
        profile = cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            skills=list(data.get("skills") or []),
            experience=Experience(
                years=years,
                level=str(exp.get("level", "")).strip().lower(),
                specialties=list(exp.get("specialties") or []),
            ),
            hourly_rate=rate if rate is not None else 0.0,
            categories=list(data.get("categories") or []),
            portfolio=data.get("portfolio") or "",
        )
        profile.validate()
        return profile


@dataclass
class ScoreBreakdown:
    budget: float
    skills: float
    experience: float
    location: float
    description: float
    client_info: float
    final: float

    def factors(self) -> dict[str, float]:
        data = asdict(self)
        data.pop("final")
        return data


@dataclass
class JobAnalysis:
    skills: list[str]
    experience: str = "intermediate"
    budget: Budget | None = None
    duration: str = "medium"
    complexity: str = "moderate"
    location: str = "Unknown"
    category: str = DEFAULT_CATEGORY


@dataclass
class MatchResult:
    profile: Profile | None
    score: float
    reasoning: str | None = None
    breakdown: dict[str, float] = field(default_factory=dict)
