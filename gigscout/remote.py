"""Score, categorize, analyze and match jobs with an OpenAI-compatible model.

Every public call degrades to a neutral answer instead of raising when the
model is unreachable, unconfigured, or says something unparseable. Callers
blend these answers with local heuristics and rely on always getting one.
"""
from __future__ import annotations

import json
import math
import re
from typing import Any

from openai import (
    APIConnectionError,
    APITimeoutError,
    InternalServerError,
    OpenAI,
    OpenAIError,
    RateLimitError,
)

from gigscout.config import get_env
from gigscout.log import get_logger
from gigscout.models import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    JOB_LEVELS,
    Budget,
    Job,
    JobAnalysis,
    MatchResult,
    Profile,
    clamp_score,
)
from gigscout.retry import retry

log = get_logger(__name__)

NEUTRAL_SCORE = 5.0
DURATIONS: tuple[str, ...] = ("short", "medium", "long")
COMPLEXITIES: tuple[str, ...] = ("simple", "moderate", "complex")

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")

SCORING_SYSTEM = (
    "You are an expert job evaluator. Score jobs from 0-10 based on quality, "
    "budget, requirements, and potential."
)
CATEGORIZING_SYSTEM = (
    "You are an expert job categorizer. Categorize jobs into one of these categories: "
    "mobile, full-stack, full-stack-ai, frontend, backend, us-only, or other. "
    "Respond with only the category name."
)
ANALYSIS_SYSTEM = (
    "You are an expert job analyst. Analyze job requirements and extract key "
    "information in JSON format."
)
MATCHING_SYSTEM = (
    "You are an expert profile matcher. Find the best matching profile for a job "
    "and provide a match score from 0-10."
)


class RemoteResponseError(Exception):
    """The endpoint answered, but not with a usable completion."""


# ── Prompts ──────────────────────────────────────────────────────────────


def _skills_text(skills: list[str]) -> str:
    return ", ".join(skills) if skills else "Not specified"


def _budget_text(budget: Budget | None) -> str:
    return budget.describe() if budget else "Not specified"


def build_scoring_prompt(job: Job) -> str:
    return f"""Please score this job from 0-10 based on the following criteria:
- Job quality and clarity
- Budget adequacy
- Skill requirements match
- Project scope and timeline
- Client reputation and location

Job Title: {job.title}
Description: {job.description}
Budget: {_budget_text(job.budget)}
Skills: {_skills_text(job.skills)}
Location: {job.location or 'Not specified'}

Provide only a number from 0-10 as your response."""


def build_categorization_prompt(job: Job) -> str:
    return f"""Please categorize this job into one of these categories:
- mobile (mobile app development)
- full-stack (full-stack web development)
- full-stack-ai (AI/ML full-stack development)
- frontend (frontend development only)
- backend (backend development only)
- us-only (US-based projects only)
- other (doesn't fit above categories)

Job Title: {job.title}
Description: {job.description}
Skills: {_skills_text(job.skills)}

Respond with only the category name."""


def build_analysis_prompt(job: Job) -> str:
    return f"""Please analyze this job and extract key information in JSON format:

Job Title: {job.title}
Description: {job.description}
Budget: {_budget_text(job.budget)}
Skills: {_skills_text(job.skills)}

Return a JSON object with the following structure:
{{
  "skills": ["skill1", "skill2"],
  "experience": "entry|intermediate|expert",
  "budget": {{"type": "hourly|fixed|unknown", "min": number, "max": number}},
  "duration": "short|medium|long",
  "complexity": "simple|moderate|complex",
  "location": "string",
  "category": "string"
}}"""


def build_matching_prompt(job: Job, profiles: list[Profile]) -> str:
    profile_lines = "\n".join(
        f"Profile {i}: {p.name}\n"
        f"Skills: {_skills_text(p.skills)}\n"
        f"Experience: {p.experience.level}\n"
        f"Rate: ${p.hourly_rate:g}/hr\n"
        for i, p in enumerate(profiles, 1)
    )
    return f"""Please find the best matching profile for this job:

Job: {job.title}
Description: {job.description}
Budget: {_budget_text(job.budget)}
Required Skills: {_skills_text(job.skills)}

Available Profiles:
{profile_lines}
Return a JSON object with:
{{
  "bestProfileIndex": number,
  "matchScore": number (0-10),
  "reasoning": "string"
}}"""


# ── Parsing ──────────────────────────────────────────────────────────────


def parse_score(text: str) -> float:
    """First number in *text*, rounded to one decimal; 5.0 if unusable."""
    found = _NUMBER_RE.search(text or "")
    if not found:
        log.warning("No score in model reply %r — using neutral score", (text or "")[:80])
        return NEUTRAL_SCORE
    score = float(found.group())
    if not 0 <= score <= 10:
        log.warning("Model score %s out of range — using neutral score", score)
        return NEUTRAL_SCORE
    return round(score, 1)


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Decode the first balanced ``{...}`` block in *text*.

    Braces inside JSON strings do not count towards the balance. Returns
    None when there is no such block or it is not a valid JSON object.
    """
    text = text or ""
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                try:
                    data = json.loads(text[start:i + 1])
                except json.JSONDecodeError as exc:
                    log.warning("Invalid JSON in model reply: %s", exc)
                    return None
                return data if isinstance(data, dict) else None
    return None


def normalize_category(text: str) -> str:
    """Map a free-text model answer onto the known category set."""
    label = (text or "").strip().lower()
    label = re.sub(r"^category\s*[:\-]\s*", "", label)
    label = label.strip(" \t\n\"'`.,;:!")
    label = re.sub(r"[\s_]+", "-", label)
    if label in CATEGORIES:
        return label
    log.warning("Unknown category %r from model — using %r", text, DEFAULT_CATEGORY)
    return DEFAULT_CATEGORY


def default_analysis(job: Job) -> JobAnalysis:
    return JobAnalysis(
        skills=list(job.skills),
        budget=job.budget or Budget(kind="unknown", min=0, max=0),
        location=job.location or "Unknown",
    )


def _pick(value: Any, allowed: tuple[str, ...], default: str) -> str:
    text = str(value or "").strip().lower()
    return text if text in allowed else default


def analysis_from_dict(data: dict[str, Any], job: Job) -> JobAnalysis:
    """Best-effort coercion of the model's JSON; gaps are filled from *job*."""
    fallback = default_analysis(job)
    skills = data.get("skills")
    if not isinstance(skills, list):
        skills = fallback.skills
    budget_data = data.get("budget")
    budget = Budget.from_dict(budget_data) if isinstance(budget_data, dict) else None
    location = data.get("location")
    category = data.get("category")
    return JobAnalysis(
        skills=[str(s) for s in skills if str(s).strip()],
        experience=_pick(data.get("experience"), JOB_LEVELS, fallback.experience),
        budget=budget or fallback.budget,
        duration=_pick(data.get("duration"), DURATIONS, fallback.duration),
        complexity=_pick(data.get("complexity"), COMPLEXITIES, fallback.complexity),
        location=location if isinstance(location, str) and location.strip() else fallback.location,
        category=normalize_category(category) if isinstance(category, str) else fallback.category,
    )


def parse_match(text: str, profiles: list[Profile]) -> MatchResult:
    data = extract_json_object(text)
    if data is None:
        return MatchResult(profile=None, score=0.0)

    try:
        index = int(data.get("bestProfileIndex")) - 1
        score = float(data.get("matchScore"))
    except (TypeError, ValueError):
        log.warning("Unusable match reply: %r", data)
        return MatchResult(profile=None, score=0.0)
    if not math.isfinite(score):
        log.warning("Non-finite match score in reply: %r", data)
        return MatchResult(profile=None, score=0.0)

    if not 0 <= index < len(profiles):
        log.warning("Match reply names profile %d of %d", index + 1, len(profiles))
        return MatchResult(profile=None, score=0.0)

    reasoning = data.get("reasoning")
    return MatchResult(
        profile=profiles[index],
        score=round(clamp_score(score), 1),
        reasoning=str(reasoning) if reasoning is not None else None,
    )


# ── Adapter ──────────────────────────────────────────────────────────────

_RECOVERABLE: tuple[type[BaseException], ...] = (OpenAIError, RemoteResponseError, OSError)
# Retried; any other API error falls back immediately.
_TRANSIENT: tuple[type[BaseException], ...] = (
    APIConnectionError,
    APITimeoutError,
    RateLimitError,
    InternalServerError,
)


class RemoteScorer:
    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.3,
        timeout: float = 30.0,
        max_attempts: int = 2,
        base_delay: float = 2.0,
        client: Any = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout

        if client is None and api_key:
            client = OpenAI(api_key=api_key, base_url=base_url or None, timeout=timeout, max_retries=0)
        self._client = client
        if self._client is None:
            log.warning("No OPENAI_API_KEY — remote scoring disabled, neutral defaults only")

        self._complete = retry(
            max_attempts=max_attempts,
            base_delay=base_delay,
            retryable=_TRANSIENT,
        )(self._complete_once)

    @classmethod
    def from_settings(cls, settings: dict[str, Any], env_getter=get_env) -> RemoteScorer:
        cfg = settings.get("remote", {})
        return cls(
            api_key=env_getter("OPENAI_API_KEY") or None,
            model=env_getter("GIGSCOUT_MODEL") or cfg.get("model", "gpt-4o-mini"),
            base_url=env_getter("OPENAI_BASE_URL") or None,
            max_tokens=int(cfg.get("max_tokens", 1000)),
            temperature=float(cfg.get("temperature", 0.3)),
            timeout=float(cfg.get("timeout", 30)),
            max_attempts=int(cfg.get("max_attempts", 2)),
        )

    @property
    def available(self) -> bool:
        return self._client is not None

    def _complete_once(self, system: str, prompt: str, max_tokens: int | None = None) -> str:
        response = self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens or self.max_tokens,
            temperature=self.temperature,
        )
        choices = getattr(response, "choices", None)
        if not choices:
            raise RemoteResponseError("completion has no choices")
        content = choices[0].message.content
        if not content:
            raise RemoteResponseError("completion is empty")
        return content.strip()

    def score(self, job: Job) -> float:
        if not self.available:
            log.debug("Remote scoring unavailable — neutral score for %s", job.external_id)
            return NEUTRAL_SCORE
        try:
            text = self._complete(SCORING_SYSTEM, build_scoring_prompt(job))
        except _RECOVERABLE as exc:
            log.error("Remote scoring failed for %s: %s", job.external_id, exc)
            return NEUTRAL_SCORE
        score = parse_score(text)
        log.info("Job %r scored remotely: %.1f/10", job.title, score)
        return score

    def categorize(self, job: Job) -> str:
        if not self.available:
            return DEFAULT_CATEGORY
        try:
            text = self._complete(CATEGORIZING_SYSTEM, build_categorization_prompt(job), max_tokens=50)
        except _RECOVERABLE as exc:
            log.error("Remote categorization failed for %s: %s", job.external_id, exc)
            return DEFAULT_CATEGORY
        category = normalize_category(text)
        log.info("Job %r categorized remotely as %s", job.title, category)
        return category

    def analyze(self, job: Job) -> JobAnalysis:
        if not self.available:
            return default_analysis(job)
        try:
            text = self._complete(ANALYSIS_SYSTEM, build_analysis_prompt(job))
        except _RECOVERABLE as exc:
            log.error("Remote analysis failed for %s: %s", job.external_id, exc)
            return default_analysis(job)
        data = extract_json_object(text)
        if data is None:
            log.warning("No JSON analysis for %s — using defaults", job.external_id)
            return default_analysis(job)
        return analysis_from_dict(data, job)

    def match(self, job: Job, profiles: list[Profile]) -> MatchResult:
        if not self.available or not profiles:
            return MatchResult(profile=None, score=0.0)
        try:
            text = self._complete(MATCHING_SYSTEM, build_matching_prompt(job, profiles))
        except _RECOVERABLE as exc:
            log.error("Remote matching failed for %s: %s", job.external_id, exc)
            return MatchResult(profile=None, score=0.0)
        result = parse_match(text, profiles)
        if result.profile is not None:
            log.info("Remote match for %r: %s (%.1f)", job.title, result.profile.name, result.score)
        return result

    def test_connection(self) -> bool:
        if not self.available:
            return False
        try:
            reply = self._complete_once(
                "You are a health check.",
                'Hello, please respond with "OK" if you can see this message.',
                max_tokens=10,
            )
        except _RECOVERABLE as exc:
            log.error("Remote connection test failed: %s", exc)
            return False
        return reply.strip().strip(".").upper() == "OK"

    def stats(self) -> dict[str, Any]:
        return {
            "available": self.available,
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "timeout": self.timeout,
        }
