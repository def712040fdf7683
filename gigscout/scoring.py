"""Blend remote-model and heuristic judgements into one verdict per job."""
from __future__ import annotations

from typing import Any

from gigscout import heuristics, matcher
from gigscout.log import get_logger
from gigscout.models import Job, JobAnalysis, MatchResult, Profile, ScoreBreakdown, clamp_score
from gigscout.remote import RemoteScorer

log = get_logger(__name__)

REMOTE_WEIGHT = 0.7
HEURISTIC_WEIGHT = 0.3


def blend(remote_score: float, heuristic_score: float) -> float:
    """70/30 mix rounded to one decimal, clamped after blending."""
    return clamp_score(round(remote_score * REMOTE_WEIGHT + heuristic_score * HEURISTIC_WEIGHT, 1))


class ScoringOrchestrator:
    """Front door for scoring: remote first, heuristics on any failure.

    A missing or unconfigured remote adapter counts as a failure, so the
    neutral placeholder it would return never dilutes the heuristic score.
    """

    def __init__(self, remote: RemoteScorer | None = None) -> None:
        self.remote = remote

    @property
    def remote_enabled(self) -> bool:
        return self.remote is not None and self.remote.available

    def score_job(self, job: Job) -> float:
        heuristic = heuristics.score_heuristic(job)
        if not self.remote_enabled:
            return heuristic
        try:
            remote = self.remote.score(job)
        except Exception:
            log.exception("Remote scorer raised for %s — using heuristic score", job.external_id)
            return heuristic
        final = blend(remote, heuristic)
        log.info(
            "Job %r - remote: %.1f, heuristic: %.2f, final: %.1f",
            job.title, remote, heuristic, final,
        )
        return final

    def categorize_job(self, job: Job) -> str:
        if not self.remote_enabled:
            return heuristics.categorize_by_rules(job)
        try:
            return self.remote.categorize(job)
        except Exception:
            log.exception("Remote categorizer raised for %s — using rules", job.external_id)
            return heuristics.categorize_by_rules(job)

    def analyze_job(self, job: Job) -> JobAnalysis:
        if not self.remote_enabled:
            return heuristics.analyze_manually(job)
        try:
            return self.remote.analyze(job)
        except Exception:
            log.exception("Remote analysis raised for %s — extracting manually", job.external_id)
            return heuristics.analyze_manually(job)

    def match_profiles(self, job: Job, profiles: list[Profile]) -> MatchResult:
        """Model-picked profile when it names one, else the weighted matcher."""
        if self.remote_enabled and profiles:
            try:
                result = self.remote.match(job, profiles)
            except Exception:
                log.exception("Remote matcher raised for %s", job.external_id)
            else:
                if result.profile is not None:
                    return result
        return matcher.find_best_match(job, profiles)

    def breakdown(self, job: Job) -> ScoreBreakdown:
        return heuristics.score_breakdown(job)

    def stats(self) -> dict[str, Any]:
        return {
            "weights": dict(heuristics.WEIGHTS),
            "blend": {"remote": REMOTE_WEIGHT, "heuristic": HEURISTIC_WEIGHT},
            "remote": self.remote.stats() if self.remote is not None else {"available": False},
        }
