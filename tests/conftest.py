from __future__ import annotations

import os
import tempfile
from types import SimpleNamespace

import pytest

# Keep log files and the default job table out of the checkout.
os.environ.setdefault("GIGSCOUT_LOG_DIR", tempfile.mkdtemp(prefix="gigscout-logs-"))
os.environ.setdefault("GIGSCOUT_DATA_DIR", tempfile.mkdtemp(prefix="gigscout-data-"))

from gigscout.models import Budget, Experience, Job, JobAnalysis, MatchResult, Profile  # noqa: E402
from gigscout.sources.base import FetchFilters, JobSource  # noqa: E402
from gigscout.store import JobStore, ProfileStore  # noqa: E402


# ── Factories ────────────────────────────────────────────────────────────


def build_job(**overrides) -> Job:
    data = dict(
        external_id="job-1",
        title="React Developer",
        description="Build a storefront in React.",
        url="https://www.upwork.com/jobs/~job1",
        budget=Budget(kind="hourly", min=50, max=80),
        skills=["React", "JavaScript"],
        location="United States",
        client_info="Payment verified",
        experience_level="expert",
        source="test",
    )
    data.update(overrides)
    return Job(**data)


def build_profile(**overrides) -> Profile:
    data = dict(
        name="React Specialist",
        description="Frontend engineer",
        skills=["React", "JavaScript", "TypeScript"],
        experience=Experience(years=6, level="senior"),
        hourly_rate=60.0,
        categories=["frontend"],
    )
    data.update(overrides)
    return Profile(**data)


@pytest.fixture
def make_job():
    return build_job


@pytest.fixture
def make_profile():
    return build_profile


@pytest.fixture
def job_store(tmp_path) -> JobStore:
    return JobStore(tmp_path / "jobs.csv")


@pytest.fixture
def profile_store(tmp_path) -> ProfileStore:
    return ProfileStore(tmp_path / "profiles.yaml")


# ── Fake OpenAI client ───────────────────────────────────────────────────


class FakeCompletions:
    """Replays *replies* in order; the last one repeats. Exceptions are raised."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


class FakeClient:
    def __init__(self, *replies):
        self.completions = FakeCompletions(replies)
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture
def fake_client():
    return FakeClient


# ── Fake collaborators ───────────────────────────────────────────────────


class StubRemote:
    """Stands in for RemoteScorer at the orchestrator seam."""

    def __init__(self, score=8.0, category="backend", match=None, raises=None, available=True):
        self._score = score
        self._category = category
        self._match = match
        self.raises = raises
        self.available = available
        self.calls: list[str] = []

    def _maybe_raise(self):
        if self.raises is not None:
            raise self.raises

    def score(self, job):
        self.calls.append("score")
        self._maybe_raise()
        return self._score

    def categorize(self, job):
        self.calls.append("categorize")
        self._maybe_raise()
        return self._category

    def analyze(self, job):
        self.calls.append("analyze")
        self._maybe_raise()
        return JobAnalysis(skills=["Remote"], category=self._category)

    def match(self, job, profiles):
        self.calls.append("match")
        self._maybe_raise()
        return self._match or MatchResult(profile=None, score=0.0)

    def stats(self):
        return {"available": self.available}


class ListSource(JobSource):
    name = "list"

    def __init__(self, *batches, error=None):
        self.batches = [list(b) for b in batches]
        self.error = error
        self.calls = 0

    def fetch_new_jobs(self, filters: FetchFilters):
        self.calls += 1
        if self.error is not None:
            raise self.error
        if not self.batches:
            return []
        return self.batches.pop(0) if len(self.batches) > 1 else list(self.batches[0])


class RecordingDistributor:
    def __init__(self, error=None):
        self.delivered: list[tuple[str, str]] = []
        self.error = error

    def deliver(self, job, destination_key):
        if self.error is not None:
            raise self.error
        self.delivered.append((job.external_id, destination_key))
        return True


@pytest.fixture
def stub_remote():
    return StubRemote


@pytest.fixture
def list_source():
    return ListSource


@pytest.fixture
def recording_distributor():
    return RecordingDistributor
