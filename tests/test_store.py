from datetime import timedelta

import pytest

from gigscout.models import Budget, ValidationError, utcnow
from gigscout.store import JobQuery


# ── Jobs ─────────────────────────────────────────────────────────────────


def test_create_and_read_back(job_store, make_job):
    job = make_job(score=7.25, category="frontend", skills=["React", "Node.js", "react"])
    job_store.create(job)

    stored = job_store.find_by_external_id("job-1")
    assert stored.score == 7.25
    assert stored.category == "frontend"
    assert stored.skills == ["React", "Node.js"]
    assert stored.budget == Budget(kind="hourly", min=50, max=80)
    assert stored.created_at == job.created_at
    assert stored.applied is False


def test_missing_job_is_none(job_store):
    assert job_store.find_by_external_id("nope") is None


def test_duplicate_and_invalid_jobs_are_rejected(job_store, make_job):
    job_store.create(make_job())
    with pytest.raises(ValidationError):
        job_store.create(make_job())
    with pytest.raises(ValidationError):
        job_store.create(make_job(external_id="job-2", title=" "))


def test_update_applies_patch_and_clamps_score(job_store, make_job):
    job_store.create(make_job())
    updated = job_store.update("job-1", {"score": 14, "saved": True})
    assert updated.score == 10
    assert updated.saved is True
    assert updated.updated_at is not None
    assert job_store.find_by_external_id("job-1").score == 10


def test_update_rejects_bad_fields(job_store, make_job):
    job_store.create(make_job())
    with pytest.raises(ValidationError):
        job_store.update("job-1", {"colour": "red"})
    with pytest.raises(ValidationError):
        job_store.update("job-1", {"external_id": "other"})
    assert job_store.update("missing", {"score": 1}) is None


def test_delete(job_store, make_job):
    job_store.create(make_job())
    assert job_store.delete("job-1") is True
    assert job_store.delete("job-1") is False
    assert job_store.find_all() == []


def _seed(job_store, make_job):
    now = utcnow()
    job_store.create(make_job(external_id="a", title="React storefront", score=9, category="frontend",
                              created_at=now - timedelta(hours=3)))
    job_store.create(make_job(external_id="b", title="Flutter app", score=6, category="mobile",
                              skills=["Flutter"], budget=Budget(kind="fixed", min=500, max=900),
                              created_at=now - timedelta(hours=1)))
    job_store.create(make_job(external_id="c", title="Old Django API", score=4, category="backend",
                              skills=["Django"], budget=None, created_at=now - timedelta(days=3)))


def test_find_all_filters_and_orders(job_store, make_job):
    _seed(job_store, make_job)

    assert [j.external_id for j in job_store.find_all()] == ["b", "a", "c"]
    assert [j.external_id for j in job_store.find_all(JobQuery(order_by="score"))] == ["a", "b", "c"]
    assert [j.external_id for j in job_store.find_all(JobQuery(category="MOBILE"))] == ["b"]
    assert [j.external_id for j in job_store.find_all(JobQuery(min_score=5))] == ["b", "a"]
    assert [j.external_id for j in job_store.find_all(JobQuery(keyword="django"))] == ["c"]
    assert [j.external_id for j in job_store.find_all(JobQuery(skills=["flutter"]))] == ["b"]
    assert [j.external_id for j in job_store.find_all(JobQuery(min_budget=40))] == ["b", "a"]
    assert [j.external_id for j in job_store.find_all(JobQuery(max_budget=100))] == ["a", "c"]
    assert [j.external_id for j in job_store.find_all(JobQuery(since=utcnow() - timedelta(days=1)))] == ["b", "a"]
    assert len(job_store.find_all(JobQuery(limit=1))) == 1


def test_applied_and_saved_flags_are_queryable(job_store, make_job):
    _seed(job_store, make_job)
    job_store.update("a", {"applied": True, "applied_at": utcnow()})
    assert [j.external_id for j in job_store.find_all(JobQuery(applied=True))] == ["a"]
    assert [j.external_id for j in job_store.find_all(JobQuery(saved=True))] == []


def test_stats(job_store, make_job):
    _seed(job_store, make_job)
    stats = job_store.stats()
    assert stats["total"] == 3
    assert stats["average_score"] == pytest.approx(6.33)
    assert stats["by_category"] == {"frontend": 1, "mobile": 1, "backend": 1}
    assert stats["by_score"] == {"High (8-10)": 1, "Medium (6-7.9)": 1, "Low (4-5.9)": 1}
    assert stats["recent"] == 2


def test_stats_on_empty_table(job_store):
    stats = job_store.stats()
    assert stats["total"] == 0
    assert stats["average_score"] == 0.0
    assert stats["last_created"] is None


# ── Profiles ─────────────────────────────────────────────────────────────


PROFILE = {
    "name": "Mobile Dev",
    "description": "Flutter apps",
    "skills": ["Flutter", "Dart"],
    "experience": {"years": 3, "level": "mid-level", "specialties": ["cross-platform"]},
    "hourlyRate": 40,
    "categories": ["Mobile"],
}


def test_profile_crud(profile_store):
    created = profile_store.create(PROFILE)
    assert created.hourly_rate == 40
    assert created.categories == ["mobile"]

    assert profile_store.get("mobile dev").name == "Mobile Dev"
    assert [p.name for p in profile_store.list_profiles()] == ["Mobile Dev"]

    updated = profile_store.update("Mobile Dev", {"experience": {"level": "senior"}, "hourly_rate": 55})
    assert updated.experience.level == "senior"
    assert updated.experience.years == 3
    assert updated.hourly_rate == 55
    assert profile_store.get("Mobile Dev").experience.level == "senior"

    assert profile_store.delete("Mobile Dev") is True
    assert profile_store.delete("Mobile Dev") is False
    assert profile_store.list_profiles() == []


def test_duplicate_profile_name_is_rejected(profile_store):
    profile_store.create(PROFILE)
    with pytest.raises(ValidationError):
        profile_store.create({**PROFILE, "name": "MOBILE DEV"})


@pytest.mark.parametrize("patch", [
    {"skills": []},
    {"experience": {"years": -1}},
    {"experience": {"level": "wizard"}},
    {"hourly_rate": -5},
    {"name": ""},
])
def test_invalid_profiles_are_rejected(profile_store, patch):
    data = {**PROFILE, **{k: v for k, v in patch.items() if k != "experience"}}
    if "experience" in patch:
        data["experience"] = {**PROFILE["experience"], **patch["experience"]}
    with pytest.raises(ValidationError):
        profile_store.create(data)


def test_update_missing_profile_is_none(profile_store):
    assert profile_store.update("ghost", {"hourly_rate": 10}) is None


def test_invalid_entries_on_disk_are_skipped(profile_store):
    profile_store.path.write_text(
        "profiles:\n"
        "- name: Broken\n"
        "  description: no skills\n"
        "  skills: []\n"
        "  experience: {years: 1, level: junior}\n"
        "- name: Fine\n"
        "  description: ok\n"
        "  skills: [Go]\n"
        "  experience: {years: 1, level: junior}\n",
        encoding="utf-8",
    )
    assert [p.name for p in profile_store.list_profiles()] == ["Fine"]
