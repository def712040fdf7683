"""Mock job source for offline runs and fallback when Upwork blocks us."""
from __future__ import annotations

from datetime import timedelta

from gigscout.log import get_logger
from gigscout.models import Budget, Job, utcnow
from gigscout.sources.base import FetchFilters, JobSource, apply_filters

log = get_logger(__name__)


def sample_jobs() -> list[Job]:
    now = utcnow()
    return [
        Job(
            external_id="mock-1",
            title="React Developer Needed for E-commerce Platform",
            description=(
                "We are looking for an experienced React developer to help build a modern "
                "e-commerce platform. The ideal candidate should have experience with React, "
                "Node.js, and MongoDB."
            ),
            url="https://www.upwork.com/jobs/~mock1",
            budget=Budget(kind="fixed", min=2000, max=5000),
            skills=["React", "Node.js", "MongoDB", "JavaScript"],
            location="United States",
            client_info="Payment verified, 50+ projects posted",
            experience_level="intermediate",
            created_at=now - timedelta(hours=1),
            source="mock",
        ),
        Job(
            external_id="mock-2",
            title="Python Data Scientist for Machine Learning Project",
            description=(
                "Seeking a Python developer with expertise in machine learning and data "
                "analysis. Experience with TensorFlow, Pandas, and NumPy required."
            ),
            url="https://www.upwork.com/jobs/~mock2",
            budget=Budget(kind="fixed", min=3000, max=8000),
            skills=["Python", "Machine Learning", "TensorFlow", "Pandas"],
            location="Remote",
            client_info="Top rated startup with innovative AI solutions",
            experience_level="expert",
            created_at=now - timedelta(hours=2),
            source="mock",
        ),
        Job(
            external_id="mock-3",
            title="Flutter Developer for Mobile App",
            description=(
                "Looking for a Flutter developer to build a cross-platform mobile app. "
                "Experience with Firebase and mobile design principles required."
            ),
            url="https://www.upwork.com/jobs/~mock3",
            budget=Budget(kind="hourly", min=30, max=45),
            skills=["Flutter", "Dart", "Firebase"],
            location="Canada",
            client_info="New client",
            experience_level="intermediate",
            created_at=now - timedelta(hours=3),
            source="mock",
        ),
    ]


class MockSource(JobSource):
    name = "mock"

    def fetch_new_jobs(self, filters: FetchFilters) -> list[Job]:
        log.info("MockSource generating sample jobs")
        jobs = [j for j in sample_jobs() if apply_filters(j, filters)]
        return jobs[:filters.limit]
