"""In-memory record of job postings already seen by the monitor."""
from __future__ import annotations

import threading
from datetime import datetime
from typing import Any

from gigscout.log import get_logger
from gigscout.models import Job, utcnow

log = get_logger(__name__)


class JobCache:
    """External id -> last-seen job, kept for the life of the process.

    Nothing is evicted except by ``clear()``; durability belongs to the
    job store. All access goes through one lock so a monitor thread and
    the dashboard can share an instance.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._last_fetch: datetime | None = None
        self._lock = threading.Lock()

    def has(self, external_id: str) -> bool:
        with self._lock:
            return external_id in self._jobs

    def get(self, external_id: str) -> Job | None:
        with self._lock:
            return self._jobs.get(external_id)

    def record(self, external_id: str, job: Job) -> None:
        with self._lock:
            self._jobs[external_id] = job

    def mark_fetched(self, when: datetime | None = None) -> None:
        with self._lock:
            self._last_fetch = when or utcnow()

    def clear(self) -> None:
        with self._lock:
            self._jobs.clear()
        log.info("Job cache cleared")

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {"size": len(self._jobs), "last_fetch": self._last_fetch}

    def __contains__(self, external_id: object) -> bool:
        return isinstance(external_id, str) and self.has(external_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
