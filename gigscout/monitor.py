"""
Periodic job monitor.

Runs: fetch → dedup → score + categorize → store → distribute, one job at a
time, on a background thread. Only one cycle is ever in flight.
"""
from __future__ import annotations

import fcntl
import threading
from pathlib import Path
from typing import Any

from gigscout.cache import JobCache
from gigscout.config import DATA_DIR, load_settings
from gigscout.distribute import Distributor, get_distributor
from gigscout.log import get_logger
from gigscout.models import Job
from gigscout.remote import RemoteScorer
from gigscout.scoring import ScoringOrchestrator
from gigscout.sources import get_source
from gigscout.sources.base import FetchFilters, JobSource
from gigscout.store import JobStore

log = get_logger(__name__)


class JobMonitor:
    def __init__(
        self,
        source: JobSource,
        orchestrator: ScoringOrchestrator,
        store: JobStore,
        *,
        cache: JobCache | None = None,
        distributor: Distributor | None = None,
        filters: FetchFilters | None = None,
        interval: float = 300.0,
        min_distribute_score: float = 0.0,
        lock_path: Path | None = None,
    ) -> None:
        self.source = source
        self.orchestrator = orchestrator
        self.store = store
        self.cache = cache if cache is not None else JobCache()
        self.distributor = distributor
        self.filters = filters or FetchFilters()
        self.interval = interval
        self.min_distribute_score = min_distribute_score
        self.lock_path = lock_path

        self._cycle_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._state_lock = threading.Lock()
        self._lock_file = None

    @classmethod
    def from_settings(
        cls,
        settings: dict[str, Any] | None = None,
        *,
        store: JobStore | None = None,
        source: JobSource | None = None,
    ) -> JobMonitor:
        """Wire the monitor from ``config/settings.yaml`` and the environment."""
        settings = settings or load_settings()
        dist_cfg = settings.get("distribution", {})
        return cls(
            source=source or get_source(settings),
            orchestrator=ScoringOrchestrator(RemoteScorer.from_settings(settings)),
            store=store or JobStore(),
            distributor=get_distributor() if dist_cfg.get("enabled", True) else None,
            filters=FetchFilters.from_settings(settings),
            interval=float(settings.get("monitor", {}).get("interval_minutes", 5)) * 60,
            min_distribute_score=float(dist_cfg.get("min_score") or 0),
            lock_path=DATA_DIR / "monitor.lock",
        )

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._thread is not None and self._thread.is_alive()

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_lock.locked()

    # ── One job ──────────────────────────────────────────────────────────

    def process_job(self, job: Job) -> Job | None:
        """Score, store and distribute one job; None if it was seen before.

        Store errors propagate. The job only enters the dedup cache once
        it is stored, so a failed job is retried next cycle.
        """
        if self.cache.has(job.external_id):
            log.debug("Job %s already seen this session, skipping", job.external_id)
            return None

        existing = self.store.find_by_external_id(job.external_id)
        if existing is not None:
            log.debug("Job %s already stored, skipping", job.external_id)
            self.cache.record(job.external_id, existing)
            return None

        job.score = self.orchestrator.score_job(job)
        job.category = self.orchestrator.categorize_job(job)
        saved = self.store.create(job)
        self.cache.record(saved.external_id, saved)
        log.info("Processed job: %s (score: %.1f, category: %s)", saved.title, saved.score, saved.category)

        self._distribute(saved)
        return saved

    def _distribute(self, job: Job) -> None:
        if self.distributor is None or job.score < self.min_distribute_score:
            return
        try:
            self.distributor.deliver(job, job.category)
        except Exception as exc:
            log.error("Distribution failed for %s: %s", job.external_id, exc)

    # ── One cycle ────────────────────────────────────────────────────────

    def run_cycle(self) -> dict[str, Any] | None:
        """Fetch and process one batch; None if another cycle is running."""
        if not self._cycle_lock.acquire(blocking=False):
            log.warning("Previous fetch cycle still running — skipping this one")
            return None
        try:
            return self._run_cycle()
        finally:
            self._cycle_lock.release()

    def _run_cycle(self) -> dict[str, Any]:
        summary: dict[str, Any] = {"fetched": 0, "processed": 0, "skipped": 0, "failed": 0, "error": None}

        log.info("Fetching new jobs from %s...", getattr(self.source, "name", self.source.__class__.__name__))
        try:
            jobs = self.source.fetch_new_jobs(self.filters)
        except Exception as exc:
            log.error("Fetch failed: %s", exc)
            summary["error"] = str(exc)[:200]
            return summary
        self.cache.mark_fetched()

        summary["fetched"] = len(jobs)
        if not jobs:
            log.info("No new jobs found")
            return summary

        log.info("Found %d jobs, processing...", len(jobs))
        for job in jobs:
            try:
                saved = self.process_job(job)
            except Exception:
                log.exception("Error processing job %s", job.external_id)
                summary["failed"] += 1
                continue
            if saved is None:
                summary["skipped"] += 1
            else:
                summary["processed"] += 1

        log.info(
            "Cycle complete — fetched=%d, processed=%d, skipped=%d, failed=%d",
            summary["fetched"], summary["processed"], summary["skipped"], summary["failed"],
        )
        return summary

    # ── Loop ─────────────────────────────────────────────────────────────

    def _acquire_loop_lock(self) -> bool:
        """Claim the loop lock file; False if another monitor holds it."""
        if self.lock_path is None:
            return True
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        f = open(self.lock_path, "a", encoding="utf-8")
        try:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            f.close()
            return False
        self._lock_file = f
        return True

    def _release_loop_lock(self) -> None:
        f, self._lock_file = self._lock_file, None
        if f is None:
            return
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        f.close()

    def start(self, run_immediately: bool = True) -> bool:
        with self._state_lock:
            if self._thread is not None and self._thread.is_alive():
                log.warning("Job monitoring is already running")
                return False
            if not self._acquire_loop_lock():
                log.warning("Another job monitor holds %s, not starting", self.lock_path)
                return False
            self._stop.clear()
            self._thread = threading.Thread(
                target=self._loop, args=(run_immediately,), name="job-monitor", daemon=True,
            )
            self._thread.start()
        log.info("Job monitoring started (every %.0fs)", self.interval)
        return True

    def _loop(self, run_immediately: bool) -> None:
        try:
            if run_immediately and not self._stop.is_set():
                self.run_cycle()
            while not self._stop.wait(self.interval):
                self.run_cycle()
        finally:
            self._release_loop_lock()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the loop; a cycle already in flight runs to completion."""
        with self._state_lock:
            thread = self._thread
        if thread is None:
            return
        self._stop.set()
        thread.join(timeout)
        with self._state_lock:
            if not thread.is_alive():
                self._thread = None
        log.info("Job monitoring stopped")

    def wait(self) -> None:
        """Block until the loop thread exits (after ``stop()``)."""
        with self._state_lock:
            thread = self._thread
        while thread is not None and thread.is_alive():
            thread.join(1.0)
