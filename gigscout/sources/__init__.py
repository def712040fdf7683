from .base import FetchFilters, JobSource, apply_filters
from .mock import MockSource
from .upwork import UpworkSource

from gigscout.log import get_logger

log = get_logger(__name__)

__all__ = [
    "FetchFilters", "JobSource", "MockSource", "UpworkSource",
    "apply_filters", "get_source",
]


def get_source(settings: dict) -> JobSource:
    cfg = settings.get("fetch", {})
    name = (cfg.get("source") or "upwork").lower()

    if name == "mock":
        log.info("Registered source: mock sample jobs")
        return MockSource()

    if name != "upwork":
        log.warning("Unknown job source %r — falling back to Upwork", name)
    log.info("Registered source: Upwork RSS")
    return UpworkSource(fallback_on_forbidden=bool(cfg.get("mock_on_forbidden", True)))
