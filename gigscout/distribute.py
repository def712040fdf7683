"""Post scored jobs to category-keyed destinations (Discord webhooks)."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

import requests

from gigscout.config import get_env
from gigscout.log import get_logger
from gigscout.models import CATEGORIES, DEFAULT_CATEGORY, Job
from gigscout.retry import retry

log = get_logger(__name__)

WEBHOOK_ENV_PREFIX = "DISCORD_WEBHOOK_"
DEFAULT_WEBHOOK_ENV = "DISCORD_WEBHOOK_DEFAULT"

_COLORS: list[tuple[float, int]] = [
    (8.0, 0x2ECC71),
    (6.0, 0xF1C40F),
    (4.0, 0xE67E22),
    (0.0, 0xE74C3C),
]


def _truncate(text: str, limit: int) -> str:
    text = (text or "").strip()
    return text if len(text) <= limit else text[:limit - 1].rstrip() + "…"


def score_color(score: float) -> int:
    for floor, color in _COLORS:
        if score >= floor:
            return color
    return _COLORS[-1][1]


def build_job_embed(job: Job) -> dict[str, Any]:
    """Discord embed for one job; empty attributes are left out."""
    fields = [
        {"name": "Score", "value": f"{job.score:.1f}/10", "inline": True},
        {"name": "Category", "value": job.category or DEFAULT_CATEGORY, "inline": True},
        {"name": "Budget", "value": job.budget.describe() if job.budget else "Not specified", "inline": True},
    ]
    if job.skills:
        fields.append({"name": "Skills", "value": _truncate(", ".join(job.skills), 1024), "inline": False})
    if job.location:
        fields.append({"name": "Location", "value": _truncate(job.location, 256), "inline": True})
    if job.experience_level:
        fields.append({"name": "Experience", "value": job.experience_level, "inline": True})
    if job.client_info:
        fields.append({"name": "Client", "value": _truncate(job.client_info, 256), "inline": False})

    embed: dict[str, Any] = {
        "title": _truncate(job.title, 256),
        "description": _truncate(job.description, 300),
        "color": score_color(job.score),
        "fields": fields,
        "footer": {"text": f"{job.source} • {job.external_id}"},
        "timestamp": job.created_at.isoformat(),
    }
    if job.url:
        embed["url"] = job.url
    return embed


def webhook_env_key(category: str) -> str:
    return WEBHOOK_ENV_PREFIX + category.upper().replace("-", "_").replace(" ", "_")


class Distributor(ABC):
    @abstractmethod
    def deliver(self, job: Job, destination_key: str) -> bool:
        pass


class LogDistributor(Distributor):
    """Writes a one-line summary per job; used when no webhooks are configured."""

    def deliver(self, job: Job, destination_key: str) -> bool:
        log.info("[%s] %.1f/10  %s  %s", destination_key, job.score, job.title, job.url)
        return True


class WebhookDistributor(Distributor):
    def __init__(
        self,
        webhooks: dict[str, str] | None = None,
        default_url: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.webhooks = {k.lower(): v for k, v in (webhooks or {}).items() if v}
        self.default_url = default_url or None
        self.session = session or requests.Session()

    @classmethod
    def from_env(cls, env_getter: Callable[[str], str] = get_env) -> WebhookDistributor:
        hooks = {c: env_getter(webhook_env_key(c)) for c in CATEGORIES}
        return cls(webhooks=hooks, default_url=env_getter(DEFAULT_WEBHOOK_ENV) or None)

    @property
    def configured(self) -> bool:
        return bool(self.webhooks or self.default_url)

    def url_for(self, destination_key: str) -> str | None:
        return self.webhooks.get((destination_key or "").lower()) or self.default_url

    @retry(max_attempts=3, base_delay=2.0, retryable=(requests.ConnectionError, requests.Timeout))
    def _post(self, url: str, payload: dict[str, Any]) -> None:
        r = self.session.post(url, json=payload, timeout=15)
        r.raise_for_status()

    def deliver(self, job: Job, destination_key: str) -> bool:
        """Post *job* to the webhook for *destination_key*.

        Returns False when no webhook is configured for the key; HTTP
        failures propagate to the caller.
        """
        url = self.url_for(destination_key)
        if not url:
            log.warning("No webhook for category %r — %s not delivered", destination_key, job.external_id)
            return False
        self._post(url, {"embeds": [build_job_embed(job)]})
        log.info("Distributed %r to %s", job.title, destination_key)
        return True


def get_distributor(env_getter: Callable[[str], str] = get_env) -> Distributor:
    hooks = WebhookDistributor.from_env(env_getter)
    if hooks.configured:
        log.info("Registered distributor: Discord webhooks")
        return hooks
    log.info("No DISCORD_WEBHOOK_* set — distributing to the log")
    return LogDistributor()
