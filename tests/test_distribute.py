import pytest
import requests

from gigscout.distribute import (
    LogDistributor,
    WebhookDistributor,
    build_job_embed,
    get_distributor,
    score_color,
    webhook_env_key,
)


class FakeResponse:
    def __init__(self, status_code=204):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, status_code=204):
        self.status_code = status_code
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json))
        return FakeResponse(self.status_code)


def test_embed_carries_the_job(make_job):
    job = make_job(score=8.4, category="frontend", client_info=None)
    embed = build_job_embed(job)
    assert embed["title"] == "React Developer"
    assert embed["url"] == job.url
    assert embed["color"] == score_color(8.4)
    fields = {f["name"]: f["value"] for f in embed["fields"]}
    assert fields["Score"] == "8.4/10"
    assert fields["Category"] == "frontend"
    assert fields["Budget"] == "$50-$80/hr"
    assert fields["Skills"] == "React, JavaScript"
    assert "Client" not in fields
    assert embed["footer"]["text"] == "test • job-1"


def test_long_description_is_truncated(make_job):
    embed = build_job_embed(make_job(description="x" * 1000))
    assert len(embed["description"]) == 300
    assert embed["description"].endswith("…")


def test_webhook_env_key():
    assert webhook_env_key("full-stack-ai") == "DISCORD_WEBHOOK_FULL_STACK_AI"
    assert webhook_env_key("other") == "DISCORD_WEBHOOK_OTHER"


def test_deliver_routes_by_category(make_job):
    session = FakeSession()
    dist = WebhookDistributor(
        webhooks={"frontend": "https://hooks/frontend"}, default_url="https://hooks/default", session=session,
    )
    job = make_job()
    assert dist.deliver(job, "frontend") is True
    assert dist.deliver(job, "mobile") is True
    assert [url for url, _ in session.posts] == ["https://hooks/frontend", "https://hooks/default"]
    assert session.posts[0][1]["embeds"][0]["title"] == "React Developer"


def test_deliver_without_destination_returns_false(make_job):
    session = FakeSession()
    dist = WebhookDistributor(webhooks={"frontend": "https://hooks/frontend"}, session=session)
    assert dist.deliver(make_job(), "mobile") is False
    assert session.posts == []


def test_http_errors_propagate(make_job):
    dist = WebhookDistributor(webhooks={"frontend": "https://hooks/frontend"}, session=FakeSession(404))
    with pytest.raises(requests.HTTPError):
        dist.deliver(make_job(), "frontend")


def test_get_distributor_reads_env():
    env = {"DISCORD_WEBHOOK_MOBILE": "https://hooks/mobile"}
    dist = get_distributor(lambda key: env.get(key, ""))
    assert isinstance(dist, WebhookDistributor)
    assert dist.url_for("mobile") == "https://hooks/mobile"
    assert dist.url_for("frontend") is None

    assert isinstance(get_distributor(lambda key: ""), LogDistributor)


def test_log_distributor_always_succeeds(make_job):
    assert LogDistributor().deliver(make_job(), "other") is True
