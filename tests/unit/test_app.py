"""Tests for the FastAPI service surface.

The mirror is wired against a fake gateway and an in-memory cache so the
lifespan (reconciliation, webhook worker) runs without network access.
"""

import json
import time
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from repomirror.cache.base import InMemoryCacheStore
from repomirror.config import MirrorSettings
from repomirror.github.client import GitHubAPIError
from repomirror.main import create_app
from repomirror.mirror import RepositoryMirror
from repomirror.webhook.handler import HEADER_EVENT, HEADER_SIGNATURE, compute_signature


SECRET = "hook-secret"


def _make_gateway() -> MagicMock:
    gateway = MagicMock()
    gateway.full_repository = "acme/widgets"
    gateway.client.close = AsyncMock()
    gateway.get_repo = AsyncMock(
        return_value={"full_name": "acme/widgets", "updated_at": "2024-01-01T00:00:00Z"}
    )
    gateway.scrape_issues = AsyncMock(
        return_value={
            1: {"number": 1, "state": "open", "title": "Bug", "comments": {}},
            2: {"number": 2, "state": "closed", "title": "Old", "comments": {}},
        }
    )
    return gateway


def _make_settings() -> MirrorSettings:
    return MirrorSettings(
        github_token="ghp_test",
        owner="acme",
        repo="widgets",
        webhook_secret=SECRET,
        event_sinks=["logging"],
    )


@pytest.fixture
def gateway():
    return _make_gateway()


@pytest.fixture
def mirror(gateway):
    return RepositoryMirror(gateway, InMemoryCacheStore())


@pytest.fixture
def client(mirror):
    app = create_app(settings=_make_settings(), mirror=mirror)
    with TestClient(app) as test_client:
        yield test_client


def _deliver(client, payload, event="issues", secret=SECRET):
    body = json.dumps(payload).encode()
    return client.post(
        "/webhooks/github",
        content=body,
        headers={
            "Content-Type": "application/json",
            HEADER_EVENT: event,
            HEADER_SIGNATURE: compute_signature(secret, body),
        },
    )


def _wait_for(condition, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_ready_after_reconciliation(client):
    response = client.get("/ready")

    assert response.status_code == 200
    assert response.json()["issues"] == 2


def test_repo_and_issues(client):
    assert client.get("/repo").json()["full_name"] == "acme/widgets"
    assert [i["number"] for i in client.get("/issues").json()] == [1, 2]
    assert [i["number"] for i in client.get("/issues", params={"state": "closed"}).json()] == [2]
    assert client.get("/issues/1").json()["title"] == "Bug"
    assert client.get("/issues/99").status_code == 404


def test_metrics_endpoint(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")


def test_webhook_is_applied(client, mirror):
    response = _deliver(
        client,
        {"action": "created", "issue": {"number": 1}, "comment": {"id": 9, "body": "+1"}},
        event="issue_comment",
    )

    assert response.status_code == 202
    assert _wait_for(lambda: 9 in mirror.state.issues[1]["comments"])
    assert client.get("/issues/1").json()["comments"]["9"]["body"] == "+1"


def test_webhook_subscribers_are_notified(client, mirror):
    seen = []
    mirror.on("issueClosed", seen.append)

    _deliver(client, {"action": "closed", "issue": {"number": 1, "state": "closed"}})

    assert _wait_for(lambda: len(seen) == 1)
    assert seen[0].merged is True
    assert mirror.get_issue(1)["state"] == "closed"


def test_webhook_with_bad_signature_is_rejected(client, mirror):
    response = _deliver(client, {"action": "closed", "issue": {"number": 1}}, secret="wrong")

    assert response.status_code == 401
    assert mirror.get_issue(1)["state"] == "open"


def test_webhook_with_bad_body_is_rejected(client):
    body = b"{not json"
    response = client.post(
        "/webhooks/github",
        content=body,
        headers={HEADER_SIGNATURE: compute_signature(SECRET, body)},
    )

    assert response.status_code == 400


def test_ping_is_answered(client):
    response = _deliver(client, {"zen": "Design for failure.", "hook_id": 1}, event="ping")

    assert response.status_code == 200
    assert response.json() == {"status": "pong"}


def test_failed_reconciliation_aborts_startup(gateway, mirror):
    gateway.get_repo.side_effect = GitHubAPIError("boom", status_code=500)
    app = create_app(settings=_make_settings(), mirror=mirror)

    # Starlette may wrap the startup error in an exception group
    with pytest.raises(Exception):
        with TestClient(app):
            pass

    assert mirror.ready is False
    gateway.client.close.assert_awaited_once()
