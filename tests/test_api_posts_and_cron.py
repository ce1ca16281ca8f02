from __future__ import annotations

from datetime import timedelta

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.exc import OperationalError

import postrelay.api.main as api_main
from postrelay.channels.base import PublishReceipt
from postrelay.core.config import get_settings
from postrelay.domain.posts.states import Platform
from postrelay.orchestrator.sweep import DuePostSweeper, SweepReport
from postrelay.posts.router import get_publish_orchestrator
from postrelay.publishing.router import get_due_post_sweeper
from postrelay.publishing.service import PublishOrchestrator
from postrelay.storage.db import get_session

from tests.conftest import NOW, make_post


CRON_SECRET = "cron-secret-for-tests"


class _FacebookOk:
    platform = Platform.FACEBOOK

    def publish(self, request):
        del request
        return PublishReceipt(platform=self.platform, external_id="fb_1")


class _StaticSweeper:
    def __init__(self, report: SweepReport) -> None:
        self.report = report
        self.runs = 0

    def run_once(self, *, now=None) -> SweepReport:
        del now
        self.runs += 1
        return self.report


@pytest.fixture
def api_client(session_factory, monkeypatch):
    monkeypatch.setenv("CRON_SECRET", CRON_SECRET)
    get_settings.cache_clear()

    def _session_override():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    orchestrator = PublishOrchestrator(
        session_factory=session_factory,
        publishers={Platform.FACEBOOK: _FacebookOk()},
        clock=lambda: NOW,
    )
    sweeper = DuePostSweeper(orchestrator=orchestrator)

    api_main.app.dependency_overrides[get_session] = _session_override
    api_main.app.dependency_overrides[get_publish_orchestrator] = lambda: orchestrator
    api_main.app.dependency_overrides[get_due_post_sweeper] = lambda: sweeper
    try:
        yield TestClient(api_main.app)
    finally:
        api_main.app.dependency_overrides.clear()
        get_settings.cache_clear()


def _auth() -> dict[str, str]:
    return {"Authorization": f"Bearer {CRON_SECRET}"}


def test_create_posts_returns_rows_with_carousel_upgrade(api_client) -> None:
    response = api_client.post(
        "/posts",
        json={
            "caption": "two images",
            "media_urls": ["https://cdn.example.com/a.jpg", "https://cdn.example.com/b.jpg"],
            "platforms": ["instagram"],
            "post_types": ["POST"],
            "scheduled_at": (NOW + timedelta(hours=1)).isoformat(),
            "user_id": "user-7",
        },
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["results"] == []
    assert len(payload["posts"]) == 1
    created = payload["posts"][0]
    assert created["post_type"] == "CAROUSEL"
    assert created["status"] == "scheduled"
    assert created["user_id"] == "user-7"

    fetched = api_client.get(f"/posts/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["media_urls"] == payload["posts"][0]["media_urls"]


def test_create_posts_publish_now_returns_outcomes(api_client) -> None:
    response = api_client.post(
        "/posts",
        json={"caption": "right now", "platforms": ["facebook"], "publish_now": True},
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["results"][0]["status"] == "published"
    assert payload["results"][0]["platform_post_id"] == "fb_1"
    assert payload["posts"][0]["status"] == "published"
    assert payload["posts"][0]["fb_post_id"] == "fb_1"


def test_create_posts_validation_errors(api_client) -> None:
    missing_schedule = api_client.post("/posts", json={"caption": "x", "platforms": ["facebook"]})
    no_platforms = api_client.post("/posts", json={"caption": "x", "platforms": [], "publish_now": True})
    carousel_selected = api_client.post(
        "/posts",
        json={"caption": "x", "platforms": ["instagram"], "post_types": ["CAROUSEL"], "publish_now": True},
    )

    assert missing_schedule.status_code == 422
    assert "scheduled_at" in missing_schedule.json()["detail"]
    assert no_platforms.status_code == 422
    assert carousel_selected.status_code == 422


def test_get_unknown_post_returns_404(api_client) -> None:
    response = api_client.get("/posts/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"] == "post_not_found"


@pytest.mark.parametrize("method", ["GET", "POST"])
def test_cron_sweep_returns_results_and_logs(api_client, session_factory, method: str) -> None:
    with session_factory() as session:
        post = make_post(session, platform=Platform.FACEBOOK, media_urls=[], caption="due text")

    response = api_client.request(method, "/cron/publish-scheduled", headers=_auth())

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "completed"
    assert payload["results"] == [
        {"id": post.id, "platform": "facebook", "status": "published", "platform_post_id": "fb_1"}
    ]
    assert payload["logs"]


def test_cron_sweep_keeps_200_when_posts_fail(api_client, session_factory) -> None:
    with session_factory() as session:
        make_post(session, platform=Platform.FACEBOOK, media_urls=[], caption="   ")

    response = api_client.post("/cron/publish-scheduled", headers=_auth())

    assert response.status_code == 200
    result = response.json()["results"][0]
    assert result["status"] == "failed"
    assert result["error"].startswith("[validation]")


def test_cron_sweep_returns_500_on_scan_failure(api_client) -> None:
    report = SweepReport(
        sweep_id="s-1",
        status="failed",
        logs=["ERROR: Cron Job Failed: due_post_query_failed: boom"],
        error="due_post_query_failed: boom",
    )
    api_main.app.dependency_overrides[get_due_post_sweeper] = lambda: _StaticSweeper(report)

    response = api_client.get("/cron/publish-scheduled", headers=_auth())

    assert response.status_code == 500
    assert response.json()["error"] == "due_post_query_failed: boom"
    assert response.json()["logs"] == ["ERROR: Cron Job Failed: due_post_query_failed: boom"]


def test_cron_sweep_store_failure_returns_500_with_logs(api_client, session_factory) -> None:
    orchestrator = PublishOrchestrator(session_factory=session_factory, publishers={}, clock=lambda: NOW)

    def broken(**kwargs):
        kwargs["journal"].info("sweep_scan_started", "Checking for posts due...")
        raise OperationalError("SELECT", {}, Exception("server closed the connection"))

    orchestrator.process_due_posts = broken  # type: ignore[method-assign]
    sweeper = DuePostSweeper(orchestrator=orchestrator)
    api_main.app.dependency_overrides[get_due_post_sweeper] = lambda: sweeper

    response = api_client.post("/cron/publish-scheduled", headers=_auth())

    assert response.status_code == 500
    payload = response.json()
    assert payload["error"].startswith("store_unavailable:")
    assert payload["results"] == []
    assert payload["logs"][0] == "Checking for posts due..."
    assert payload["logs"][-1].startswith("ERROR: Cron Job Failed")


def test_cron_sweep_rejects_missing_or_wrong_secret(api_client) -> None:
    sweeper = _StaticSweeper(SweepReport(sweep_id="s-2", status="completed"))
    api_main.app.dependency_overrides[get_due_post_sweeper] = lambda: sweeper

    assert api_client.get("/cron/publish-scheduled").status_code == 401
    wrong = api_client.get("/cron/publish-scheduled", headers={"Authorization": "Bearer nope"})
    assert wrong.status_code == 401
    assert sweeper.runs == 0


def test_cron_sweep_unavailable_without_configured_secret(api_client, monkeypatch) -> None:
    monkeypatch.setenv("CRON_SECRET", "")
    get_settings.cache_clear()

    response = api_client.get("/cron/publish-scheduled", headers=_auth())

    assert response.status_code == 503
    assert response.json()["detail"] == "cron_secret_not_configured"
