from __future__ import annotations

from datetime import datetime, timedelta, timezone
import threading
from typing import Any, Dict, Iterable, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from postrelay.channels.instagram.publisher import InstagramPublisherConfig
from postrelay.core.metrics import reset_metrics_for_tests
from postrelay.domain.posts.states import Platform, PostStatus, PostType
from postrelay.integrations.facebook import FacebookGraphError
from postrelay.integrations.instagram import InstagramGraphError
from postrelay.storage.db import Base, load_models
from postrelay.storage.models import ScheduledPost


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
NO_SLEEP_CONFIG = InstagramPublisherConfig(
    poll_max_attempts=10,
    poll_interval_seconds=0.0,
    poll_exhausted_policy="publish",
    carousel_max_workers=4,
)


class FakeRedis:
    def __init__(self) -> None:
        self._store: Dict[str, str] = {}

    def set(self, key: str, value: str, nx: bool = False, ex: int | None = None):
        del ex
        if nx and key in self._store:
            return False
        self._store[key] = str(value)
        return True

    def get(self, key: str):
        return self._store.get(key)

    def eval(self, script: str, numkeys: int, key: str, token: str):
        del script, numkeys
        if self._store.get(key) == token:
            self._store.pop(key, None)
            return 1
        return 0


class FakeInstagramGraphClient:
    """Container ids are keyed by media url (or ``CAROUSEL`` for the parent)."""

    def __init__(
        self,
        *,
        container_ids: Optional[Dict[str, str]] = None,
        statuses: Iterable[str] = ("FINISHED",),
        media_id: str = "M123",
        fail_urls: Iterable[str] = (),
    ) -> None:
        self.container_ids = dict(container_ids or {})
        self.statuses = list(statuses)
        self.media_id = media_id
        self.fail_urls = set(fail_urls)
        self.container_calls: List[Dict[str, Any]] = []
        self.status_calls: List[str] = []
        self.publish_calls: List[str] = []
        self._lock = threading.Lock()
        self._counter = 0

    def create_container(self, **fields: Any) -> Dict[str, Any]:
        url = fields.get("image_url") or fields.get("video_url")
        with self._lock:
            self.container_calls.append(dict(fields))
            if url in self.fail_urls:
                raise InstagramGraphError("instagram_graph_request_failed status=400 detail=Media download failed")
            key = "CAROUSEL" if fields.get("media_type") == "CAROUSEL" else url
            if key in self.container_ids:
                return {"id": self.container_ids[key]}
            self._counter += 1
            return {"id": f"container-{self._counter}"}

    def get_container_status(self, container_id: str) -> Dict[str, Any]:
        self.status_calls.append(container_id)
        index = min(len(self.status_calls), len(self.statuses)) - 1
        status_code = self.statuses[index]
        detail = "Error: unsupported media format" if status_code == "ERROR" else status_code
        return {"id": container_id, "status_code": status_code, "status": detail}

    def publish_media(self, *, creation_id: str) -> Dict[str, Any]:
        self.publish_calls.append(creation_id)
        return {"id": self.media_id}


class FakeFacebookGraphClient:
    def __init__(self, *, response: Optional[Dict[str, Any]] = None, error: Optional[FacebookGraphError] = None) -> None:
        self.response = response if response is not None else {"id": "page_1_post_9"}
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def _record(self, endpoint: str, **fields: Any) -> Dict[str, Any]:
        self.calls.append({"endpoint": endpoint, **fields})
        if self.error is not None:
            raise self.error
        return dict(self.response)

    def post_feed(self, *, message: str) -> Dict[str, Any]:
        return self._record("feed", message=message)

    def post_photo(self, *, url: str, caption: str = "") -> Dict[str, Any]:
        return self._record("photos", url=url, caption=caption)

    def post_video(self, *, file_url: str, description: str = "") -> Dict[str, Any]:
        return self._record("videos", file_url=file_url, description=description)


def build_session_factory() -> sessionmaker:
    load_models()
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def make_post(
    session,
    *,
    platform: Platform = Platform.INSTAGRAM,
    post_type: PostType = PostType.POST,
    caption: str = "Launch day notes",
    media_urls: Iterable[str] = ("https://cdn.example.com/a.jpg",),
    scheduled_at: Optional[datetime] = None,
    status: PostStatus = PostStatus.SCHEDULED,
    user_id: Optional[str] = None,
) -> ScheduledPost:
    urls = list(media_urls)
    post = ScheduledPost(
        user_id=user_id,
        platform=platform,
        post_type=post_type,
        caption=caption,
        media_url=urls[0] if urls else None,
        scheduled_at=scheduled_at or NOW - timedelta(minutes=5),
        status=status,
    )
    post.media_urls = urls
    session.add(post)
    session.commit()
    return post


@pytest.fixture
def session_factory() -> sessionmaker:
    return build_session_factory()


@pytest.fixture(autouse=True)
def _reset_metrics():
    reset_metrics_for_tests()
    yield
    reset_metrics_for_tests()
