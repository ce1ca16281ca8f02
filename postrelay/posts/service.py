"""Post creation: validate a submission and fan it out into scheduled rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from postrelay.core.config import Settings, get_settings
from postrelay.core.logger import get_logger
from postrelay.domain.errors import PostValidationError
from postrelay.domain.posts.media import normalize_media_urls
from postrelay.domain.posts.states import SELECTABLE_POST_TYPES, Platform, PostStatus, PostType, resolve_post_type
from postrelay.publishing.service import PostOutcome, PublishOrchestrator
from postrelay.publishing.store import as_utc
from postrelay.storage.models import ScheduledPost


logger = get_logger("postrelay.posts.service")


@dataclass(frozen=True)
class PostSubmission:
    caption: str
    platforms: Sequence[Platform]
    post_types: Sequence[PostType] = (PostType.POST,)
    media_urls: Sequence[str] = ()
    scheduled_at: Optional[datetime] = None
    publish_now: bool = False
    user_id: Optional[str] = None


@dataclass(frozen=True)
class SubmissionResult:
    posts: List[ScheduledPost]
    outcomes: List[PostOutcome] = field(default_factory=list)


def _unique(values: Sequence) -> list:
    seen = set()
    ordered = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return ordered


def validate_submission(submission: PostSubmission, *, settings: Optional[Settings] = None) -> List[str]:
    """Check creation rules and return the normalized media URL list."""

    settings = settings or get_settings()
    if len(submission.caption or "") > settings.post_caption_max_chars:
        raise PostValidationError(f"caption exceeds {settings.post_caption_max_chars} characters")

    media_urls = normalize_media_urls(None, submission.media_urls)
    if len(media_urls) > settings.post_media_max_items:
        raise PostValidationError(f"at most {settings.post_media_max_items} media items are allowed")

    if not submission.platforms:
        raise PostValidationError("at least one platform is required")
    if not submission.post_types:
        raise PostValidationError("at least one post type is required")
    unsupported = [post_type.value for post_type in submission.post_types if post_type not in SELECTABLE_POST_TYPES]
    if unsupported:
        raise PostValidationError(f"post type not selectable: {', '.join(unsupported)}")

    if submission.scheduled_at is None and not submission.publish_now:
        raise PostValidationError("scheduled_at is required unless publish_now is set")
    return media_urls


def create_scheduled_posts(
    session: Session,
    submission: PostSubmission,
    *,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> List[ScheduledPost]:
    """Insert one ``scheduled`` row per (platform, post type) pair.

    A plain feed post with more than one media item is stored as CAROUSEL.
    Publish-now rows are scheduled at ``now`` so a concurrent sweep may also
    pick them up; the per-post claim keeps that from publishing twice.
    """

    media_urls = validate_submission(submission, settings=settings)
    created_at = as_utc(now or datetime.now(timezone.utc))
    scheduled_at = created_at if submission.publish_now else as_utc(submission.scheduled_at)

    posts: List[ScheduledPost] = []
    for platform in _unique(submission.platforms):
        post_types = _unique([resolve_post_type(post_type, media_urls) for post_type in submission.post_types])
        for post_type in post_types:
            post = ScheduledPost(
                user_id=submission.user_id,
                platform=platform,
                post_type=post_type,
                caption=submission.caption or "",
                media_url=media_urls[0] if media_urls else None,
                scheduled_at=scheduled_at,
                status=PostStatus.SCHEDULED,
                created_at=created_at,
                updated_at=created_at,
            )
            post.media_urls = media_urls
            session.add(post)
            posts.append(post)

    session.commit()
    logger.info(
        "scheduled_posts_created",
        count=len(posts),
        platforms=[platform.value for platform in _unique(submission.platforms)],
        publish_now=submission.publish_now,
        user_id=submission.user_id,
    )
    return posts


def submit_posts(
    session: Session,
    submission: PostSubmission,
    *,
    orchestrator: Optional[PublishOrchestrator] = None,
    now: Optional[datetime] = None,
) -> SubmissionResult:
    posts = create_scheduled_posts(session, submission, now=now)
    if not submission.publish_now:
        return SubmissionResult(posts=posts)
    if orchestrator is None:
        raise ValueError("publish_now requires an orchestrator")

    outcomes = orchestrator.publish_now([post.id for post in posts])
    # The orchestrator writes through its own session.
    for post in posts:
        session.refresh(post)
    return SubmissionResult(posts=posts, outcomes=outcomes)


def get_post(session: Session, post_id: str) -> Optional[ScheduledPost]:
    return session.scalar(select(ScheduledPost).where(ScheduledPost.id == post_id))
