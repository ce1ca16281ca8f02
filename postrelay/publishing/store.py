"""Post record store operations used by the publication pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from postrelay.domain.posts.states import Platform, PostStatus
from postrelay.storage.models import ScheduledPost


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def query_due_posts(session: Session, *, now: datetime, limit: Optional[int] = None) -> List[ScheduledPost]:
    statement = (
        select(ScheduledPost)
        .where(
            ScheduledPost.status == PostStatus.SCHEDULED,
            ScheduledPost.scheduled_at <= as_utc(now),
        )
        .order_by(ScheduledPost.scheduled_at.asc(), ScheduledPost.created_at.asc(), ScheduledPost.id.asc())
    )
    if limit is not None:
        statement = statement.limit(max(1, limit))
    return list(session.scalars(statement).all())


def query_posts_by_ids(session: Session, post_ids: Iterable[str]) -> List[ScheduledPost]:
    ids = [post_id for post_id in post_ids if post_id]
    if not ids:
        return []
    rows = session.scalars(select(ScheduledPost).where(ScheduledPost.id.in_(ids))).all()
    by_id = {row.id: row for row in rows}
    return [by_id[post_id] for post_id in ids if post_id in by_id]


def update_post_status(
    session: Session,
    *,
    post_id: str,
    platform: Platform,
    status: PostStatus,
    error_message: Optional[str] = None,
    platform_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Move a still-scheduled post to ``status``; returns False if it was no longer scheduled."""

    timestamp = as_utc(now or datetime.now(timezone.utc))
    values = {
        "status": status,
        "error_message": error_message if status == PostStatus.FAILED else None,
        "updated_at": timestamp,
    }
    if status == PostStatus.PUBLISHED:
        values["published_at"] = timestamp
        if platform == Platform.INSTAGRAM:
            values["instagram_container_id"] = platform_id
        elif platform == Platform.FACEBOOK:
            values["fb_post_id"] = platform_id

    result = session.execute(
        update(ScheduledPost)
        .where(ScheduledPost.id == post_id, ScheduledPost.status == PostStatus.SCHEDULED)
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    session.commit()
    return int(result.rowcount or 0) == 1
