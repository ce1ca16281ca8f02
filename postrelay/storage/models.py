"""SQLAlchemy ORM models for the post record store."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from typing import List, Optional
import uuid

from sqlalchemy import DateTime, Enum, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from postrelay.domain.posts.states import Platform, PostStatus, PostType
from postrelay.storage.db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_column(enum_cls, length: int) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        validate_strings=True,
        values_callable=lambda members: [member.value for member in members],
    )


class ScheduledPost(Base):
    """One row per (content, platform, post_type) produced from a submission."""

    __tablename__ = "scheduled_posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    platform: Mapped[Platform] = mapped_column(_enum_column(Platform, 16), nullable=False)
    post_type: Mapped[PostType] = mapped_column(_enum_column(PostType, 16), nullable=False, default=PostType.POST)
    media_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    media_urls_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    caption: Mapped[str] = mapped_column(Text, nullable=False, default="")
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[PostStatus] = mapped_column(
        _enum_column(PostStatus, 16),
        nullable=False,
        default=PostStatus.SCHEDULED,
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    instagram_container_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    fb_post_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_scheduled_posts_status_scheduled_at", "status", "scheduled_at"),
        Index("ix_scheduled_posts_user_created_at", "user_id", "created_at"),
    )

    @property
    def media_urls(self) -> List[str]:
        try:
            parsed = json.loads(self.media_urls_json or "[]")
        except ValueError:
            return []
        if not isinstance(parsed, list):
            return []
        return [str(item) for item in parsed]

    @media_urls.setter
    def media_urls(self, urls: List[str]) -> None:
        self.media_urls_json = json.dumps(list(urls), separators=(",", ":"), ensure_ascii=True)

    @property
    def platform_post_id(self) -> Optional[str]:
        if self.platform == Platform.INSTAGRAM:
            return self.instagram_container_id
        if self.platform == Platform.FACEBOOK:
            return self.fb_post_id
        return None
