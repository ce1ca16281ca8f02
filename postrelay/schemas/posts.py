"""Pydantic schemas for post creation and lookup endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from postrelay.domain.posts.states import Platform, PostStatus, PostType


class CreatePostsRequest(BaseModel):
    caption: str = Field(default="", max_length=10000)
    media_urls: List[str] = Field(default_factory=list)
    platforms: List[Platform] = Field(min_length=1)
    post_types: List[PostType] = Field(default_factory=lambda: [PostType.POST], min_length=1)
    scheduled_at: Optional[datetime] = None
    publish_now: bool = False
    user_id: Optional[str] = Field(default=None, max_length=36)


class ScheduledPostResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    platform: Platform
    post_type: PostType
    status: PostStatus
    caption: str
    media_url: Optional[str] = None
    media_urls: List[str] = Field(default_factory=list)
    scheduled_at: datetime
    error_message: Optional[str] = None
    instagram_container_id: Optional[str] = None
    fb_post_id: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class PostOutcomeResponse(BaseModel):
    id: str
    platform: str
    status: str
    platform_post_id: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None


class CreatePostsResponse(BaseModel):
    posts: List[ScheduledPostResponse]
    results: List[PostOutcomeResponse] = Field(default_factory=list)
