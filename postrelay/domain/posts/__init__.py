"""Scheduled post vocabulary, media rules and typed publish requests."""

from postrelay.domain.posts.requests import (
    FacebookFeedPublish,
    FacebookPhotoPublish,
    FacebookVideoPublish,
    InstagramCarouselPublish,
    InstagramSinglePublish,
    MediaItem,
    MediaKind,
    PublishDraft,
    PublishRequest,
    build_publish_request,
)
from postrelay.domain.posts.states import (
    PUBLISHABLE_PLATFORMS,
    Platform,
    PostStatus,
    PostType,
    resolve_post_type,
)

__all__ = [
    "FacebookFeedPublish",
    "FacebookPhotoPublish",
    "FacebookVideoPublish",
    "InstagramCarouselPublish",
    "InstagramSinglePublish",
    "MediaItem",
    "MediaKind",
    "PUBLISHABLE_PLATFORMS",
    "Platform",
    "PostStatus",
    "PostType",
    "PublishDraft",
    "PublishRequest",
    "build_publish_request",
    "resolve_post_type",
]
