"""Closed vocabularies for scheduled posts: platform, post type, status."""

from __future__ import annotations

from enum import Enum
from typing import Sequence


class Platform(str, Enum):
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    TWITTER = "twitter"
    TIKTOK = "tiktok"


class PostType(str, Enum):
    POST = "POST"
    REEL = "REEL"
    STORY = "STORY"
    CAROUSEL = "CAROUSEL"


class PostStatus(str, Enum):
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    FAILED = "failed"


PUBLISHABLE_PLATFORMS = frozenset({Platform.INSTAGRAM, Platform.FACEBOOK})
TERMINAL_STATUSES = frozenset({PostStatus.PUBLISHED, PostStatus.FAILED})

# Users pick from these; CAROUSEL only ever comes from resolve_post_type.
SELECTABLE_POST_TYPES = (PostType.POST, PostType.REEL, PostType.STORY)


def is_terminal_status(status: PostStatus) -> bool:
    return status in TERMINAL_STATUSES


def resolve_post_type(post_type: PostType | None, media_urls: Sequence[str]) -> PostType:
    """Upgrade a plain feed post to CAROUSEL when it carries several media items."""

    resolved = post_type or PostType.POST
    if resolved == PostType.POST and len(media_urls) > 1:
        return PostType.CAROUSEL
    return resolved
