"""Typed publish requests, one variant per platform and media shape.

The orchestrator turns a stored post into a :class:`PublishDraft` and then into
exactly one request variant before any publisher runs. Publishers only ever
see a fully validated variant, never the loose draft.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from postrelay.domain.errors import MediaValidationError
from postrelay.domain.posts.media import (
    FACEBOOK_VIDEO_EXTENSIONS,
    INSTAGRAM_VIDEO_EXTENSIONS,
    assert_public_media_urls,
    is_video_url,
    normalize_media_urls,
)
from postrelay.domain.posts.states import Platform, PostType, resolve_post_type


INSTAGRAM_CAROUSEL_MAX_ITEMS = 10


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class MediaItem:
    url: str
    kind: MediaKind

    @property
    def is_video(self) -> bool:
        return self.kind == MediaKind.VIDEO


@dataclass(frozen=True)
class PublishDraft:
    """Loose publish input as stored on a post row."""

    caption: str = ""
    post_type: Optional[PostType] = None
    media_url: Optional[str] = None
    media_urls: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class InstagramSinglePublish:
    caption: str
    post_type: PostType
    media: MediaItem


@dataclass(frozen=True)
class InstagramCarouselPublish:
    caption: str
    items: Tuple[MediaItem, ...]

    post_type = PostType.CAROUSEL


@dataclass(frozen=True)
class FacebookFeedPublish:
    message: str


@dataclass(frozen=True)
class FacebookPhotoPublish:
    url: str
    caption: str


@dataclass(frozen=True)
class FacebookVideoPublish:
    file_url: str
    description: str


InstagramPublishRequest = Union[InstagramSinglePublish, InstagramCarouselPublish]
FacebookPublishRequest = Union[FacebookFeedPublish, FacebookPhotoPublish, FacebookVideoPublish]
PublishRequest = Union[InstagramPublishRequest, FacebookPublishRequest]


def _instagram_item(url: str) -> MediaItem:
    kind = MediaKind.VIDEO if is_video_url(url, INSTAGRAM_VIDEO_EXTENSIONS) else MediaKind.IMAGE
    return MediaItem(url=url, kind=kind)


def build_instagram_request(draft: PublishDraft) -> InstagramPublishRequest:
    urls = normalize_media_urls(draft.media_url, draft.media_urls)
    if not urls:
        raise MediaValidationError("instagram post requires at least one media url")
    assert_public_media_urls(urls)

    caption = (draft.caption or "").strip()
    post_type = resolve_post_type(draft.post_type, urls)

    if post_type == PostType.CAROUSEL:
        if len(urls) < 2:
            raise MediaValidationError("carousel requires at least two media items")
        if len(urls) > INSTAGRAM_CAROUSEL_MAX_ITEMS:
            raise MediaValidationError(
                f"carousel supports at most {INSTAGRAM_CAROUSEL_MAX_ITEMS} media items, got {len(urls)}"
            )
        return InstagramCarouselPublish(
            caption=caption,
            items=tuple(_instagram_item(url) for url in urls),
        )

    # REEL and STORY publish only the first item.
    first = urls[0]
    if post_type == PostType.REEL:
        media = MediaItem(url=first, kind=MediaKind.VIDEO)
    else:
        media = _instagram_item(first)
    return InstagramSinglePublish(caption=caption, post_type=post_type, media=media)


def build_facebook_request(draft: PublishDraft) -> FacebookPublishRequest:
    urls = normalize_media_urls(draft.media_url, draft.media_urls)
    caption = (draft.caption or "").strip()

    if not urls:
        if not caption:
            raise MediaValidationError("facebook text post requires a caption")
        return FacebookFeedPublish(message=caption)

    assert_public_media_urls(urls)
    first = urls[0]
    if is_video_url(first, FACEBOOK_VIDEO_EXTENSIONS):
        return FacebookVideoPublish(file_url=first, description=caption)
    return FacebookPhotoPublish(url=first, caption=caption)


def build_publish_request(platform: Platform, draft: PublishDraft) -> PublishRequest:
    if platform == Platform.INSTAGRAM:
        return build_instagram_request(draft)
    if platform == Platform.FACEBOOK:
        return build_facebook_request(draft)
    raise ValueError(f"no publish request shape for platform '{platform.value}'")
