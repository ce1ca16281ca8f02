from __future__ import annotations

import pytest

from postrelay.domain.errors import MediaValidationError, PublishError
from postrelay.domain.posts.media import non_public_reason, normalize_media_urls
from postrelay.domain.posts.requests import (
    FacebookFeedPublish,
    FacebookPhotoPublish,
    FacebookVideoPublish,
    InstagramCarouselPublish,
    InstagramSinglePublish,
    MediaKind,
    PublishDraft,
    build_publish_request,
)
from postrelay.domain.posts.states import Platform, PostStatus, PostType, is_terminal_status, resolve_post_type


def test_resolve_post_type_upgrades_multi_media_feed_post_to_carousel() -> None:
    assert resolve_post_type(PostType.POST, ["a", "b"]) == PostType.CAROUSEL
    assert resolve_post_type(None, ["a", "b"]) == PostType.CAROUSEL
    assert resolve_post_type(PostType.POST, ["a"]) == PostType.POST
    assert resolve_post_type(PostType.REEL, ["a", "b"]) == PostType.REEL
    assert resolve_post_type(PostType.STORY, ["a", "b"]) == PostType.STORY


def test_terminal_statuses() -> None:
    assert is_terminal_status(PostStatus.PUBLISHED)
    assert is_terminal_status(PostStatus.FAILED)
    assert not is_terminal_status(PostStatus.SCHEDULED)


def test_normalize_media_urls_prefers_list_and_falls_back_to_single() -> None:
    assert normalize_media_urls("https://x/1.jpg", ["https://x/2.jpg", " ", ""]) == ["https://x/2.jpg"]
    assert normalize_media_urls("https://x/1.jpg", []) == ["https://x/1.jpg"]
    assert normalize_media_urls(None, None) == []


@pytest.mark.parametrize(
    "url",
    [
        "http://localhost:3000/uploads/a.jpg",
        "http://127.0.0.1/a.jpg",
        "http://10.0.0.4/a.jpg",
        "http://192.168.1.20/a.jpg",
        "http://[::1]/a.jpg",
        "http://printer.local/a.jpg",
        "ftp://cdn.example.com/a.jpg",
        "/uploads/a.jpg",
    ],
)
def test_non_public_media_urls_are_detected(url: str) -> None:
    assert non_public_reason(url) is not None


def test_public_media_url_passes() -> None:
    assert non_public_reason("https://cdn.example.com/media/a.jpg") is None


def test_instagram_single_image_request() -> None:
    request = build_publish_request(
        Platform.INSTAGRAM,
        PublishDraft(caption="  hello ", post_type=PostType.POST, media_urls=("https://cdn.example.com/a.jpg",)),
    )
    assert isinstance(request, InstagramSinglePublish)
    assert request.caption == "hello"
    assert request.post_type == PostType.POST
    assert request.media.kind == MediaKind.IMAGE


def test_instagram_request_upgrades_to_carousel_and_keeps_order() -> None:
    urls = ("https://cdn.example.com/a.jpg", "https://cdn.example.com/b.mp4", "https://cdn.example.com/c.jpg")
    request = build_publish_request(Platform.INSTAGRAM, PublishDraft(caption="set", media_urls=urls))

    assert isinstance(request, InstagramCarouselPublish)
    assert [item.url for item in request.items] == list(urls)
    assert [item.kind for item in request.items] == [MediaKind.IMAGE, MediaKind.VIDEO, MediaKind.IMAGE]


def test_instagram_carousel_rejects_more_than_ten_items() -> None:
    urls = tuple(f"https://cdn.example.com/{index}.jpg" for index in range(11))
    with pytest.raises(MediaValidationError, match="at most 10"):
        build_publish_request(Platform.INSTAGRAM, PublishDraft(caption="many", media_urls=urls))


def test_instagram_explicit_carousel_requires_two_items() -> None:
    with pytest.raises(MediaValidationError, match="at least two"):
        build_publish_request(
            Platform.INSTAGRAM,
            PublishDraft(post_type=PostType.CAROUSEL, media_urls=("https://cdn.example.com/a.jpg",)),
        )


def test_instagram_reel_uses_first_url_as_video() -> None:
    request = build_publish_request(
        Platform.INSTAGRAM,
        PublishDraft(
            post_type=PostType.REEL,
            media_urls=("https://cdn.example.com/clip", "https://cdn.example.com/other.mp4"),
        ),
    )
    assert isinstance(request, InstagramSinglePublish)
    assert request.media.url == "https://cdn.example.com/clip"
    assert request.media.kind == MediaKind.VIDEO


def test_instagram_requires_media() -> None:
    with pytest.raises(MediaValidationError) as excinfo:
        build_publish_request(Platform.INSTAGRAM, PublishDraft(caption="text only"))
    assert excinfo.value.kind == "validation"
    assert isinstance(excinfo.value, PublishError)


def test_instagram_rejects_localhost_media() -> None:
    with pytest.raises(MediaValidationError, match="publicly reachable"):
        build_publish_request(
            Platform.INSTAGRAM,
            PublishDraft(media_urls=("http://localhost:3000/uploads/a.jpg",)),
        )


def test_facebook_request_selection() -> None:
    video = build_publish_request(
        Platform.FACEBOOK,
        PublishDraft(caption="watch", media_urls=("https://cdn.example.com/v.webm", "https://cdn.example.com/p.jpg")),
    )
    photo = build_publish_request(
        Platform.FACEBOOK,
        PublishDraft(caption="look", media_urls=("https://cdn.example.com/p.jpg",)),
    )
    feed = build_publish_request(Platform.FACEBOOK, PublishDraft(caption="just words"))

    assert video == FacebookVideoPublish(file_url="https://cdn.example.com/v.webm", description="watch")
    assert photo == FacebookPhotoPublish(url="https://cdn.example.com/p.jpg", caption="look")
    assert feed == FacebookFeedPublish(message="just words")


def test_facebook_text_post_requires_caption() -> None:
    with pytest.raises(MediaValidationError, match="caption"):
        build_publish_request(Platform.FACEBOOK, PublishDraft(caption="   "))


def test_facebook_rejects_private_media_anywhere_in_list() -> None:
    with pytest.raises(MediaValidationError):
        build_publish_request(
            Platform.FACEBOOK,
            PublishDraft(media_urls=("https://cdn.example.com/p.jpg", "http://192.168.0.2/q.jpg")),
        )


def test_unsupported_platform_has_no_request_shape() -> None:
    with pytest.raises(ValueError, match="linkedin"):
        build_publish_request(Platform.LINKEDIN, PublishDraft(caption="hi"))


def test_publish_error_string_carries_kind() -> None:
    error = PublishError("boom", kind="network")
    assert str(error) == "[network] boom"
    assert error.detail == "boom"
    assert MediaValidationError("bad").kind == "validation"
