from __future__ import annotations

import pytest

from postrelay.channels.facebook.publisher import FacebookPublisher
from postrelay.domain.errors import PublishError
from postrelay.domain.posts.requests import FacebookFeedPublish, FacebookPhotoPublish, FacebookVideoPublish
from postrelay.domain.posts.states import Platform
from postrelay.integrations.facebook import FacebookGraphError

from tests.conftest import FakeFacebookGraphClient


def test_video_request_posts_to_videos_endpoint() -> None:
    client = FakeFacebookGraphClient(response={"id": "vid_1"})

    receipt = FacebookPublisher(graph_client=client).publish(
        FacebookVideoPublish(file_url="https://cdn.example.com/v.mp4", description="watch")
    )

    assert client.calls == [
        {"endpoint": "videos", "file_url": "https://cdn.example.com/v.mp4", "description": "watch"}
    ]
    assert receipt.platform == Platform.FACEBOOK
    assert receipt.external_id == "vid_1"
    assert receipt.payload["endpoint"] == "videos"


def test_photo_request_uses_post_id_when_present_only() -> None:
    client = FakeFacebookGraphClient(response={"post_id": "page_1_post_2"})

    receipt = FacebookPublisher(graph_client=client).publish(
        FacebookPhotoPublish(url="https://cdn.example.com/p.jpg", caption="look")
    )

    assert client.calls[0]["endpoint"] == "photos"
    assert receipt.external_id == "page_1_post_2"


def test_feed_request_posts_message() -> None:
    client = FakeFacebookGraphClient()

    receipt = FacebookPublisher(graph_client=client).publish(FacebookFeedPublish(message="just words"))

    assert client.calls == [{"endpoint": "feed", "message": "just words"}]
    assert receipt.external_id == "page_1_post_9"


def test_graph_error_becomes_api_publish_error() -> None:
    client = FakeFacebookGraphClient(
        error=FacebookGraphError(
            "facebook_graph_request_failed status=400 detail=(#100) Invalid parameter",
            status_code=400,
        )
    )

    with pytest.raises(PublishError) as excinfo:
        FacebookPublisher(graph_client=client).publish(FacebookFeedPublish(message="x"))

    assert excinfo.value.kind == "api"
    assert "Invalid parameter" in excinfo.value.detail


def test_transport_error_becomes_network_publish_error() -> None:
    client = FakeFacebookGraphClient(
        error=FacebookGraphError("facebook_graph_request_transport_failed detail=timed out", transport=True)
    )

    with pytest.raises(PublishError) as excinfo:
        FacebookPublisher(graph_client=client).publish(FacebookFeedPublish(message="x"))

    assert excinfo.value.kind == "network"


def test_response_without_id_fails() -> None:
    client = FakeFacebookGraphClient(response={"success": True})

    with pytest.raises(PublishError, match="no id"):
        FacebookPublisher(graph_client=client).publish(FacebookFeedPublish(message="x"))
