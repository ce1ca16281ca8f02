"""Facebook Page publisher: one Graph call per post."""

from __future__ import annotations

from typing import Any, Dict, Optional

from postrelay.channels.base import PublishReceipt
from postrelay.core.logger import get_logger
from postrelay.domain.errors import PublishError
from postrelay.domain.posts.requests import (
    FacebookFeedPublish,
    FacebookPhotoPublish,
    FacebookPublishRequest,
    FacebookVideoPublish,
)
from postrelay.domain.posts.states import Platform
from postrelay.integrations.facebook import (
    FacebookGraphClient,
    FacebookGraphError,
    get_facebook_graph_client,
)


logger = get_logger("postrelay.channels.facebook")


def _extract_post_id(response: Dict[str, Any]) -> Optional[str]:
    for key in ("id", "post_id"):
        value = str(response.get(key) or "").strip()
        if value:
            return value
    return None


class FacebookPublisher:
    platform = Platform.FACEBOOK

    def __init__(self, *, graph_client: Optional[FacebookGraphClient] = None) -> None:
        self._graph_client = graph_client

    def _resolve_client(self) -> FacebookGraphClient:
        if self._graph_client is not None:
            return self._graph_client
        return get_facebook_graph_client()

    def publish(self, request: FacebookPublishRequest) -> PublishReceipt:
        client = self._resolve_client()
        try:
            if isinstance(request, FacebookVideoPublish):
                endpoint = "videos"
                response = client.post_video(file_url=request.file_url, description=request.description)
            elif isinstance(request, FacebookPhotoPublish):
                endpoint = "photos"
                response = client.post_photo(url=request.url, caption=request.caption)
            elif isinstance(request, FacebookFeedPublish):
                endpoint = "feed"
                response = client.post_feed(message=request.message)
            else:
                raise PublishError(
                    f"unsupported facebook request {type(request).__name__}",
                    kind="validation",
                )
        except FacebookGraphError as exc:
            kind = "network" if exc.transport else "api"
            logger.warning("facebook_publish_failed", kind=kind, error=str(exc))
            raise PublishError(f"facebook api error: {exc}", kind=kind) from exc

        post_id = _extract_post_id(response)
        if post_id is None:
            raise PublishError(f"facebook {endpoint} response carried no id", kind="api")

        logger.info("facebook_post_published", endpoint=endpoint, post_id=post_id)
        return PublishReceipt(
            platform=self.platform,
            external_id=post_id,
            payload={"endpoint": endpoint, "response": response},
        )
