"""Instagram publisher driving the Graph API container protocol.

One attempt walks ``building_containers -> awaiting_processing -> publishing``
and ends in ``done`` or ``failed``. Every failure surfaces as ``PublishError``
tagged with the stage that broke.
"""

from __future__ import annotations

from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
import time
from typing import Any, Callable, Dict, List, Optional

from postrelay.channels.base import PublishReceipt
from postrelay.core.config import Settings, get_settings
from postrelay.core.logger import get_logger
from postrelay.domain.errors import PublishError
from postrelay.domain.posts.requests import (
    InstagramCarouselPublish,
    InstagramSinglePublish,
    MediaItem,
)
from postrelay.domain.posts.states import Platform, PostType
from postrelay.integrations.instagram import (
    InstagramGraphClient,
    InstagramGraphError,
    get_instagram_graph_client,
)


POLL_POLICY_PUBLISH = "publish"
POLL_POLICY_FAIL = "fail"

_FINISHED_STATUS_CODES = {"FINISHED", "PUBLISHED"}
_FAILED_STATUS_CODES = {"ERROR", "EXPIRED"}

logger = get_logger("postrelay.channels.instagram")


class InstagramPublishState(str, Enum):
    BUILDING_CONTAINERS = "building_containers"
    AWAITING_PROCESSING = "awaiting_processing"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class InstagramPublisherConfig:
    poll_max_attempts: int = 10
    poll_interval_seconds: float = 3.0
    poll_exhausted_policy: str = POLL_POLICY_PUBLISH
    carousel_max_workers: int = 4

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "InstagramPublisherConfig":
        settings = settings or get_settings()
        return cls(
            poll_max_attempts=settings.instagram_poll_max_attempts,
            poll_interval_seconds=settings.instagram_poll_interval_seconds,
            poll_exhausted_policy=settings.instagram_poll_exhausted_policy.strip().lower(),
            carousel_max_workers=settings.instagram_carousel_max_workers,
        )


def _response_id(response: Dict[str, Any]) -> str:
    return str(response.get("id") or "").strip()


def _single_container_fields(request: InstagramSinglePublish) -> Dict[str, Any]:
    media = request.media
    fields: Dict[str, Any] = {"caption": request.caption}
    if request.post_type == PostType.REEL:
        fields["media_type"] = "REELS"
        fields["video_url"] = media.url
    elif request.post_type == PostType.STORY:
        fields["media_type"] = "STORIES"
        if media.is_video:
            fields["video_url"] = media.url
        else:
            fields["image_url"] = media.url
    elif media.is_video:
        # Feed videos are published as reels.
        fields["media_type"] = "REELS"
        fields["video_url"] = media.url
    else:
        fields["image_url"] = media.url
    return fields


def _carousel_item_fields(item: MediaItem) -> Dict[str, Any]:
    fields: Dict[str, Any] = {"is_carousel_item": "true"}
    if item.is_video:
        fields["media_type"] = "VIDEO"
        fields["video_url"] = item.url
    else:
        fields["image_url"] = item.url
    return fields


class InstagramPublisher:
    platform = Platform.INSTAGRAM

    def __init__(
        self,
        *,
        graph_client: Optional[InstagramGraphClient] = None,
        config: Optional[InstagramPublisherConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._graph_client = graph_client
        self._config = config or InstagramPublisherConfig.from_settings()
        self._sleep = sleep

    @property
    def config(self) -> InstagramPublisherConfig:
        return self._config

    def _resolve_client(self) -> InstagramGraphClient:
        if self._graph_client is not None:
            return self._graph_client
        return get_instagram_graph_client()

    def publish(self, request: InstagramSinglePublish | InstagramCarouselPublish) -> PublishReceipt:
        client = self._resolve_client()
        state = InstagramPublishState.BUILDING_CONTAINERS
        payload: Dict[str, Any] = {"post_type": request.post_type.value}
        try:
            if isinstance(request, InstagramCarouselPublish):
                children = self._create_carousel_children(client, request)
                payload["children"] = children
                creation_id = self._create_container(
                    client,
                    {
                        "media_type": "CAROUSEL",
                        "children": ",".join(children),
                        "caption": request.caption,
                    },
                    label="carousel parent",
                )
            elif isinstance(request, InstagramSinglePublish):
                creation_id = self._create_container(
                    client,
                    _single_container_fields(request),
                    label=f"{request.post_type.value.lower()} container",
                )
            else:
                raise PublishError(
                    f"unsupported instagram request {type(request).__name__}",
                    kind="validation",
                )
            payload["creation_id"] = creation_id
            logger.info("instagram_container_created", creation_id=creation_id, post_type=request.post_type.value)

            state = InstagramPublishState.AWAITING_PROCESSING
            attempts, finished = self._await_processing(client, creation_id)
            payload["poll_attempts"] = attempts
            payload["poll_exhausted"] = not finished

            state = InstagramPublishState.PUBLISHING
            media_id = self._publish_container(client, creation_id)
        except PublishError as exc:
            logger.warning(
                "instagram_publish_failed",
                state=state.value,
                failed_state=InstagramPublishState.FAILED.value,
                kind=exc.kind,
                error=exc.detail,
            )
            raise

        payload["state"] = InstagramPublishState.DONE.value
        logger.info("instagram_media_published", media_id=media_id, creation_id=creation_id)
        return PublishReceipt(platform=self.platform, external_id=media_id, payload=payload)

    def _create_container(self, client: InstagramGraphClient, fields: Dict[str, Any], *, label: str) -> str:
        try:
            response = client.create_container(**fields)
        except InstagramGraphError as exc:
            raise PublishError(f"{label} creation failed: {exc}", kind="container") from exc
        creation_id = _response_id(response)
        if not creation_id:
            raise PublishError(f"{label} creation returned no id", kind="container")
        return creation_id

    def _create_carousel_children(
        self,
        client: InstagramGraphClient,
        request: InstagramCarouselPublish,
    ) -> List[str]:
        items = list(request.items)
        total = len(items)
        workers = max(1, min(self._config.carousel_max_workers, total))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ig-carousel") as executor:
            futures = [
                executor.submit(
                    self._create_container,
                    client,
                    _carousel_item_fields(item),
                    label=f"carousel item {index}/{total}",
                )
                for index, item in enumerate(items, start=1)
            ]
            _, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in futures:
                error = future.exception() if future.done() else None
                if error is None:
                    continue
                for waiting in pending:
                    waiting.cancel()
                if isinstance(error, PublishError):
                    raise PublishError(f"carousel aborted: {error.detail}", kind="container") from error
                raise PublishError(f"carousel aborted: {error}", kind="container") from error
            # Result order follows submission order, i.e. media_urls order.
            return [future.result() for future in futures]

    def _await_processing(self, client: InstagramGraphClient, creation_id: str) -> tuple[int, bool]:
        max_attempts = max(1, self._config.poll_max_attempts)
        for attempt in range(1, max_attempts + 1):
            try:
                response = client.get_container_status(creation_id)
            except InstagramGraphError as exc:
                raise PublishError(
                    f"container {creation_id} status check failed: {exc}",
                    kind="processing",
                ) from exc

            status_code = str(response.get("status_code") or "").strip().upper()
            if status_code in _FINISHED_STATUS_CODES:
                logger.info("instagram_container_ready", creation_id=creation_id, attempts=attempt)
                return attempt, True
            if status_code in _FAILED_STATUS_CODES:
                status_detail = str(response.get("status") or "").strip() or "no detail"
                raise PublishError(
                    f"container {creation_id} processing failed: status_code={status_code} status={status_detail}",
                    kind="processing",
                )
            logger.debug(
                "instagram_container_pending",
                creation_id=creation_id,
                attempt=attempt,
                status_code=status_code or None,
            )
            if attempt < max_attempts:
                self._sleep(self._config.poll_interval_seconds)

        if self._config.poll_exhausted_policy == POLL_POLICY_FAIL:
            raise PublishError(
                f"container {creation_id} not ready after {max_attempts} status checks",
                kind="processing",
            )
        logger.warning(
            "instagram_poll_exhausted",
            creation_id=creation_id,
            attempts=max_attempts,
            policy=self._config.poll_exhausted_policy,
        )
        return max_attempts, False

    def _publish_container(self, client: InstagramGraphClient, creation_id: str) -> str:
        try:
            response = client.publish_media(creation_id=creation_id)
        except InstagramGraphError as exc:
            raise PublishError(f"media publish failed: {exc}", kind="publish") from exc
        media_id = _response_id(response)
        if not media_id:
            raise PublishError("media publish returned no id", kind="publish")
        return media_id
