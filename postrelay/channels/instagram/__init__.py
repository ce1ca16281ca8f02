"""Instagram container-protocol publisher."""

from postrelay.channels.instagram.publisher import (
    InstagramPublisher,
    InstagramPublisherConfig,
    InstagramPublishState,
)

__all__ = ["InstagramPublishState", "InstagramPublisher", "InstagramPublisherConfig"]
