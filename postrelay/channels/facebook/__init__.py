"""Facebook Page publisher."""

from postrelay.channels.facebook.publisher import FacebookPublisher

__all__ = ["FacebookPublisher"]
