"""Platform publishers and their shared contracts."""

from postrelay.channels.base import PlatformPublisher, PublishReceipt

__all__ = ["PlatformPublisher", "PublishReceipt"]
