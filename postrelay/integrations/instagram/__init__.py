"""Instagram Graph API integrations."""

from postrelay.integrations.instagram.graph_client import (
    InstagramGraphClient,
    InstagramGraphError,
    get_instagram_graph_client,
)

__all__ = [
    "InstagramGraphClient",
    "InstagramGraphError",
    "get_instagram_graph_client",
]
