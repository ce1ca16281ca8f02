"""Instagram Graph API client for container-based publishing."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Optional

import httpx

from postrelay.core.config import get_settings
from postrelay.integrations.graph import GraphAPIError, GraphHTTPClient


class InstagramGraphError(GraphAPIError):
    """Raised when Instagram Graph API operations fail."""


class InstagramGraphClient(GraphHTTPClient):
    error_class = InstagramGraphError
    error_prefix = "instagram_graph"

    def __init__(
        self,
        *,
        access_token: str,
        account_id: str,
        base_url: str = "https://graph.instagram.com/v24.0",
        timeout_seconds: int = 20,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(
            access_token=access_token,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            client=client,
        )
        self._account_id = account_id.strip()

    def _assert_ready(self) -> None:
        if not self._access_token:
            raise InstagramGraphError("instagram_access_token_missing")
        if not self._account_id:
            raise InstagramGraphError("instagram_account_id_missing")

    def create_container(self, **fields: Any) -> Dict[str, Any]:
        """Create a media container; ``fields`` are the Graph ``/media`` parameters."""

        self._assert_ready()
        return self._post(f"{self._account_id}/media", dict(fields))

    def get_container_status(self, container_id: str) -> Dict[str, Any]:
        self._assert_ready()
        if not container_id.strip():
            raise InstagramGraphError("instagram_container_id_missing")
        return self._get(container_id.strip(), {"fields": "status_code,status"})

    def publish_media(self, *, creation_id: str) -> Dict[str, Any]:
        self._assert_ready()
        if not creation_id.strip():
            raise InstagramGraphError("instagram_creation_id_missing")
        return self._post(
            f"{self._account_id}/media_publish",
            {"creation_id": creation_id.strip()},
        )


@lru_cache(maxsize=1)
def get_instagram_graph_client() -> InstagramGraphClient:
    settings = get_settings()
    return InstagramGraphClient(
        access_token=settings.instagram_graph_access_token,
        account_id=settings.instagram_graph_account_id,
        base_url=settings.instagram_graph_api_base_url,
        timeout_seconds=settings.instagram_graph_api_timeout_seconds,
    )
