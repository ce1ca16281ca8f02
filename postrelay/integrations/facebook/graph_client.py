"""Facebook Page Graph API client (feed, photo and video posts)."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Optional

import httpx

from postrelay.core.config import get_settings
from postrelay.integrations.graph import GraphAPIError, GraphHTTPClient


class FacebookGraphError(GraphAPIError):
    """Raised when Facebook Graph API operations fail."""


class FacebookGraphClient(GraphHTTPClient):
    error_class = FacebookGraphError
    error_prefix = "facebook_graph"

    def __init__(
        self,
        *,
        access_token: str,
        page_id: str,
        base_url: str = "https://graph.facebook.com/v20.0",
        timeout_seconds: int = 20,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(
            access_token=access_token,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            client=client,
        )
        self._page_id = page_id.strip()

    def _assert_ready(self) -> None:
        if not self._access_token:
            raise FacebookGraphError("facebook_access_token_missing")
        if not self._page_id:
            raise FacebookGraphError("facebook_page_id_missing")

    def _page_post(self, edge: str, params: Dict[str, Any]) -> Dict[str, Any]:
        self._assert_ready()
        return self._post(f"{self._page_id}/{edge}", params)

    def post_feed(self, *, message: str) -> Dict[str, Any]:
        return self._page_post("feed", {"message": message or None})

    def post_photo(self, *, url: str, caption: str = "") -> Dict[str, Any]:
        return self._page_post("photos", {"url": url, "caption": caption or None})

    def post_video(self, *, file_url: str, description: str = "") -> Dict[str, Any]:
        return self._page_post("videos", {"file_url": file_url, "description": description or None})


@lru_cache(maxsize=1)
def get_facebook_graph_client() -> FacebookGraphClient:
    settings = get_settings()
    return FacebookGraphClient(
        access_token=settings.facebook_page_access_token,
        page_id=settings.facebook_page_id,
        base_url=settings.facebook_graph_api_base_url,
        timeout_seconds=settings.facebook_graph_api_timeout_seconds,
    )
