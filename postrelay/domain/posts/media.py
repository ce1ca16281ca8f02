"""Media URL normalization and reachability rules shared by publishers."""

from __future__ import annotations

import ipaddress
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from postrelay.domain.errors import MediaValidationError


INSTAGRAM_VIDEO_EXTENSIONS = (".mp4", ".mov")
FACEBOOK_VIDEO_EXTENSIONS = (".mp4", ".mov", ".webm")

_LOCAL_HOSTNAMES = {"localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback"}


def normalize_media_urls(media_url: Optional[str], media_urls: Optional[Iterable[str]]) -> List[str]:
    """Return ``media_urls`` when non-empty, otherwise ``[media_url]`` (or ``[]``)."""

    urls = [str(url).strip() for url in (media_urls or []) if str(url or "").strip()]
    if urls:
        return urls
    single = str(media_url or "").strip()
    return [single] if single else []


def is_video_url(url: str, extensions: Sequence[str]) -> bool:
    path = urlparse(url).path.lower()
    return path.endswith(tuple(extensions))


def _host_is_private(host: str) -> bool:
    normalized = host.strip().lower().rstrip(".")
    if not normalized:
        return True
    if normalized in _LOCAL_HOSTNAMES or normalized.endswith(".localhost") or normalized.endswith(".local"):
        return True
    try:
        address = ipaddress.ip_address(normalized)
    except ValueError:
        return False
    return (
        address.is_loopback
        or address.is_private
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
    )


def non_public_reason(url: str) -> Optional[str]:
    """Explain why Meta's servers could not fetch ``url``; ``None`` when it looks public."""

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme not in {"http", "https"}:
        return f"unsupported scheme '{scheme or 'none'}'"
    host = parsed.hostname or ""
    if _host_is_private(host):
        return f"host '{host or 'none'}' is not reachable from the internet"
    return None


def assert_public_media_urls(urls: Sequence[str]) -> None:
    for url in urls:
        reason = non_public_reason(url)
        if reason is not None:
            raise MediaValidationError(
                f"media url must be publicly reachable ({reason}): {url}"
            )
