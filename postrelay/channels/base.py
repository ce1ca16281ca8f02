"""Shared platform publisher contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Protocol

from postrelay.domain.posts.requests import PublishRequest
from postrelay.domain.posts.states import Platform


@dataclass(frozen=True)
class PublishReceipt:
    platform: Platform
    external_id: str
    payload: Dict[str, Any] = field(default_factory=dict)


class PlatformPublisher(Protocol):
    platform: Platform

    def publish(self, request: PublishRequest) -> PublishReceipt:
        """Publish one request; raise ``PublishError`` on any failure."""
        raise NotImplementedError
