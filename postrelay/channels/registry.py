"""Publisher lookup by platform."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from postrelay.channels.base import PlatformPublisher
from postrelay.channels.facebook.publisher import FacebookPublisher
from postrelay.channels.instagram.publisher import InstagramPublisher
from postrelay.domain.posts.states import Platform


PublisherRegistry = Mapping[Platform, PlatformPublisher]


def build_default_publishers() -> Dict[Platform, PlatformPublisher]:
    return {
        Platform.INSTAGRAM: InstagramPublisher(),
        Platform.FACEBOOK: FacebookPublisher(),
    }


def select_publisher(registry: PublisherRegistry, platform: Platform) -> Optional[PlatformPublisher]:
    return registry.get(platform)
