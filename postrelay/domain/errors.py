"""Error taxonomy for the publication pipeline."""

from __future__ import annotations


class PublishError(RuntimeError):
    """A single post could not be published.

    ``kind`` is a short machine tag (``validation``, ``container``,
    ``processing``, ``publish``, ``api``, ``network``); ``detail`` is the
    human-readable message stored on the post as ``error_message``.
    """

    kind = "publish"

    def __init__(self, detail: str, *, kind: str | None = None) -> None:
        self.detail = detail.strip() or "unknown_publish_error"
        if kind is not None:
            self.kind = kind
        super().__init__(self.detail)

    def __str__(self) -> str:
        return f"[{self.kind}] {self.detail}"


class MediaValidationError(PublishError):
    """Pre-flight rejection raised before any network call."""

    kind = "validation"


class ScanError(RuntimeError):
    """The due-post query failed; nothing in the sweep was processed."""


class PostValidationError(ValueError):
    """A post submission violates creation rules (caption size, media count, ...)."""
