"""Human-readable run journal mirrored into structured logs."""

from __future__ import annotations

from typing import Any, List

from postrelay.core.logger import get_logger


class SweepJournal:
    """Collects the ``logs`` lines returned to sweep callers."""

    def __init__(self, logger_name: str = "postrelay.publishing.sweep") -> None:
        self._logger = get_logger(logger_name)
        self.lines: List[str] = []

    def info(self, event: str, message: str, **fields: Any) -> None:
        self._logger.info(event, **fields)
        self.lines.append(message)

    def warning(self, event: str, message: str, **fields: Any) -> None:
        self._logger.warning(event, **fields)
        self.lines.append(f"WARNING: {message}")

    def error(self, event: str, message: str, **fields: Any) -> None:
        self._logger.error(event, **fields)
        self.lines.append(f"ERROR: {message}")
