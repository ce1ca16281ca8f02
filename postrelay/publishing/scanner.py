"""Due-post scanner: which scheduled posts should be published now."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from postrelay.core.logger import get_logger
from postrelay.domain.errors import ScanError
from postrelay.publishing.store import as_utc, query_due_posts
from postrelay.storage.models import ScheduledPost


logger = get_logger("postrelay.publishing.scanner")


def list_due_posts(session: Session, *, now: datetime, limit: Optional[int] = None) -> List[ScheduledPost]:
    """Return scheduled posts with ``scheduled_at <= now``, oldest first.

    Read-only: calling it twice without an intervening status change returns
    the same rows. Store failures become ``ScanError``.
    """

    cutoff = as_utc(now)
    try:
        posts = query_due_posts(session, now=cutoff, limit=limit)
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("due_post_scan_failed", cutoff=cutoff.isoformat(), error=str(exc))
        raise ScanError(f"due_post_query_failed: {exc}") from exc

    logger.info("due_post_scan_completed", cutoff=cutoff.isoformat(), count=len(posts))
    return posts
