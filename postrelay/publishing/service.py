"""Publish orchestrator: dispatch due posts to platform publishers and record outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from postrelay.channels.base import PublishReceipt
from postrelay.channels.registry import PublisherRegistry, build_default_publishers, select_publisher
from postrelay.core.metrics import record_post_outcome, record_publish_error
from postrelay.core.observability import capture_exception
from postrelay.domain.errors import PublishError, ScanError
from postrelay.domain.posts.requests import PublishDraft, build_publish_request
from postrelay.domain.posts.states import Platform, PostStatus, PostType
from postrelay.orchestrator.locks import PublishLockManager
from postrelay.publishing.journal import SweepJournal
from postrelay.publishing.scanner import list_due_posts
from postrelay.publishing.store import as_utc, query_posts_by_ids, update_post_status
from postrelay.storage.models import ScheduledPost


OUTCOME_PUBLISHED = "published"
OUTCOME_FAILED = "failed"
OUTCOME_SKIPPED = "skipped"

SKIP_UNSUPPORTED_PLATFORM = "unsupported_platform"
SKIP_ALREADY_PROCESSED = "already_processed"
SKIP_CLAIMED_ELSEWHERE = "claimed_elsewhere"
SKIP_CLAIM_UNAVAILABLE = "claim_unavailable"
SKIP_STORE_UNAVAILABLE = "store_unavailable"


@dataclass(frozen=True)
class PostOutcome:
    id: str
    platform: str
    status: str
    platform_post_id: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    reason: Optional[str] = None

    @property
    def published(self) -> bool:
        return self.status == OUTCOME_PUBLISHED

    def to_result(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"id": self.id, "platform": self.platform, "status": self.status}
        if self.platform_post_id:
            result["platform_post_id"] = self.platform_post_id
        if self.error:
            result["error"] = self.error
        if self.reason:
            result["reason"] = self.reason
        return result


def draft_from_post(post: ScheduledPost) -> PublishDraft:
    return PublishDraft(
        caption=post.caption or "",
        post_type=post.post_type,
        media_url=post.media_url,
        media_urls=tuple(post.media_urls),
    )


@dataclass(frozen=True)
class DuePost:
    """Plain copy of a post row; stays readable after a rollback expires the ORM instance."""

    id: str
    platform: Platform
    post_type: PostType
    status: PostStatus
    draft: PublishDraft

    @classmethod
    def from_row(cls, post: ScheduledPost) -> "DuePost":
        return cls(
            id=post.id,
            platform=post.platform,
            post_type=post.post_type,
            status=post.status,
            draft=draft_from_post(post),
        )


class PublishOrchestrator:
    """Run the per-post publish protocol; one post's failure never stops the batch."""

    def __init__(
        self,
        *,
        session_factory: sessionmaker,
        publishers: Optional[PublisherRegistry] = None,
        lock_manager: Optional[PublishLockManager] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._session_factory = session_factory
        self._publishers = publishers if publishers is not None else build_default_publishers()
        self._lock_manager = lock_manager
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def process_due_posts(
        self,
        *,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
        journal: Optional[SweepJournal] = None,
    ) -> List[PostOutcome]:
        """Publish every due post. Raises ``ScanError`` only when the scan itself fails."""

        journal = journal or SweepJournal()
        cutoff = as_utc(now or self._clock())
        with self._session_factory() as session:
            journal.info(
                "sweep_scan_started",
                f"Checking for posts due before {cutoff.isoformat()}...",
                cutoff=cutoff.isoformat(),
            )
            posts = list_due_posts(session, now=cutoff, limit=limit)
            journal.info("sweep_scan_completed", f"Found {len(posts)} posts due.", count=len(posts))
            return self._process_batch(session, posts, journal)

    def publish_now(self, post_ids: Iterable[str], *, journal: Optional[SweepJournal] = None) -> List[PostOutcome]:
        """Publish exactly the given posts, ignoring their scheduled time."""

        journal = journal or SweepJournal("postrelay.publishing.publish_now")
        with self._session_factory() as session:
            try:
                posts = query_posts_by_ids(session, post_ids)
            except SQLAlchemyError as exc:
                session.rollback()
                journal.error("publish_now_load_failed", f"Could not load posts: {exc}", error=str(exc))
                raise ScanError(f"publish_now_query_failed: {exc}") from exc
            return self._process_batch(session, posts, journal)

    def _process_batch(self, session: Session, posts: List[ScheduledPost], journal: SweepJournal) -> List[PostOutcome]:
        # Copy every row up front: a failed write rolls back and expires all loaded instances.
        batch = [(post, DuePost.from_row(post)) for post in posts]
        return [self._process_with_claim(session, post, due, journal) for post, due in batch]

    def _process_with_claim(
        self,
        session: Session,
        post: ScheduledPost,
        due: DuePost,
        journal: SweepJournal,
    ) -> PostOutcome:
        if self._lock_manager is None:
            return self._process_if_scheduled(session, due, journal)

        try:
            claim = self._lock_manager.claim_post(due.id)
        except RedisError as exc:
            journal.warning(
                "post_claim_unavailable",
                f"Skipping post {due.id}: claim store unavailable ({exc}).",
                post_id=due.id,
                error=str(exc),
            )
            return self._skipped(due, SKIP_CLAIM_UNAVAILABLE)

        if claim is None:
            journal.info(
                "post_claimed_elsewhere",
                f"Skipping post {due.id}: already being processed.",
                post_id=due.id,
            )
            return self._skipped(due, SKIP_CLAIMED_ELSEWHERE)

        try:
            try:
                session.refresh(post)
                current = DuePost.from_row(post)
            except SQLAlchemyError as exc:
                session.rollback()
                capture_exception(exc)
                journal.error(
                    "post_reload_failed",
                    f"Skipping post {due.id}: could not reload it ({exc}).",
                    post_id=due.id,
                    error=str(exc),
                )
                return self._skipped(due, SKIP_STORE_UNAVAILABLE)
            return self._process_if_scheduled(session, current, journal)
        finally:
            try:
                claim.release()
            except RedisError as exc:
                journal.warning(
                    "post_claim_release_failed",
                    f"Could not release claim for post {due.id} ({exc}).",
                    post_id=due.id,
                    error=str(exc),
                )

    def _process_if_scheduled(self, session: Session, due: DuePost, journal: SweepJournal) -> PostOutcome:
        if due.status != PostStatus.SCHEDULED:
            journal.info(
                "post_already_processed",
                f"Skipping post {due.id}: status is already {due.status.value}.",
                post_id=due.id,
                status=due.status.value,
            )
            return self._skipped(due, SKIP_ALREADY_PROCESSED)
        return self.process_post(session, due, journal)

    def process_post(self, session: Session, due: DuePost, journal: SweepJournal) -> PostOutcome:
        platform = due.platform
        publisher = select_publisher(self._publishers, platform)
        if publisher is None:
            journal.info(
                "post_skipped_unsupported_platform",
                f"Skipping post {due.id}: no publisher for platform {platform.value}.",
                post_id=due.id,
                platform=platform.value,
            )
            record_post_outcome(platform=platform.value, status=OUTCOME_SKIPPED)
            return self._skipped(due, SKIP_UNSUPPORTED_PLATFORM)

        journal.info(
            "post_publish_started",
            f"Processing post {due.id} ({platform.value} {due.post_type.value})...",
            post_id=due.id,
            platform=platform.value,
            post_type=due.post_type.value,
        )
        try:
            request = build_publish_request(platform, due.draft)
            receipt = publisher.publish(request)
        except PublishError as exc:
            return self._record_failure(session, due, exc, journal)
        except Exception as exc:
            capture_exception(exc)
            wrapped = PublishError(f"unexpected error: {exc}", kind="internal")
            return self._record_failure(session, due, wrapped, journal)
        return self._record_success(session, due, receipt, journal)

    def _record_success(
        self,
        session: Session,
        due: DuePost,
        receipt: PublishReceipt,
        journal: SweepJournal,
    ) -> PostOutcome:
        journal.info(
            "post_published",
            f"Post {due.id} published successfully! Platform ID: {receipt.external_id}",
            post_id=due.id,
            platform=due.platform.value,
            platform_post_id=receipt.external_id,
        )
        self._write_status(
            session,
            due,
            journal,
            status=PostStatus.PUBLISHED,
            platform_id=receipt.external_id,
        )
        record_post_outcome(platform=due.platform.value, status=OUTCOME_PUBLISHED)
        return PostOutcome(
            id=due.id,
            platform=due.platform.value,
            status=OUTCOME_PUBLISHED,
            platform_post_id=receipt.external_id,
        )

    def _record_failure(
        self,
        session: Session,
        due: DuePost,
        error: PublishError,
        journal: SweepJournal,
    ) -> PostOutcome:
        message = str(error)
        journal.error(
            "post_publish_failed",
            f"Failed to process post {due.id}: {message}",
            post_id=due.id,
            platform=due.platform.value,
            kind=error.kind,
            error=error.detail,
        )
        self._write_status(session, due, journal, status=PostStatus.FAILED, error_message=message)
        record_post_outcome(platform=due.platform.value, status=OUTCOME_FAILED)
        record_publish_error(platform=due.platform.value, kind=error.kind)
        return PostOutcome(
            id=due.id,
            platform=due.platform.value,
            status=OUTCOME_FAILED,
            error=message,
            error_kind=error.kind,
        )

    def _write_status(
        self,
        session: Session,
        due: DuePost,
        journal: SweepJournal,
        *,
        status: PostStatus,
        error_message: Optional[str] = None,
        platform_id: Optional[str] = None,
    ) -> None:
        try:
            updated = update_post_status(
                session,
                post_id=due.id,
                platform=due.platform,
                status=status,
                error_message=error_message,
                platform_id=platform_id,
                now=self._clock(),
            )
        except SQLAlchemyError as exc:
            session.rollback()
            capture_exception(exc)
            journal.error(
                "post_status_write_failed",
                f"Failed to update status {status.value} for post {due.id}: {exc}",
                post_id=due.id,
                status=status.value,
                error=str(exc),
            )
            return

        if not updated:
            journal.warning(
                "post_status_write_skipped",
                f"Post {due.id} was no longer scheduled; status {status.value} not written.",
                post_id=due.id,
                status=status.value,
            )

    @staticmethod
    def _skipped(due: DuePost, reason: str) -> PostOutcome:
        return PostOutcome(
            id=due.id,
            platform=due.platform.value,
            status=OUTCOME_SKIPPED,
            reason=reason,
        )
