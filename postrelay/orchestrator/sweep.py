"""One due-post sweep: sweep lock, scan, per-post publish, run report."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from postrelay.core.logger import bind_sweep_context, get_logger, unbind_sweep_context
from postrelay.core.metrics import record_sweep_run
from postrelay.core.observability import capture_exception, sentry_scope
from postrelay.domain.errors import ScanError
from postrelay.orchestrator.locks import PublishLockManager
from postrelay.publishing.journal import SweepJournal
from postrelay.publishing.service import OUTCOME_FAILED, OUTCOME_PUBLISHED, OUTCOME_SKIPPED, PostOutcome, PublishOrchestrator


SWEEP_COMPLETED = "completed"
SWEEP_SKIPPED_LOCKED = "skipped_locked"
SWEEP_FAILED = "failed"

logger = get_logger("postrelay.orchestrator.sweep")


@dataclass(frozen=True)
class SweepReport:
    sweep_id: str
    status: str
    results: List[PostOutcome] = field(default_factory=list)
    logs: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == SWEEP_FAILED

    def count(self, outcome_status: str) -> int:
        return sum(1 for outcome in self.results if outcome.status == outcome_status)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "sweep_id": self.sweep_id,
            "status": self.status,
            "results": [outcome.to_result() for outcome in self.results],
            "logs": list(self.logs),
        }
        if self.error:
            payload["error"] = self.error
        return payload


class DuePostSweeper:
    """Run the orchestrator under a sweep-wide lock so overlapping triggers do not race."""

    def __init__(
        self,
        *,
        orchestrator: PublishOrchestrator,
        lock_manager: Optional[PublishLockManager] = None,
        max_posts_per_run: Optional[int] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._lock_manager = lock_manager
        self._max_posts_per_run = max_posts_per_run

    def run_once(self, *, now: Optional[datetime] = None) -> SweepReport:
        sweep_id = str(uuid.uuid4())
        journal = SweepJournal()
        bind_sweep_context(sweep_id)
        try:
            return self._run(sweep_id, journal, now)
        finally:
            unbind_sweep_context()

    def _run(self, sweep_id: str, journal: SweepJournal, now: Optional[datetime]) -> SweepReport:
        lock = None
        if self._lock_manager is not None:
            try:
                lock = self._lock_manager.acquire_sweep()
            except RedisError as exc:
                capture_exception(exc)
                journal.error("sweep_lock_unavailable", f"Cron Job Failed: lock store unavailable ({exc})", error=str(exc))
                return self._finish(sweep_id, SWEEP_FAILED, journal, error="sweep_lock_unavailable")
            if lock is None:
                journal.warning("sweep_skipped_locked", "Another sweep is already running; skipping this run.")
                return self._finish(sweep_id, SWEEP_SKIPPED_LOCKED, journal)

        try:
            with sentry_scope(sweep_id=sweep_id):
                results = self._orchestrator.process_due_posts(
                    now=now,
                    limit=self._max_posts_per_run,
                    journal=journal,
                )
        except ScanError as exc:
            capture_exception(exc)
            journal.error("sweep_failed", f"Cron Job Failed: {exc}", error=str(exc))
            return self._finish(sweep_id, SWEEP_FAILED, journal, error=str(exc))
        except SQLAlchemyError as exc:
            capture_exception(exc)
            journal.error("sweep_store_failed", f"Cron Job Failed: store unavailable ({exc})", error=str(exc))
            return self._finish(sweep_id, SWEEP_FAILED, journal, error=f"store_unavailable: {exc}")
        finally:
            if lock is not None:
                try:
                    lock.release()
                except RedisError as exc:
                    logger.warning("sweep_lock_release_failed", error=str(exc))

        return self._finish(sweep_id, SWEEP_COMPLETED, journal, results=results)

    @staticmethod
    def _finish(
        sweep_id: str,
        status: str,
        journal: SweepJournal,
        *,
        results: Optional[List[PostOutcome]] = None,
        error: Optional[str] = None,
    ) -> SweepReport:
        report = SweepReport(
            sweep_id=sweep_id,
            status=status,
            results=list(results or []),
            logs=list(journal.lines),
            error=error,
        )
        record_sweep_run(status=status)
        logger.info(
            "sweep_finished",
            status=status,
            published=report.count(OUTCOME_PUBLISHED),
            failed=report.count(OUTCOME_FAILED),
            skipped=report.count(OUTCOME_SKIPPED),
        )
        return report
