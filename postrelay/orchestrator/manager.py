"""CLI entrypoint to run one due-post sweep."""

from __future__ import annotations

import argparse
import json
import sys

from postrelay.core.config import get_settings
from postrelay.orchestrator.locks import PublishLockManager
from postrelay.orchestrator.sweep import DuePostSweeper, SweepReport
from postrelay.publishing.service import PublishOrchestrator
from postrelay.storage.db import get_session_factory, load_models
from postrelay.storage.redis_client import get_client as get_redis_client


def build_lock_manager() -> PublishLockManager:
    settings = get_settings()
    return PublishLockManager(get_redis_client(), ttl_seconds=settings.sweep_lock_ttl_seconds)


def build_orchestrator(*, lock_manager: PublishLockManager | None = None) -> PublishOrchestrator:
    load_models()
    return PublishOrchestrator(
        session_factory=get_session_factory(),
        lock_manager=lock_manager or build_lock_manager(),
    )


def build_sweeper(*, limit: int | None = None) -> DuePostSweeper:
    settings = get_settings()
    lock_manager = build_lock_manager()
    return DuePostSweeper(
        orchestrator=build_orchestrator(lock_manager=lock_manager),
        lock_manager=lock_manager,
        max_posts_per_run=limit or settings.sweep_max_posts_per_run,
    )


def run_due_post_sweep(*, limit: int | None = None) -> SweepReport:
    return build_sweeper(limit=limit).run_once()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Publish every scheduled post that is due.")
    parser.add_argument("--limit", type=int, default=None, help="Max due posts to process in this run.")
    args = parser.parse_args(argv)

    report = run_due_post_sweep(limit=args.limit)
    print(json.dumps(report.to_payload(), ensure_ascii=True, separators=(",", ":"), sort_keys=True))
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
