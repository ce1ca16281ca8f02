"""Sweep orchestration: Redis locks, the due-post sweeper, and its CLI."""

from postrelay.orchestrator.locks import LockHandle, PublishLockManager

__all__ = [
    "LockHandle",
    "PublishLockManager",
]
