"""Redis-based locks: one for the whole sweep, one claim per post."""

from __future__ import annotations

from dataclasses import dataclass
import uuid

from redis import Redis


SWEEP_LOCK_KEY = "postrelay:sweep:lock"
POST_CLAIM_KEY_TEMPLATE = "postrelay:post:{post_id}:claim"
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
  return redis.call("del", KEYS[1])
end
return 0
"""


def post_claim_key(post_id: str) -> str:
    return POST_CLAIM_KEY_TEMPLATE.format(post_id=post_id)


@dataclass(frozen=True)
class LockHandle:
    manager: "PublishLockManager"
    key: str
    token: str

    def release(self) -> bool:
        return self.manager.release(self.key, self.token)


class PublishLockManager:
    """Acquire and release short-lived locks using Redis SET NX EX."""

    def __init__(self, redis_client: Redis, *, ttl_seconds: int = 300) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def acquire(self, key: str) -> LockHandle | None:
        token = str(uuid.uuid4())
        acquired = self._redis.set(key, token, nx=True, ex=self._ttl_seconds)
        if not acquired:
            return None
        return LockHandle(manager=self, key=key, token=token)

    def acquire_sweep(self) -> LockHandle | None:
        return self.acquire(SWEEP_LOCK_KEY)

    def claim_post(self, post_id: str) -> LockHandle | None:
        return self.acquire(post_claim_key(post_id))

    def release(self, key: str, token: str) -> bool:
        released = self._redis.eval(RELEASE_LOCK_SCRIPT, 1, key, token)
        return int(released) == 1
