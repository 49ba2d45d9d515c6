"""Short-lived store for Slack OAuth ``state`` values.

``state`` -> the Slack user id that started the link flow. Memory backend for a
single process, Redis backend when several workers serve the callback.
"""
from __future__ import annotations
from typing import Protocol, Optional, Dict, Any, List, Callable
import time


class StateStore(Protocol):
    def put(self, state: str, value: str, created_at: float) -> None: ...
    def pop(self, state: str) -> Optional[Dict[str, Any]]: ...
    def prune(self) -> None: ...
    def size(self) -> int: ...


class MemoryStateStore:
    def __init__(self, ttl_seconds: float = 600, max_entries: int = 50, time_provider: Optional[Callable[[], float]] = None):
        self._data: Dict[str, Dict[str, Any]] = {}
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.time_provider = time_provider or time.time

    def put(self, state: str, value: str, created_at: float) -> None:
        self._data[state] = {"value": value, "created_at": created_at}
        self.prune()

    def pop(self, state: str) -> Optional[Dict[str, Any]]:
        self.prune()
        return self._data.pop(state, None)

    def prune(self) -> None:
        now_ts = self.time_provider()
        expired = [k for k, v in self._data.items() if now_ts - v["created_at"] > self.ttl_seconds]
        for k in expired:
            self._data.pop(k, None)
        # Enforce cap, oldest first
        while len(self._data) > self.max_entries:
            oldest_key = min(self._data.items(), key=lambda kv: kv[1]["created_at"])[0]
            self._data.pop(oldest_key, None)

    def size(self) -> int:
        return len(self._data)

    def clear(self) -> None:
        self._data.clear()


class RedisStateStore:
    """Redis-backed implementation.

    Key layout:
      effort:slack:state:<state> -> value (TTL applied)
      effort:slack:states (sorted set) -> member=state, score=created_at
    """
    STATE_KEY_PREFIX = "effort:slack:state:"
    STATE_INDEX_KEY = "effort:slack:states"

    def __init__(self, redis_client, ttl_seconds: int = 600, max_entries: int = 50):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries

    def put(self, state: str, value: str, created_at: float) -> None:
        pipe = self.redis.pipeline()
        pipe.set(self.STATE_KEY_PREFIX + state, value, ex=int(self.ttl_seconds))
        pipe.zadd(self.STATE_INDEX_KEY, {state: created_at})
        pipe.execute()
        self.prune()

    def pop(self, state: str) -> Optional[Dict[str, Any]]:
        key = self.STATE_KEY_PREFIX + state
        pipe = self.redis.pipeline()
        pipe.get(key)
        pipe.delete(key)
        pipe.zrem(self.STATE_INDEX_KEY, state)
        val, *_ = pipe.execute()
        if val is None:
            return None
        return {"value": val.decode() if isinstance(val, bytes) else val, "created_at": time.time()}

    def prune(self) -> None:
        size = self.redis.zcard(self.STATE_INDEX_KEY)
        if size and size > self.max_entries:
            surplus = size - self.max_entries
            oldest: List[bytes] = self.redis.zrange(self.STATE_INDEX_KEY, 0, surplus - 1) or []
            if oldest:
                pipe = self.redis.pipeline()
                for member in oldest:
                    state = member.decode() if isinstance(member, bytes) else member
                    pipe.delete(self.STATE_KEY_PREFIX + state)
                    pipe.zrem(self.STATE_INDEX_KEY, state)
                pipe.execute()
        # index members whose key already expired
        members: List[bytes] = self.redis.zrange(self.STATE_INDEX_KEY, 0, -1) or []
        dangling = []
        for m in members:
            state = m.decode() if isinstance(m, bytes) else m
            if not self.redis.exists(self.STATE_KEY_PREFIX + state):
                dangling.append(state)
        if dangling:
            self.redis.zrem(self.STATE_INDEX_KEY, *dangling)

    def size(self) -> int:
        return int(self.redis.zcard(self.STATE_INDEX_KEY) or 0)


def build_state_store(backend: str, redis_url: str, ttl_seconds: int = 600, max_entries: int = 50) -> StateStore:
    if backend == "redis":
        import redis

        return RedisStateStore(redis.from_url(redis_url), ttl_seconds, max_entries)
    return MemoryStateStore(ttl_seconds, max_entries)
