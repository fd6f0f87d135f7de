"""
Key-value store abstraction.

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production. Both expose the same narrow command set used
by the repositories: strings with TTLs, sets, sorted sets, atomic increments
and pipelined batches.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Iterable, Mapping, Optional, Protocol, Union

import redis

Ttl = Union[int, float, timedelta, None]


def _seconds(ttl: Ttl) -> Optional[int]:
    if ttl is None:
        return None
    if isinstance(ttl, timedelta):
        ttl = ttl.total_seconds()
    return max(1, int(ttl))


class Pipeline(Protocol):
    """Batched commands; ``execute`` sends them in one round trip."""

    def set(self, key: str, value: str, ttl: Ttl = None) -> "Pipeline":
        ...

    def delete(self, *keys: str) -> "Pipeline":
        ...

    def incr(self, key: str) -> "Pipeline":
        ...

    def expire(self, key: str, ttl: Ttl) -> "Pipeline":
        ...

    def sadd(self, key: str, *members: str) -> "Pipeline":
        ...

    def srem(self, key: str, *members: str) -> "Pipeline":
        ...

    def zadd(self, key: str, mapping: Mapping[str, float]) -> "Pipeline":
        ...

    def zincrby(self, key: str, amount: float, member: str) -> "Pipeline":
        ...

    def zrem(self, key: str, *members: str) -> "Pipeline":
        ...

    def execute(self) -> list:
        ...


class KeyValueStore(Protocol):
    """Operations the repositories need from the key-value store."""

    def ping(self) -> bool:
        ...

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str, ttl: Ttl = None) -> None:
        ...

    def delete(self, *keys: str) -> int:
        ...

    def exists(self, key: str) -> bool:
        ...

    def mget(self, keys: Iterable[str]) -> list[Optional[str]]:
        ...

    def incr(self, key: str) -> int:
        ...

    def expire(self, key: str, ttl: Ttl) -> bool:
        ...

    def ttl(self, key: str) -> int:
        ...

    def sadd(self, key: str, *members: str) -> int:
        ...

    def srem(self, key: str, *members: str) -> int:
        ...

    def smembers(self, key: str) -> set[str]:
        ...

    def scard(self, key: str) -> int:
        ...

    def sismember(self, key: str, member: str) -> bool:
        ...

    def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        ...

    def zincrby(self, key: str, amount: float, member: str) -> float:
        ...

    def zrem(self, key: str, *members: str) -> int:
        ...

    def zrevrange(self, key: str, start: int, stop: int) -> list[str]:
        ...

    def zrange_withscores(
        self, key: str, start: int, stop: int
    ) -> list[tuple[str, float]]:
        ...

    def pipeline(self) -> Pipeline:
        ...


def _queued(name: str):
    def method(self, *args, **kwargs):
        self._commands.append((name, args, kwargs))
        return self

    method.__name__ = name
    return method


class InMemoryPipeline:
    """Buffers commands and applies them to the store on ``execute``."""

    def __init__(self, store: "InMemoryKeyValueStore"):
        self._store = store
        self._commands: list[tuple[str, tuple, dict]] = []

    set = _queued("set")
    delete = _queued("delete")
    incr = _queued("incr")
    expire = _queued("expire")
    sadd = _queued("sadd")
    srem = _queued("srem")
    zadd = _queued("zadd")
    zincrby = _queued("zincrby")
    zrem = _queued("zrem")

    def execute(self) -> list:
        commands, self._commands = self._commands, []
        return [getattr(self._store, name)(*args, **kwargs) for name, args, kwargs in commands]


@dataclass
class InMemoryKeyValueStore:
    """Dict-backed store for testing/dev. TTLs are checked lazily against ``clock``."""

    clock: Callable[[], float] = time.time
    strings: dict[str, str] = field(default_factory=dict)
    sets: dict[str, set[str]] = field(default_factory=dict)
    zsets: dict[str, dict[str, float]] = field(default_factory=dict)
    expires_at: dict[str, float] = field(default_factory=dict)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.strings.clear()
        self.sets.clear()
        self.zsets.clear()
        self.expires_at.clear()

    def _expire_if_due(self, key: str) -> None:
        deadline = self.expires_at.get(key)
        if deadline is not None and deadline <= self.clock():
            self._drop(key)

    def _drop(self, key: str) -> bool:
        self.expires_at.pop(key, None)
        found = False
        for bucket in (self.strings, self.sets, self.zsets):
            if key in bucket:
                del bucket[key]
                found = True
        return found

    def _check_type(self, key: str, bucket: dict) -> None:
        for other in (self.strings, self.sets, self.zsets):
            if other is not bucket and key in other:
                raise redis.exceptions.ResponseError(
                    "WRONGTYPE Operation against a key holding the wrong kind of value"
                )

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> Optional[str]:
        self._expire_if_due(key)
        self._check_type(key, self.strings)
        return self.strings.get(key)

    def set(self, key: str, value: str, ttl: Ttl = None) -> None:
        self._drop(key)
        self.strings[key] = str(value)
        seconds = _seconds(ttl)
        if seconds is not None:
            self.expires_at[key] = self.clock() + seconds

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            self._expire_if_due(key)
            removed += int(self._drop(key))
        return removed

    def exists(self, key: str) -> bool:
        self._expire_if_due(key)
        return key in self.strings or key in self.sets or key in self.zsets

    def mget(self, keys: Iterable[str]) -> list[Optional[str]]:
        results = []
        for key in keys:
            self._expire_if_due(key)
            results.append(self.strings.get(key))
        return results

    def incr(self, key: str) -> int:
        self._expire_if_due(key)
        self._check_type(key, self.strings)
        try:
            value = int(self.strings.get(key, "0")) + 1
        except ValueError:
            raise redis.exceptions.ResponseError(
                "value is not an integer or out of range"
            )
        self.strings[key] = str(value)
        return value

    def expire(self, key: str, ttl: Ttl) -> bool:
        if not self.exists(key):
            return False
        self.expires_at[key] = self.clock() + (_seconds(ttl) or 0)
        return True

    def ttl(self, key: str) -> int:
        if not self.exists(key):
            return -2
        deadline = self.expires_at.get(key)
        if deadline is None:
            return -1
        return max(0, int(round(deadline - self.clock())))

    def sadd(self, key: str, *members: str) -> int:
        self._expire_if_due(key)
        self._check_type(key, self.sets)
        bucket = self.sets.setdefault(key, set())
        before = len(bucket)
        bucket.update(str(m) for m in members)
        if not bucket:
            del self.sets[key]
        return len(bucket) - before

    def srem(self, key: str, *members: str) -> int:
        self._expire_if_due(key)
        bucket = self.sets.get(key)
        if not bucket:
            return 0
        before = len(bucket)
        bucket.difference_update(members)
        if not bucket:
            self._drop(key)
        return before - len(bucket)

    def smembers(self, key: str) -> set[str]:
        self._expire_if_due(key)
        self._check_type(key, self.sets)
        return set(self.sets.get(key, set()))

    def scard(self, key: str) -> int:
        return len(self.smembers(key))

    def sismember(self, key: str, member: str) -> bool:
        return member in self.smembers(key)

    def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        self._expire_if_due(key)
        self._check_type(key, self.zsets)
        bucket = self.zsets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in bucket)
        bucket.update({str(m): float(s) for m, s in mapping.items()})
        if not bucket:
            del self.zsets[key]
        return added

    def zincrby(self, key: str, amount: float, member: str) -> float:
        self._expire_if_due(key)
        self._check_type(key, self.zsets)
        bucket = self.zsets.setdefault(key, {})
        bucket[member] = bucket.get(member, 0.0) + float(amount)
        return bucket[member]

    def zrem(self, key: str, *members: str) -> int:
        self._expire_if_due(key)
        bucket = self.zsets.get(key)
        if not bucket:
            return 0
        removed = 0
        for member in members:
            if bucket.pop(member, None) is not None:
                removed += 1
        if not bucket:
            self._drop(key)
        return removed

    def _ordered(self, key: str, reverse: bool) -> list[tuple[str, float]]:
        self._expire_if_due(key)
        self._check_type(key, self.zsets)
        items = self.zsets.get(key, {}).items()
        return sorted(items, key=lambda item: (item[1], item[0]), reverse=reverse)

    @staticmethod
    def _slice(items: list, start: int, stop: int) -> list:
        size = len(items)
        if start < 0:
            start = max(0, size + start)
        if stop < 0:
            stop = size + stop
        return items[start : stop + 1]

    def zrevrange(self, key: str, start: int, stop: int) -> list[str]:
        return [m for m, _ in self._slice(self._ordered(key, True), start, stop)]

    def zrange_withscores(
        self, key: str, start: int, stop: int
    ) -> list[tuple[str, float]]:
        return self._slice(self._ordered(key, False), start, stop)

    def pipeline(self) -> InMemoryPipeline:
        return InMemoryPipeline(self)


class RedisPipeline:
    """Non-transactional redis pipeline with the store's command names."""

    def __init__(self, client: redis.Redis):
        self._pipe = client.pipeline(transaction=False)

    def set(self, key: str, value: str, ttl: Ttl = None) -> "RedisPipeline":
        self._pipe.set(key, value, ex=_seconds(ttl))
        return self

    def delete(self, *keys: str) -> "RedisPipeline":
        if keys:
            self._pipe.delete(*keys)
        return self

    def incr(self, key: str) -> "RedisPipeline":
        self._pipe.incr(key)
        return self

    def expire(self, key: str, ttl: Ttl) -> "RedisPipeline":
        self._pipe.expire(key, _seconds(ttl))
        return self

    def sadd(self, key: str, *members: str) -> "RedisPipeline":
        if members:
            self._pipe.sadd(key, *members)
        return self

    def srem(self, key: str, *members: str) -> "RedisPipeline":
        if members:
            self._pipe.srem(key, *members)
        return self

    def zadd(self, key: str, mapping: Mapping[str, float]) -> "RedisPipeline":
        if mapping:
            self._pipe.zadd(key, dict(mapping))
        return self

    def zincrby(self, key: str, amount: float, member: str) -> "RedisPipeline":
        self._pipe.zincrby(key, amount, member)
        return self

    def zrem(self, key: str, *members: str) -> "RedisPipeline":
        if members:
            self._pipe.zrem(key, *members)
        return self

    def execute(self) -> list:
        return self._pipe.execute()


@dataclass
class RedisKeyValueStore:
    """Redis-backed store; responses are decoded to ``str``."""

    url: Optional[str] = None
    host: str = "localhost"
    port: int = 6379
    password: Optional[str] = None
    db: int = 0

    def __post_init__(self):
        if self.url:
            self.client = redis.Redis.from_url(self.url, decode_responses=True)
        else:
            self.client = redis.Redis(
                host=self.host,
                port=self.port,
                password=self.password or None,
                db=self.db,
                decode_responses=True,
            )

    def ping(self) -> bool:
        return bool(self.client.ping())

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def set(self, key: str, value: str, ttl: Ttl = None) -> None:
        self.client.set(key, value, ex=_seconds(ttl))

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return self.client.delete(*keys)

    def exists(self, key: str) -> bool:
        return bool(self.client.exists(key))

    def mget(self, keys: Iterable[str]) -> list[Optional[str]]:
        keys = list(keys)
        if not keys:
            return []
        return self.client.mget(keys)

    def incr(self, key: str) -> int:
        return self.client.incr(key)

    def expire(self, key: str, ttl: Ttl) -> bool:
        return bool(self.client.expire(key, _seconds(ttl)))

    def ttl(self, key: str) -> int:
        return self.client.ttl(key)

    def sadd(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return self.client.sadd(key, *members)

    def srem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return self.client.srem(key, *members)

    def smembers(self, key: str) -> set[str]:
        return set(self.client.smembers(key))

    def scard(self, key: str) -> int:
        return self.client.scard(key)

    def sismember(self, key: str, member: str) -> bool:
        return bool(self.client.sismember(key, member))

    def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        if not mapping:
            return 0
        return self.client.zadd(key, dict(mapping))

    def zincrby(self, key: str, amount: float, member: str) -> float:
        return float(self.client.zincrby(key, amount, member))

    def zrem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return self.client.zrem(key, *members)

    def zrevrange(self, key: str, start: int, stop: int) -> list[str]:
        return self.client.zrevrange(key, start, stop)

    def zrange_withscores(
        self, key: str, start: int, stop: int
    ) -> list[tuple[str, float]]:
        return [
            (member, float(score))
            for member, score in self.client.zrange(key, start, stop, withscores=True)
        ]

    def pipeline(self) -> RedisPipeline:
        return RedisPipeline(self.client)

    def close(self) -> None:
        self.client.close()
