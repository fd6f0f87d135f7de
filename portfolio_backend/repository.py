"""
Shared plumbing for the store-backed repositories: JSON encoding, bulk reads
and wrapping store failures into ``InternalError``.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Generic, Iterable, Optional, TypeVar

from redis.exceptions import RedisError

from portfolio_backend import keys
from portfolio_backend.errors import InternalError, NotFound, wrap
from portfolio_backend.store import KeyValueStore, Pipeline

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


@contextmanager
def store_errors(context: str):
    """Re-raise store failures as ``InternalError`` carrying ``context``."""
    try:
        yield
    except RedisError as exc:
        raise wrap(context, exc) from exc


class Repository(Generic[RecordT]):
    entity = "record"
    record_type: type
    key_prefix = ""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def key_for(self, record_id: str) -> str:
        """Accept either the full record key or the bare identifier."""
        if self.key_prefix and not record_id.startswith(self.key_prefix):
            return self.key_prefix + record_id
        return record_id

    def encode(self, record: RecordT) -> str:
        return json.dumps(record.as_dict(), ensure_ascii=False)

    def decode(self, raw: str, key: str) -> RecordT:
        try:
            return self.record_type.from_dict(json.loads(raw))
        except (ValueError, TypeError, AttributeError) as exc:
            raise InternalError(
                f"failed to decode {self.entity}",
                details=f"failed to decode {self.entity} {key}: {exc}",
            ) from exc

    def get_by_id(self, record_id: str) -> RecordT:
        key = self.key_for(record_id)
        with store_errors(f"failed to get {self.entity} from store"):
            raw = self.store.get(key)
        if raw is None:
            raise NotFound(f"{self.entity.capitalize()} not found", details=key)
        return self.decode(raw, key)

    def find(self, record_id: str) -> Optional[RecordT]:
        try:
            return self.get_by_id(record_id)
        except NotFound:
            return None

    def exists(self, record_id: str) -> bool:
        with store_errors(f"failed to check {self.entity}"):
            return self.store.exists(self.key_for(record_id))

    def get_many(self, record_ids: Iterable[str]) -> list[RecordT]:
        """One MGET; IDs whose record has gone missing are dropped."""
        ids = list(record_ids)
        if not ids:
            return []
        with store_errors(f"failed to get {self.entity}s from store"):
            values = self.store.mget(ids)
        return [self.decode(raw, key) for key, raw in zip(ids, values) if raw is not None]

    def members(self, index_key: str) -> set[str]:
        with store_errors(f"failed to read {self.entity} index"):
            return self.store.smembers(index_key)

    def top(self, sorted_key: str, count: int) -> list[RecordT]:
        with store_errors(f"failed to read {self.entity} ranking"):
            ids = self.store.zrevrange(sorted_key, 0, count - 1)
        return self.get_many(ids)

    def queue_save(self, pipe: Pipeline, record: RecordT) -> None:
        pipe.set(record.id, self.encode(record), ttl=keys.RECORD_TTL_SECONDS)

    def execute(self, pipe: Pipeline, context: str) -> list:
        with store_errors(context):
            return pipe.execute()

    def prune_value_sets(self, listing_key: str, index_key_for, values: Iterable[str]) -> None:
        """Drop values from a listing set once their index set is empty."""
        stale = []
        with store_errors(f"failed to prune {self.entity} indexes"):
            for value in set(values):
                if self.store.scard(index_key_for(value)) == 0:
                    stale.append(value)
            if stale:
                self.store.srem(listing_key, *stale)
        if stale:
            logger.debug("Pruned %s values %s from %s", self.entity, stale, listing_key)
