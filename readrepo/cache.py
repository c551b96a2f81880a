"""Caching middleware for a read/write repository."""

from __future__ import annotations

import threading
from typing import Any, Protocol

from readrepo.core import Context, Entity, ReadRepo, ReadWriteRepo


class _Event(Protocol):
    @property
    def aggregate_id(self) -> Any: ...


class CacheRepo(ReadWriteRepo):
    """Caches entities read from a wrapped repository, per namespace.

    The cache is busted for an entity when it is saved, removed, or when an
    event for its aggregate is observed. The cache size is not limited.
    """

    def __init__(self, repo: ReadWriteRepo) -> None:
        self._repo = repo
        self._cache: dict[str, dict[Any, Entity]] = {}
        self._lock = threading.Lock()

    def _bust(self, ctx: Context, entity_id: Any) -> None:
        with self._lock:
            self._cache.get(ctx.namespace, {}).pop(entity_id, None)

    def notify(self, ctx: Context, event: _Event) -> None:
        """Drop the cached entity that the event's aggregate refers to."""
        self._bust(ctx, event.aggregate_id)

    def parent(self) -> ReadRepo | None:
        return self._repo

    def find(self, ctx: Context, entity_id: Any) -> Entity:
        with self._lock:
            namespace_cache = self._cache.setdefault(ctx.namespace, {})
            if entity_id in namespace_cache:
                return namespace_cache[entity_id]

        entity = self._repo.find(ctx, entity_id)
        with self._lock:
            self._cache.setdefault(ctx.namespace, {})[entity_id] = entity
        return entity

    def find_all(self, ctx: Context) -> list[Entity]:
        entities = self._repo.find_all(ctx)
        with self._lock:
            namespace_cache = self._cache.setdefault(ctx.namespace, {})
            for entity in entities:
                namespace_cache[entity.entity_id] = entity
        return entities

    def save(self, ctx: Context, entity: Entity) -> None:
        self._bust(ctx, entity.entity_id)
        self._repo.save(ctx, entity)

    def remove(self, ctx: Context, entity_id: Any) -> None:
        self._bust(ctx, entity_id)
        self._repo.remove(ctx, entity_id)


def repository(repo: ReadRepo | None) -> CacheRepo | None:
    """Return the first CacheRepo in a chain of wrapped repositories."""
    while repo is not None:
        if isinstance(repo, CacheRepo):
            return repo
        repo = repo.parent()
    return None