"""In-memory read repository, partitioned by namespace."""

from __future__ import annotations

import threading
from typing import Any

from readrepo.core import (
    Context,
    CouldNotSaveEntityError,
    Entity,
    EntityNotFoundError,
    MissingEntityIDError,
    ReadRepo,
    ReadWriteRepo,
    RepoError,
    is_nil_id,
)


def _not_found(ctx: Context) -> RepoError:
    return RepoError(EntityNotFoundError(), namespace=ctx.namespace)


class MemoryRepo(ReadWriteRepo):
    """Stores entities in memory, keeping insertion order per namespace."""

    def __init__(self) -> None:
        self._db: dict[str, dict[Any, Entity]] = {}
        self._lock = threading.RLock()

    def _bucket(self, ctx: Context) -> dict[Any, Entity]:
        return self._db.setdefault(ctx.namespace, {})

    def parent(self) -> ReadRepo | None:
        return None

    def find(self, ctx: Context, entity_id: Any) -> Entity:
        with self._lock:
            entities = self._bucket(ctx)
            if entity_id in entities:
                return entities[entity_id]
        raise _not_found(ctx)

    def find_all(self, ctx: Context) -> list[Entity]:
        with self._lock:
            return list(self._bucket(ctx).values())

    def save(self, ctx: Context, entity: Entity) -> None:
        if is_nil_id(entity.entity_id):
            raise RepoError(
                CouldNotSaveEntityError(), MissingEntityIDError(), ctx.namespace
            )
        with self._lock:
            self._bucket(ctx)[entity.entity_id] = entity

    def remove(self, ctx: Context, entity_id: Any) -> None:
        with self._lock:
            entities = self._bucket(ctx)
            if entity_id in entities:
                del entities[entity_id]
                return
        raise _not_found(ctx)


def repository(repo: ReadRepo | None) -> MemoryRepo | None:
    """Return the first MemoryRepo in a chain of wrapped repositories."""
    while repo is not None:
        if isinstance(repo, MemoryRepo):
            return repo
        repo = repo.parent()
    return None