"""Version-checking middleware for a read/write repository."""

from __future__ import annotations

import time
from collections.abc import Iterator
from typing import Any

from readrepo.core import (
    Context,
    DeadlineExceededError,
    Entity,
    EntityHasNoVersionError,
    EntityNotFoundError,
    IncorrectEntityVersionError,
    ReadRepo,
    ReadWriteRepo,
    RepoError,
    Versionable,
)

_MIN_DELAY = 0.1
_MAX_DELAY = 10.0
_FACTOR = 2.0


def _delays() -> Iterator[float]:
    delay = _MIN_DELAY
    while True:
        yield delay
        delay = min(delay * _FACTOR, _MAX_DELAY)


class VersionRepo(ReadWriteRepo):
    """Only returns entities whose version is at least the context's min version."""

    def __init__(self, repo: ReadWriteRepo) -> None:
        self._repo = repo

    def parent(self) -> ReadRepo | None:
        return self._repo

    def find(self, ctx: Context, entity_id: Any) -> Entity:
        """Find an entity, retrying until its version suffices or the deadline passes.

        Without a min version the wrapped repository is asked once. Without a
        deadline a missing or too old entity is reported right away.
        """
        if ctx.min_version is None or ctx.min_version < 1:
            return self._repo.find(ctx, entity_id)

        for delay in _delays():
            try:
                return self._find_min_version(ctx, entity_id, ctx.min_version)
            except RepoError as exc:
                if not isinstance(
                    exc.err, (IncorrectEntityVersionError, EntityNotFoundError)
                ):
                    raise
                remaining = ctx.remaining()
                if remaining is None:
                    raise
                if delay >= remaining:
                    time.sleep(remaining)
                    raise DeadlineExceededError() from None
                time.sleep(delay)
        raise AssertionError("unreachable")

    def _find_min_version(
        self, ctx: Context, entity_id: Any, min_version: int
    ) -> Entity:
        entity = self._repo.find(ctx, entity_id)
        if not isinstance(entity, Versionable):
            raise RepoError(EntityHasNoVersionError(), namespace=ctx.namespace)
        if entity.aggregate_version < min_version:
            raise RepoError(IncorrectEntityVersionError(), namespace=ctx.namespace)
        return entity

    def find_all(self, ctx: Context) -> list[Entity]:
        return self._repo.find_all(ctx)

    def save(self, ctx: Context, entity: Entity) -> None:
        self._repo.save(ctx, entity)

    def remove(self, ctx: Context, entity_id: Any) -> None:
        self._repo.remove(ctx, entity_id)


def repository(repo: ReadRepo | None) -> VersionRepo | None:
    """Return the first VersionRepo in a chain of wrapped repositories."""
    while repo is not None:
        if isinstance(repo, VersionRepo):
            return repo
        repo = repo.parent()
    return None