"""Acceptance checks that every read/write repository should pass."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from readrepo.core import (
    Context,
    EntityNotFoundError,
    MissingEntityIDError,
    ReadWriteRepo,
    RepoError,
)


@dataclass
class Model:
    """A versioned entity with content and a creation time."""

    id: str = ""
    version: int = 0
    content: str = ""
    created_at: datetime | None = None

    @property
    def entity_id(self) -> str:
        return self.id

    @property
    def aggregate_version(self) -> int:
        return self.version


@dataclass
class SimpleModel:
    """An entity without a version."""

    id: str = ""
    content: str = ""

    @property
    def entity_id(self) -> str:
        return self.id


def _check(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def _expect_reason(call: Callable[[], Any], kind: type, attr: str = "err") -> None:
    try:
        call()
    except RepoError as exc:
        reason = getattr(exc, attr)
        _check(
            isinstance(reason, kind),
            f"there should be a {kind.__name__} in {attr}: {exc}",
        )
        return
    raise AssertionError(f"there should be a {kind.__name__} error")


def acceptance_test(ctx: Context, repo: ReadWriteRepo) -> None:
    """Exercise a repository, raising AssertionError on the first failure."""
    created = datetime(2009, 11, 10, 23, 0, 0, tzinfo=timezone.utc)

    # Find non-existing item.
    _expect_reason(lambda: repo.find(ctx, str(uuid.uuid4())), EntityNotFoundError)

    # FindAll with no items.
    result = repo.find_all(ctx)
    _check(len(result) == 0, f"there should be no items: {len(result)}")

    # Save model without ID.
    missing_id = Model(content="entity1", created_at=created)
    _expect_reason(
        lambda: repo.save(ctx, missing_id), MissingEntityIDError, attr="base_err"
    )

    # Save and find one item.
    entity1 = Model(id=str(uuid.uuid4()), content="entity1", created_at=created)
    repo.save(ctx, entity1)
    entity = repo.find(ctx, entity1.id)
    _check(entity == entity1, f"the item should be correct: {entity}")

    # FindAll with one item.
    result = repo.find_all(ctx)
    _check(len(result) == 1, f"there should be one item: {len(result)}")
    _check(result == [entity1], f"the item should be correct: {result}")

    # Save and overwrite with same ID.
    entity1_alt = Model(id=entity1.id, content="entity1Alt", created_at=created)
    repo.save(ctx, entity1_alt)
    entity = repo.find(ctx, entity1_alt.id)
    _check(entity == entity1_alt, f"the item should be correct: {entity}")

    # Save with another ID.
    entity2 = Model(id=str(uuid.uuid4()), content="entity2", created_at=created)
    repo.save(ctx, entity2)
    entity = repo.find(ctx, entity2.id)
    _check(entity == entity2, f"the item should be correct: {entity}")

    # FindAll with two items, order preserved from insert.
    result = repo.find_all(ctx)
    _check(len(result) == 2, f"there should be two items: {len(result)}")
    _check(result == [entity1_alt, entity2], f"the items should be correct: {result}")

    # Remove item.
    repo.remove(ctx, entity1_alt.id)
    _expect_reason(lambda: repo.find(ctx, entity1_alt.id), EntityNotFoundError)

    # Remove non-existing item.
    _expect_reason(lambda: repo.remove(ctx, entity1_alt.id), EntityNotFoundError)