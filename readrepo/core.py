"""Shared types for read repositories: errors, request context and interfaces."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Protocol, runtime_checkable

DEFAULT_NAMESPACE = "default"


class _ReasonError(Exception):
    """Base for the reasons a repository operation can fail."""

    message = ""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(self.message if message is None else message)


class EntityNotFoundError(_ReasonError):
    """An entity could not be found."""

    message = "could not find entity"


class CouldNotSaveEntityError(_ReasonError):
    """An entity could not be saved."""

    message = "could not save entity"


class MissingEntityIDError(_ReasonError):
    """An entity has no ID."""

    message = "missing entity ID"


class EntityHasNoVersionError(_ReasonError):
    """An entity has no version number."""

    message = "entity has no version"


class IncorrectEntityVersionError(_ReasonError):
    """An entity has an incorrect version."""

    message = "incorrect entity version"


class DeadlineExceededError(TimeoutError):
    """The deadline of a context passed before the work was done."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


class RepoError(Exception):
    """An error in a repository, with its reason, cause and namespace."""

    def __init__(
        self,
        err: BaseException,
        base_err: BaseException | None = None,
        namespace: str = DEFAULT_NAMESPACE,
    ) -> None:
        self.err = err
        self.base_err = base_err
        self.namespace = namespace
        text = str(err)
        if base_err is not None:
            text += ": " + str(base_err)
        super().__init__(f"{text} ({namespace})")


@dataclass(frozen=True)
class Context:
    """Immutable request context carrying namespace, min version and deadline."""

    namespace: str = DEFAULT_NAMESPACE
    min_version: int | None = None
    deadline: float | None = None

    def with_namespace(self, namespace: str) -> Context:
        """Return a copy using another namespace."""
        return replace(self, namespace=namespace)

    def with_min_version(self, min_version: int) -> Context:
        """Return a copy requiring entities of at least this version."""
        return replace(self, min_version=min_version)

    def with_timeout(self, seconds: float) -> Context:
        """Return a copy whose deadline is at most `seconds` from now."""
        deadline = time.monotonic() + seconds
        if self.deadline is not None:
            deadline = min(deadline, self.deadline)
        return replace(self, deadline=deadline)

    def remaining(self) -> float | None:
        """Seconds left until the deadline (never negative), or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def expired(self) -> bool:
        """Whether the deadline has passed."""
        return self.deadline is not None and time.monotonic() >= self.deadline


@runtime_checkable
class Entity(Protocol):
    """An item stored in a repository, identified by its entity ID."""

    @property
    def entity_id(self) -> Any: ...


@runtime_checkable
class Versionable(Protocol):
    """An item that carries a version number."""

    @property
    def aggregate_version(self) -> int: ...


class ReadRepo(ABC):
    """A read repository for entities."""

    @abstractmethod
    def parent(self) -> ReadRepo | None:
        """The wrapped repository, if there is one."""

    @abstractmethod
    def find(self, ctx: Context, entity_id: Any) -> Entity:
        """Return the entity with this ID."""

    @abstractmethod
    def find_all(self, ctx: Context) -> list[Entity]:
        """Return all entities in the repository."""


class WriteRepo(ABC):
    """A write repository for entities."""

    @abstractmethod
    def save(self, ctx: Context, entity: Entity) -> None:
        """Store an entity."""

    @abstractmethod
    def remove(self, ctx: Context, entity_id: Any) -> None:
        """Remove an entity by ID."""


class ReadWriteRepo(ReadRepo, WriteRepo):
    """A combined read and write repository."""


def is_nil_id(entity_id: Any) -> bool:
    """Whether an entity ID is unset."""
    return entity_id is None or entity_id == ""