"""MongoDB read repository, one database per namespace."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping
from contextlib import closing
from typing import Any

from pymongo import MongoClient
from pymongo.errors import PyMongoError

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

EntityFactory = Callable[[Mapping[str, Any]], Entity]
_DIAL_TIMEOUT_MS = 10_000


class _MongoReason(Exception):
    message = ""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(self.message if message is None else message)


class CouldNotDialDBError(_MongoReason):
    """The database could not be dialed."""

    message = "could not dial database"


class NoDBSessionError(_MongoReason):
    """No database client was given."""

    message = "no database session"


class CouldNotClearDBError(_MongoReason):
    """The database could not be cleared."""

    message = "could not clear database"


class ModelNotSetError(_MongoReason):
    """No entity factory is set on the repository."""

    message = "model not set"


class InvalidQueryError(_MongoReason):
    """The query callback returned no query."""

    message = "invalid query"


def _not_found() -> LookupError:
    return LookupError("not found")


def _to_document(entity: Entity) -> dict[str, Any]:
    if dataclasses.is_dataclass(entity) and not isinstance(entity, type):
        document = dataclasses.asdict(entity)
    elif isinstance(entity, Mapping):
        document = dict(entity)
    else:
        document = dict(vars(entity))
    document["_id"] = entity.entity_id
    return document


class _EntityIterator:
    """Streams entities from a cursor; close it when done."""

    def __init__(self, cursor: Any, factory: EntityFactory, namespace: str) -> None:
        self._cursor = cursor
        self._factory = factory
        self._namespace = namespace

    def __iter__(self) -> _EntityIterator:
        return self

    def __next__(self) -> Entity:
        try:
            document = next(self._cursor)
        except PyMongoError as exc:
            raise RepoError(exc, namespace=self._namespace) from exc
        return self._factory(document)

    def close(self) -> None:
        self._cursor.close()

    def __enter__(self) -> _EntityIterator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class MongoRepo(ReadWriteRepo):
    """Stores entities in a MongoDB collection.

    Entities are read back through a factory that builds an entity from a
    stored document, set with `set_entity_factory`.
    """

    def __init__(self, client: Any, db_prefix: str, collection: str) -> None:
        if client is None:
            raise NoDBSessionError()
        self._client = client
        self._db_prefix = db_prefix
        self._collection_name = collection
        self._factory: EntityFactory | None = None

    def _db_name(self, ctx: Context) -> str:
        return f"{self._db_prefix}_{ctx.namespace}"

    def _coll(self, ctx: Context) -> Any:
        return self._client[self._db_name(ctx)][self._collection_name]

    def _require_factory(self, ctx: Context) -> EntityFactory:
        if self._factory is None:
            raise RepoError(ModelNotSetError(), namespace=ctx.namespace)
        return self._factory

    def _query(self, ctx: Context, callback: Callable[[Any], Any]) -> Any:
        cursor = callback(self._coll(ctx))
        if cursor is None:
            raise RepoError(InvalidQueryError(), namespace=ctx.namespace)
        return cursor

    def parent(self) -> ReadRepo | None:
        return None

    def find(self, ctx: Context, entity_id: Any) -> Entity:
        factory = self._require_factory(ctx)
        try:
            document = self._coll(ctx).find_one({"_id": entity_id})
        except PyMongoError as exc:
            raise RepoError(EntityNotFoundError(), exc, ctx.namespace) from exc
        if document is None:
            raise RepoError(EntityNotFoundError(), _not_found(), ctx.namespace)
        return factory(document)

    def find_all(self, ctx: Context) -> list[Entity]:
        factory = self._require_factory(ctx)
        try:
            with closing(self._coll(ctx).find({})) as cursor:
                return [factory(document) for document in cursor]
        except PyMongoError as exc:
            raise RepoError(exc, namespace=ctx.namespace) from exc

    def find_custom_iter(
        self, ctx: Context, callback: Callable[[Any], Any]
    ) -> _EntityIterator:
        """Stream the results of the query the callback builds on the collection."""
        factory = self._require_factory(ctx)
        cursor = self._query(ctx, callback)
        return _EntityIterator(cursor, factory, ctx.namespace)

    def find_custom(self, ctx: Context, callback: Callable[[Any], Any]) -> list[Entity]:
        """Return the results of the query the callback builds on the collection.

        A callback that returns None (for example after running its own query)
        causes a RepoError with InvalidQueryError.
        """
        factory = self._require_factory(ctx)
        cursor = self._query(ctx, callback)
        try:
            with closing(cursor):
                return [factory(document) for document in cursor]
        except PyMongoError as exc:
            raise RepoError(exc, namespace=ctx.namespace) from exc

    def save(self, ctx: Context, entity: Entity) -> None:
        if is_nil_id(entity.entity_id):
            raise RepoError(
                CouldNotSaveEntityError(), MissingEntityIDError(), ctx.namespace
            )
        try:
            self._coll(ctx).replace_one(
                {"_id": entity.entity_id}, _to_document(entity), upsert=True
            )
        except PyMongoError as exc:
            raise RepoError(CouldNotSaveEntityError(), exc, ctx.namespace) from exc

    def remove(self, ctx: Context, entity_id: Any) -> None:
        try:
            result = self._coll(ctx).delete_one({"_id": entity_id})
        except PyMongoError as exc:
            raise RepoError(EntityNotFoundError(), exc, ctx.namespace) from exc
        if result.deleted_count == 0:
            raise RepoError(EntityNotFoundError(), _not_found(), ctx.namespace)

    def collection(self, ctx: Context, func: Callable[[Any], Any]) -> None:
        """Run custom actions on the collection, wrapping any failure."""
        try:
            func(self._coll(ctx))
        except Exception as exc:
            raise RepoError(exc, namespace=ctx.namespace) from exc

    def set_entity_factory(self, factory: EntityFactory) -> None:
        """Set the function that builds an entity from a stored document."""
        self._factory = factory

    def clear(self, ctx: Context) -> None:
        """Drop the collection of the context's namespace."""
        try:
            self._coll(ctx).drop()
        except PyMongoError as exc:
            raise RepoError(CouldNotClearDBError(), exc, ctx.namespace) from exc

    def close(self) -> None:
        """Close the database client."""
        self._client.close()


def new_repo(url: str, db_prefix: str, collection: str) -> MongoRepo:
    """Connect to MongoDB at `url` and return a repository using it."""
    try:
        client = MongoClient(
            url,
            w=1,
            tz_aware=True,
            serverSelectionTimeoutMS=_DIAL_TIMEOUT_MS,
        )
        client.admin.command("ping")
    except PyMongoError as exc:
        raise CouldNotDialDBError() from exc
    return MongoRepo(client, db_prefix, collection)


def repository(repo: ReadRepo | None) -> MongoRepo | None:
    """Return the first MongoRepo in a chain of wrapped repositories."""
    while repo is not None:
        if isinstance(repo, MongoRepo):
            return repo
        repo = repo.parent()
    return None