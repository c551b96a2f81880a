# readrepo

Read repositories for the entities of a read model, with interchangeable
backends and wrappers that stack on top of each other.

- `MemoryRepo` (`readrepo.memory`) keeps entities in memory, per namespace,
  and returns them from `find_all` in the order they were first saved.
- `CacheRepo` (`readrepo.cache`) wraps another repository and caches what it
  finds, without a size limit. A save, a remove, or `notify` with an event
  whose `aggregate_id` names an entity drops that entity from the cache.
- `VersionRepo` (`readrepo.version`) wraps another repository. When the
  context asks for a minimum version, `find` only returns entities whose
  `aggregate_version` has reached it. If the context has a deadline it
  retries, with growing delays, until the deadline passes.
- `MongoRepo` (`readrepo.mongodb`) stores entities in MongoDB, in one
  database per namespace, named `<prefix>_<namespace>`.

## Installation

```
pip install readrepo
```

## Usage

Every call takes a `Context` (`readrepo.core`), an immutable value that
carries the namespace (`"default"` unless set), an optional minimum version
and an optional deadline. `with_namespace`, `with_min_version` and
`with_timeout` return changed copies.

```python
from readrepo.core import Context, DeadlineExceededError, EntityNotFoundError, RepoError
from readrepo.memory import MemoryRepo
from readrepo.cache import CacheRepo
from readrepo.version import VersionRepo
from readrepo.acceptance import Model

repo = VersionRepo(CacheRepo(MemoryRepo()))
ctx = Context().with_namespace("tenant-a")

repo.save(ctx, Model(id="a1", content="first", version=1))
print(repo.find(ctx, "a1").content)        # first
print(len(repo.find_all(ctx)))             # 1

# Wait up to a second for version 2 to arrive.
waiting = ctx.with_min_version(2).with_timeout(1.0)
try:
    repo.find(waiting, "a1")
except DeadlineExceededError as exc:
    print(exc)                             # context deadline exceeded

try:
    repo.find(ctx, "missing")
except RepoError as exc:
    print(isinstance(exc.err, EntityNotFoundError))  # True
    print(exc)                             # could not find entity (tenant-a)
```

### Errors

Repository operations raise `RepoError`. Its `err` attribute holds the
reason (`EntityNotFoundError`, `CouldNotSaveEntityError`,
`EntityHasNoVersionError`, `IncorrectEntityVersionError`, or one of the
MongoDB reasons), `base_err` an optional underlying cause (for example
`MissingEntityIDError` when saving an entity with an empty ID), and
`namespace` the namespace of the call. A `VersionRepo` whose deadline passes
raises `DeadlineExceededError`, a `TimeoutError`.

### Entities

An entity is any object with an `entity_id` property; a versioned one also
has `aggregate_version`. `readrepo.acceptance` provides two dataclasses,
`Model` (with a version) and `SimpleModel` (without).

### Finding a layer

To find a particular layer in a stack of wrapped repositories, use the
`repository` function of the module for that layer, for example
`readrepo.cache.repository(repo)`. It follows `parent()` and returns `None`
when the stack holds no repository of that kind.

### MongoDB

```python
from readrepo.mongodb import new_repo
from readrepo.acceptance import Model
from readrepo.core import Context

repo = new_repo("localhost:27017", "app", "models")
repo.set_entity_factory(
    lambda doc: Model(**{k: v for k, v in doc.items() if k != "_id"})
)
repo.save(Context(), Model(id="a1", content="first"))

with repo.find_custom_iter(Context(), lambda c: c.find({"content": "first"})) as entities:
    for entity in entities:
        print(entity.content)

repo.close()
```

`new_repo` connects and pings the server, raising `CouldNotDialDBError` if
it cannot; `MongoRepo(client, prefix, collection)` takes an existing
client. Entities are stored as their fields with `_id` set to the entity
ID, and read back through the factory, which receives the stored document.
Reading without a factory raises a `RepoError` with `ModelNotSetError`.

`find_custom` and `find_custom_iter` take a callback that receives the
collection and returns a cursor; returning `None` raises a `RepoError` with
`InvalidQueryError`. `collection` runs a function against the collection
directly, and `clear` drops the collection of the context's namespace.

### Checking a repository

`readrepo.acceptance.acceptance_test(ctx, repo)` runs the checks every
read/write repository has to pass, and raises `AssertionError` on the first
one that fails. It expects an empty repository.

## What it does not do

The package stores and reads entities only. It has no event bus or
projector that would feed it; `CacheRepo.notify` must be called by the
application for each event. There is no command-line tool.

## Running the tests

```
pip install readrepo[test]
pytest
```