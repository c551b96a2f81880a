import uuid
from dataclasses import dataclass
from typing import Any
from unittest.mock import Mock

import pytest

from readrepo.acceptance import SimpleModel, acceptance_test
from readrepo.cache import CacheRepo, repository
from readrepo.core import Context, ReadWriteRepo
from readrepo.memory import MemoryRepo


@dataclass
class _Event:
    aggregate_id: Any


@pytest.fixture(params=["default", "ns"])
def ctx(request):
    return Context().with_namespace(request.param)


@pytest.fixture
def simple_model():
    return SimpleModel(id=str(uuid.uuid4()), content="simpleModel")


@pytest.fixture
def base(simple_model):
    store = Mock(spec=ReadWriteRepo)
    store.find.return_value = simple_model
    store.find_all.return_value = [simple_model]
    store.remove.side_effect = lambda *_: setattr(store.find, "return_value", None)
    return store


def _lookup(r, store, ctx, entity_id):
    """Find through the cache; report the entity and whether the store was hit."""
    store.find.reset_mock()
    return r.find(ctx, entity_id), store.find.called


def test_parent_is_wrapped_repo():
    memory = MemoryRepo()
    assert CacheRepo(memory).parent() is memory


def test_acceptance(ctx):
    r = CacheRepo(MemoryRepo())
    acceptance_test(ctx, r)
    assert len(r.find_all(ctx)) == 1


def test_cache_on_find(ctx, base, simple_model):
    r = CacheRepo(base)
    assert _lookup(r, base, ctx, simple_model.id) == (simple_model, True)
    assert _lookup(r, base, ctx, simple_model.id) == (simple_model, False)


def test_cache_on_find_all(ctx, base, simple_model):
    r = CacheRepo(base)
    assert r.find_all(ctx) == [simple_model]
    assert base.find_all.called
    assert _lookup(r, base, ctx, simple_model.id) == (simple_model, False)


def test_cache_bust_on_save(ctx, base, simple_model):
    r = CacheRepo(base)
    _lookup(r, base, ctx, simple_model.id)
    r.save(ctx, simple_model)
    base.save.assert_called_once_with(ctx, simple_model)
    assert _lookup(r, base, ctx, simple_model.id) == (simple_model, True)


def test_cache_bust_on_remove(ctx, base, simple_model):
    r = CacheRepo(base)
    _lookup(r, base, ctx, simple_model.id)
    r.remove(ctx, simple_model.id)
    assert _lookup(r, base, ctx, simple_model.id) == (None, True)


def test_cache_bust_on_event(ctx, base, simple_model):
    r = CacheRepo(base)
    _lookup(r, base, ctx, simple_model.id)
    r.notify(ctx, _Event(aggregate_id=simple_model.entity_id))
    assert _lookup(r, base, ctx, simple_model.id) == (simple_model, True)


def test_cache_is_per_namespace(base, simple_model):
    r = CacheRepo(base)
    _lookup(r, base, Context(), simple_model.id)
    ns_ctx = Context().with_namespace("ns")
    assert _lookup(r, base, ns_ctx, simple_model.id) == (simple_model, True)


def test_repository_lookup():
    assert repository(None) is None
    inner = Mock(spec=ReadWriteRepo)
    inner.parent.return_value = None
    assert repository(inner) is None
    r = CacheRepo(inner)
    outer = Mock(spec=ReadWriteRepo)
    outer.parent.return_value = r
    assert repository(outer) is r