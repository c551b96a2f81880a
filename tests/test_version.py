import threading
import time
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from readrepo.acceptance import Model, SimpleModel, acceptance_test
from readrepo.core import (
    Context,
    DeadlineExceededError,
    EntityHasNoVersionError,
    EntityNotFoundError,
    IncorrectEntityVersionError,
    RepoError,
)
from readrepo.memory import MemoryRepo
from readrepo.version import VersionRepo, repository


@pytest.fixture(params=[None, "ns"])
def ctx(request):
    return Context() if request.param is None else Context().with_namespace(request.param)


@pytest.fixture
def repo():
    return VersionRepo(MemoryRepo())


def _model(version):
    return Model(
        id=str(uuid.uuid4()),
        version=version,
        content="modelMinVersion",
        created_at=datetime.now(timezone.utc),
    )


def _find(repo, ctx, entity_id, min_version, timeout=None):
    versioned = ctx.with_min_version(min_version)
    if timeout is not None:
        versioned = versioned.with_timeout(timeout)
    return repo.find(versioned, entity_id)


def _save_later(repo, ctx, model, version=None):
    """Save the model after 100 ms, optionally bumping its version first."""

    def action():
        if version is not None:
            model.version = version
        repo.save(ctx, model)

    timer = threading.Timer(0.1, action)
    timer.start()
    return timer


def test_parent_is_wrapped_repo():
    memory = MemoryRepo()
    assert VersionRepo(memory).parent() is memory


def test_acceptance(ctx, repo):
    acceptance_test(ctx, repo)
    assert len(repo.find_all(ctx)) == 1


@pytest.mark.parametrize(
    "entity, min_version, error",
    [
        (SimpleModel(id="simple", content="simpleModel"), 1, EntityHasNoVersionError),
        (Model(id="versioned", version=1), 2, IncorrectEntityVersionError),
    ],
)
def test_min_version_errors(ctx, repo, entity, min_version, error):
    repo.save(ctx, entity)
    with pytest.raises(RepoError) as info:
        _find(repo, ctx, entity.entity_id, min_version)
    assert isinstance(info.value.err, error)


def test_min_version_exact_and_higher(ctx, repo):
    model = _model(2)
    repo.save(ctx, model)
    assert _find(repo, ctx, model.id, 2) == model
    model.version = 3
    repo.save(ctx, model)
    assert _find(repo, ctx, model.id, 2) == model


def test_no_min_version_returns_any(ctx, repo):
    model = _model(0)
    repo.save(ctx, model)
    assert repo.find(ctx, model.id) == model


def test_not_found_without_deadline(ctx, repo):
    with pytest.raises(RepoError) as info:
        _find(repo, ctx, str(uuid.uuid4()), 1)
    assert isinstance(info.value.err, EntityNotFoundError)


def test_timeout_data_available_immediately(ctx, repo):
    model = _model(4)
    repo.save(ctx, model)
    assert _find(repo, ctx, model.id, 4, timeout=1.0) == model


def test_timeout_new_item_without_delay(ctx, repo):
    model = _model(1)
    repo.save(ctx, model)
    start = time.monotonic()
    found = _find(repo, ctx, model.id, 1, timeout=1.0)
    elapsed = time.monotonic() - start
    assert found == model
    # The first retry would come after 100 ms.
    assert elapsed < 0.05


@pytest.mark.parametrize(
    "stored_version, created_version, later_version, min_version",
    [
        (4, None, 5, 5),
        (None, 1, None, 1),
        (None, 4, None, 4),
    ],
)
def test_timeout_data_available_on_retry(
    ctx, repo, stored_version, created_version, later_version, min_version
):
    model = _model(stored_version if stored_version is not None else created_version)
    if stored_version is not None:
        repo.save(ctx, model)
    timer = _save_later(repo, ctx, model, later_version)
    found = _find(repo, ctx, model.id, min_version, timeout=1.0)
    timer.join()
    assert found == model
    assert found.version == min_version


def test_timeout_exceeded(ctx, repo):
    model = _model(1)
    repo.save(ctx, model)
    timer = _save_later(repo, ctx, model, 6)
    with pytest.raises(DeadlineExceededError):
        _find(repo, ctx, model.id, 6, timeout=0.01)
    timer.join()


def test_repository_lookup():
    assert repository(None) is None
    inner = MemoryRepo()
    assert repository(inner) is None
    r = VersionRepo(inner)
    assert repository(SimpleNamespace(parent=lambda: r)) is r