"""Fixtures shared by the repository, service and API tests"""

import os
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from miniblog.db.repositories import (
    InMemoryPostRepository, MongoPostRepository, SqlPostRepository
)
from tests.fakes import FakeMongoServer


def pytest_addoption(parser):
    """Additional options for running tests with pytest"""
    parser.addoption(
        "--mongodb",
        action="store_true",
        default=False,
        help="Run tests against a MongoDB server at $MONGODB_URL",
    )


def pytest_collection_modifyitems(config, items):
    """Skip tests that need external services unless explicitly enabled"""
    if config.getoption("--mongodb"):
        return

    skip_mongodb = pytest.mark.skip(reason="needs --mongodb option to run")
    for item in items:
        if "mongodb" in item.keywords:
            item.add_marker(skip_mongodb)


class TickingClock:
    """Clock that moves forward a fixed step on every call"""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        self.current += self.step
        return self.current


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def mongo_server():
    return FakeMongoServer()


@pytest.fixture
def memory_repository(clock):
    return InMemoryPostRepository(clock=clock)


@pytest.fixture
async def sql_repository(clock, tmp_path):
    repository = SqlPostRepository(f"sqlite+aiosqlite:///{tmp_path / 'miniblog.db'}", clock=clock)
    yield repository
    await repository.close()


@pytest.fixture
async def mongo_repository(clock, mongo_server):
    repository = MongoPostRepository(clock=clock, client_factory=mongo_server)
    yield repository
    await repository.close()


@pytest.fixture(
    params=[
        "memory",
        "sql",
        "mongodb-fake",
        pytest.param("mongodb", marks=pytest.mark.mongodb),
    ]
)
async def repository(request, clock, tmp_path, mongo_server):
    """Every storage backend behind the same PostRepository contract"""
    if request.param == "memory":
        repository = InMemoryPostRepository(clock=clock)
    elif request.param == "sql":
        repository = SqlPostRepository(
            f"sqlite+aiosqlite:///{tmp_path / 'miniblog.db'}", clock=clock
        )
    elif request.param == "mongodb-fake":
        repository = MongoPostRepository(clock=clock, client_factory=mongo_server)
    else:
        repository = MongoPostRepository(
            connection_string=os.getenv("MONGODB_URL", "mongodb://localhost:27017/miniblog_test"),
            collection_name=f"blog_posts_{uuid.uuid4().hex}",
            clock=clock,
        )

    yield repository

    if request.param == "mongodb":
        collection = await repository._ensure_connection()
        await collection.drop()
    await repository.close()


@pytest.fixture
def post_data():
    return {
        "title": "Hello",
        "content": "Hello world from the first post",
        "excerpt": "Hi",
        "status": "draft",
    }
