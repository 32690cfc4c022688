import asyncio
from datetime import datetime, timezone

import pytest

from miniblog.db.repositories import MongoPostRepository, StorageConnectionError


@pytest.fixture
def collection(mongo_server):
    return mongo_server.collection()


class TestDocumentShape:
    async def test_post_is_stored_with_native_id_and_text_views(
        self, mongo_repository, collection, post_data
    ):
        post = await mongo_repository.create_post(post_data)

        doc = collection.documents[post.id]
        assert doc["_id"] == post.id
        assert "id" not in doc
        assert doc["views"] == "0"
        assert doc["status"] == "draft"
        assert doc["readingTime"] == "1 min read"
        assert doc["createdAt"] == doc["updatedAt"] == post.created_at
        assert set(doc) == {
            "_id", "title", "content", "excerpt", "status",
            "createdAt", "updatedAt", "readingTime", "views",
        }

    async def test_text_views_are_parsed_on_read(self, mongo_repository, collection, post_data):
        post = await mongo_repository.create_post(post_data)
        collection.documents[post.id]["views"] = "41"

        await mongo_repository.increment_views(post.id)

        assert collection.documents[post.id]["views"] == "42"
        assert (await mongo_repository.get_post(post.id)).views == 42

    async def test_naive_datetimes_are_read_as_utc(self, mongo_repository, collection, post_data):
        post = await mongo_repository.create_post(post_data)
        collection.documents[post.id]["createdAt"] = datetime(2024, 5, 1, 8, 30)

        fetched = await mongo_repository.get_post(post.id)

        assert fetched.created_at == datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)

    async def test_timestamps_are_truncated_to_milliseconds(self, mongo_server, post_data):
        repository = MongoPostRepository(
            client_factory=mongo_server,
            clock=lambda: datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc),
        )

        post = await repository.create_post(post_data)

        assert post.created_at.microsecond == 123000

    async def test_empty_update_advances_updated_at_with_the_system_clock(self, mongo_server, post_data):
        repository = MongoPostRepository(client_factory=mongo_server)

        for _ in range(50):
            post = await repository.create_post(post_data)
            updated = await repository.update_post(post.id, {})
            assert updated.updated_at > post.created_at

        await repository.close()

    async def test_update_sets_only_changed_fields(self, mongo_repository, collection, post_data):
        post = await mongo_repository.create_post(post_data)

        await mongo_repository.update_post(post.id, {"content": "new content", "status": "published"})

        doc = collection.documents[post.id]
        assert doc["content"] == "new content"
        assert doc["status"] == "published"
        assert doc["title"] == "Hello"
        assert doc["updatedAt"] > doc["createdAt"]


class TestConnection:
    async def test_connects_lazily_and_once(self, mongo_repository, mongo_server, post_data):
        assert mongo_server.clients == []
        assert not mongo_repository.is_connected

        await mongo_repository.create_post(post_data)
        await mongo_repository.get_all_posts()

        assert len(mongo_server.clients) == 1
        assert mongo_repository.is_connected
        assert mongo_server.clients[0].options["tz_aware"] is True

    async def test_uses_configured_database_and_collection(self, mongo_server, post_data):
        repository = MongoPostRepository(
            database_name="blog",
            collection_name="articles",
            client_factory=mongo_server,
        )

        post = await repository.create_post(post_data)

        assert post.id in mongo_server.collection("blog", "articles").documents

    async def test_connection_failure_raises_storage_error(self, mongo_repository, mongo_server):
        mongo_server.down = True

        with pytest.raises(StorageConnectionError):
            await mongo_repository.get_all_posts()

        assert not mongo_repository.is_connected
        assert mongo_server.clients[0].closed

    async def test_storage_error_is_a_connection_error(self, mongo_repository, mongo_server):
        mongo_server.down = True

        with pytest.raises(ConnectionError):
            await mongo_repository.get_post("any")

    async def test_failure_is_not_retried_internally(self, mongo_repository, mongo_server):
        mongo_server.down = True

        with pytest.raises(StorageConnectionError):
            await mongo_repository.get_all_posts()

        assert len(mongo_server.clients) == 1

    async def test_next_call_reconnects_after_failure(self, mongo_repository, mongo_server):
        mongo_server.down = True
        with pytest.raises(StorageConnectionError):
            await mongo_repository.get_all_posts()

        mongo_server.down = False

        assert await mongo_repository.get_all_posts() == []
        assert len(mongo_server.clients) == 2

    async def test_close_releases_client_and_reconnects_on_demand(
        self, mongo_repository, mongo_server, post_data
    ):
        post = await mongo_repository.create_post(post_data)

        await mongo_repository.close()

        assert mongo_server.clients[0].closed
        assert not mongo_repository.is_connected
        assert (await mongo_repository.get_post(post.id)).id == post.id
        assert len(mongo_server.clients) == 2


class TestViewCounterRace:
    async def test_concurrent_increments_can_lose_updates(self, mongo_repository, post_data):
        """The counter is read and written in two steps, so parallel reads see the same value"""
        post = await mongo_repository.create_post(post_data)

        await asyncio.gather(*(mongo_repository.increment_views(post.id) for _ in range(10)))

        views = (await mongo_repository.get_post(post.id)).views
        assert 1 <= views < 10

    async def test_memory_backend_counts_concurrent_increments(self, memory_repository, post_data):
        post = await memory_repository.create_post(post_data)

        await asyncio.gather(*(memory_repository.increment_views(post.id) for _ in range(10)))

        assert (await memory_repository.get_post(post.id)).views == 10
