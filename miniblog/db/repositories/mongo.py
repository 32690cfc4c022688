import contextlib
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pymongo import AsyncMongoClient, DESCENDING, ReturnDocument
from pymongo.errors import ConnectionFailure, PyMongoError

from miniblog.db.repositories.base import Clock, PostRepository, StorageConnectionError
from miniblog.domains.posts.entities import Post, PostStatus, estimate_reading_time
from miniblog.domains.posts.schemas import PostCreate, PostUpdate

logger = logging.getLogger(__name__)

# Имена полей документа в коллекции
FIELD_NAMES = {
    "title": "title",
    "content": "content",
    "excerpt": "excerpt",
    "status": "status",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "reading_time": "readingTime",
    "views": "views",
}
SEARCH_FIELDS = ("title", "content", "excerpt")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MongoPostRepository(PostRepository):
    """Хранилище постов в коллекции MongoDB.

    Соединение устанавливается лениво при первой операции и переиспользуется
    всем процессом. Ошибка подключения превращается в StorageConnectionError
    и не повторяется: решение принимает вызывающий код.

    Счетчик просмотров хранится строкой, поэтому increment_views читает
    документ и записывает новое значение отдельной операцией. При
    конкурентных вызовах часть инкрементов может потеряться.
    """

    backend_name = "mongodb"
    # BSON хранит время с точностью до миллисекунд
    time_resolution = timedelta(milliseconds=1)

    def __init__(
        self,
        connection_string: str = "mongodb://localhost:27017/miniblog",
        database_name: str = "miniblog",
        collection_name: str = "blog_posts",
        clock: Optional[Clock] = None,
        client_factory: Callable[..., Any] = AsyncMongoClient,
        server_selection_timeout_ms: int = 5000
    ):
        super().__init__(clock)
        self.connection_string = connection_string
        self.database_name = database_name
        self.collection_name = collection_name
        self._client_factory = client_factory
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._client = None
        self._collection = None
        self._is_connected = False

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    async def _connect(self) -> None:
        """Подключение к MongoDB с проверкой через ping"""
        if self._client is not None:
            await self._client.close()
            self._client = None

        client = None
        try:
            client = self._client_factory(
                self.connection_string,
                tz_aware=True,
                serverSelectionTimeoutMS=self._server_selection_timeout_ms
            )
            await client.admin.command("ping")
        except PyMongoError as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            if client is not None:
                await client.close()
            raise StorageConnectionError(f"Failed to connect to MongoDB: {e}") from e

        database = client.get_default_database(default=self.database_name)
        self._client = client
        self._collection = database[self.collection_name]
        self._is_connected = True
        logger.info(f"Connected to MongoDB collection {database.name}.{self.collection_name}")

    async def _ensure_connection(self):
        if not self._is_connected or self._collection is None:
            await self._connect()
        return self._collection

    @contextlib.contextmanager
    def _connection_errors(self):
        try:
            yield
        except ConnectionFailure as e:
            logger.error(f"Lost connection to MongoDB: {e}")
            self._is_connected = False
            raise StorageConnectionError(f"MongoDB connection lost: {e}") from e

    async def get_all_posts(self) -> List[Post]:
        collection = await self._ensure_connection()
        with self._connection_errors():
            docs = await collection.find({}).sort("createdAt", DESCENDING).to_list(None)
        return [self._to_domain(doc) for doc in docs]

    async def get_post(self, post_id: str) -> Optional[Post]:
        collection = await self._ensure_connection()
        with self._connection_errors():
            doc = await collection.find_one({"_id": post_id})
        return self._to_domain(doc) if doc else None

    async def create_post(self, payload: Union[PostCreate, Mapping[str, Any]]) -> Post:
        post = self._new_post(payload)
        collection = await self._ensure_connection()
        with self._connection_errors():
            await collection.insert_one(self._to_document(post))
        return post

    async def update_post(
        self,
        post_id: str,
        payload: Union[PostUpdate, Mapping[str, Any]]
    ) -> Optional[Post]:
        changes = self._changes(payload)
        update_doc: Dict[str, Any] = {FIELD_NAMES[field]: value for field, value in changes.items()}
        if "status" in changes:
            update_doc["status"] = PostStatus(changes["status"]).value
        if "content" in changes:
            update_doc["readingTime"] = estimate_reading_time(changes["content"])
        update_doc["updatedAt"] = self._now()

        collection = await self._ensure_connection()
        with self._connection_errors():
            doc = await collection.find_one_and_update(
                {"_id": post_id},
                {"$set": update_doc},
                return_document=ReturnDocument.AFTER
            )
        return self._to_domain(doc) if doc else None

    async def delete_post(self, post_id: str) -> bool:
        collection = await self._ensure_connection()
        with self._connection_errors():
            result = await collection.delete_one({"_id": post_id})
        return result.deleted_count == 1

    async def search_posts(self, query: str) -> List[Post]:
        pattern = {"$regex": re.escape(query), "$options": "i"}
        collection = await self._ensure_connection()
        with self._connection_errors():
            docs = await collection.find(
                {"$or": [{field: pattern} for field in SEARCH_FIELDS]}
            ).sort("createdAt", DESCENDING).to_list(None)
        return [self._to_domain(doc) for doc in docs]

    async def increment_views(self, post_id: str) -> None:
        collection = await self._ensure_connection()
        with self._connection_errors():
            doc = await collection.find_one({"_id": post_id}, {"views": 1})
            if doc:
                current_views = int(doc.get("views") or "0")
                await collection.update_one(
                    {"_id": post_id},
                    {"$set": {"views": str(current_views + 1)}}
                )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            logger.info("MongoDB connection closed")
        self._client = None
        self._collection = None
        self._is_connected = False

    @staticmethod
    def _to_document(post: Post) -> Dict[str, Any]:
        """Преобразование доменной сущности в документ MongoDB"""
        return {
            "_id": post.id,
            "title": post.title,
            "content": post.content,
            "excerpt": post.excerpt,
            "status": post.status.value,
            "createdAt": post.created_at,
            "updatedAt": post.updated_at,
            "readingTime": post.reading_time,
            "views": str(post.views),
        }

    @staticmethod
    def _to_domain(doc: Mapping[str, Any]) -> Post:
        """Преобразование документа MongoDB в доменную сущность"""
        return Post(
            id=doc["_id"],
            title=doc["title"],
            content=doc["content"],
            excerpt=doc["excerpt"],
            status=doc.get("status", PostStatus.DRAFT.value),
            created_at=_as_utc(doc["createdAt"]),
            updated_at=_as_utc(doc["updatedAt"]),
            reading_time=doc.get("readingTime"),
            views=int(doc.get("views") or "0")
        )
