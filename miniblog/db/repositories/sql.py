import contextlib
import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Union

from sqlalchemy import event, select, update, delete, func, or_, cast, Integer, String, Text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from miniblog.db.base import Base
from miniblog.db.models.post import BlogPost as BlogPostModel
from miniblog.db.repositories.base import Clock, PostRepository, StorageConnectionError
from miniblog.domains.posts.entities import Post
from miniblog.domains.posts.schemas import PostCreate, PostUpdate

logger = logging.getLogger(__name__)

# Ошибки драйвера, означающие недоступность базы
CONNECTION_ERRORS = (OperationalError, InterfaceError, OSError)


def _as_utc(value: datetime) -> datetime:
    # SQLite не сохраняет часовой пояс
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _unicode_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None


def _register_sqlite_functions(dbapi_connection, connection_record) -> None:
    # Встроенный lower() SQLite понижает регистр только у ASCII
    dbapi_connection.create_function("lower", 1, _unicode_lower)


class SqlPostRepository(PostRepository):
    """Хранилище постов в таблице blog_posts через SQLAlchemy (asyncio)"""

    backend_name = "sql"

    def __init__(self, database_url: str, clock: Optional[Clock] = None, echo: bool = False):
        super().__init__(clock)
        self.database_url = database_url
        self.engine = create_async_engine(database_url, future=True, echo=echo)
        self.session_factory = async_sessionmaker(
            bind=self.engine, class_=AsyncSession, expire_on_commit=False
        )
        self._schema_ready = False
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _register_sqlite_functions)

    async def _ensure_schema(self) -> None:
        """Создание таблиц при первом обращении"""
        if self._schema_ready:
            return
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except CONNECTION_ERRORS as e:
            logger.error(f"Failed to connect to database: {e}")
            raise StorageConnectionError(f"Failed to connect to database: {e}") from e
        self._schema_ready = True
        logger.info(f"Database schema ready at {self.engine.url.render_as_string(hide_password=True)}")

    @contextlib.asynccontextmanager
    async def _session(self):
        await self._ensure_schema()
        try:
            async with self.session_factory() as session:
                yield session
        except CONNECTION_ERRORS as e:
            logger.error(f"Database operation failed: {e}")
            raise StorageConnectionError(f"Database unavailable: {e}") from e

    async def get_all_posts(self) -> List[Post]:
        async with self._session() as session:
            result = await session.execute(
                select(BlogPostModel).order_by(BlogPostModel.created_at.desc())
            )
            return [self._to_domain(row) for row in result.scalars().all()]

    async def get_post(self, post_id: str) -> Optional[Post]:
        async with self._session() as session:
            db_post = await session.get(BlogPostModel, post_id)
            return self._to_domain(db_post) if db_post else None

    async def create_post(self, payload: Union[PostCreate, Mapping[str, Any]]) -> Post:
        post = self._new_post(payload)
        db_post = BlogPostModel(
            id=post.id,
            title=post.title,
            content=post.content,
            excerpt=post.excerpt,
            status=post.status.value,
            created_at=post.created_at,
            updated_at=post.updated_at,
            reading_time=post.reading_time,
            views=str(post.views)
        )

        async with self._session() as session:
            session.add(db_post)
            await session.commit()
            await session.refresh(db_post)
            return self._to_domain(db_post)

    async def update_post(
        self,
        post_id: str,
        payload: Union[PostUpdate, Mapping[str, Any]]
    ) -> Optional[Post]:
        changes = self._changes(payload)

        async with self._session() as session:
            db_post = await session.get(BlogPostModel, post_id)
            if not db_post:
                return None

            post = self._to_domain(db_post)
            post.apply_update(changes, self._now())

            db_post.title = post.title
            db_post.content = post.content
            db_post.excerpt = post.excerpt
            db_post.status = post.status.value
            db_post.reading_time = post.reading_time
            db_post.updated_at = post.updated_at

            await session.commit()
            await session.refresh(db_post)
            return self._to_domain(db_post)

    async def delete_post(self, post_id: str) -> bool:
        async with self._session() as session:
            result = await session.execute(
                delete(BlogPostModel).where(BlogPostModel.id == post_id)
            )
            await session.commit()
            return result.rowcount > 0

    async def search_posts(self, query: str) -> List[Post]:
        needle = query.lower()
        conditions = [
            func.lower(column, type_=Text).contains(needle, autoescape=True)
            for column in (BlogPostModel.title, BlogPostModel.content, BlogPostModel.excerpt)
        ]

        async with self._session() as session:
            result = await session.execute(
                select(BlogPostModel)
                .where(or_(*conditions))
                .order_by(BlogPostModel.created_at.desc())
            )
            return [self._to_domain(row) for row in result.scalars().all()]

    async def increment_views(self, post_id: str) -> None:
        # Один UPDATE: чтение и запись счетчика выполняет сама база
        async with self._session() as session:
            await session.execute(
                update(BlogPostModel)
                .where(BlogPostModel.id == post_id)
                .values(views=cast(cast(BlogPostModel.views, Integer) + 1, String))
            )
            await session.commit()

    async def close(self) -> None:
        await self.engine.dispose()
        self._schema_ready = False

    @staticmethod
    def _to_domain(db_post: BlogPostModel) -> Post:
        """Преобразование модели БД в доменную сущность"""
        return Post(
            id=db_post.id,
            title=db_post.title,
            content=db_post.content,
            excerpt=db_post.excerpt,
            status=db_post.status,
            created_at=_as_utc(db_post.created_at),
            updated_at=_as_utc(db_post.updated_at),
            reading_time=db_post.reading_time,
            views=int(db_post.views or "0")
        )
