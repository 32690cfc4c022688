import abc
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from miniblog.domains.posts.entities import Post
from miniblog.domains.posts.schemas import PostCreate, PostUpdate

Clock = Callable[[], datetime]


class StorageConnectionError(ConnectionError):
    """Хранилище недоступно: соединение не установлено или потеряно"""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PostRepository(abc.ABC):
    """Контракт хранилища постов.

    Все реализации возвращают списки, отсортированные по created_at по
    убыванию, и сообщают об отсутствующем посте через None/False, а не
    исключением. Невалидные данные приводят к pydantic.ValidationError.
    """

    backend_name = "abstract"
    # Точность хранения времени в хранилище
    time_resolution = timedelta(microseconds=1)

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utcnow
        self._last_now: Optional[datetime] = None

    @abc.abstractmethod
    async def get_all_posts(self) -> List[Post]:
        """Все посты, новые первыми"""

    @abc.abstractmethod
    async def get_post(self, post_id: str) -> Optional[Post]:
        """Пост по идентификатору или None"""

    @abc.abstractmethod
    async def create_post(self, payload: Union[PostCreate, Mapping[str, Any]]) -> Post:
        """Создание поста"""

    @abc.abstractmethod
    async def update_post(
        self,
        post_id: str,
        payload: Union[PostUpdate, Mapping[str, Any]]
    ) -> Optional[Post]:
        """Частичное обновление поста"""

    @abc.abstractmethod
    async def delete_post(self, post_id: str) -> bool:
        """Удаление поста, False если поста нет"""

    @abc.abstractmethod
    async def search_posts(self, query: str) -> List[Post]:
        """Поиск подстроки без учета регистра в title, content и excerpt"""

    @abc.abstractmethod
    async def increment_views(self, post_id: str) -> None:
        """Увеличение счетчика просмотров на 1"""

    async def close(self) -> None:
        """Освобождение ресурсов хранилища"""

    def _now(self) -> datetime:
        """Текущее время с точностью хранилища, строго больше предыдущего выданного"""
        now = self.clock()
        step = self.time_resolution // timedelta(microseconds=1)
        now = now.replace(microsecond=now.microsecond // step * step)
        if self._last_now is not None and now <= self._last_now:
            now = self._last_now + self.time_resolution
        self._last_now = now
        return now

    def _new_post(self, payload: Union[PostCreate, Mapping[str, Any]]) -> Post:
        data = PostCreate.model_validate(payload) if not isinstance(payload, PostCreate) else payload
        return Post.create_post(data.model_dump(), self._now())

    def _changes(self, payload: Union[PostUpdate, Mapping[str, Any]]) -> Dict[str, Any]:
        data = PostUpdate.model_validate(payload) if not isinstance(payload, PostUpdate) else payload
        return data.changes()

    @staticmethod
    def _sort_recent_first(posts: List[Post]) -> List[Post]:
        return sorted(posts, key=lambda post: post.created_at, reverse=True)
