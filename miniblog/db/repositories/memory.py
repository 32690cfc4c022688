from typing import Any, Dict, List, Mapping, Optional, Union

from miniblog.db.repositories.base import Clock, PostRepository
from miniblog.domains.posts.entities import Post
from miniblog.domains.posts.schemas import PostCreate, PostUpdate


class InMemoryPostRepository(PostRepository):
    """Хранилище постов в памяти процесса.

    Данные не переживают перезапуск. Мутации выполняются без await между
    чтением и записью, поэтому в одном event loop они не перемешиваются.
    Наружу отдаются копии, чтобы вызывающий код не менял хранимое состояние.
    """

    backend_name = "memory"

    def __init__(self, clock: Optional[Clock] = None):
        super().__init__(clock)
        self._posts: Dict[str, Post] = {}

    async def get_all_posts(self) -> List[Post]:
        """Все посты, новые первыми"""
        return self._sort_recent_first([post.copy() for post in self._posts.values()])

    async def get_post(self, post_id: str) -> Optional[Post]:
        """Получение поста по id"""
        post = self._posts.get(post_id)
        return post.copy() if post else None

    async def create_post(self, payload: Union[PostCreate, Mapping[str, Any]]) -> Post:
        """Создание нового поста"""
        post = self._new_post(payload)
        self._posts[post.id] = post
        return post.copy()

    async def update_post(
        self,
        post_id: str,
        payload: Union[PostUpdate, Mapping[str, Any]]
    ) -> Optional[Post]:
        """Частичное обновление поста"""
        changes = self._changes(payload)
        post = self._posts.get(post_id)
        if not post:
            return None

        post.apply_update(changes, self._now())
        return post.copy()

    async def delete_post(self, post_id: str) -> bool:
        """Удаление поста"""
        return self._posts.pop(post_id, None) is not None

    async def search_posts(self, query: str) -> List[Post]:
        """Поиск постов по подстроке без учета регистра"""
        needle = query.lower()
        matches = [
            post.copy()
            for post in self._posts.values()
            if needle in post.title.lower()
            or needle in post.content.lower()
            or needle in post.excerpt.lower()
        ]
        return self._sort_recent_first(matches)

    async def increment_views(self, post_id: str) -> None:
        """Увеличение счетчика просмотров"""
        post = self._posts.get(post_id)
        if post:
            post.register_view()
