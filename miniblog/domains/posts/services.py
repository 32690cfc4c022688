import logging
from typing import Any, List, Mapping, Optional, Union, TYPE_CHECKING

from miniblog.domains.posts.entities import Post, PostStatus
from miniblog.domains.posts.schemas import PostCreate, PostUpdate

if TYPE_CHECKING:
    from miniblog.db.repositories.base import PostRepository

logger = logging.getLogger(__name__)


class PostService:
    """Сервис для работы с постами"""

    def __init__(self, repository: "PostRepository"):
        self.repository = repository

    async def list_posts(self, status: Optional[PostStatus] = None) -> List[Post]:
        """Все посты, новые первыми, с необязательным фильтром по статусу"""
        posts = await self.repository.get_all_posts()
        if status is None:
            return posts
        return [post for post in posts if post.status == status]

    async def search_posts(self, query: str) -> List[Post]:
        return await self.repository.search_posts(query)

    async def get_post(self, post_id: str) -> Optional[Post]:
        return await self.repository.get_post(post_id)

    async def read_post(self, post_id: str) -> Optional[Post]:
        """Чтение поста для отображения: каждое чтение увеличивает счетчик просмотров.

        Возвращаемый пост уже учитывает текущий просмотр.
        """
        post = await self.repository.get_post(post_id)
        if not post:
            return None

        await self.repository.increment_views(post_id)
        post.register_view()
        return post

    async def create_post(self, data: Union[PostCreate, Mapping[str, Any]]) -> Post:
        post = await self.repository.create_post(data)
        logger.info(f"Created post {post.id} ({post.status.value})")
        return post

    async def update_post(
        self,
        post_id: str,
        data: Union[PostUpdate, Mapping[str, Any]]
    ) -> Optional[Post]:
        post = await self.repository.update_post(post_id, data)
        if post:
            logger.info(f"Updated post {post_id}")
        return post

    async def delete_post(self, post_id: str) -> bool:
        deleted = await self.repository.delete_post(post_id)
        if deleted:
            logger.info(f"Deleted post {post_id}")
        return deleted
