import logging

from fastapi import Depends, Request

from miniblog.core.config import Settings
from miniblog.db.repositories import (
    PostRepository, InMemoryPostRepository, MongoPostRepository, SqlPostRepository
)
from miniblog.domains.posts.services import PostService

logger = logging.getLogger(__name__)


def build_repository(settings: Settings) -> PostRepository:
    """Создание хранилища постов по настройкам (один раз при старте)"""
    if settings.storage_backend == "mongodb":
        repository = MongoPostRepository(
            connection_string=settings.mongodb_url,
            database_name=settings.mongodb_database,
            collection_name=settings.mongodb_collection
        )
    elif settings.storage_backend == "sql":
        repository = SqlPostRepository(settings.database_url)
    elif settings.storage_backend == "memory":
        repository = InMemoryPostRepository()
    else:
        raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")

    logger.info(f"Using {repository.backend_name} storage backend")
    return repository


# Функции для dependency injection в FastAPI
def get_repository(request: Request) -> PostRepository:
    return request.app.state.repository


def get_post_service(repository: PostRepository = Depends(get_repository)) -> PostService:
    return PostService(repository)
