from miniblog.db.repositories.base import PostRepository, StorageConnectionError
from miniblog.db.repositories.memory import InMemoryPostRepository
from miniblog.db.repositories.mongo import MongoPostRepository
from miniblog.db.repositories.sql import SqlPostRepository

__all__ = [
    "PostRepository",
    "StorageConnectionError",
    "InMemoryPostRepository",
    "MongoPostRepository",
    "SqlPostRepository"
]
