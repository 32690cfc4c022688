from typing import List, Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    storage_backend: Literal["memory", "mongodb", "sql"] = "memory"

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017/miniblog"
    mongodb_database: str = "miniblog"
    mongodb_collection: str = "blog_posts"

    # SQL (sqlite+aiosqlite or postgresql+asyncpg)
    database_url: str = "sqlite+aiosqlite:///./miniblog.db"

    owner_key: Optional[str] = None
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
