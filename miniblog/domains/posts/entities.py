import enum
import math
import re
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 200

_MARKDOWN_PATTERNS = [
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),
    (re.compile(r"\*(.*?)\*"), r"\1"),
    (re.compile(r"_(.*?)_"), r"\1"),
    (re.compile(r"`(.*?)`"), r"\1"),
    (re.compile(r"^#{1,6} (.*)$", re.MULTILINE), r"\1"),
    (re.compile(r"^> (.*)$", re.MULTILINE), r"\1"),
]


class PostStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


def count_words(content: str) -> int:
    """Подсчет слов: разбиение по последовательностям пробельных символов"""
    return len(content.split())


def estimate_reading_time(content: str) -> str:
    """Оценка времени чтения, например "5 min read".

    Считаем 200 слов в минуту, округляем к ближайшему целому (половина
    округляется вверх), минимум одна минута.
    """
    minutes = max(1, math.floor(count_words(content) / WORDS_PER_MINUTE + 0.5))
    return f"{minutes} min read"


def derive_excerpt(content: str, length: int = EXCERPT_LENGTH) -> str:
    """Краткое описание из markdown-текста поста"""
    text = content
    for pattern, replacement in _MARKDOWN_PATTERNS:
        text = pattern.sub(replacement, text)
    text = " ".join(text.split()) or " ".join(content.split())

    if len(text) <= length:
        return text

    cut = text[:length].rsplit(" ", 1)[0] or text[:length]
    return f"{cut.rstrip()}..."


class Post:
    """Сущность поста блога"""

    def __init__(
        self,
        id: str,
        title: str,
        content: str,
        excerpt: str,
        status: PostStatus = PostStatus.DRAFT,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        reading_time: Optional[str] = None,
        views: int = 0
    ):
        self.id = id
        self.title = title
        self.content = content
        self.excerpt = excerpt
        self.status = PostStatus(status)
        self.created_at = created_at
        self.updated_at = updated_at or created_at
        self.reading_time = reading_time or estimate_reading_time(content)
        self.views = views

    @classmethod
    def create_post(cls, data: Dict[str, Any], now: datetime) -> "Post":
        """Создание нового поста из проверенных данных"""
        return cls(
            id=str(uuid.uuid4()),
            title=data["title"],
            content=data["content"],
            excerpt=data["excerpt"],
            status=data.get("status", PostStatus.DRAFT),
            created_at=now,
            updated_at=now,
            reading_time=estimate_reading_time(data["content"]),
            views=0
        )

    def apply_update(self, changes: Dict[str, Any], now: datetime) -> None:
        """Применение частичного обновления.

        Время чтения пересчитывается только при изменении содержимого,
        updated_at обновляется всегда.
        """
        for field in ("title", "content", "excerpt"):
            if field in changes:
                setattr(self, field, changes[field])
        if "status" in changes:
            self.status = PostStatus(changes["status"])
        if "content" in changes:
            self.reading_time = estimate_reading_time(self.content)
        self.updated_at = now

    def register_view(self) -> None:
        self.views += 1

    def get_word_count(self) -> int:
        return count_words(self.content)

    def copy(self) -> "Post":
        return Post(
            id=self.id,
            title=self.title,
            content=self.content,
            excerpt=self.excerpt,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
            reading_time=self.reading_time,
            views=self.views
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Post):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Post(id={self.id}, title={self.title}, status={self.status.value})"
