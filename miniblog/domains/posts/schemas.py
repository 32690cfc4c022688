from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, Dict, Any
from datetime import datetime

from miniblog.domains.posts.entities import PostStatus, derive_excerpt


def _not_blank(v: Optional[str], message: str) -> Optional[str]:
    if v is not None and not v.strip():
        raise ValueError(message)
    return v


class PostCreate(BaseModel):
    """Схема для создания поста"""
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    excerpt: Optional[str] = Field(None, min_length=1, max_length=500)
    status: PostStatus = PostStatus.DRAFT

    model_config = ConfigDict(extra="ignore")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return _not_blank(v, 'Title is required').strip()

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        return _not_blank(v, 'Content is required')

    @field_validator('excerpt')
    @classmethod
    def validate_excerpt(cls, v):
        return _not_blank(v, 'Excerpt is required')

    @model_validator(mode='after')
    def fill_excerpt(self):
        if self.excerpt is None:
            self.excerpt = derive_excerpt(self.content)
        return self


class PostUpdate(BaseModel):
    """Схема для частичного обновления поста"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = Field(None, min_length=1, max_length=500)
    status: Optional[PostStatus] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        v = _not_blank(v, 'Title is required')
        return v.strip() if v else v

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        return _not_blank(v, 'Content is required')

    @field_validator('excerpt')
    @classmethod
    def validate_excerpt(cls, v):
        return _not_blank(v, 'Excerpt is required')

    def changes(self) -> Dict[str, Any]:
        """Только явно переданные поля"""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class PostResponse(BaseModel):
    """Схема для ответа с данными поста"""
    id: str
    title: str
    content: str
    excerpt: str
    status: PostStatus
    created_at: datetime
    updated_at: datetime
    reading_time: str
    views: int

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True
    )


class OwnerCheckResponse(BaseModel):
    is_owner: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
