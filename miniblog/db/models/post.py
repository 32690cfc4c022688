from sqlalchemy import Column, String, Text, DateTime

from miniblog.db.base import Base
from miniblog.domains.posts.entities import PostStatus


class BlogPost(Base):
    __tablename__ = "blog_posts"

    id = Column(String(36), primary_key=True)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default=PostStatus.DRAFT.value)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    reading_time = Column(Text)
    # Счетчик хранится строкой, как и в документной базе
    views = Column(String(20), nullable=False, default="0")
