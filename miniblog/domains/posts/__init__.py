from miniblog.domains.posts.entities import (
    Post, PostStatus, count_words, estimate_reading_time, derive_excerpt
)
from miniblog.domains.posts.schemas import (
    PostCreate, PostUpdate, PostResponse, OwnerCheckResponse
)
from miniblog.domains.posts.services import PostService

__all__ = [
    "Post", "PostStatus", "count_words", "estimate_reading_time", "derive_excerpt",
    "PostCreate", "PostUpdate", "PostResponse", "OwnerCheckResponse",
    "PostService"
]
