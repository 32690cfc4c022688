from fastapi import APIRouter, Depends, HTTPException, Response, status, Query
from typing import Optional, List

from miniblog.core.auth import require_owner
from miniblog.core.db import get_post_service
from miniblog.domains.posts.entities import PostStatus
from miniblog.domains.posts.schemas import PostCreate, PostUpdate, PostResponse
from miniblog.domains.posts.services import PostService

router = APIRouter(prefix="/api/posts", tags=["posts"])


@router.get("", response_model=List[PostResponse])
async def list_posts(
    post_status: Optional[PostStatus] = Query(None, alias="status"),
    post_service: PostService = Depends(get_post_service)
):
    """Список постов, новые первыми"""
    return await post_service.list_posts(post_status)


@router.get("/search", response_model=List[PostResponse])
async def search_posts(
    q: Optional[str] = Query(None),
    post_service: PostService = Depends(get_post_service)
):
    """Поиск постов по подстроке"""
    if not q:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search query is required"
        )
    return await post_service.search_posts(q)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    post_service: PostService = Depends(get_post_service)
):
    """Получение поста по id (увеличивает счетчик просмотров)"""
    post = await post_service.read_post(post_id)

    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )

    return post


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_owner)]
)
async def create_post(
    post_data: PostCreate,
    post_service: PostService = Depends(get_post_service)
):
    """Создание нового поста"""
    return await post_service.create_post(post_data)


@router.patch("/{post_id}", response_model=PostResponse, dependencies=[Depends(require_owner)])
async def update_post(
    post_id: str,
    update_data: PostUpdate,
    post_service: PostService = Depends(get_post_service)
):
    """Частичное обновление поста"""
    post = await post_service.update_post(post_id, update_data)

    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )

    return post


@router.delete(
    "/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_owner)]
)
async def delete_post(
    post_id: str,
    post_service: PostService = Depends(get_post_service)
):
    """Удаление поста"""
    deleted = await post_service.delete_post(post_id)

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )

    return Response(status_code=status.HTTP_204_NO_CONTENT)
