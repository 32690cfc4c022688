from fastapi import APIRouter, Depends

from miniblog.core.db import get_repository
from miniblog.db.repositories import PostRepository

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(repository: PostRepository = Depends(get_repository)):
    return {"status": "ok", "storage": repository.backend_name}
