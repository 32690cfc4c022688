from typing import Optional

from fastapi import APIRouter, Depends

from miniblog.core.auth import get_auth_key, get_settings, is_owner_key
from miniblog.core.config import Settings
from miniblog.domains.posts.schemas import OwnerCheckResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/check", response_model=OwnerCheckResponse)
async def check_owner(
    auth_key: Optional[str] = Depends(get_auth_key),
    settings: Settings = Depends(get_settings)
):
    """Проверка, является ли клиент владельцем блога (для frontend)"""
    return OwnerCheckResponse(is_owner=is_owner_key(settings, auth_key))
