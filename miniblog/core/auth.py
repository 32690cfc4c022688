import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, APIKeyQuery

from miniblog.core.config import Settings

auth_key_header = APIKeyHeader(name="X-Auth-Key", auto_error=False)
auth_key_query = APIKeyQuery(name="key", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_key(
    header_key: Optional[str] = Depends(auth_key_header),
    query_key: Optional[str] = Depends(auth_key_query)
) -> Optional[str]:
    return header_key or query_key


def is_owner_key(settings: Settings, auth_key: Optional[str]) -> bool:
    """Сравнение ключа владельца за постоянное время"""
    if not settings.owner_key or not auth_key:
        return False
    return secrets.compare_digest(auth_key.encode(), settings.owner_key.encode())


async def require_owner(
    auth_key: Optional[str] = Depends(get_auth_key),
    settings: Settings = Depends(get_settings)
) -> None:
    if not settings.owner_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Owner key not configured"
        )

    if not is_owner_key(settings, auth_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Owner only."
        )
