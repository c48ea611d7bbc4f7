from typing import AsyncIterator, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.clients.google_business import DirectoryClient, GoogleBusinessClient
from gbp_manager.config import get_settings
from gbp_manager.database import get_db
from gbp_manager.models import User
from gbp_manager.services.credentials import get_google_access_token, get_google_account

settings = get_settings()


# ─── JWT ───
# Tokens are issued by the identity provider; this service only verifies them.
security = HTTPBearer()


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


# ─── Current User Dependency ───
async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    payload = decode_token(credentials.credentials)
    if payload.get("type", "access") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


# ─── Google Business client ───
async def get_directory_client(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> AsyncIterator[DirectoryClient]:
    """Client bound to the user's Google credential, closed after the request."""
    token = await get_google_access_token(db, user.id)
    async with GoogleBusinessClient(token) as client:
        yield client


async def get_optional_directory_client(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> AsyncIterator[Optional[DirectoryClient]]:
    """Like get_directory_client, but yields None when no Google account is linked."""
    account = await get_google_account(db, user.id)
    if account is None:
        yield None
        return
    token = await get_google_access_token(db, user.id)
    async with GoogleBusinessClient(token) as client:
        yield client
