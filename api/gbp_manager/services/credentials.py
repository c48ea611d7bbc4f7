"""Google OAuth credential lookup and refresh for the remote directory client."""
import time
from typing import Optional
from uuid import UUID

import httpx
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.config import get_settings
from gbp_manager.exceptions import ConfigurationError, RemoteAuthError, classify_remote_status
from gbp_manager.models import OAuthAccount

logger = structlog.get_logger()

GOOGLE_PROVIDER = "google"
EXPIRY_SKEW_SECONDS = 60


async def get_google_account(db: AsyncSession, user_id: UUID) -> Optional[OAuthAccount]:
    result = await db.execute(
        select(OAuthAccount)
        .where(OAuthAccount.user_id == user_id, OAuthAccount.provider == GOOGLE_PROVIDER)
        .order_by(OAuthAccount.updated_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def is_expired(account: OAuthAccount, now: Optional[float] = None) -> bool:
    if account.expires_at is None:
        return False
    now = time.time() if now is None else now
    return account.expires_at <= now + EXPIRY_SKEW_SECONDS


async def refresh_access_token(
    db: AsyncSession,
    account: OAuthAccount,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Exchange the stored refresh token for a new access token and persist it."""
    settings = get_settings()
    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        raise ConfigurationError("Google OAuth client is not configured", "GOOGLE_CLIENT_ID")
    if not account.refresh_token:
        raise RemoteAuthError("Google access token expired and no refresh token is stored", remote_status=401)

    async with httpx.AsyncClient(timeout=settings.GOOGLE_API_TIMEOUT, transport=transport) as client:
        try:
            response = await client.post(
                settings.GOOGLE_TOKEN_URL,
                data={
                    "client_id": settings.GOOGLE_CLIENT_ID,
                    "client_secret": settings.GOOGLE_CLIENT_SECRET,
                    "refresh_token": account.refresh_token,
                    "grant_type": "refresh_token",
                },
            )
        except httpx.RequestError as e:
            raise classify_remote_status(None, f"Token refresh failed: {e}")

    if response.status_code >= 400:
        logger.warning("credentials: refresh rejected", status=response.status_code, user_id=str(account.user_id))
        # Google answers invalid_grant with 400; the user has to reconnect
        status = 401 if response.status_code in (400, 401) else response.status_code
        raise classify_remote_status(status, "Google token refresh rejected. Please reconnect your account.")

    payload = response.json()
    account.access_token = payload["access_token"]
    if payload.get("expires_in"):
        account.expires_at = int(time.time()) + int(payload["expires_in"])
    if payload.get("refresh_token"):
        account.refresh_token = payload["refresh_token"]
    await db.commit()
    logger.info("credentials: access token refreshed", user_id=str(account.user_id))
    return account.access_token


async def get_google_access_token(
    db: AsyncSession,
    user_id: UUID,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Return a usable Google access token for the user, refreshing when expired.

    Raises:
        RemoteAuthError: no Google account is linked, or it cannot be refreshed.
    """
    account = await get_google_account(db, user_id)
    if account is None or not (account.access_token or account.refresh_token):
        raise RemoteAuthError(
            "No Google Business Profile connection. Please connect your Google account.",
            {"user_id": str(user_id)},
            remote_status=401,
        )
    if account.access_token and not is_expired(account):
        return account.access_token
    return await refresh_access_token(db, account, transport=transport)
