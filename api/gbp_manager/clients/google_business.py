"""Google Business Profile API client.

One interface (``DirectoryClient``) and one raw-HTTP implementation
(``GoogleBusinessClient``) covering the three Google surfaces the service uses:

- Account Management API v1: accounts reachable by the OAuth credential
- Business Information API v1: location listing and CRUD
- legacy My Business API v4: reviews and review replies (still the only
  review surface; it drifts and 404s for some location shapes)

Every HTTP failure is mapped onto the exception taxonomy in
``gbp_manager.exceptions``. Only transient failures (5xx, timeouts,
transport errors) are retried here; quota errors go straight to the caller.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gbp_manager.config import get_settings
from gbp_manager.exceptions import (
    RemoteDirectoryError,
    RemoteUnavailableError,
    classify_remote_status,
)

logger = structlog.get_logger()


# =============================================================================
# Constants
# =============================================================================

ACCOUNT_MANAGEMENT_BASE = "https://mybusinessaccountmanagement.googleapis.com/v1"
BUSINESS_INFORMATION_BASE = "https://mybusinessbusinessinformation.googleapis.com/v1"
LEGACY_V4_BASE = "https://mybusiness.googleapis.com/v4"

# Core fields readable for every location type
LOCATION_READ_MASK = "name,title,storefrontAddress,websiteUri,phoneNumbers,categories,metadata,profile"

REVIEWS_PAGE_SIZE = 50  # v4 maximum
REVIEWS_MAX_PAGES = 10


def external_id_from_name(name: Optional[str]) -> Optional[str]:
    """Stable external ID: last segment of ``accounts/{a}/locations/{l}``."""
    if not name:
        return None
    return name.rstrip("/").split("/")[-1] or None


def location_resource_name(account_name: str, location_name: str) -> str:
    """Fully qualified ``accounts/{a}/locations/{l}`` used by the v4 review API.

    Business Information v1 returns bare ``locations/{l}`` names.
    """
    if location_name.startswith("accounts/"):
        return location_name
    return f"{account_name.rstrip('/')}/{location_name.lstrip('/')}"


@dataclass
class ConnectionTest:
    success: bool
    account_count: int = 0
    accounts: list = field(default_factory=list)
    error: Optional[str] = None
    status_code: Optional[int] = None


# =============================================================================
# Interface
# =============================================================================


class DirectoryClient(ABC):
    """Remote business-listing directory, as consumed by the sync engine."""

    @abstractmethod
    async def test_connection(self) -> ConnectionTest:
        """Check the credential. Never raises for HTTP errors."""
        ...

    @abstractmethod
    async def list_accounts(self) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def list_locations(self, account_name: str, page_size: Optional[int] = None) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def get_location(self, location_name: str) -> dict[str, Any]:
        ...

    @abstractmethod
    async def create_location(
        self, account_name: str, location: dict[str, Any], request_id: Optional[str] = None
    ) -> dict[str, Any]:
        ...

    @abstractmethod
    async def update_location(
        self, location_name: str, location: dict[str, Any], update_mask: Optional[str] = None
    ) -> dict[str, Any]:
        ...

    @abstractmethod
    async def delete_location(self, location_name: str) -> None:
        ...

    @abstractmethod
    async def get_reviews(self, location_name: str) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def create_reply(self, review_name: str, comment: str) -> dict[str, Any]:
        ...

    @abstractmethod
    async def delete_reply(self, review_name: str) -> None:
        ...

    async def aclose(self) -> None:
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


# =============================================================================
# Google implementation
# =============================================================================


class GoogleBusinessClient(DirectoryClient):
    """Async client for the Google Business Profile APIs.

    Example:
        async with GoogleBusinessClient(access_token) as client:
            accounts = await client.list_accounts()
            locations = await client.list_locations(accounts[0]["name"])
    """

    def __init__(
        self,
        access_token: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            access_token: OAuth access token with the business.manage scope.
            timeout: Request timeout in seconds (defaults to GOOGLE_API_TIMEOUT).
            transport: Optional httpx transport, used by tests.
        """
        settings = get_settings()
        self._access_token = access_token
        self._timeout = timeout or settings.GOOGLE_API_TIMEOUT
        self._page_size = settings.GOOGLE_LOCATIONS_PAGE_SIZE
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers={
                    "Authorization": f"Bearer {self._access_token}",
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @retry(
        retry=retry_if_exception_type(RemoteUnavailableError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json_data: Optional[dict[str, Any]] = None,
        resource: str = "",
    ) -> dict[str, Any]:
        """Send one request and map failures onto the remote error taxonomy.

        Raises:
            RemoteAuthError: 401.
            RemotePermissionError: 403 without a quota reason.
            RemoteQuotaError: 429, or 403 reporting RESOURCE_EXHAUSTED.
            RemoteNotFoundError: 404.
            RemoteBadRequestError: 400.
            RemoteUnavailableError: 5xx, timeouts and transport errors (retried).
        """
        client = self._ensure_client()
        try:
            response = await client.request(method, url, params=params, json=json_data)
        except httpx.TimeoutException as e:
            logger.error("google_business: timeout", url=url, error=str(e))
            raise RemoteUnavailableError(f"Request timeout: {e}", {"url": url})
        except httpx.RequestError as e:
            logger.error("google_business: request error", url=url, error=str(e))
            raise RemoteUnavailableError(f"Request failed: {e}", {"url": url})

        if response.status_code >= 400:
            upstream = _upstream_error(response)
            message = _error_message(response.status_code, resource, upstream)
            logger.warning(
                "google_business: api error",
                status=response.status_code, url=url, upstream=upstream,
            )
            raise classify_remote_status(
                response.status_code, message,
                {"url": url, "resource": resource, "upstream": upstream},
            )

        if not response.content:
            return {}
        return response.json()

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def test_connection(self) -> ConnectionTest:
        try:
            accounts = await self.list_accounts()
        except RemoteDirectoryError as e:
            logger.warning("google_business: connection test failed", error=e.message)
            return ConnectionTest(success=False, error=e.message, status_code=e.remote_status)
        return ConnectionTest(success=True, account_count=len(accounts), accounts=accounts)

    async def list_accounts(self) -> list[dict[str, Any]]:
        data = await self._request("GET", f"{ACCOUNT_MANAGEMENT_BASE}/accounts", resource="accounts")
        return data.get("accounts", [])

    # -------------------------------------------------------------------------
    # Locations
    # -------------------------------------------------------------------------

    async def list_locations(self, account_name: str, page_size: Optional[int] = None) -> list[dict[str, Any]]:
        """First page of an account's locations (capped at 100, no pagination)."""
        data = await self._request(
            "GET",
            f"{BUSINESS_INFORMATION_BASE}/{account_name}/locations",
            params={"pageSize": min(page_size or self._page_size, 100), "readMask": LOCATION_READ_MASK},
            resource=f"account {account_name}",
        )
        locations = data.get("locations", [])
        logger.info("google_business: listed locations", account=account_name, count=len(locations))
        return locations

    async def get_location(self, location_name: str) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{BUSINESS_INFORMATION_BASE}/{_bare_location_name(location_name)}",
            params={"readMask": LOCATION_READ_MASK},
            resource=f"location {location_name}",
        )

    async def create_location(
        self, account_name: str, location: dict[str, Any], request_id: Optional[str] = None
    ) -> dict[str, Any]:
        params = {"requestId": request_id} if request_id else None
        return await self._request(
            "POST",
            f"{BUSINESS_INFORMATION_BASE}/{account_name}/locations",
            params=params,
            json_data=location,
            resource=f"account {account_name}",
        )

    async def update_location(
        self, location_name: str, location: dict[str, Any], update_mask: Optional[str] = None
    ) -> dict[str, Any]:
        params = {"updateMask": update_mask} if update_mask else None
        return await self._request(
            "PATCH",
            f"{BUSINESS_INFORMATION_BASE}/{_bare_location_name(location_name)}",
            params=params,
            json_data=location,
            resource=f"location {location_name}",
        )

    async def delete_location(self, location_name: str) -> None:
        await self._request(
            "DELETE",
            f"{BUSINESS_INFORMATION_BASE}/{_bare_location_name(location_name)}",
            resource=f"location {location_name}",
        )

    # -------------------------------------------------------------------------
    # Reviews (legacy v4)
    # -------------------------------------------------------------------------

    async def get_reviews(self, location_name: str) -> list[dict[str, Any]]:
        """All reviews for ``accounts/{a}/locations/{l}``, following page tokens."""
        reviews: list[dict[str, Any]] = []
        page_token: Optional[str] = None
        for _ in range(REVIEWS_MAX_PAGES):
            params: dict[str, Any] = {"pageSize": REVIEWS_PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            data = await self._request(
                "GET",
                f"{LEGACY_V4_BASE}/{location_name}/reviews",
                params=params,
                resource=f"reviews for {location_name}",
            )
            reviews.extend(data.get("reviews", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                break
        return reviews

    async def create_reply(self, review_name: str, comment: str) -> dict[str, Any]:
        return await self._request(
            "PUT",
            f"{LEGACY_V4_BASE}/{review_name}/reply",
            json_data={"comment": comment},
            resource=f"review {review_name}",
        )

    async def delete_reply(self, review_name: str) -> None:
        await self._request(
            "DELETE",
            f"{LEGACY_V4_BASE}/{review_name}/reply",
            resource=f"review {review_name}",
        )


# =============================================================================
# Helpers
# =============================================================================


def _bare_location_name(location_name: str) -> str:
    """Business Information v1 addresses locations as ``locations/{id}``."""
    if "/locations/" in location_name:
        return "locations/" + location_name.rsplit("/locations/", 1)[1]
    if location_name.startswith("locations/"):
        return location_name
    return f"locations/{location_name}"


def _upstream_error(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    error = body.get("error", {}) if isinstance(body, dict) else {}
    if isinstance(error, dict):
        parts = [error.get("status"), error.get("message")]
        return " ".join(p for p in parts if p) or response.text[:500]
    return str(error)


def _error_message(status: int, resource: str, upstream: str) -> str:
    target = resource or "resource"
    if status == 401:
        return "Authentication failed. Please refresh your Google Business Profile connection."
    if status == 403:
        if "RESOURCE_EXHAUSTED" in upstream or "quota" in upstream.lower():
            return f"Google API quota exceeded for {target}: {upstream}"
        return f"Access denied for {target}"
    if status == 404:
        return f"Not found: {target}"
    if status == 429:
        return f"Google API quota exceeded for {target}"
    if status == 400:
        if "invalid argument" in upstream.lower():
            return f"Invalid request for {target}. The ID may be wrong or the caller lacks access."
        return f"Bad request to Google Business API for {target}: {upstream}"
    return f"Google Business API error {status} for {target}: {upstream}"
