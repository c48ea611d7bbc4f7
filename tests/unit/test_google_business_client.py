"""Unit tests for the Google Business Profile HTTP client and error mapping."""

import json

import httpx
import pytest
from tenacity import wait_none

from gbp_manager.clients.google_business import (
    LOCATION_READ_MASK,
    GoogleBusinessClient,
    external_id_from_name,
    location_resource_name,
)
from gbp_manager.exceptions import (
    RemoteAuthError,
    RemoteBadRequestError,
    RemoteDirectoryError,
    RemoteNotFoundError,
    RemotePermissionError,
    RemoteQuotaError,
    RemoteUnavailableError,
    classify_remote_status,
)


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(GoogleBusinessClient._request.retry, "wait", wait_none())


def error_body(status: str, message: str = "") -> dict:
    return {"error": {"code": 0, "status": status, "message": message}}


class Recorder:
    """MockTransport handler that replays canned responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def client_for(handler) -> GoogleBusinessClient:
    return GoogleBusinessClient("token-123", transport=httpx.MockTransport(handler))


class TestNameHelpers:
    def test_external_id_is_last_segment(self):
        assert external_id_from_name("accounts/1/locations/987") == "987"
        assert external_id_from_name("locations/987/") == "987"
        assert external_id_from_name(None) is None
        assert external_id_from_name("") is None

    def test_location_resource_name(self):
        assert location_resource_name("accounts/1", "locations/9") == "accounts/1/locations/9"
        assert location_resource_name("accounts/1", "accounts/2/locations/9") == "accounts/2/locations/9"


class TestClassifyRemoteStatus:
    @pytest.mark.parametrize(
        "status,message,expected",
        [
            (401, "unauthenticated", RemoteAuthError),
            (403, "denied", RemotePermissionError),
            (403, "RESOURCE_EXHAUSTED quota", RemoteQuotaError),
            (429, "slow down", RemoteQuotaError),
            (404, "missing", RemoteNotFoundError),
            (400, "bad", RemoteBadRequestError),
            (500, "boom", RemoteUnavailableError),
            (503, "boom", RemoteUnavailableError),
            (503, "quota backend unavailable", RemoteUnavailableError),
            (400, "quota project not set", RemoteBadRequestError),
            (None, "network", RemoteUnavailableError),
        ],
    )
    def test_mapping(self, status, message, expected):
        error = classify_remote_status(status, message)
        assert type(error) is expected
        assert error.remote_status == status

    def test_retryable_markers(self):
        assert classify_remote_status(429, "x").retryable is True
        assert classify_remote_status(503, "x").retryable is True
        assert classify_remote_status(401, "x").retryable is False
        assert classify_remote_status(404, "x").retryable is False

    def test_unmapped_status_is_base_error(self):
        assert type(classify_remote_status(409, "conflict")) is RemoteDirectoryError


class TestAccounts:
    @pytest.mark.asyncio
    async def test_list_accounts_sends_bearer_token(self):
        handler = Recorder(httpx.Response(200, json={"accounts": [{"name": "accounts/1"}, {"name": "accounts/2"}]}))
        async with client_for(handler) as client:
            accounts = await client.list_accounts()

        assert [a["name"] for a in accounts] == ["accounts/1", "accounts/2"]
        request = handler.requests[0]
        assert request.headers["Authorization"] == "Bearer token-123"
        assert request.url.path == "/v1/accounts"
        assert request.url.host == "mybusinessaccountmanagement.googleapis.com"

    @pytest.mark.asyncio
    async def test_connection_success(self):
        handler = Recorder(httpx.Response(200, json={"accounts": [{"name": "accounts/1"}]}))
        async with client_for(handler) as client:
            result = await client.test_connection()
        assert result.success is True
        assert result.account_count == 1

    @pytest.mark.asyncio
    async def test_connection_failure_does_not_raise(self):
        handler = Recorder(httpx.Response(401, json=error_body("UNAUTHENTICATED")))
        async with client_for(handler) as client:
            result = await client.test_connection()
        assert result.success is False
        assert result.status_code == 401
        assert "Authentication failed" in result.error


class TestLocations:
    @pytest.mark.asyncio
    async def test_list_locations_first_page_with_read_mask(self):
        handler = Recorder(httpx.Response(200, json={
            "locations": [{"name": "locations/1"}], "nextPageToken": "ignored",
        }))
        async with client_for(handler) as client:
            locations = await client.list_locations("accounts/1")

        assert locations == [{"name": "locations/1"}]
        assert len(handler.requests) == 1
        params = handler.requests[0].url.params
        assert params["readMask"] == LOCATION_READ_MASK
        assert params["pageSize"] == "100"
        assert handler.requests[0].url.path == "/v1/accounts/1/locations"

    @pytest.mark.asyncio
    async def test_get_location_uses_bare_location_name(self):
        handler = Recorder(httpx.Response(200, json={"name": "locations/9", "title": "Cafe"}))
        async with client_for(handler) as client:
            location = await client.get_location("accounts/1/locations/9")
        assert location["title"] == "Cafe"
        assert handler.requests[0].url.path == "/v1/locations/9"

    @pytest.mark.asyncio
    async def test_update_location_sends_mask_and_body(self):
        handler = Recorder(httpx.Response(200, json={"name": "locations/9", "title": "New"}))
        async with client_for(handler) as client:
            await client.update_location("locations/9", {"title": "New"}, update_mask="title")
        request = handler.requests[0]
        assert request.method == "PATCH"
        assert request.url.params["updateMask"] == "title"
        assert json.loads(request.content) == {"title": "New"}

    @pytest.mark.asyncio
    async def test_delete_location_empty_body(self):
        handler = Recorder(httpx.Response(200))
        async with client_for(handler) as client:
            assert await client.delete_location("locations/9") is None
        assert handler.requests[0].method == "DELETE"


class TestReviews:
    @pytest.mark.asyncio
    async def test_get_reviews_follows_page_tokens(self):
        handler = Recorder(
            httpx.Response(200, json={"reviews": [{"reviewId": "a"}], "nextPageToken": "p2"}),
            httpx.Response(200, json={"reviews": [{"reviewId": "b"}]}),
        )
        async with client_for(handler) as client:
            reviews = await client.get_reviews("accounts/1/locations/9")

        assert [r["reviewId"] for r in reviews] == ["a", "b"]
        assert handler.requests[0].url.host == "mybusiness.googleapis.com"
        assert handler.requests[0].url.path == "/v4/accounts/1/locations/9/reviews"
        assert handler.requests[1].url.params["pageToken"] == "p2"

    @pytest.mark.asyncio
    async def test_create_reply_puts_comment(self):
        handler = Recorder(httpx.Response(200, json={"comment": "Thanks!"}))
        async with client_for(handler) as client:
            await client.create_reply("accounts/1/locations/9/reviews/a", "Thanks!")
        request = handler.requests[0]
        assert request.method == "PUT"
        assert request.url.path == "/v4/accounts/1/locations/9/reviews/a/reply"
        assert json.loads(request.content) == {"comment": "Thanks!"}


class TestErrorMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,body,expected",
        [
            (401, error_body("UNAUTHENTICATED"), RemoteAuthError),
            (403, error_body("PERMISSION_DENIED", "caller lacks access"), RemotePermissionError),
            (403, error_body("RESOURCE_EXHAUSTED", "Quota exceeded"), RemoteQuotaError),
            (404, error_body("NOT_FOUND"), RemoteNotFoundError),
            (400, error_body("INVALID_ARGUMENT", "Request contains an invalid argument."), RemoteBadRequestError),
        ],
    )
    async def test_status_mapping(self, status, body, expected):
        handler = Recorder(httpx.Response(status, json=body))
        async with client_for(handler) as client:
            with pytest.raises(expected) as exc_info:
                await client.get_location("locations/9")
        assert exc_info.value.remote_status == status
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_quota_errors_are_not_retried(self):
        handler = Recorder(httpx.Response(429, json=error_body("RESOURCE_EXHAUSTED")))
        async with client_for(handler) as client:
            with pytest.raises(RemoteQuotaError):
                await client.list_accounts()
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_server_errors_retried_then_succeed(self):
        handler = Recorder(
            httpx.Response(503, json=error_body("UNAVAILABLE")),
            httpx.Response(200, json={"accounts": []}),
        )
        async with client_for(handler) as client:
            assert await client.list_accounts() == []
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_server_error_mentioning_quota_is_still_retried(self):
        handler = Recorder(
            httpx.Response(503, json=error_body("UNAVAILABLE", "quota backend unavailable")),
            httpx.Response(200, json={"accounts": []}),
        )
        async with client_for(handler) as client:
            assert await client.list_accounts() == []
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_server_errors_give_up_after_three_attempts(self):
        handler = Recorder(httpx.Response(500, text="internal"))
        async with client_for(handler) as client:
            with pytest.raises(RemoteUnavailableError):
                await client.list_accounts()
        assert len(handler.requests) == 3

    @pytest.mark.asyncio
    async def test_timeout_maps_to_unavailable(self):
        handler = Recorder(httpx.ConnectTimeout("timed out"))
        async with client_for(handler) as client:
            with pytest.raises(RemoteUnavailableError) as exc_info:
                await client.list_accounts()
        assert "timeout" in exc_info.value.message.lower()
        assert len(handler.requests) == 3
