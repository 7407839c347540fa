import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from app.services.zoho_errors import ZohoApiError, ZohoAuthError
from app.services.zoho_oauth_service import ZohoOAuthService


class Clock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _service(handler, clock=None) -> tuple[ZohoOAuthService, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
    return ZohoOAuthService(http_client=client, clock=clock or Clock()), requests


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})


@pytest.mark.asyncio
async def test_refresh_grant_uses_profile_credentials(profile):
    service, requests = _service(_ok)

    token = await service.get_access_token(profile)

    assert token == "tok-1"
    form = parse_qs(requests[0].content.decode())
    assert form["grant_type"] == ["refresh_token"]
    assert form["refresh_token"] == ["refresh-token"]
    assert form["client_id"] == ["client-id"]
    assert form["client_secret"] == ["client-secret"]
    assert requests[0].url.path == "/oauth/v2/token"


@pytest.mark.asyncio
async def test_token_is_cached_until_expiry_skew(profile):
    clock = Clock()
    service, requests = _service(_ok, clock)

    await service.get_access_token(profile)
    clock.now += 3600 - 61
    await service.get_access_token(profile)
    assert len(requests) == 1

    clock.now += 2
    await service.get_access_token(profile)
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_concurrent_refreshes_are_single_flight(profile):
    service, requests = _service(_ok)

    tokens = await asyncio.gather(*(service.get_access_token(profile) for _ in range(5)))

    assert tokens == ["tok-1"] * 5
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_invalidate_forces_refresh(profile):
    service, requests = _service(_ok)

    await service.get_access_token(profile)
    service.invalidate(profile.profile_name)
    await service.get_access_token(profile)

    assert len(requests) == 2


@pytest.mark.asyncio
async def test_error_in_token_body_raises_auth_error(profile):
    service, _ = _service(lambda request: httpx.Response(200, json={"error": "invalid_code"}))

    with pytest.raises(ZohoAuthError) as exc_info:
        await service.get_access_token(profile)

    assert str(exc_info.value) == "invalid_code"


@pytest.mark.asyncio
async def test_http_error_from_token_endpoint(profile):
    service, _ = _service(lambda request: httpx.Response(500, text="upstream down"))

    with pytest.raises(ZohoApiError) as exc_info:
        await service.get_access_token(profile)

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_failed_refresh_is_not_cached(profile):
    responses = iter(
        [
            httpx.Response(200, json={"error": "invalid_client"}),
            httpx.Response(200, json={"access_token": "tok-2", "expires_in": 3600}),
        ]
    )
    service, requests = _service(lambda request: next(responses))

    with pytest.raises(ZohoAuthError):
        await service.get_access_token(profile)
    assert await service.get_access_token(profile) == "tok-2"
    assert len(requests) == 2
