"""Tests for the OAuth 2.0 HTTP token refresher."""
from urllib.parse import parse_qs

import httpx
import pytest

from helpers import fresh_exp, make_jwt, make_tokens
from tokenkeeper.api.refresher import HttpTokenRefresher
from tokenkeeper.errors import (
    AuthConfigurationError,
    NetworkError,
    NotAuthorizedError,
    RefreshFailure,
    ServiceError,
    classify_refresh_error,
)
from tokenkeeper.models import AuthConfig, FetchAuthSessionOptions, SignInDetails
from tokenkeeper.orchestrator import TokenOrchestrator
from tokenkeeper.storage.tokens import DEFAULT_AUTH_USER, InMemoryTokenStore


def _refresher(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpTokenRefresher(client=client, **kwargs), client


class TestHttpTokenRefresher:
    async def test_successful_refresh(self, auth_config):
        seen = {}
        new_access = make_jwt(fresh_exp(), token_use="access")

        def handler(request):
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json={"access_token": new_access, "expires_in": 3600})

        refresher, client = _refresher(handler)
        previous = make_tokens(
            clock_drift=3,
            sign_in_details=SignInDetails(login_id="alice@example.test"),
        )
        async with client:
            tokens = await refresher(previous, auth_config, "alice")

        assert seen["url"] == "https://idp.example.test/oauth2/token"
        assert seen["form"] == {
            "grant_type": ["refresh_token"],
            "client_id": ["client-1"],
            "refresh_token": ["refresh-1"],
        }
        assert tokens.access_token.token == new_access
        assert tokens.id_token is None
        assert tokens.refresh_token == "refresh-1"
        assert tokens.clock_drift == 3
        assert tokens.sign_in_details == previous.sign_in_details
        assert tokens.username == "alice"

    async def test_rotated_refresh_token_and_id_token(self, auth_config):
        new_id = make_jwt(fresh_exp(), token_use="id")

        def handler(request):
            return httpx.Response(200, json={
                "access_token": make_jwt(fresh_exp()),
                "id_token": new_id,
                "refresh_token": "refresh-2",
            })

        refresher, client = _refresher(handler)
        async with client:
            tokens = await refresher(make_tokens(), auth_config, "alice")
        assert tokens.id_token.token == new_id
        assert tokens.refresh_token == "refresh-2"

    async def test_placeholder_username_not_adopted(self, auth_config):
        def handler(request):
            return httpx.Response(200, json={"access_token": make_jwt(fresh_exp())})

        refresher, client = _refresher(handler)
        async with client:
            tokens = await refresher(make_tokens(username=None), auth_config, DEFAULT_AUTH_USER)
        assert tokens.username is None

    async def test_anonymous_refresh_leaves_no_last_auth_user(self, auth_config, hub):
        def handler(request):
            return httpx.Response(200, json={"access_token": make_jwt(fresh_exp())})

        store = InMemoryTokenStore()
        await store.store_tokens(make_tokens(username=None))
        refresher, client = _refresher(handler)
        orchestrator = TokenOrchestrator(notifier=hub)
        orchestrator.set_auth_config(auth_config)
        orchestrator.set_token_store(store)
        orchestrator.set_token_refresher(refresher)

        async with client:
            session = await orchestrator.get_tokens(FetchAuthSessionOptions(force_refresh=True))

        assert session is not None
        assert (await store.load_tokens()).username is None
        assert "last_auth_user" not in store._document

    async def test_explicit_endpoint_wins(self, auth_config):
        urls = []

        def handler(request):
            urls.append(str(request.url))
            return httpx.Response(200, json={"access_token": make_jwt(fresh_exp())})

        refresher, client = _refresher(handler, endpoint="https://other.example.test/token")
        async with client:
            await refresher(make_tokens(), auth_config, "alice")
        assert urls == ["https://other.example.test/token"]

    async def test_transport_failure_is_network_error(self, auth_config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        refresher, client = _refresher(handler)
        async with client:
            with pytest.raises(NetworkError) as exc_info:
                await refresher(make_tokens(), auth_config, "alice")
        assert classify_refresh_error(exc_info.value) is RefreshFailure.NETWORK

    @pytest.mark.parametrize("error", ["invalid_grant", "invalid_token", "unauthorized_client"])
    async def test_rejected_refresh_token_is_not_authorized(self, auth_config, error):
        def handler(request):
            return httpx.Response(400, json={"error": error, "error_description": "Refresh Token has expired"})

        refresher, client = _refresher(handler)
        async with client:
            with pytest.raises(NotAuthorizedError) as exc_info:
                await refresher(make_tokens(), auth_config, "alice")
        assert exc_info.value.message == "Refresh Token has expired"

    async def test_server_error_is_generic_service_error(self, auth_config):
        def handler(request):
            return httpx.Response(503, text="unavailable")

        refresher, client = _refresher(handler)
        async with client:
            with pytest.raises(ServiceError) as exc_info:
                await refresher(make_tokens(), auth_config, "alice")
        assert exc_info.value.name == "HttpStatus503"
        assert classify_refresh_error(exc_info.value) is RefreshFailure.OTHER

    async def test_response_without_access_token(self, auth_config):
        def handler(request):
            return httpx.Response(200, json={"token_type": "Bearer"})

        refresher, client = _refresher(handler)
        async with client:
            with pytest.raises(ServiceError) as exc_info:
                await refresher(make_tokens(), auth_config, "alice")
        assert exc_info.value.name == "InvalidResponseException"

    async def test_malformed_access_token(self, auth_config):
        def handler(request):
            return httpx.Response(200, json={"access_token": "not-a-jwt"})

        refresher, client = _refresher(handler)
        async with client:
            with pytest.raises(ServiceError):
                await refresher(make_tokens(), auth_config, "alice")

    async def test_missing_refresh_token(self, auth_config):
        refresher = HttpTokenRefresher()
        with pytest.raises(NotAuthorizedError):
            await refresher(make_tokens(refresh_token=None), auth_config, "alice")

    async def test_missing_endpoint_is_configuration_error(self):
        refresher = HttpTokenRefresher()
        with pytest.raises(AuthConfigurationError):
            await refresher(make_tokens(), AuthConfig(), "alice")
