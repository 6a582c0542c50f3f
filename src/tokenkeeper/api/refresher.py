"""Token refreshers: the network boundary of the orchestrator.

A refresher is any async callable taking ``(tokens, auth_config, username)``
and returning a fresh :class:`TokenSet`.  Provider-side failures must surface
as :class:`~tokenkeeper.errors.ServiceError` variants so the orchestrator can
classify them; :class:`HttpTokenRefresher` does this for a standard OAuth 2.0
``refresh_token`` grant.
"""

from __future__ import annotations

from typing import Protocol

import httpx
from loguru import logger
from pydantic import ValidationError

from ..errors import (
    AuthConfigurationError,
    NetworkError,
    NotAuthorizedError,
    ServiceError,
)
from ..models.config import AuthConfig
from ..models.tokens import TokenSet
from ..storage.tokens import DEFAULT_AUTH_USER

# OAuth error codes meaning the refresh token itself is no longer accepted.
NOT_AUTHORIZED_OAUTH_ERRORS = frozenset({"invalid_grant", "invalid_token", "unauthorized_client"})


class TokenRefresher(Protocol):
    async def __call__(
        self,
        tokens: TokenSet,
        auth_config: AuthConfig | None,
        username: str,
    ) -> TokenSet: ...


class HttpTokenRefresher:
    """Refresh tokens against an OAuth 2.0 token endpoint using :mod:`httpx`.

    Parameters
    ----------
    endpoint:
        Token endpoint URL. Falls back to ``token_provider.token_endpoint``
        from the auth config passed on each call.
    timeout:
        Request timeout in seconds, used when no *client* is supplied.
    client:
        Optional shared :class:`httpx.AsyncClient`. When omitted a client is
        opened and closed around every refresh.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self._client = client

    async def __call__(
        self,
        tokens: TokenSet,
        auth_config: AuthConfig | None,
        username: str,
    ) -> TokenSet:
        if not tokens.refresh_token:
            raise NotAuthorizedError("No refresh token available")

        provider = auth_config.token_provider if auth_config else None
        endpoint = self.endpoint or (provider.token_endpoint if provider else None)
        if provider is None or not endpoint:
            raise AuthConfigurationError("No token endpoint configured for refresh")

        form = {
            "grant_type": "refresh_token",
            "client_id": provider.user_pool_client_id,
            "refresh_token": tokens.refresh_token,
        }
        logger.debug(f"Refreshing tokens for {username} at {endpoint}")
        if self._client is not None:
            resp = await self._post(self._client, endpoint, form)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await self._post(client, endpoint, form)

        if resp.status_code >= 400:
            raise self._error_from_response(resp)
        return self._tokens_from_response(resp, tokens, username)

    @staticmethod
    async def _post(client: httpx.AsyncClient, endpoint: str, form: dict[str, str]) -> httpx.Response:
        try:
            return await client.post(
                endpoint,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.TransportError as exc:
            logger.error(f"Token refresh request failed: {exc}")
            raise NetworkError(underlying_error=exc) from exc

    @staticmethod
    def _error_from_response(resp: httpx.Response) -> ServiceError:
        """Translate a non-2xx token endpoint response into a ServiceError."""
        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}
        error = body.get("error") or ""
        description = body.get("error_description") or error or f"HTTP {resp.status_code}"

        if resp.status_code in (400, 401) and error in NOT_AUTHORIZED_OAUTH_ERRORS:
            return NotAuthorizedError(description)
        return ServiceError(error or f"HttpStatus{resp.status_code}", description)

    @staticmethod
    def _tokens_from_response(resp: httpx.Response, previous: TokenSet, username: str) -> TokenSet:
        try:
            data = resp.json()
        except ValueError as exc:
            raise ServiceError("InvalidResponseException", "Token endpoint returned non-JSON body") from exc
        if not isinstance(data, dict) or not data.get("access_token"):
            raise ServiceError("InvalidResponseException", "Token endpoint response has no access_token")
        try:
            return TokenSet(
                access_token=data["access_token"],
                id_token=data.get("id_token"),
                refresh_token=data.get("refresh_token", previous.refresh_token),
                clock_drift=previous.clock_drift,
                sign_in_details=previous.sign_in_details,
                username=previous.username or (username if username != DEFAULT_AUTH_USER else None),
                device_metadata=previous.device_metadata,
            )
        except ValidationError as exc:
            raise ServiceError("InvalidResponseException", f"Token endpoint returned malformed tokens: {exc}") from exc
