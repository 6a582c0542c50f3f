"""Token orchestration: read, evaluate, refresh, persist or clear.

:class:`TokenOrchestrator` is the single facade callers use to obtain the
current tokens.  It waits for any in-flight interactive sign-in, loads the
stored :class:`TokenSet`, refreshes it when stale (or when asked to), and
turns refresher failures into either ``None`` ("sign in again") or an
exception::

    orchestrator = (
        TokenOrchestratorBuilder()
        .with_auth_config(config)
        .with_token_store(FileTokenStore())
        .with_token_refresher(HttpTokenRefresher())
        .build()
    )
    session = await orchestrator.get_tokens()
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from .api.refresher import HttpTokenRefresher, TokenRefresher
from .errors import (
    EMPTY_TOKEN_REFRESHER,
    EMPTY_TOKEN_STORE,
    AuthConfigurationError,
    AuthError,
    RefreshFailure,
    ServiceError,
    classify_refresh_error,
)
from .expiry import is_token_expired
from .hub import AUTH_CHANNEL, AUTH_SOURCE, TOKEN_REFRESH, TOKEN_REFRESH_FAILURE, EventNotifier, Hub
from .models.config import AuthConfig, assert_token_provider_config
from .models.tokens import AuthSession, DeviceMetadata, FetchAuthSessionOptions, TokenSet
from .storage.config import AppSettings, load_auth_config
from .storage.tokens import FileTokenStore, TokenStore

WaitHook = Callable[[], Awaitable[None]]


async def _no_inflight_oauth() -> None:
    return None


class TokenOrchestrator:
    """Coordinates token reads and refreshes against a store and a refresher.

    Parameters
    ----------
    notifier:
        Receives ``tokenRefresh`` / ``tokenRefresh_failure`` events on the
        ``auth`` channel. A private :class:`Hub` is created when omitted.
    single_flight:
        When ``True`` concurrent refreshes share one in-flight refresher call.
    """

    def __init__(
        self,
        notifier: EventNotifier | None = None,
        single_flight: bool = False,
    ) -> None:
        self.auth_config: AuthConfig | None = None
        self.token_store: TokenStore | None = None
        self.token_refresher: TokenRefresher | None = None
        self.wait_for_inflight_oauth: WaitHook = _no_inflight_oauth
        self.notifier: EventNotifier = notifier if notifier is not None else Hub()
        self.single_flight = single_flight
        self._refresh_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    def set_auth_config(self, auth_config: AuthConfig | None) -> None:
        self.auth_config = auth_config

    def set_token_refresher(self, token_refresher: TokenRefresher) -> None:
        self.token_refresher = token_refresher

    def set_token_store(self, token_store: TokenStore) -> None:
        self.token_store = token_store

    def set_wait_for_inflight_oauth(self, wait_for_inflight_oauth: WaitHook) -> None:
        self.wait_for_inflight_oauth = wait_for_inflight_oauth

    def get_token_store(self) -> TokenStore:
        if self.token_store is None:
            raise AuthError(EMPTY_TOKEN_STORE, "TokenStore not set")
        return self.token_store

    def get_token_refresher(self) -> TokenRefresher:
        if self.token_refresher is None:
            raise AuthError(EMPTY_TOKEN_REFRESHER, "TokenRefresher not set")
        return self.token_refresher

    # ------------------------------------------------------------------
    # Token access
    # ------------------------------------------------------------------

    async def get_tokens(self, options: FetchAuthSessionOptions | None = None) -> AuthSession | None:
        """Return the current session, refreshing it first when needed.

        Returns ``None`` when token management is not configured, nothing is
        stored, or the identity provider no longer authorises the session.
        Network and unexpected provider errors are raised.
        """
        try:
            assert_token_provider_config(self.auth_config.token_provider if self.auth_config else None)
        except AuthConfigurationError:
            logger.debug("Token provider not configured; no session")
            return None

        await self.wait_for_inflight_oauth()
        store = self.get_token_store()
        tokens = await store.load_tokens()
        username = await store.get_last_auth_user()
        if tokens is None:
            return None

        id_token_expired = tokens.id_token is not None and is_token_expired(
            tokens.id_token.expires_at, tokens.clock_drift
        )
        access_token_expired = is_token_expired(tokens.access_token.expires_at, tokens.clock_drift)

        force_refresh = options is not None and options.force_refresh
        if force_refresh or id_token_expired or access_token_expired:
            tokens = await self.refresh_tokens(tokens, username)
            if tokens is None:
                return None

        return AuthSession(
            access_token=tokens.access_token,
            id_token=tokens.id_token,
            sign_in_details=tokens.sign_in_details,
        )

    async def refresh_tokens(self, tokens: TokenSet, username: str) -> TokenSet | None:
        """Exchange *tokens* for a fresh set and persist it.

        Returns ``None`` if the provider rejected the session as not
        authorised; re-raises every other refresher failure.
        """
        if not self.single_flight:
            return await self._refresh_tokens(tokens, username)

        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.ensure_future(self._refresh_tokens(tokens, username))
            task.add_done_callback(self._forget_refresh_task)
            self._refresh_task = task
        else:
            logger.debug("Joining refresh already in flight")
        return await asyncio.shield(task)

    def _forget_refresh_task(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        # Mark the outcome as retrieved even if every waiter was cancelled.
        if not task.cancelled():
            task.exception()

    async def _refresh_tokens(self, tokens: TokenSet, username: str) -> TokenSet | None:
        refresher = self.get_token_refresher()
        logger.debug(f"Refreshing tokens for {username}")
        try:
            new_tokens = await refresher(tokens, self.auth_config, username)
        except ServiceError as err:
            return await self._handle_refresh_error(err)

        await self.set_tokens(new_tokens)
        self.notifier.publish(AUTH_CHANNEL, TOKEN_REFRESH, source=AUTH_SOURCE)
        logger.debug("Token refresh succeeded")
        return new_tokens

    async def _handle_refresh_error(self, err: ServiceError) -> TokenSet | None:
        failure = classify_refresh_error(err)
        logger.error(f"Token refresh failed ({failure.value}): {err.name}: {err.message}")

        if failure is not RefreshFailure.NETWORK:
            await self.clear_tokens()
        self.notifier.publish(AUTH_CHANNEL, TOKEN_REFRESH_FAILURE, err, source=AUTH_SOURCE)

        if failure is RefreshFailure.NOT_AUTHORIZED:
            return None
        raise err

    # ------------------------------------------------------------------
    # Store pass-throughs
    # ------------------------------------------------------------------

    async def set_tokens(self, tokens: TokenSet) -> None:
        await self.get_token_store().store_tokens(tokens)

    async def clear_tokens(self) -> None:
        await self.get_token_store().clear_tokens()

    async def get_device_metadata(self, username: str | None = None) -> DeviceMetadata | None:
        return await self.get_token_store().get_device_metadata(username)

    async def clear_device_metadata(self, username: str | None = None) -> None:
        await self.get_token_store().clear_device_metadata(username)


class TokenOrchestratorBuilder:
    """Collects the collaborators an orchestrator needs before creating it.

    :meth:`build` refuses to produce an orchestrator without an auth config,
    a token store and a token refresher.
    """

    def __init__(self) -> None:
        self._auth_config: AuthConfig | None = None
        self._token_store: TokenStore | None = None
        self._token_refresher: TokenRefresher | None = None
        self._wait_for_inflight_oauth: WaitHook | None = None
        self._notifier: EventNotifier | None = None
        self._single_flight = False

    @classmethod
    def from_settings(cls) -> TokenOrchestratorBuilder:
        """Pre-populate a builder from :class:`AppSettings`.

        Uses a :class:`FileTokenStore` and an :class:`HttpTokenRefresher`.
        Missing auth settings yield an empty :class:`AuthConfig`, under which
        the orchestrator reports no session.
        """
        settings = AppSettings.load()
        return (
            cls()
            .with_auth_config(load_auth_config() or AuthConfig())
            .with_token_store(FileTokenStore())
            .with_token_refresher(HttpTokenRefresher(timeout=float(settings["refresh_timeout"])))
            .with_single_flight(bool(settings["single_flight_refresh"]))
        )

    def with_auth_config(self, auth_config: AuthConfig) -> TokenOrchestratorBuilder:
        self._auth_config = auth_config
        return self

    def with_token_store(self, token_store: TokenStore) -> TokenOrchestratorBuilder:
        self._token_store = token_store
        return self

    def with_token_refresher(self, token_refresher: TokenRefresher) -> TokenOrchestratorBuilder:
        self._token_refresher = token_refresher
        return self

    def with_wait_for_inflight_oauth(self, hook: WaitHook) -> TokenOrchestratorBuilder:
        self._wait_for_inflight_oauth = hook
        return self

    def with_notifier(self, notifier: EventNotifier) -> TokenOrchestratorBuilder:
        self._notifier = notifier
        return self

    def with_single_flight(self, enabled: bool = True) -> TokenOrchestratorBuilder:
        self._single_flight = enabled
        return self

    def build(self) -> TokenOrchestrator:
        missing = [
            name
            for name, value in (
                ("auth_config", self._auth_config),
                ("token_store", self._token_store),
                ("token_refresher", self._token_refresher),
            )
            if value is None
        ]
        if missing:
            raise AuthError(
                "IncompleteOrchestratorException",
                f"Cannot build TokenOrchestrator without: {', '.join(missing)}",
            )

        orchestrator = TokenOrchestrator(notifier=self._notifier, single_flight=self._single_flight)
        orchestrator.set_auth_config(self._auth_config)
        orchestrator.set_token_store(self._token_store)
        orchestrator.set_token_refresher(self._token_refresher)
        if self._wait_for_inflight_oauth is not None:
            orchestrator.set_wait_for_inflight_oauth(self._wait_for_inflight_oauth)
        return orchestrator
