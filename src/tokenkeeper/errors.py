"""Exception types raised by tokenkeeper.

Every error carries a ``name`` (the error kind reported by the identity
provider or by tokenkeeper itself) alongside the human-readable message.
Refresh failures are a closed set of :class:`ServiceError` variants which
:func:`classify_refresh_error` maps onto a :class:`RefreshFailure`.
"""

from __future__ import annotations

from enum import Enum

NETWORK_ERROR_MESSAGE = "Network error"
NOT_AUTHORIZED_PREFIX = "NotAuthorizedException"

EMPTY_TOKEN_STORE = "EmptyTokenStoreException"
EMPTY_TOKEN_REFRESHER = "EmptyTokenRefresherException"


class AuthError(Exception):
    """Base class for all tokenkeeper errors."""

    def __init__(
        self,
        name: str,
        message: str,
        recovery_suggestion: str | None = None,
        underlying_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.name = name
        self.message = message
        self.recovery_suggestion = recovery_suggestion
        self.underlying_error = underlying_error

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, message={self.message!r})"


class AuthConfigurationError(AuthError):
    """Raised when no usable token-provider configuration is attached."""

    def __init__(self, message: str) -> None:
        super().__init__(
            "AuthTokenConfigException",
            message,
            recovery_suggestion="Attach an AuthConfig with a token_provider block.",
        )


class ServiceError(AuthError):
    """An error originating from the identity provider during a refresh."""

    @property
    def kind(self) -> str:
        return self.name


class NetworkError(ServiceError):
    """The identity provider could not be reached."""

    def __init__(self, underlying_error: BaseException | None = None) -> None:
        super().__init__(
            "NetworkError",
            NETWORK_ERROR_MESSAGE,
            recovery_suggestion="Check the network connection and retry.",
            underlying_error=underlying_error,
        )


class NotAuthorizedError(ServiceError):
    """The identity provider rejected the current credentials."""

    def __init__(
        self,
        message: str = "Refresh token is no longer valid",
        name: str = NOT_AUTHORIZED_PREFIX,
        underlying_error: BaseException | None = None,
    ) -> None:
        if not name.startswith(NOT_AUTHORIZED_PREFIX):
            name = f"{NOT_AUTHORIZED_PREFIX}{name}"
        super().__init__(
            name,
            message,
            recovery_suggestion="Sign in again.",
            underlying_error=underlying_error,
        )


class RefreshFailure(str, Enum):
    NETWORK = "network"
    NOT_AUTHORIZED = "not_authorized"
    OTHER = "other"


def classify_refresh_error(err: ServiceError) -> RefreshFailure:
    """Map a refresher failure onto the action the orchestrator takes."""
    if isinstance(err, NetworkError) or err.message == NETWORK_ERROR_MESSAGE:
        return RefreshFailure.NETWORK
    if err.name.startswith(NOT_AUTHORIZED_PREFIX):
        return RefreshFailure.NOT_AUTHORIZED
    return RefreshFailure.OTHER
