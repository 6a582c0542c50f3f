"""tokenkeeper -- client-side token lifecycle orchestration."""

from tokenkeeper.errors import (
    AuthConfigurationError,
    AuthError,
    NetworkError,
    NotAuthorizedError,
    RefreshFailure,
    ServiceError,
)
from tokenkeeper.expiry import is_token_expired
from tokenkeeper.hub import EventNotifier, Hub, HubCapsule
from tokenkeeper.models import (
    JWT,
    AuthConfig,
    AuthSession,
    DeviceMetadata,
    FetchAuthSessionOptions,
    SignInDetails,
    TokenProviderConfig,
    TokenSet,
)
from tokenkeeper.oauth import InflightOAuthTracker
from tokenkeeper.orchestrator import TokenOrchestrator, TokenOrchestratorBuilder

__version__ = "0.1.0"

__all__ = [
    "JWT",
    "AuthConfig",
    "AuthConfigurationError",
    "AuthError",
    "AuthSession",
    "DeviceMetadata",
    "EventNotifier",
    "FetchAuthSessionOptions",
    "Hub",
    "HubCapsule",
    "InflightOAuthTracker",
    "NetworkError",
    "NotAuthorizedError",
    "RefreshFailure",
    "ServiceError",
    "SignInDetails",
    "TokenOrchestrator",
    "TokenOrchestratorBuilder",
    "TokenProviderConfig",
    "TokenSet",
    "is_token_expired",
]
