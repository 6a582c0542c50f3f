"""Re-export all tokenkeeper data models for convenient access."""

from tokenkeeper.models.config import (
    AuthConfig,
    TokenProviderConfig,
    assert_token_provider_config,
)
from tokenkeeper.models.tokens import (
    JWT,
    AuthSession,
    DeviceMetadata,
    FetchAuthSessionOptions,
    SignInDetails,
    TokenSet,
)

__all__ = [
    # Token models
    "JWT",
    "AuthSession",
    "DeviceMetadata",
    "FetchAuthSessionOptions",
    "SignInDetails",
    "TokenSet",
    # Config models
    "AuthConfig",
    "TokenProviderConfig",
    "assert_token_provider_config",
]
