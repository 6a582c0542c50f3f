"""Pydantic v2 models for identity-provider configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from ..errors import AuthConfigurationError


class TokenProviderConfig(BaseModel):
    """The identity-provider block that switches token management on."""

    model_config = ConfigDict(populate_by_name=True)

    user_pool_id: str
    user_pool_client_id: str
    token_endpoint: str | None = None


class AuthConfig(BaseModel):
    """Top-level auth configuration attached to an orchestrator."""

    model_config = ConfigDict(populate_by_name=True)

    token_provider: TokenProviderConfig | None = None


def assert_token_provider_config(config: TokenProviderConfig | None) -> None:
    """Raise :class:`AuthConfigurationError` unless *config* is usable."""
    if config is None:
        raise AuthConfigurationError("Token provider configuration is missing")
    if not config.user_pool_id or not config.user_pool_client_id:
        raise AuthConfigurationError(
            "Token provider configuration requires user_pool_id and user_pool_client_id"
        )
