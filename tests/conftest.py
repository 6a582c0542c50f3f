"""Shared fixtures for tokenkeeper tests."""
import pytest

from tokenkeeper.hub import AUTH_CHANNEL, Hub
from tokenkeeper.models import AuthConfig, TokenProviderConfig
from tokenkeeper.storage.tokens import InMemoryTokenStore


@pytest.fixture
def auth_config():
    return AuthConfig(
        token_provider=TokenProviderConfig(
            user_pool_id="pool-1",
            user_pool_client_id="client-1",
            token_endpoint="https://idp.example.test/oauth2/token",
        )
    )


@pytest.fixture
def store():
    return InMemoryTokenStore()


@pytest.fixture
def hub():
    return Hub()


@pytest.fixture
def events(hub):
    """Record every (event, data) published on the auth channel."""
    received = []
    hub.listen(AUTH_CHANNEL, lambda capsule: received.append((capsule.payload.event, capsule.payload.data)))
    return received
