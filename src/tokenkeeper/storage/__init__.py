"""Persistence layer: token stores, settings and file locations."""

from tokenkeeper.storage.tokens import (
    DEFAULT_AUTH_USER,
    FileTokenStore,
    InMemoryTokenStore,
    TokenStore,
)

__all__ = ["DEFAULT_AUTH_USER", "FileTokenStore", "InMemoryTokenStore", "TokenStore"]
