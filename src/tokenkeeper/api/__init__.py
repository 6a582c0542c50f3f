"""Identity-provider client layer -- re-exports the refresher types."""

from tokenkeeper.api.refresher import HttpTokenRefresher, TokenRefresher

__all__ = ["HttpTokenRefresher", "TokenRefresher"]
