"""Token expiry evaluation."""

from __future__ import annotations

import time


def is_token_expired(
    expires_at: int,
    clock_drift: int = 0,
    now: float | None = None,
) -> bool:
    """Return ``True`` if a token expiring at *expires_at* is stale.

    Parameters
    ----------
    expires_at:
        Expiry instant in milliseconds since the epoch. ``0`` means the token
        carried no ``exp`` claim and is always treated as expired.
    clock_drift:
        Seconds the local clock runs ahead of the server's; added to the
        current time before comparing.
    now:
        Current time in milliseconds. Defaults to the wall clock.
    """
    if expires_at == 0:
        return True
    if now is None:
        now = time.time() * 1000
    return now + clock_drift * 1000 >= expires_at
