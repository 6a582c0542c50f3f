"""Pydantic v2 models for the credential state held by tokenkeeper."""

from __future__ import annotations

import base64
import json
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator


class JWT(BaseModel):
    """A compact JWT string together with its decoded payload.

    The signature is **not** verified; the payload is only read so expiry
    and subject claims can be inspected client-side.
    """

    model_config = ConfigDict(frozen=True)

    token: str
    payload: dict[str, Any]

    @classmethod
    def parse(cls, token: str) -> JWT:
        """Decode *token* into a :class:`JWT`.

        Raises :class:`ValueError` when the token is not a three-part JWT
        with a JSON object payload.
        """
        parts = token.split(".")
        if len(parts) != 3:
            raise ValueError("Invalid JWT: expected three dot-separated segments")
        segment = parts[1]
        # Pad to a multiple of 4 for base64 decoding.
        segment += "=" * (-len(segment) % 4)
        try:
            payload = json.loads(base64.urlsafe_b64decode(segment))
        except ValueError as exc:
            raise ValueError(f"Invalid JWT payload: {exc}") from exc
        if not isinstance(payload, dict):
            raise ValueError("Invalid JWT payload: not a JSON object")
        return cls(token=token, payload=payload)

    @property
    def exp(self) -> int | None:
        """The ``exp`` claim in seconds since the epoch, if present."""
        value = self.payload.get("exp")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return math.ceil(value)
        return None

    @property
    def expires_at(self) -> int:
        """Expiry instant in milliseconds; ``0`` when the claim is missing."""
        return (self.exp or 0) * 1000

    @property
    def subject(self) -> str | None:
        return self.payload.get("sub")

    def __str__(self) -> str:
        return self.token


def _coerce_jwt(value: Any) -> Any:
    if isinstance(value, str):
        return JWT.parse(value)
    return value


class DeviceMetadata(BaseModel):
    """Per-user device record used by device-bound sign-in flows."""

    model_config = ConfigDict(populate_by_name=True)

    device_key: str
    device_group_key: str
    random_password: str


class SignInDetails(BaseModel):
    """How the current session was established. Never interpreted here."""

    model_config = ConfigDict(populate_by_name=True)

    login_id: str | None = None
    auth_flow_type: str | None = None


class TokenSet(BaseModel):
    """The full credential bundle persisted by a token store.

    Token fields accept raw JWT strings and serialise back to them, so a
    ``TokenSet`` survives a JSON round trip unchanged.
    """

    model_config = ConfigDict(populate_by_name=True)

    access_token: JWT
    id_token: JWT | None = None
    refresh_token: str | None = None
    clock_drift: int = 0
    sign_in_details: SignInDetails | None = None
    username: str | None = None
    device_metadata: DeviceMetadata | None = None

    @field_validator("access_token", "id_token", mode="before")
    @classmethod
    def _parse_jwt(cls, value: Any) -> Any:
        return _coerce_jwt(value)

    @field_serializer("access_token", "id_token")
    def _dump_jwt(self, value: JWT | None) -> str | None:
        return value.token if value is not None else None


class AuthSession(BaseModel):
    """Tokens handed back to callers of ``get_tokens``."""

    access_token: JWT
    id_token: JWT | None = None
    sign_in_details: SignInDetails | None = None


class FetchAuthSessionOptions(BaseModel):
    force_refresh: bool = False
