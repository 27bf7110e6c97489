"""Caller identity resolution.

The hosted auth service issues bearer tokens to end users; the billing
service only needs the user id behind a token.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Token missing, invalid, expired, or the auth service failed."""


class IdentityProvider(Protocol):
    """Resolves a bearer token to a stable user id."""

    async def resolve(self, token: str) -> str:
        """Return the user id for token.

        Raises:
            IdentityError: If the token cannot be resolved.
        """
        ...


class SupabaseIdentityProvider:
    """Resolves tokens against the Supabase GoTrue ``/auth/v1/user`` endpoint."""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._url = f"{base_url.rstrip('/')}/auth/v1/user"
        self._anon_key = anon_key
        self._timeout = timeout_seconds
        self._client = client

    async def resolve(self, token: str) -> str:
        if not token:
            raise IdentityError("Missing auth token")
        headers = {"apikey": self._anon_key, "Authorization": f"Bearer {token}"}
        try:
            if self._client is not None:
                response = await self._client.get(
                    self._url, headers=headers, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(self._url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Auth service request failed: %s", e)
            raise IdentityError("Auth service unavailable") from e

        if response.status_code != 200:
            raise IdentityError("Invalid auth token")
        try:
            user_id = response.json().get("id")
        except (ValueError, AttributeError):
            user_id = None
        if not user_id:
            raise IdentityError("Invalid auth token")
        return str(user_id)


class StaticIdentityProvider:
    """Token -> user id map for development and tests."""

    def __init__(self, tokens: dict[str, str] | None = None):
        self._tokens = dict(tokens or {})

    def issue(self, token: str, user_id: str) -> None:
        self._tokens[token] = user_id

    async def resolve(self, token: str) -> str:
        try:
            return self._tokens[token]
        except KeyError:
            raise IdentityError("Invalid auth token") from None
