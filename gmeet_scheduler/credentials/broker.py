"""Exchange service-account credentials for a Google OAuth access token.

Every call to ``issue_token`` signs a fresh assertion and performs one
round-trip to the token endpoint.  ``TokenBroker`` can optionally sit in
front of a ``TokenCache`` so repeat requests in the same process reuse a
token until shortly before it expires.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import httpx

from gmeet_scheduler.credentials.assertion import TOKEN_URI, build_assertion
from gmeet_scheduler.errors import TokenIssueError

log = logging.getLogger("gmeet_scheduler.credentials")

CALENDAR_SCOPES = (
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
)
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"

# Refresh this long before the token endpoint's stated expiry
EXPIRY_MARGIN = 60


@dataclass(frozen=True)
class ServiceCredential:
    """Non-interactive Google identity (service account)."""

    identity: str
    private_key: str = field(repr=False)
    scope: str = " ".join(CALENDAR_SCOPES)


async def issue_token(
    credential: ServiceCredential,
    *,
    client: Optional[httpx.AsyncClient] = None,
    now: Optional[float] = None,
) -> str:
    """Sign an assertion and trade it for an access token.

    Raises:
        TokenIssueError: on any failure. An empty token is never returned.
    """
    token, _ = await _request_token(credential, client=client, now=now)
    return token


async def _request_token(
    credential: ServiceCredential,
    *,
    client: Optional[httpx.AsyncClient] = None,
    now: Optional[float] = None,
) -> tuple[str, int]:
    """Return ``(access_token, expires_in)``."""
    try:
        assertion = build_assertion(credential, now=now)
    except TokenIssueError as e:
        log.error("Cannot sign assertion for %s: %s", credential.identity, e)
        raise

    data = {"grant_type": JWT_BEARER_GRANT, "assertion": assertion}
    headers = {"Cache-Control": "no-cache"}

    try:
        if client is None:
            async with httpx.AsyncClient() as own_client:
                resp = await own_client.post(TOKEN_URI, data=data, headers=headers)
        else:
            resp = await client.post(TOKEN_URI, data=data, headers=headers)
    except httpx.HTTPError as e:
        log.error("Token endpoint unreachable: %s", e)
        raise TokenIssueError(f"Token endpoint unreachable: {e}") from e

    try:
        payload = resp.json()
    except ValueError as e:
        log.error("Token endpoint returned non-JSON (%d)", resp.status_code)
        raise TokenIssueError(
            f"Token endpoint returned non-JSON response (status {resp.status_code})"
        ) from e

    if resp.status_code >= 400:
        detail = ""
        if isinstance(payload, dict):
            detail = payload.get("error_description") or payload.get("error") or ""
        log.error("Token request rejected (%d): %s", resp.status_code, detail)
        raise TokenIssueError(
            f"Token request rejected (status {resp.status_code}): {detail}"
        )

    token = payload.get("access_token") if isinstance(payload, dict) else None
    if not token:
        log.error("Token endpoint response has no access_token")
        raise TokenIssueError("Token endpoint response has no access_token")

    try:
        expires_in = int(payload.get("expires_in", 3600))
    except (TypeError, ValueError):
        expires_in = 3600

    log.info("Issued access token for %s (expires in %ds)", credential.identity, expires_in)
    return token, expires_in


class TokenCache:
    """Process-lifetime token store keyed by identity and scope."""

    def __init__(self, margin: int = EXPIRY_MARGIN) -> None:
        self._margin = margin
        self._entries: dict[tuple[str, str], tuple[str, float]] = {}

    def get(self, credential: ServiceCredential, now: Optional[float] = None) -> Optional[str]:
        entry = self._entries.get((credential.identity, credential.scope))
        if entry is None:
            return None
        token, expires_at = entry
        if (time.time() if now is None else now) >= expires_at:
            del self._entries[(credential.identity, credential.scope)]
            return None
        return token

    def put(
        self,
        credential: ServiceCredential,
        token: str,
        expires_in: int,
        now: Optional[float] = None,
    ) -> None:
        if expires_in <= self._margin:
            # Would already be stale on arrival
            return
        issued = time.time() if now is None else now
        expires_at = issued + expires_in - self._margin
        self._entries[(credential.identity, credential.scope)] = (token, expires_at)

    def discard(self, credential: ServiceCredential) -> None:
        """Forget the token for ``credential``, e.g. after Calendar rejected it."""
        self._entries.pop((credential.identity, credential.scope), None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class TokenBroker:
    """Hands out access tokens for one service credential.

    Without a cache every ``get_token`` call hits the token endpoint.
    """

    def __init__(
        self,
        credential: ServiceCredential,
        cache: Optional[TokenCache] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._credential = credential
        self._cache = cache
        self._client = client

    async def get_token(self) -> str:
        if self._cache is not None:
            cached = self._cache.get(self._credential)
            if cached:
                log.debug("Reusing cached token for %s", self._credential.identity)
                return cached

        token, expires_in = await _request_token(self._credential, client=self._client)

        if self._cache is not None:
            self._cache.put(self._credential, token, expires_in)
        return token
