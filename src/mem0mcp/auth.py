"""Shared-secret authentication for both transports.

MCP requests use ``APIKeyVerifier`` (a FastMCP ``TokenVerifier``) keyed by
``MCP_AUTH_KEY``.  HTTP requests carry ``Authorization: Bearer <token>``
checked against ``API_TOKEN`` by ``check_bearer_token``.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
from collections.abc import Mapping
from enum import Enum

from fastmcp.server.auth import AccessToken
from fastmcp.server.auth import TokenVerifier

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = "mem0:all"


def _fingerprint(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


class APIKeyVerifier(TokenVerifier):
    """Static bearer-token verifier for MCP requests."""

    def __init__(self, api_key: str, *, scopes: list[str] | None = None) -> None:
        normalized = api_key.strip()
        if not normalized:
            raise ValueError("api_key must be a non-empty, non-whitespace string")
        super().__init__()
        self._api_key = normalized
        self._scopes = scopes[:] if scopes else [DEFAULT_SCOPE]

    async def verify_token(self, token: str) -> AccessToken | None:
        """Return an access token when the provided bearer token is valid."""
        if hmac.compare_digest(token.encode("utf-8"), self._api_key.encode("utf-8")):
            return AccessToken(
                token=token,
                client_id="mem0-client",
                scopes=self._scopes,
                expires_at=None,
            )
        logger.debug(
            "Invalid MCP auth token provided (token_len=%d, token_fp=%s)",
            len(token),
            _fingerprint(token),
        )
        return None


def get_mcp_auth_key(environ: Mapping[str, str] | None = None) -> str | None:
    """Get the MCP static auth key from ``MCP_AUTH_KEY``."""
    env = os.environ if environ is None else environ
    token = env.get("MCP_AUTH_KEY")
    if token is None:
        return None
    stripped = token.strip()
    return stripped if stripped else None


def create_mcp_auth(api_key: str | None) -> APIKeyVerifier | None:
    """Create a verifier when an MCP auth key is configured."""
    if api_key:
        return APIKeyVerifier(api_key)
    return None


class BearerCheck(str, Enum):
    """Outcome of an HTTP bearer-token check."""

    ok = "ok"
    missing_token = "MISSING_TOKEN"
    server_config_error = "SERVER_CONFIG_ERROR"
    invalid_token = "INVALID_TOKEN"


def extract_bearer_token(header: str | None) -> str | None:
    """Return the token part of ``Bearer <token>``, if any."""
    if not header:
        return None
    parts = header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


def check_bearer_token(header: str | None, expected: str | None) -> BearerCheck:
    """Validate an ``Authorization`` header against the configured token."""
    token = extract_bearer_token(header)
    if token is None:
        return BearerCheck.missing_token
    if not expected:
        logger.error("Server configuration error: API_TOKEN not set")
        return BearerCheck.server_config_error
    if not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        logger.warning(
            "Authentication failed: invalid token (token_len=%d, token_fp=%s)",
            len(token),
            _fingerprint(token),
        )
        return BearerCheck.invalid_token
    return BearerCheck.ok
