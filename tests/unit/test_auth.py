"""Unit tests for MCP and HTTP auth helpers."""

from __future__ import annotations

import pytest

from mem0mcp.auth import APIKeyVerifier
from mem0mcp.auth import BearerCheck
from mem0mcp.auth import check_bearer_token
from mem0mcp.auth import create_mcp_auth
from mem0mcp.auth import extract_bearer_token
from mem0mcp.auth import get_mcp_auth_key


class TestAPIKeyVerifier:
    def test_rejects_empty_api_key(self) -> None:
        with pytest.raises(ValueError, match="api_key must be a non-empty"):
            APIKeyVerifier("")

    def test_rejects_blank_api_key(self) -> None:
        with pytest.raises(ValueError, match="api_key must be a non-empty"):
            APIKeyVerifier("   ")

    async def test_verify_valid_token(self) -> None:
        verifier = APIKeyVerifier("my-secret-key")

        result = await verifier.verify_token("my-secret-key")

        assert result is not None
        assert result.token == "my-secret-key"
        assert result.client_id == "mem0-client"
        assert result.scopes == ["mem0:all"]
        assert result.expires_at is None

    async def test_custom_scopes(self) -> None:
        verifier = APIKeyVerifier("k", scopes=["memories:read"])

        result = await verifier.verify_token("k")

        assert result.scopes == ["memories:read"]

    async def test_verify_invalid_token(self) -> None:
        verifier = APIKeyVerifier("my-secret-key")

        assert await verifier.verify_token("wrong-key") is None
        assert await verifier.verify_token("") is None


class TestGetMcpAuthKey:
    def test_returns_env_value(self, monkeypatch) -> None:
        monkeypatch.setenv("MCP_AUTH_KEY", "env-auth-key")

        assert get_mcp_auth_key() == "env-auth-key"

    def test_reads_explicit_mapping(self) -> None:
        assert get_mcp_auth_key({"MCP_AUTH_KEY": " padded "}) == "padded"

    def test_returns_none_when_missing(self, monkeypatch) -> None:
        monkeypatch.delenv("MCP_AUTH_KEY", raising=False)

        assert get_mcp_auth_key() is None

    def test_returns_none_when_blank(self) -> None:
        assert get_mcp_auth_key({"MCP_AUTH_KEY": "   "}) is None


class TestCreateMcpAuth:
    def test_returns_verifier_when_key_present(self) -> None:
        verifier = create_mcp_auth("test-auth-key")

        assert isinstance(verifier, APIKeyVerifier)

    def test_returns_none_when_key_missing(self) -> None:
        assert create_mcp_auth(None) is None
        assert create_mcp_auth("") is None


class TestBearerToken:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            ("Bearer   abc  ", "abc"),
            ("Bearer", None),
            ("Bearer ", None),
            ("Basic abc", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, header, expected) -> None:
        assert extract_bearer_token(header) == expected

    def test_missing_header(self) -> None:
        assert check_bearer_token(None, "secret") is BearerCheck.missing_token

    def test_missing_checked_before_server_config(self) -> None:
        assert check_bearer_token(None, None) is BearerCheck.missing_token

    def test_server_without_token(self) -> None:
        assert check_bearer_token("Bearer abc", None) is BearerCheck.server_config_error
        assert check_bearer_token("Bearer abc", "") is BearerCheck.server_config_error

    def test_wrong_token(self) -> None:
        assert check_bearer_token("Bearer abc", "secret") is BearerCheck.invalid_token

    def test_valid_token(self) -> None:
        assert check_bearer_token("Bearer secret", "secret") is BearerCheck.ok

    def test_codes_match_wire_values(self) -> None:
        assert BearerCheck.invalid_token.value == "INVALID_TOKEN"
        assert BearerCheck.missing_token.value == "MISSING_TOKEN"
