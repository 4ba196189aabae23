"""
Unit tests for provider access token extraction.
"""

import pytest
from unittest.mock import Mock

from app.auth import get_provider_token, parse_bearer_token
from app.errors import AuthenticationRequired


class TestParseBearerToken:
    """Test Authorization header parsing."""

    def test_valid_header_returns_token(self):
        assert parse_bearer_token("Bearer ya29.token") == "ya29.token"

    def test_missing_header(self):
        with pytest.raises(AuthenticationRequired) as exc_info:
            parse_bearer_token(None)
        assert exc_info.value.status_code == 401
        assert "login" in exc_info.value.message

    @pytest.mark.parametrize("header", ["ya29.token", "Token ya29", "Bearer", "Bearer a b", "Bearer "])
    def test_malformed_header(self, header):
        with pytest.raises(AuthenticationRequired) as exc_info:
            parse_bearer_token(header)
        assert "Invalid authentication" in exc_info.value.message


class TestGetProviderToken:
    """The token is only demanded by transports that need one."""

    @pytest.mark.asyncio
    async def test_smtp_needs_no_token(self):
        transport = Mock(requires_token=False)
        assert await get_provider_token(None, transport) is None

    @pytest.mark.asyncio
    async def test_gmail_requires_token(self):
        transport = Mock(requires_token=True)
        with pytest.raises(AuthenticationRequired):
            await get_provider_token(None, transport)

    @pytest.mark.asyncio
    async def test_gmail_token_returned(self):
        transport = Mock(requires_token=True)
        assert await get_provider_token("Bearer tok", transport) == "tok"
