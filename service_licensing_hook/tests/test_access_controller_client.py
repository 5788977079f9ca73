"""
Unit tests for the access controller client.
"""

import pytest
import httpx
from unittest.mock import AsyncMock, patch
import json

from service_licensing_hook.app.adapters.access_controller import AccessControllerClient
from shared.errors import ExternalServiceError
from shared.test_helpers import make_address


CHECK_URL = "http://localhost:8030/permissions/check"


def _response(status_code, body):
    return httpx.Response(
        status_code=status_code,
        content=json.dumps(body),
        request=httpx.Request("POST", CHECK_URL)
    )


class TestAccessControllerClient:
    """Test cases for AccessControllerClient."""

    @pytest.fixture
    def hook_address(self):
        return make_address(0x4001)

    @pytest.fixture
    def client(self, hook_address):
        return AccessControllerClient("http://localhost:8030/", hook_address, failure_threshold=2)

    @pytest.mark.asyncio
    async def test_permission_granted(self, client, hook_address):
        """Test a granted permission and the request payload."""
        signer, ip_id = make_address(1), make_address(2)

        with patch('httpx.AsyncClient') as mock_client:
            post = AsyncMock(return_value=_response(200, {"granted": True}))
            mock_client.return_value.__aenter__.return_value.post = post

            result = await client.check_permission(signer, ip_id, "add_to_whitelist")

            assert result is True
            post.assert_awaited_once_with(CHECK_URL, json={
                "ip_id": ip_id,
                "signer": signer,
                "to": hook_address,
                "func": "add_to_whitelist",
            })

    @pytest.mark.asyncio
    async def test_permission_denied(self, client):
        """Test a denied permission."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                return_value=_response(200, {"granted": False})
            )

            assert await client.check_permission(make_address(1), make_address(2)) is False

    @pytest.mark.asyncio
    async def test_unexpected_status(self, client):
        """Test that a non-200 answer is a collaborator failure, not a denial."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                return_value=_response(500, {"detail": "boom"})
            )

            with pytest.raises(ExternalServiceError) as exc_info:
                await client.check_permission(make_address(1), make_address(2))

            assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_malformed_response(self, client):
        """Test that a non-boolean grant is rejected."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                return_value=_response(200, {"granted": "yes"})
            )

            with pytest.raises(ExternalServiceError):
                await client.check_permission(make_address(1), make_address(2))

    @pytest.mark.asyncio
    async def test_http_error(self, client):
        """Test that transport errors map to ExternalServiceError."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                side_effect=httpx.ConnectError("connection refused")
            )

            with pytest.raises(ExternalServiceError) as exc_info:
                await client.check_permission(make_address(1), make_address(2))

            assert "unavailable" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_circuit_opens_after_failures(self, client):
        """Test that repeated failures short-circuit further calls."""
        with patch('httpx.AsyncClient') as mock_client:
            post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
            mock_client.return_value.__aenter__.return_value.post = post

            for _ in range(2):
                with pytest.raises(ExternalServiceError):
                    await client.check_permission(make_address(1), make_address(2))

            assert client.circuit_breaker.is_open()

            with pytest.raises(ExternalServiceError):
                await client.check_permission(make_address(1), make_address(2))

            assert post.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [b"<html>oops</html>", b"[1]"])
    async def test_undecodable_body(self, client, content):
        """Test that a 200 body that is not a JSON object is a collaborator failure."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                return_value=httpx.Response(200, content=content, request=httpx.Request("POST", CHECK_URL))
            )

            with pytest.raises(ExternalServiceError) as exc_info:
                await client.check_permission(make_address(1), make_address(2))

            assert exc_info.value.status_code == 502
            assert exc_info.value.message == "access_controller: malformed permission response"
