"""Tests for PAM API client."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from pam_forecast.models import ProspectLink
from pam_forecast.sources.pam_api import (
    AuthenticationError,
    PamAPIClient,
    PamAPIError,
    RateLimitError,
)


@pytest.fixture
def client():
    """Create a PamAPIClient instance."""
    return PamAPIClient(base_url="http://localhost:5000", token="secret", max_retries=2)


def _response(status_code: int, payload=None, headers=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.content = b"{}" if payload is not None else b""
    response.text = ""
    response.json.return_value = payload
    return response


class TestPamAPIClientInit:
    """Tests for PamAPIClient initialization."""

    def test_init_with_explicit_params(self):
        client = PamAPIClient(base_url="http://custom:9000/", token="abc", timeout=5.0)

        assert client.base_url == "http://custom:9000"
        assert client._token == "abc"
        assert client._timeout == 5.0

    def test_init_from_settings(self):
        client = PamAPIClient()

        assert client.base_url == "http://localhost:5000"
        assert client._token == "test-token"
        assert client._max_retries == 3

    def test_bearer_header(self, client):
        assert client._get_headers()["Authorization"] == "Bearer secret"

    def test_no_token_no_header(self, monkeypatch):
        monkeypatch.delenv("PAM_API_TOKEN", raising=False)
        client = PamAPIClient(base_url="http://localhost:5000")

        assert "Authorization" not in client._get_headers()


class TestRequests:
    """Tests for request handling."""

    @pytest.mark.asyncio
    async def test_list_response(self, client):
        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.request = AsyncMock(return_value=_response(200, [{"id": "inv-1"}]))
            mock_get.return_value = mock_http

            result = await client.list_invoices()

            assert result == [{"id": "inv-1"}]
            call = mock_http.request.call_args
            assert call.kwargs["url"] == "/api/forecast/invoices"
            assert call.kwargs["headers"]["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_paged_response(self, client):
        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.request = AsyncMock(
                return_value=_response(200, {"items": [{"id": "r-1"}], "total": 1})
            )
            mock_get.return_value = mock_http

            assert await client.list_retainers() == [{"id": "r-1"}]

    @pytest.mark.asyncio
    async def test_unauthorized(self, client):
        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.request = AsyncMock(return_value=_response(401))
            mock_get.return_value = mock_http

            with pytest.raises(AuthenticationError) as exc_info:
                await client.list_expenses()

            assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_rate_limited(self, client):
        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.request = AsyncMock(
                return_value=_response(429, headers={"Retry-After": "12"})
            )
            mock_get.return_value = mock_http

            with pytest.raises(RateLimitError) as exc_info:
                await client.list_scenarios()

            assert exc_info.value.details == {"retry_after": 12}

    @pytest.mark.asyncio
    async def test_rate_limited_with_http_date(self, client):
        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.request = AsyncMock(
                return_value=_response(
                    429, headers={"Retry-After": "Wed, 21 Oct 2025 07:28:00 GMT"}
                )
            )
            mock_get.return_value = mock_http

            with pytest.raises(RateLimitError) as exc_info:
                await client.list_scenarios()

            assert exc_info.value.details == {"retry_after": 60}

    @pytest.mark.asyncio
    async def test_non_json_body(self, client):
        response = _response(200, {})
        response.text = "<html>maintenance</html>"
        response.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)

        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.request = AsyncMock(return_value=response)
            mock_get.return_value = mock_http

            with pytest.raises(PamAPIError, match="Invalid JSON") as exc_info:
                await client.list_invoices()

            assert exc_info.value.status_code == 200
            assert exc_info.value.details == {"raw": "<html>maintenance</html>"}

    @pytest.mark.asyncio
    async def test_server_error(self, client):
        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.request = AsyncMock(return_value=_response(500, {"error": "boom"}))
            mock_get.return_value = mock_http

            with pytest.raises(PamAPIError) as exc_info:
                await client.get_forecast_settings()

            assert exc_info.value.status_code == 500
            assert exc_info.value.details == {"error": "boom"}

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, client):
        with (
            patch.object(client, "_get_client") as mock_get,
            patch("pam_forecast.sources.pam_api.asyncio.sleep", new_callable=AsyncMock) as sleep,
        ):
            mock_http = AsyncMock()
            mock_http.request = AsyncMock(side_effect=httpx.ConnectError("refused"))
            mock_get.return_value = mock_http

            with pytest.raises(PamAPIError, match="Request failed"):
                await client.list_payroll_members()

            assert mock_http.request.await_count == 3
            assert [c.args[0] for c in sleep.await_args_list] == [1, 2]

    @pytest.mark.asyncio
    async def test_settings_endpoint_tolerates_non_mapping(self, client):
        with patch.object(client, "get", return_value=[]):
            assert await client.get_forecast_settings() == {}


class TestFetchSnapshot:
    @pytest.mark.asyncio
    async def test_fetches_every_endpoint(self, client, snapshot_payload):
        responses = {
            "/api/forecast/invoices": snapshot_payload["invoices"],
            "/api/quota-configs": {"items": snapshot_payload["quotaConfigs"]},
            "/api/forecast/retainers": snapshot_payload["retainers"],
            "/api/forecast/account-revenue": snapshot_payload["accountRevenue"],
            "/api/forecast/expenses": snapshot_payload["expenses"],
            "/api/forecast/payroll-members": snapshot_payload["payrollMembers"],
            "/api/forecast/settings": snapshot_payload["settings"],
            "/api/forecast/scenarios": snapshot_payload["scenarios"],
        }

        def fake_get(path, params=None):
            return responses[path]

        with patch.object(client, "get", side_effect=fake_get) as mock_get:
            snapshot = await client.fetch_snapshot()

        assert mock_get.await_count == len(responses)
        assert len(snapshot.invoices) == 2
        assert snapshot.quota_targets[0].agency_id == "acme"
        assert snapshot.project_items[0].owner == ProspectLink("Initech")
        assert snapshot.settings is not None
        assert snapshot.scenarios[0].name == "Growth"


@pytest.mark.asyncio
async def test_context_manager_closes_client():
    mock_http = AsyncMock()
    async with PamAPIClient(base_url="http://localhost:5000") as client:
        client._client = mock_http

    mock_http.aclose.assert_awaited_once()
    assert client._client is None
