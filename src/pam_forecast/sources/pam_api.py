"""Async client for the PAM REST API, the forecast's record collaborator."""

import asyncio
from typing import Any, cast

import httpx
import structlog

from pam_forecast.config import get_settings
from pam_forecast.models import ForecastSnapshot
from pam_forecast.parsing import SnapshotParser

logger = structlog.get_logger(__name__)


class PamAPIError(Exception):
    """Base exception for PAM API errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AuthenticationError(PamAPIError):
    """Authentication failed."""

    pass


class RateLimitError(PamAPIError):
    """Rate limit exceeded."""

    pass


class PamAPIClient:
    """Read-only client for the forecasting endpoints of the PAM API."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.pam_api_url).rstrip("/")
        if token is None and settings.pam_api_token is not None:
            token = settings.pam_api_token.get_secret_value()
        self._token = token
        self._timeout = timeout or settings.pam_api_timeout
        self._max_retries = (
            max_retries if max_retries is not None else settings.pam_api_max_retries
        )

        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "PamAPIClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    # === Generic Request Methods ===

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        retry_count: int = 0,
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Make an API request, retrying transport failures with backoff."""
        client = await self._get_client()

        try:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                headers=self._get_headers(),
            )
        except httpx.RequestError as e:
            if retry_count < self._max_retries:
                await asyncio.sleep(2**retry_count)  # Exponential backoff
                return await self._request(method, path, params, retry_count + 1)
            raise PamAPIError(f"Request failed: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError("Not authorized for forecast data", status_code=401)

        if response.status_code == 429:
            retry_after = self._retry_after_seconds(response.headers.get("Retry-After"))
            raise RateLimitError(
                f"Rate limited, retry after {retry_after}s",
                status_code=429,
                details={"retry_after": retry_after},
            )

        if response.status_code >= 400:
            try:
                error_detail = response.json() if response.content else {}
            except ValueError:
                error_detail = {"raw": response.text[:500] if response.text else "empty response"}
            raise PamAPIError(
                f"API error: {response.status_code}",
                status_code=response.status_code,
                details=error_detail,
            )

        try:
            payload = response.json() if response.content else {}
        except ValueError as e:
            raise PamAPIError(
                f"Invalid JSON from {path}",
                status_code=response.status_code,
                details={"raw": response.text[:500] if response.text else ""},
            ) from e
        return cast(dict[str, Any] | list[dict[str, Any]], payload)

    @staticmethod
    def _retry_after_seconds(value: str | None, default: int = 60) -> int:
        """Seconds from a Retry-After header; the HTTP-date form falls back to the default."""
        if value is None:
            return default
        try:
            return max(int(value.strip()), 0)
        except ValueError:
            return default

    async def get(
        self, path: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Make GET request."""
        return await self._request("GET", path, params=params)

    @staticmethod
    def _extract_items(result: Any) -> list[dict[str, Any]]:
        """Return list of items from a list or paged response."""
        if isinstance(result, list):
            return result
        if isinstance(result, dict):
            items = result.get("items")
            if isinstance(items, list):
                return items
        return []

    async def _list(self, path: str) -> list[dict[str, Any]]:
        return self._extract_items(await self.get(path))

    # === Forecast Endpoints ===

    async def list_invoices(self) -> list[dict[str, Any]]:
        return await self._list("/api/forecast/invoices")

    async def list_quota_configs(self) -> list[dict[str, Any]]:
        return await self._list("/api/quota-configs")

    async def list_retainers(self) -> list[dict[str, Any]]:
        return await self._list("/api/forecast/retainers")

    async def list_account_revenue(self) -> list[dict[str, Any]]:
        """Project forecast items for agencies and prospects."""
        return await self._list("/api/forecast/account-revenue")

    async def list_expenses(self) -> list[dict[str, Any]]:
        return await self._list("/api/forecast/expenses")

    async def list_payroll_members(self) -> list[dict[str, Any]]:
        return await self._list("/api/forecast/payroll-members")

    async def list_scenarios(self) -> list[dict[str, Any]]:
        return await self._list("/api/forecast/scenarios")

    async def get_forecast_settings(self) -> dict[str, Any]:
        result = await self.get("/api/forecast/settings")
        return result if isinstance(result, dict) else {}

    async def fetch_snapshot(self) -> ForecastSnapshot:
        """Fetch every forecast input concurrently and parse it."""
        (
            invoices,
            quota_configs,
            retainers,
            account_revenue,
            expenses,
            payroll_members,
            settings,
            scenarios,
        ) = await asyncio.gather(
            self.list_invoices(),
            self.list_quota_configs(),
            self.list_retainers(),
            self.list_account_revenue(),
            self.list_expenses(),
            self.list_payroll_members(),
            self.get_forecast_settings(),
            self.list_scenarios(),
        )

        snapshot = SnapshotParser().parse_snapshot(
            {
                "invoices": invoices,
                "quota_configs": quota_configs,
                "retainers": retainers,
                "account_revenue": account_revenue,
                "expenses": expenses,
                "payroll_members": payroll_members,
                "settings": settings,
                "scenarios": scenarios,
            }
        )
        logger.info(
            "snapshot_fetched",
            base_url=self.base_url,
            invoices=len(snapshot.invoices),
            retainers=len(snapshot.retainers),
            project_items=len(snapshot.project_items),
            diagnostics=len(snapshot.diagnostics),
        )
        return snapshot
