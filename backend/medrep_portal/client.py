"""
Async HTTP client for the portal API.

Holds the bearer token between calls and turns failure envelopes into
ApiError carrying the server's message. When an analytics endpoint cannot be
reached (no response, or a 5xx), the analytics helpers page through the raw
reports instead and build the same rows locally with medrep_portal.aggregation.
"""

import logging
from datetime import date
from typing import Optional
import httpx
from medrep_portal import aggregation

logger = logging.getLogger(__name__)

CONNECTION_MESSAGE = "No response from server. Please check your connection."
PAGE_SIZE = 100


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[dict] = None):
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}
        super().__init__(message)

    @property
    def unavailable(self) -> bool:
        """True when the server could not answer, as opposed to refusing the request."""
        return self.status_code is None or self.status_code >= 500


class PortalClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None
        self.token: Optional[str] = None
        self.user: Optional[dict] = None

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(CONNECTION_MESSAGE) from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 400 or not body.get("success", False):
            if response.status_code == 401:
                self.token = None
            raise ApiError(body.get("message") or f"HTTP {response.status_code}", response.status_code, body)
        return body

    async def _collect(self, path: str, **params) -> list[dict]:
        """Page through a paginated report listing and return every report."""
        reports: list[dict] = []
        page = 1
        while True:
            body = await self._request("GET", path, params={**params, "page": page, "limit": PAGE_SIZE})
            reports.extend(body["data"]["reports"])
            if page >= body["data"]["pagination"]["pages"]:
                return reports
            page += 1

    # ---------- auth ----------

    async def login(self, username: str, password: str) -> dict:
        body = await self._request("POST", "/api/auth/login", json={"username": username, "password": password})
        self.token = body["data"]["token"]
        self.user = body["data"]["user"]
        return self.user

    async def logout(self) -> None:
        try:
            await self._request("POST", "/api/auth/logout")
        finally:
            self.token = None
            self.user = None

    async def register(self, profile: dict) -> dict:
        return (await self._request("POST", "/api/auth/register", json=profile))["data"]["user"]

    # ---------- reports ----------

    async def submit_daily_report(self, report: dict) -> dict:
        return (await self._request("POST", "/api/reports/daily", json=report))["data"]

    async def my_reports(self, page: int = 1, limit: int = 10) -> dict:
        return (await self._request("GET", "/api/reports/my-reports", params={"page": page, "limit": limit}))["data"]

    async def get_report(self, report_id: int) -> dict:
        return (await self._request("GET", f"/api/reports/{report_id}"))["data"]

    async def update_report(self, report_id: int, changes: dict) -> dict:
        return (await self._request("PUT", f"/api/reports/{report_id}", json=changes))["data"]

    async def all_reports(self) -> list[dict]:
        return await self._collect("/api/reports/all")

    async def list_users(self) -> list[dict]:
        return (await self._request("GET", "/api/users"))["data"]

    # ---------- analytics ----------

    async def _analytics(self, path: str, fallback, **params) -> list[dict]:
        try:
            return (await self._request("GET", path, params=params))["data"]
        except ApiError as exc:
            if not exc.unavailable:
                raise
            logger.warning("%s unavailable (%s); aggregating locally", path, exc.message)
            return await fallback()

    async def weekly(self) -> list[dict]:
        return await self._analytics("/api/analytics/weekly", self.weekly_local)

    async def monthly(self) -> list[dict]:
        return await self._analytics("/api/analytics/monthly", self.monthly_local)

    async def team_performance(self, period: str = "month") -> list[dict]:
        return await self._analytics(
            "/api/analytics/team-performance",
            lambda: self.team_performance_local(period),
            period=period,
        )

    async def region_performance(self) -> list[dict]:
        return await self._analytics("/api/analytics/region-performance", self.region_performance_local)

    async def dashboard_summary(self) -> dict:
        return (await self._request("GET", "/api/analytics/dashboard-summary"))["data"]

    # ---------- local aggregation ----------

    async def weekly_local(self, today: Optional[date] = None) -> list[dict]:
        return aggregation.weekly_rows(await self._collect("/api/reports/my-reports"), today)

    async def monthly_local(self) -> list[dict]:
        return aggregation.monthly_rows(await self._collect("/api/reports/my-reports"))

    async def team_performance_local(self, period: str = "month", today: Optional[date] = None) -> list[dict]:
        users = await self.list_users()
        return aggregation.team_rows(users, await self.all_reports(), period, today)

    async def region_performance_local(self, today: Optional[date] = None) -> list[dict]:
        users = await self.list_users()
        return aggregation.region_rows(users, await self.all_reports(), today)
