"""
REST client for the ministry management API.

All collaborator endpoints (regions, universities, small groups, alumni
groups, events, members, attendance, engagement analytics) are reached
through MinistryClient.  Responses are consumed as plain JSON; only the
fields the controllers read are documented on each helper.

Errors:
    Any transport failure or non-2xx response raises ApiError.  Controllers
    catch it, log it, and turn it into a user-facing message.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping

import requests

from utils.cache import TTLCache
from utils.config import ClientConfig
from utils.http import RetryStrategy, SessionManager, TimeoutManager
from utils.query import clean_params

logger = logging.getLogger(__name__)

# Endpoints whose responses are cached as reference data.
_REFERENCE_PATHS = frozenset({
    "/api/regions",
    "/api/universities",
    "/api/small-groups",
    "/api/alumni-small-groups",
})

ENGAGEMENT_ENDPOINTS = {
    "regions": "/api/engagement/regions",
    "universities": "/api/engagement/universities",
    "small-groups": "/api/engagement/small-groups",
    "members": "/api/engagement/members",
    "student-friendly": "/api/engagement/student-friendly",
}


class ApiError(Exception):
    """A collaborator request failed (transport error or non-2xx status)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload
        self.path = path

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


@dataclass
class ApiResponse:
    """Status code plus decoded body of a successful write request."""

    status_code: int
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _decode(resp: requests.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


def _error_message(body: Any, resp: requests.Response) -> str:
    if isinstance(body, dict):
        for key in ("error", "message", "details"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return f"Request failed with status code {resp.status_code}"


class MinistryClient:
    """Thin JSON client over a pooled requests session.

    Args:
        config: Connection settings (default: ClientConfig()).
        session_manager: Pre-built SessionManager (tests inject one).
        cache: TTLCache for reference lists (default: built from config).
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        session_manager: SessionManager | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.session_manager = session_manager or SessionManager(
            retry_strategy=RetryStrategy(
                max_retries=self.config.max_retries,
                backoff_factor=self.config.backoff_factor,
            ),
            pool_connections=self.config.pool_connections,
            pool_maxsize=self.config.pool_maxsize,
        )
        self.cache = cache or TTLCache(
            maxsize=256, ttl_seconds=self.config.reference_ttl_seconds,
        )
        self.timeouts = TimeoutManager(base_timeout=self.config.timeout_seconds)

    # ── transport ─────────────────────────────────────────────────────────

    def _url(self, path: str) -> str:
        return self.config.base_url.rstrip("/") + path

    def _request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        payload: Any = None,
    ) -> tuple[requests.Response, Any]:
        url = self._url(path)
        query = clean_params(params or {})
        start = time.monotonic()
        try:
            resp = self.session_manager.session.request(
                method,
                url,
                params=query or None,
                json=payload,
                timeout=self.timeouts.get_timeout(url),
            )
        except requests.RequestException as exc:
            logger.error("request_failed method=%s path=%s error=%s", method, path, exc)
            raise ApiError(str(exc) or exc.__class__.__name__, path=path) from exc
        self.timeouts.record_time(url, time.monotonic() - start)

        body = _decode(resp)
        if resp.status_code >= 400:
            message = _error_message(body, resp)
            logger.error(
                "request_error method=%s path=%s status=%d error=%s",
                method, path, resp.status_code, message,
            )
            raise ApiError(message, status_code=resp.status_code, payload=body, path=path)
        logger.debug("method=%s path=%s status=%d", method, path, resp.status_code)
        return resp, body

    def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """GET *path* and return the decoded JSON body."""
        _, body = self._request("GET", path, params=params)
        return body

    def post(self, path: str, payload: Any) -> ApiResponse:
        """POST a JSON *payload*; never retried."""
        resp, body = self._request("POST", path, payload=payload)
        return ApiResponse(resp.status_code, body)

    def put(
        self, path: str, payload: Any, params: Mapping[str, Any] | None = None,
    ) -> ApiResponse:
        """PUT a JSON *payload*."""
        resp, body = self._request("PUT", path, params=params, payload=payload)
        return ApiResponse(resp.status_code, body)

    def close(self) -> None:
        self.session_manager.close()

    def __enter__(self) -> "MinistryClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── reference lists (cached) ──────────────────────────────────────────

    def _reference(self, path: str, params: Mapping[str, Any] | None = None) -> list[dict]:
        query = clean_params(params or {})
        key = (path, tuple(sorted(query.items())))

        def load() -> list[dict]:
            data = self.get(path, query)
            return data if isinstance(data, list) else []

        return self.cache.get_or_load(key, load)

    def invalidate_reference(self) -> int:
        """Drop every cached reference list; returns how many were removed."""
        return self.cache.invalidate(lambda key: key[0] in _REFERENCE_PATHS)

    def list_regions(self) -> list[dict]:
        """GET /api/regions -> [{id, name}]"""
        return self._reference("/api/regions")

    def list_universities(self, region_id: int) -> list[dict]:
        """GET /api/universities?regionId= -> [{id, name, regionId}]"""
        return self._reference("/api/universities", {"regionId": region_id})

    def list_small_groups(self, university_id: int) -> list[dict]:
        """GET /api/small-groups?universityId= -> [{id, name, universityId, regionId}]"""
        return self._reference("/api/small-groups", {"universityId": university_id})

    def list_alumni_groups(self, region_id: int) -> list[dict]:
        """GET /api/alumni-small-groups?regionId= -> [{id, name, regionId}]"""
        return self._reference("/api/alumni-small-groups", {"regionId": region_id})

    # ── users, events, members ────────────────────────────────────────────

    def current_user_scope(self) -> dict:
        """GET /api/members/current-user-scope and return its ``scope`` object."""
        data = self.get("/api/members/current-user-scope")
        if isinstance(data, dict) and isinstance(data.get("scope"), dict):
            return data["scope"]
        return data if isinstance(data, dict) else {}

    def list_events(self, params: Mapping[str, Any] | None = None) -> Any:
        """GET /api/events/enhanced?includeStats=true plus scope params."""
        query = {"includeStats": "true", **(params or {})}
        return self.get("/api/events/enhanced", query)

    def list_members(self, params: Mapping[str, Any] | None = None) -> Any:
        """GET /api/members; the body is a list or ``{"members": [...]}``."""
        return self.get("/api/members", params)

    # ── attendance ────────────────────────────────────────────────────────

    def list_attendance(self, params: Mapping[str, Any] | None = None) -> Any:
        """GET /api/attendance with event/status/date/scope filters."""
        return self.get("/api/attendance", params)

    def attendance_dates(self, params: Mapping[str, Any] | None = None) -> Any:
        """GET /api/attendance/dates -> {dates, total, predefinedRanges?, stats?}"""
        return self.get("/api/attendance/dates", params)

    def submit_attendance(self, payload: dict) -> ApiResponse:
        """POST /api/attendance/enhanced with a bulk attendance body."""
        return self.post("/api/attendance/enhanced", payload)

    def update_attendance(self, record_id: int, status: str) -> ApiResponse:
        """PUT /api/attendance?id= with ``{"status": ...}``."""
        return self.put("/api/attendance", {"status": status}, params={"id": record_id})

    def student_analytics(self, params: Mapping[str, Any] | None = None) -> Any:
        """GET /api/attendance/student-analytics (per-member statistics)."""
        return self.get("/api/attendance/student-analytics", params)

    # ── engagement and finance analytics ──────────────────────────────────

    def engagement_level(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any:
        """GET one of the per-level engagement aggregates.

        Args:
            endpoint: Key of ENGAGEMENT_ENDPOINTS, e.g. "universities".
        """
        try:
            path = ENGAGEMENT_ENDPOINTS[endpoint]
        except KeyError:
            raise ValueError(f"Unknown engagement endpoint: {endpoint!r}") from None
        return self.get(path, params)

    def engagement_analytics(self, params: Mapping[str, Any] | None = None) -> Any:
        """GET /api/engagement/analytics -> {keyMetrics, ...}"""
        return self.get("/api/engagement/analytics", params)

    def export_details(self, params: Mapping[str, Any] | None = None) -> Any:
        """GET /api/engagement/export-details -> {engagementDetails, appliedFilters, totalCount}"""
        return self.get("/api/engagement/export-details", params)

    def contribution_analytics(self, params: Mapping[str, Any] | None = None) -> Any:
        """GET /api/contributions/analytics (financial rollups)."""
        return self.get("/api/contributions/analytics", params)
