"""
Conecta REST API Gateway.

All outbound HTTP calls made by the client-side components (the kanban
``ActivityBoard`` and the operator ``QuotationWorkflow``) go through this
class.  Direct ``requests`` calls elsewhere are not allowed.

  - One attempt per call, no retry: status moves and quotation submits are
    fire-once operations and must not be replayed behind the operator's back.
  - Timeout: GATEWAY_TIMEOUT_SECONDS (default 30 s) per request.
  - ``request()`` always returns a ``GatewayResult``; the typed operations
    below raise ``GatewayError`` when the result is not ok so callers can
    catch one exception type at their operation boundary.

Testability: pass a fake ``session`` to ConectaGateway() in tests instead of
letting it create a real requests.Session internally.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from conecta.models.project import ACTIVITY_STATUS_IDS
from conecta.services.progress_engine import ActivityView, CategoryView

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30


class GatewayError(Exception):
    """Raised by typed gateway operations when the API call failed.

    Attributes:
        status_code: HTTP status (None for network-level failures).
        code:        Machine-readable error code from the API body, if any.
        details:     Structured details from the API body, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(message)


class GatewayResult:
    """Structured return value from ConectaGateway.request().

    Attributes:
        ok:           True if the call succeeded (HTTP 2xx + no exception).
        status_code:  HTTP status code (None if network-level failure).
        data:         Parsed JSON body (dict or list), else None.
        error:        Human-readable error message or None.
        duration_ms:  Round-trip latency in milliseconds.
        content:      Raw body bytes (file downloads).
        headers:      Response headers.
    """

    def __init__(
        self,
        ok: bool,
        status_code: int | None,
        data: dict | list | None,
        error: str | None,
        duration_ms: int,
        content: bytes | None = None,
        headers: dict | None = None,
    ) -> None:
        self.ok = ok
        self.status_code = status_code
        self.data = data
        self.error = error
        self.duration_ms = duration_ms
        self.content = content
        self.headers = headers or {}

    def raise_for_error(self, operation: str) -> None:
        if self.ok:
            return
        body = self.data if isinstance(self.data, dict) else {}
        raise GatewayError(
            f"{operation} failed: {self.error}",
            status_code=self.status_code,
            code=body.get("code"),
            details=body.get("details"),
        )


def activity_view_from_json(item: dict, category_id: int | None = None) -> ActivityView:
    return ActivityView(
        id=item["id"],
        status=item.get("status") or "not_started",
        is_deleted=bool(item.get("is_deleted", False)),
        name=item.get("name") or "",
        category_id=item.get("project_category_id", category_id),
    )


def category_view_from_json(item: dict, activities: list | None = None) -> CategoryView:
    raw = item.get("activities") if activities is None else activities
    return CategoryView(
        id=item["id"],
        name=item.get("name") or "",
        activities=[activity_view_from_json(a, item["id"]) for a in (raw or [])],
    )


class ConectaGateway:
    """Client for the Conecta REST API (``/api/v1``).

    Usage:
        gateway = ConectaGateway("http://localhost:5000/api/v1")
        categories = gateway.list_categories_with_activities(7)
    """

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        *,
        timeout: int = _DEFAULT_TIMEOUT,
        user: str | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user = user
        # Inject custom session for testing; create real one lazily otherwise.
        self._session: requests.Session | None = session

    @classmethod
    def from_config(cls, config, session: requests.Session | None = None, user: str | None = None):
        """Build a gateway from a Flask config mapping."""
        return cls(
            config.get("CONECTA_API_URL", "http://localhost:5000/api/v1"),
            session=session,
            timeout=int(config.get("GATEWAY_TIMEOUT_SECONDS", _DEFAULT_TIMEOUT)),
            user=user,
        )

    # ── HTTP session ─────────────────────────────────────────────────────────

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    # ── Core request dispatcher ──────────────────────────────────────────────

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict | list | None = None,
        params: dict | None = None,
        data: dict | None = None,
        files: dict | None = None,
    ) -> GatewayResult:
        """Execute a single request against the API.

        Returns:
            GatewayResult — always returns (never raises). Callers check .ok.
        """
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if self.user:
            headers["X-User"] = self.user
        kwargs: dict[str, Any] = {"headers": headers, "timeout": self.timeout}
        if json_body is not None:
            kwargs["json"] = json_body
        if params:
            kwargs["params"] = params
        if data is not None:
            kwargs["data"] = data
        if files:
            kwargs["files"] = files

        t0 = time.perf_counter()
        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.Timeout:
            logger.warning("API request timed out method=%s url=%s", method, url)
            return GatewayResult(
                ok=False, status_code=None, data=None,
                error=f"Request timed out after {self.timeout}s",
                duration_ms=int(self.timeout * 1000),
            )
        except requests.RequestException as exc:
            logger.warning("API network error method=%s url=%s error=%s", method, url, exc)
            return GatewayResult(
                ok=False, status_code=None, data=None,
                error=str(exc)[:500],
                duration_ms=int((time.perf_counter() - t0) * 1000),
            )
        duration_ms = int((time.perf_counter() - t0) * 1000)

        try:
            body = resp.json() if resp.content else {}
        except ValueError:
            body = None

        if resp.ok:
            return GatewayResult(
                ok=True, status_code=resp.status_code, data=body, error=None,
                duration_ms=duration_ms, content=resp.content,
                headers=dict(resp.headers),
            )

        message = body.get("error") if isinstance(body, dict) else None
        logger.warning(
            "API request failed method=%s url=%s status=%d",
            method, url, resp.status_code,
        )
        return GatewayResult(
            ok=False, status_code=resp.status_code, data=body,
            error=message or f"HTTP {resp.status_code}: {resp.text[:500]}",
            duration_ms=duration_ms,
        )

    def _call(self, operation: str, method: str, path: str, **kwargs):
        result = self.request(method, path, **kwargs)
        result.raise_for_error(operation)
        return result.data

    # ── Project board ────────────────────────────────────────────────────────

    def list_categories_with_activities(self, project_id: int) -> list[CategoryView]:
        """Joined shape: one call, activities nested in each category.

        Raises GatewayError when the server answered with the plain category
        shape (no ``activities`` key), so callers can switch to per-category
        fetches instead of reading every category as empty.
        """
        data = self._call(
            "list categories", "GET", f"/projects/{project_id}/categories",
            params={"include_activities": "true"},
        )
        flat = [item.get("id") for item in data if "activities" not in item]
        if flat:
            raise GatewayError(
                "list categories failed: joined shape unavailable",
                details={"category_ids": flat},
            )
        return [category_view_from_json(item) for item in data]

    def list_categories_per_category(self, project_id: int) -> list[CategoryView]:
        """N+1 shape: categories, then one activities call per category."""
        data = self._call("list categories", "GET", f"/projects/{project_id}/categories")
        categories = []
        for item in data:
            activities = self._call(
                "list activities", "GET",
                f"/projects/{project_id}/categories/{item['id']}/activities",
            )
            categories.append(category_view_from_json(item, activities))
        return categories

    def update_activity_status(
        self, project_id: int, category_id: int, activity_id: int, status: str,
    ) -> dict:
        return self._call(
            "update activity status", "PATCH",
            f"/projects/{project_id}/categories/{category_id}/activities/{activity_id}/status",
            json_body={"status_id": ACTIVITY_STATUS_IDS[status]},
        )

    def delete_activity(self, project_id: int, category_id: int, activity_id: int) -> dict:
        return self._call(
            "delete activity", "DELETE",
            f"/projects/{project_id}/categories/{category_id}/activities/{activity_id}",
        )

    # ── Project request / quotations ─────────────────────────────────────────

    def get_project_request(self, request_id: int) -> dict:
        return self._call("get project request", "GET", f"/project_requests/{request_id}")

    def get_client_name(self, request_id: int) -> str:
        return self.get_project_request(request_id).get("client_name") or "N/A"

    def list_requirements_with_quotations(self, request_id: int) -> list[dict]:
        return self._call(
            "list quotations", "GET", f"/project_requests/{request_id}/quotations",
        )

    def get_client_quotation(self, request_id: int) -> dict:
        return self._call(
            "get client quotation", "GET", f"/project_requests/{request_id}/client-quotation",
        )

    def save_approval_decisions(self, request_id: int, updates: list[dict]) -> dict:
        return self._call(
            "save approval decisions", "POST",
            f"/project_requests/{request_id}/quotation-approvals",
            json_body={"updates": updates},
        )

    def save_client_quotation(
        self,
        request_id: int,
        *,
        client_price: str,
        date_quotation_client: str,
        observations: str = "",
        file_name: str | None = None,
        file_content: bytes | None = None,
    ) -> dict:
        """Create or update the client quotation (multipart form)."""
        form = {
            "client_price": client_price,
            "date_quotation_client": date_quotation_client,
            "observations": observations or "",
        }
        files = None
        if file_content is not None:
            files = {"file": (file_name or "cotizacion.pdf", file_content)}
        return self._call(
            "save client quotation", "POST",
            f"/project_requests/{request_id}/client-quotation",
            data=form, files=files,
        )

    def download_client_quotation(self, request_id: int) -> bytes:
        result = self.request(
            "GET", f"/project_requests/{request_id}/client-quotation/download",
        )
        result.raise_for_error("download client quotation")
        return result.content or b""
