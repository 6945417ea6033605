"""STRATA — GA4 Data API Client.

Handles authentication, error classification and bounded retries for the
live provider. Only transient failures are retried; permission, quota and
invalid-argument errors surface immediately.
"""

import asyncio
import json
from enum import Enum
from typing import Any, Callable, Dict, Optional

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from strata.config import settings
from strata.core.logging import get_logger

logger = get_logger("ga4.client")

GA4_SCOPES = ["https://www.googleapis.com/auth/analytics.readonly"]


class ErrorKind(str, Enum):
    """Failure taxonomy of the live provider."""

    TRANSIENT = "transient"  # Timeout, connection refused, DNS, unavailable
    PERMISSION = "permission"  # Bad credential or property access
    QUOTA = "quota"  # Rate limit / exhausted tokens
    INVALID_ARGUMENT = "invalid_argument"  # Bad property id, bad date format


# google.rpc.Code names as returned in the REST error body
STATUS_KINDS: Dict[str, ErrorKind] = {
    "UNAVAILABLE": ErrorKind.TRANSIENT,
    "DEADLINE_EXCEEDED": ErrorKind.TRANSIENT,
    "INTERNAL": ErrorKind.TRANSIENT,
    "ABORTED": ErrorKind.TRANSIENT,
    "PERMISSION_DENIED": ErrorKind.PERMISSION,
    "UNAUTHENTICATED": ErrorKind.PERMISSION,
    "RESOURCE_EXHAUSTED": ErrorKind.QUOTA,
    "INVALID_ARGUMENT": ErrorKind.INVALID_ARGUMENT,
    "NOT_FOUND": ErrorKind.INVALID_ARGUMENT,
    "FAILED_PRECONDITION": ErrorKind.INVALID_ARGUMENT,
}


class LiveProviderError(Exception):
    """Raised when the GA4 Data API call fails."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.TRANSIENT,
        status_code: int = 0,
    ):
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.kind == ErrorKind.TRANSIENT


def classify_http_error(status_code: int, status: str = "") -> ErrorKind:
    """Map an HTTP status (and optional google.rpc status name) to ErrorKind."""
    if status in STATUS_KINDS:
        return STATUS_KINDS[status]
    if status_code in (401, 403):
        return ErrorKind.PERMISSION
    if status_code == 429:
        return ErrorKind.QUOTA
    if status_code in (400, 404):
        return ErrorKind.INVALID_ARGUMENT
    return ErrorKind.TRANSIENT


def _service_account_token(key_json: str) -> str:
    """Exchange a service-account key for an access token (blocking)."""
    try:
        info = json.loads(key_json)
    except json.JSONDecodeError as e:
        raise LiveProviderError(
            "GA_SERVICE_ACCOUNT_KEY is not valid JSON", ErrorKind.PERMISSION
        ) from e
    credentials = service_account.Credentials.from_service_account_info(
        info, scopes=GA4_SCOPES
    )
    credentials.refresh(GoogleAuthRequest())
    return credentials.token


class GA4Client:
    """Async HTTP client for the GA4 Data API (v1beta REST)."""

    def __init__(
        self,
        property_id: str | None = None,
        access_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        token_provider: Callable[[str], str] = _service_account_token,
    ):
        self.property_id = property_id or settings.ga4_property_id
        self.access_token = access_token or settings.ga4_access_token
        self.base_url = settings.ga4_base_url.rstrip("/")
        self.max_retries = max(1, settings.live_max_retries)
        self.retry_base_delay = settings.live_retry_base_delay
        self._transport = transport
        self._token_provider = token_provider
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=settings.live_timeout_seconds, transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Auth ──

    async def _get_token(self) -> str:
        if self.access_token:
            return self.access_token
        if not settings.ga_service_account_key:
            raise LiveProviderError(
                "GA4 credentials missing: set GA4_ACCESS_TOKEN or GA_SERVICE_ACCOUNT_KEY",
                ErrorKind.PERMISSION,
            )
        try:
            # google-auth refresh is blocking
            self.access_token = await asyncio.to_thread(
                self._token_provider, settings.ga_service_account_key
            )
        except (GoogleAuthError, ValueError) as e:
            raise LiveProviderError(
                f"Service account token exchange failed: {e}", ErrorKind.PERMISSION
            ) from e
        return self.access_token

    def _property_path(self) -> str:
        if not self.property_id:
            raise LiveProviderError(
                "GA4_PROPERTY_ID not configured", ErrorKind.INVALID_ARGUMENT
            )
        return f"properties/{self.property_id}"

    # ── Core Request Method ──

    def _error_from_response(self, resp: httpx.Response) -> LiveProviderError:
        try:
            body = resp.json()
        except ValueError:
            body = {}
        error = body.get("error", {}) if isinstance(body, dict) else {}
        status = error.get("status", "")
        message = error.get("message") or resp.text or f"HTTP {resp.status_code}"
        kind = classify_http_error(resp.status_code, status)
        if kind == ErrorKind.PERMISSION:
            message = (
                f"{message}. Check that the service account can read "
                f"GA4 property {self.property_id!r}"
            )
        return LiveProviderError(message, kind, resp.status_code)

    async def _request(
        self,
        method: str,
        url: str,
        payload: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """Make a request with linear-backoff retry on transient errors."""
        client = await self._get_client()
        last_error: Optional[LiveProviderError] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                headers = {"Authorization": f"Bearer {await self._get_token()}"}
                resp = await client.request(method, url, json=payload, headers=headers)
                if resp.is_success:
                    return resp.json()
                last_error = self._error_from_response(resp)
            except httpx.RequestError as e:
                # Timeouts, refused connections and DNS failures
                last_error = LiveProviderError(
                    f"Connection to GA4 failed: {e!r}", ErrorKind.TRANSIENT
                )

            if not last_error.retryable:
                raise last_error

            if attempt < self.max_retries:
                wait = self.retry_base_delay * attempt
                logger.warning(
                    f"GA4 transient error: {last_error}. Retrying in {wait}s "
                    f"(attempt {attempt}/{self.max_retries})",
                    extra={"attempt": attempt, "status_code": last_error.status_code},
                )
                await asyncio.sleep(wait)

        raise LiveProviderError(
            f"GA4 request failed after {self.max_retries} attempts: {last_error}",
            ErrorKind.TRANSIENT,
            last_error.status_code if last_error else 0,
        )

    # ── Reports ──

    async def run_report(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST properties/{id}:runReport and return the raw JSON response."""
        url = f"{self.base_url}/{self._property_path()}:runReport"
        return await self._request("POST", url, body)

    async def run_realtime_report(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST properties/{id}:runRealtimeReport (activity in the last 30 minutes)."""
        url = f"{self.base_url}/{self._property_path()}:runRealtimeReport"
        return await self._request("POST", url, body)

    async def get_metadata(self) -> Dict[str, Any]:
        """Fetch dimension/metric metadata; a cheap connectivity check."""
        url = f"{self.base_url}/{self._property_path()}/metadata"
        return await self._request("GET", url)
