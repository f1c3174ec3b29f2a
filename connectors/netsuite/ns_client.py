"""NetSuite HTTP Client.

Low-level HTTP client for the SuiteTalk REST record API and SuiteQL.
Handles authentication headers, pagination, retries, and error mapping.
"""

import asyncio
import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from core.config import Environment
from core.errors import ConfigError, NotFoundError, RemoteError, TransientError
from core.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 60.0  # seconds
    exponential_base: float = 2.0
    retry_on_status: Tuple[int, ...] = (429, 500, 502, 503, 504)

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for retry attempt (exponential backoff)."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        return min(delay, self.max_delay)


@dataclass
class NetSuiteApiConfig:
    """Configuration for NetSuite API client."""
    account_id: str
    rest_domain: Optional[str] = None   # Overrides the derived suitetalk host
    retry_config: RetryConfig = field(default_factory=RetryConfig)
    timeout_seconds: int = 30
    page_size: int = 1000

    @property
    def account_slug(self) -> str:
        """Account id as used in hostnames: '1234567_SB1' -> '1234567-sb1'."""
        return self.account_id.lower().replace("_", "-")

    def get_base_url(self) -> str:
        if self.rest_domain:
            return self.rest_domain.rstrip("/")
        return f"https://{self.account_slug}.suitetalk.api.netsuite.com"

    def get_record_url(self, record_type: str, record_id: Optional[str] = None) -> str:
        url = f"{self.get_base_url()}/services/rest/record/v1/{record_type}"
        if record_id:
            url += f"/{record_id}"
        return url

    def get_suiteql_url(self) -> str:
        return f"{self.get_base_url()}/services/rest/query/v1/suiteql"

    @classmethod
    def from_env(cls, environment: Environment = Environment.SANDBOX) -> "NetSuiteApiConfig":
        """Read connection settings from environment variables.

        Sandbox runs use NETSUITE_SANDBOX_ACCOUNT when it is set.

        Raises:
            ConfigError: If no account id is configured
        """
        account_id = os.getenv("NETSUITE_ACCOUNT")
        if environment.is_sandbox:
            account_id = os.getenv("NETSUITE_SANDBOX_ACCOUNT", account_id)
        if not account_id:
            raise ConfigError("NETSUITE_ACCOUNT environment variable is required")

        return cls(
            account_id=account_id,
            rest_domain=os.getenv("NETSUITE_REST_DOMAIN") or None,
            timeout_seconds=int(os.getenv("NETSUITE_TIMEOUT", "30")),
        )


def _retry_after_seconds(value: Optional[str]) -> float:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP date)."""
    if not value:
        return 0.0
    try:
        return max(float(value), 0.0)
    except ValueError:
        pass
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return 0.0
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max((retry_at - datetime.now(timezone.utc)).total_seconds(), 0.0)


def _error_detail(response_text: str) -> str:
    """Pull the human message out of a NetSuite error body."""
    try:
        body = json.loads(response_text)
    except (ValueError, TypeError):
        return response_text[:500]
    details = body.get("o:errorDetails") if isinstance(body, dict) else None
    if details:
        return "; ".join(d.get("detail", "") for d in details if isinstance(d, dict))
    if isinstance(body, dict) and body.get("title"):
        return body["title"]
    return response_text[:500]


class NetSuiteApiClient:
    """HTTP client for the NetSuite REST API.

    Provides:
    - Authenticated API calls
    - SuiteQL pagination
    - Error mapping and retries with exponential backoff

    Usage:
        client = NetSuiteApiClient(auth_provider, api_config)
        await client.connect()
        order = await client.get_record("purchaseOrder", "1042", expand_sub_resources=True)
    """

    def __init__(self, auth_provider, api_config: NetSuiteApiConfig):
        """Initialize API client.

        Args:
            auth_provider: Object exposing ensure_valid_token() and get_authorization_header()
            api_config: API configuration
        """
        self.auth_provider = auth_provider
        self.api_config = api_config
        self._session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> bool:
        """Initialize HTTP session and check credentials."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return await self.auth_provider.ensure_valid_token()

    async def disconnect(self) -> None:
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    def _get_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        auth_header = self.auth_provider.get_authorization_header()
        if not auth_header:
            raise RemoteError("Not authenticated", 401)

        headers = {
            "Authorization": auth_header,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Send one request and map the response status to an exception.

        Raises:
            TransientError: 429, retryable 5xx, timeouts, connection failures
            NotFoundError: 404
            RemoteError: Any other rejection
        """
        if not self._session:
            raise RemoteError("Not connected. Call connect() first.")

        timeout = aiohttp.ClientTimeout(total=self.api_config.timeout_seconds)
        try:
            async with self._session.request(
                method,
                url,
                headers=self._get_headers(headers),
                params=params,
                json=data,
                timeout=timeout,
            ) as response:
                response_text = await response.text()

                if response.status < 400:
                    if response.status == 204 or not response_text:
                        return {}
                    return json.loads(response_text)

                detail = _error_detail(response_text)

                if response.status == 404:
                    raise NotFoundError(f"Resource not found: {url}")

                if response.status == 429:
                    retry_after = _retry_after_seconds(response.headers.get("Retry-After"))
                    raise TransientError("Rate limit exceeded", 429, response_text, retry_after)

                if response.status in self.api_config.retry_config.retry_on_status:
                    raise TransientError(
                        f"API error {response.status}: {detail}", response.status, response_text
                    )

                if response.status in (401, 403):
                    raise RemoteError(f"Authentication failed: {detail}", response.status, response_text)

                raise RemoteError(f"API error {response.status}: {detail}", response.status, response_text)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientError(f"{type(e).__name__}: {e}")

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Make an authenticated API request with automatic retries.

        Transient failures are retried with exponential backoff; once retries
        are exhausted they surface as RemoteError.
        """
        retry_config = self.api_config.retry_config
        last_error: Optional[TransientError] = None

        for attempt in range(retry_config.max_retries + 1):
            try:
                return await self._send(method, url, params=params, data=data, headers=headers)
            except TransientError as e:
                last_error = e
                if attempt < retry_config.max_retries:
                    delay = min(max(retry_config.get_delay(attempt), e.retry_after), retry_config.max_delay)
                    logger.warning(
                        f"{method} {url} failed ({e}), retrying in {delay:.1f}s "
                        f"(attempt {attempt + 1}/{retry_config.max_retries})"
                    )
                    await asyncio.sleep(delay)

        raise RemoteError(
            f"Request failed after {retry_config.max_retries} retries: {last_error}",
            last_error.status_code if last_error else 0,
            last_error.response_body if last_error else "",
        )

    # =========================================================================
    # Record API
    # =========================================================================

    async def get_record(
        self,
        record_type: str,
        record_id: str,
        expand_sub_resources: bool = False,
    ) -> Dict[str, Any]:
        """Get a single record by internal id."""
        params = {"expandSubResources": "true"} if expand_sub_resources else None
        url = self.api_config.get_record_url(record_type, record_id)
        return await self._request("GET", url, params=params)

    async def query_records(self, record_type: str, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        """List record ids matching a record-API query, e.g. 'tranId IS "PO1042"'."""
        url = self.api_config.get_record_url(record_type)
        response = await self._request("GET", url, params={"q": query, "limit": str(limit)})
        return response.get("items", [])

    async def update_record(
        self,
        record_type: str,
        record_id: str,
        data: Dict[str, Any],
        replace: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Update a record. Sublists named in ``replace`` are replaced in full."""
        params = {"replace": ",".join(replace)} if replace else None
        url = self.api_config.get_record_url(record_type, record_id)
        return await self._request("PATCH", url, params=params, data=data)

    # =========================================================================
    # SuiteQL
    # =========================================================================

    async def suiteql(self, query: str) -> List[Dict[str, Any]]:
        """Run a SuiteQL query and return all rows (automatic pagination)."""
        url = self.api_config.get_suiteql_url()
        page_size = self.api_config.page_size
        rows: List[Dict[str, Any]] = []
        offset = 0

        while True:
            response = await self._request(
                "POST",
                url,
                params={"limit": str(page_size), "offset": str(offset)},
                data={"q": query},
                headers={"Prefer": "transient"},
            )
            items = response.get("items", [])
            for item in items:
                item.pop("links", None)
            rows.extend(items)

            if not response.get("hasMore") or not items:
                break
            offset += len(items)

        return rows
