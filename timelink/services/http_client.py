"""Shared async HTTP plumbing for the Toggl and Jira clients"""
import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class RemoteApiError(Exception):
    """A remote service answered with an error (or could not be reached)."""

    service = "Remote"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteClient:
    """Base for JSON-over-HTTP clients with small retries on transient failures"""

    error_class = RemoteApiError

    def __init__(
        self,
        base_url: str,
        auth: Optional[tuple] = None,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_attempts: int = 3,
        base_delay_s: float = 0.5,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts
        self.base_delay_s = base_delay_s
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            auth=auth,
            timeout=httpx.Timeout(timeout, connect=10.0),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    @staticmethod
    def _should_retry(exc: Exception) -> bool:
        """Retry predicate for transient failures (rate limits, 5xx, network)."""
        if isinstance(exc, httpx.HTTPStatusError):
            return exc.response.status_code in (429, 500, 502, 503, 504)
        return isinstance(exc, httpx.TransportError)

    async def _with_retries(self, fn):
        """Await ``fn()`` with exponential backoff on transient errors."""
        attempt = 1
        while True:
            try:
                return await fn()
            except Exception as e:
                if attempt >= self.max_attempts or not self._should_retry(e):
                    raise
                await asyncio.sleep(self.base_delay_s * (2 ** (attempt - 1)))
                attempt += 1

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        response = await self._http.request(method, path, **kwargs)
        response.raise_for_status()
        return response

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a JSON document, converting failures to ``error_class``."""
        try:
            response = await self._with_retries(lambda: self._send("GET", path, params=params))
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise self.error_class(
                f"{self.error_class.service}: HTTP {status} for {path}", status
            ) from e
        except httpx.HTTPError as e:
            raise self.error_class(
                f"{self.error_class.service}: cannot reach {self.base_url}: {e}"
            ) from e
        return response.json()
