"""
Shared Async REST Client

Every exchange API client inherits from BaseAPIClient. It handles:
- aiohttp session lifecycle (async context manager)
- GET/POST requests returning decoded JSON
- Rate limit handling (429) with a bounded number of attempts
- Translating non-2xx responses into HttpError / NotFoundError / RateLimitedError
- Request/response logging

Rate Limits:
    A 429 response is retried with a growing delay
    (RATE_LIMIT_BACKOFF_SECONDS * attempt) until MAX_ATTEMPTS requests have
    been made, after which RateLimitedError is raised. Connectors turn that
    error into a cooldown window (see core.connector_interface).

Usage:
    class AsterAPIClient(BaseAPIClient):
        exchange = "aster"
        DEFAULT_BASE_URL = "https://fapi.asterdex.com"

    async with AsterAPIClient() as client:
        data = await client._get("/fapi/v1/premiumIndex")
"""

import asyncio
import time
from typing import Any, Dict, Optional

import aiohttp

from core.config import settings
from core.exceptions import HttpError, NotFoundError, RateLimitedError
from core.logging import get_logger, log_api_request, log_api_response


class BaseAPIClient:
    """
    Async HTTP client base class for exchange REST APIs.

    Attributes:
        exchange: Short exchange identifier used in log lines
        DEFAULT_BASE_URL: Base URL used when no override is configured
        MAX_ATTEMPTS: Total attempts for a rate-limited request
        RATE_LIMIT_BACKOFF_SECONDS: Backoff unit between rate-limited attempts
        base_url: Effective base URL (no trailing slash)
        session: aiohttp ClientSession, created on __aenter__/open()
    """

    exchange: str = "unknown"
    DEFAULT_BASE_URL: str = ""
    MAX_ATTEMPTS = 3
    RATE_LIMIT_BACKOFF_SECONDS = 0.5

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None):
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.api_key = api_key
        self.logger = get_logger(self.__class__.__module__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def open(self) -> None:
        """Create the HTTP session if it does not exist yet."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=settings.request_timeout)
            )
            self.logger.debug(f"{self.__class__.__name__} session created")

    async def close(self) -> None:
        """Close the HTTP session if one is open."""
        if self.session is not None:
            await self.session.close()
            self.session = None
            self.logger.debug(f"{self.__class__.__name__} session closed")

    # ============================================
    # Request Helpers
    # ============================================

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def default_headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    async def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """
        GET a JSON resource.

        None-valued params are dropped so callers can pass optional filters inline.
        """
        clean_params = {k: v for k, v in (params or {}).items() if v is not None} or None
        return await self._request("GET", path, params=clean_params, headers=headers)

    async def _post(
        self,
        path: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """POST a JSON payload and return the decoded JSON response."""
        request_headers = {"Content-Type": "application/json", **(headers or {})}
        return await self._request("POST", path, payload=payload, headers=request_headers)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """
        Make an HTTP request with rate-limit retries.

        Returns:
            Decoded JSON body

        Raises:
            RuntimeError: If the session has not been opened
            NotFoundError: On 404
            RateLimitedError: On 429 after MAX_ATTEMPTS attempts
            HttpError: On any other non-2xx status
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = self.build_url(path)
        request_headers = {**self.default_headers(), **(headers or {})}
        send = self.session.get if method == "GET" else self.session.post

        log_api_request(self.exchange, path, params or payload)

        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            started = time.monotonic()
            kwargs: Dict[str, Any] = {"headers": request_headers}
            if params:
                kwargs["params"] = params
            if payload is not None:
                kwargs["json"] = payload

            async with send(url, **kwargs) as resp:
                status = resp.status
                log_api_response(self.exchange, path, status, time.monotonic() - started)

                if 200 <= status < 300:
                    return await resp.json(content_type=None)

                body = await resp.text()

            if status == 429 and attempt < self.MAX_ATTEMPTS:
                delay = self.RATE_LIMIT_BACKOFF_SECONDS * attempt
                self.logger.warning(
                    f"Rate limited (HTTP 429) on {self.exchange} {path}. "
                    f"Retrying in {delay:.1f}s... (attempt {attempt}/{self.MAX_ATTEMPTS})"
                )
                await asyncio.sleep(delay)
                continue

            raise self._error_for(status, url, body)

        # Unreachable: the final attempt always returns or raises
        raise RateLimitedError(f"Rate limited on {url}", 429, url)

    @staticmethod
    def _error_for(status: int, url: str, body: str) -> HttpError:
        message = f"Request failed with status {status} - {(body or '<no-body>')[:200]}"
        if status == 404:
            return NotFoundError(message, status, url)
        if status == 429:
            return RateLimitedError(message, status, url)
        return HttpError(message, status, url)
