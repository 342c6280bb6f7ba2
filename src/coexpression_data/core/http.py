"""
HTTP plumbing for expression profile sources.

The Protein Atlas download endpoint throttles aggressive callers, and one
search fans out into two profile fetches per pair, so every request goes
through a shared RequestPacer and a RetryPolicy:

- 429: honour Retry-After (capped) and try again
- 5xx and transport errors: exponential backoff, then give up
- other 4xx: fail immediately

All failures surface as ExternalAPIError, a FetchFailureError, which the
batch processor treats as scoped to the pair being fetched.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from .errors import FetchFailureError

logger = logging.getLogger(__name__)


class ExternalAPIError(FetchFailureError):
    """Transport or HTTP-level failure talking to a profile source."""

    code = "EXTERNAL_API_ERROR"

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ExternalAPIError):
    """The source kept answering 429 after every retry."""

    code = "RATE_LIMITED"

    def __init__(self, message: str, retry_after: int = 60):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class RequestPacer:
    """Spaces requests at least 60 / requests_per_minute seconds apart."""

    def __init__(self, requests_per_minute: int = 120):
        self.interval = 60.0 / requests_per_minute
        self._next_slot = 0.0
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        async with self._lock:
            delay = self._next_slot - time.monotonic()
            if delay > 0:
                await asyncio.sleep(delay)
            self._next_slot = time.monotonic() + self.interval


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts a request gets and how long to sleep between them."""

    max_attempts: int = 3
    backoff_base: float = 1.0
    max_retry_after: int = 30

    def backoff(self, attempt: int) -> float:
        return self.backoff_base * 2 ** attempt

    def retry_after(self, response: httpx.Response) -> int:
        try:
            return int(response.headers.get("retry-after", 60))
        except ValueError:
            return 60


class BaseApiClient:
    """
    Async JSON client with pacing and retries.

    Subclasses set BASE_URL (or pass base_url) and call ``_get``:

        class AtlasClient(BaseApiClient):
            BASE_URL = "https://www.proteinatlas.org"

            async def search(self, gene: str) -> list:
                return await self._get("/api/search_download.php", {"search": gene})

    Works as an async context manager, or lazily with an explicit close().
    An ``httpx.AsyncClient`` can be injected, e.g. one backed by
    ``httpx.MockTransport``.
    """

    BASE_URL: str = ""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        headers: dict[str, str] | None = None,
        requests_per_minute: int = 120,
        timeout: float = 30.0,
        max_retries: int = 3,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._base_url = (base_url or self.BASE_URL).rstrip("/")
        self._headers = dict(headers or {})
        self._timeout = timeout
        self._pacer = RequestPacer(requests_per_minute)
        self._retry = RetryPolicy(max_attempts=max_retries)
        self._client = http_client

    async def __aenter__(self) -> "BaseApiClient":
        _ = self.client
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET ``path`` and decode the JSON body.

        Raises:
            RateLimitError: Still throttled after the last attempt
            ExternalAPIError: Any other failure after the last attempt
        """
        failure: ExternalAPIError | None = None

        for attempt in range(self._retry.max_attempts):
            is_last = attempt == self._retry.max_attempts - 1
            await self._pacer.wait()

            try:
                response = await self.client.get(path, params=params)
            except httpx.RequestError as e:
                failure = ExternalAPIError(f"Request failed: {e}")
                if not is_last:
                    await self._back_off(attempt, failure)
                continue

            if response.status_code == 429:
                retry_after = self._retry.retry_after(response)
                if is_last:
                    raise RateLimitError(
                        f"{self._base_url} is rate limiting requests; retry in {retry_after}s",
                        retry_after=retry_after,
                    )
                wait = min(retry_after, self._retry.max_retry_after)
                logger.warning("Rate limited by %s, sleeping %ss (attempt %d)", self._base_url, wait, attempt + 1)
                await asyncio.sleep(wait)
                continue

            if response.is_error:
                failure = ExternalAPIError(
                    f"HTTP {response.status_code} from {path}: {response.text[:200]}",
                    status_code=response.status_code,
                )
                if response.is_client_error:
                    raise failure
                if not is_last:
                    await self._back_off(attempt, failure)
                continue

            try:
                return response.json()
            except ValueError as e:
                raise ExternalAPIError(f"Invalid JSON from {path}: {e}") from e

        raise failure or ExternalAPIError(f"GET {path} failed after retries")

    async def _back_off(self, attempt: int, failure: ExternalAPIError) -> None:
        wait = self._retry.backoff(attempt)
        logger.warning("%s; retrying in %.1fs", failure.message, wait)
        await asyncio.sleep(wait)
