"""
HTTP Transport for prbuild.

Handles HTTP communication with the code host and the build system:
JSON GET requests, streamed downloads, optional retry logic, error
mapping and cancellation checks at every network boundary.
"""

import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from prbuild.cancellation import CancellationToken
from prbuild.exceptions import (
    RateLimitedError,
    ResponseParseError,
    UnavailableError,
)
from prbuild.logging import log_http_request, log_http_response


@dataclass
class RetryConfig:
    """Configuration for automatic retry behavior. Retries are off by default."""

    max_retries: int = 0
    backoff_factor: float = 2.0
    retry_on: list[int] = field(default_factory=lambda: [429, 500, 502, 503])
    respect_retry_after: bool = True
    max_backoff: float = 60.0  # Maximum backoff time in seconds
    jitter: float = 0.1  # Jitter factor (0.1 = ±10%)


class HTTPTransport:
    """
    HTTP transport layer for one remote host.

    Handles:
    - JSON decoding with a distinguishable parse error
    - Exponential backoff with jitter when retries are enabled
    - Retry-After header respect for rate limiting
    - Error response mapping into typed exceptions
    - Cancellation checks before and after every request
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize HTTP transport.

        Args:
            base_url: Base URL for API requests (e.g., "https://api.github.com")
            headers: Default headers sent with every request
            timeout: Request timeout in seconds
            retry_config: Configuration for retry behavior
            transport: Optional httpx transport (e.g., httpx.MockTransport in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()

        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Accept": "application/json", **(headers or {})},
            follow_redirects=True,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "HTTPTransport":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        cancel: CancellationToken | None = None,
    ) -> Any:
        """
        Make a GET request and decode the JSON body.

        Args:
            path: API path or absolute URL
            params: Query parameters
            cancel: Cancellation token checked around the request

        Returns:
            Parsed JSON response

        Raises:
            UnavailableError: On non-success status or network failure
            ResponseParseError: If a successful response is not valid JSON
            OperationCancelledError: If cancelled
        """
        cancel = cancel or CancellationToken()

        def make_request() -> httpx.Response:
            log_http_request("GET", path, params=params)
            started = time.monotonic()
            response = self._client.request(
                "GET",
                path,
                params=params,
                timeout=cancel.remaining(self.timeout),
            )
            log_http_response(
                response.status_code,
                path,
                elapsed_ms=(time.monotonic() - started) * 1000,
            )
            return response

        response = self._execute_with_retry(make_request, cancel)

        try:
            return response.json()
        except ValueError as e:
            raise ResponseParseError(
                f"Response from {path} is not valid JSON", url=path
            ) from e

    def download(
        self,
        url: str,
        destination: Path,
        cancel: CancellationToken | None = None,
        chunk_size: int = 1024 * 64,
    ) -> Path:
        """
        Stream a response body to a file.

        A partially written file is removed if the download fails or is
        cancelled.

        Args:
            url: Absolute URL or API path
            destination: File to write
            cancel: Cancellation token checked between chunks
            chunk_size: Bytes per chunk

        Returns:
            The destination path

        Raises:
            UnavailableError: On non-success status or network failure
            OperationCancelledError: If cancelled mid-download
        """
        cancel = cancel or CancellationToken()
        cancel.raise_if_cancelled()
        destination.parent.mkdir(parents=True, exist_ok=True)

        log_http_request("GET", url)
        try:
            with self._client.stream(
                "GET",
                url,
                headers={"Accept": "*/*"},
                timeout=cancel.remaining(self.timeout),
            ) as response:
                log_http_response(response.status_code, url)
                if response.status_code >= 400:
                    response.read()
                    raise self._parse_error_response(response)

                with destination.open("wb") as fh:
                    for chunk in response.iter_bytes(chunk_size):
                        cancel.raise_if_cancelled()
                        fh.write(chunk)
        except httpx.RequestError as e:
            destination.unlink(missing_ok=True)
            cancel.raise_if_cancelled()
            raise UnavailableError("CONNECTION_ERROR", str(e)) from e
        except Exception:
            destination.unlink(missing_ok=True)
            raise

        return destination

    def _execute_with_retry(
        self,
        request_fn: Callable[[], httpx.Response],
        cancel: CancellationToken,
    ) -> httpx.Response:
        """
        Execute a request with automatic retry on retryable errors.

        Args:
            request_fn: Function that makes the HTTP request
            cancel: Cancellation token checked before each attempt

        Returns:
            Successful HTTP response

        Raises:
            UnavailableError: On non-retryable errors or after max retries
            OperationCancelledError: If cancelled, including a request that
                failed because the token's deadline passed
        """
        for attempt in range(self.retry_config.max_retries + 1):
            cancel.raise_if_cancelled()

            try:
                response = request_fn()
            except httpx.RequestError as e:
                # A timeout caused by the token's deadline is a cancellation
                cancel.raise_if_cancelled()
                if attempt >= self.retry_config.max_retries:
                    raise UnavailableError("CONNECTION_ERROR", str(e)) from e
                cancel.wait(self._get_backoff_time(attempt, None))
                continue

            cancel.raise_if_cancelled()

            if response.status_code < 400:
                return response

            error = self._parse_error_response(response)

            if not self._should_retry(response.status_code, attempt):
                raise error

            retry_after = response.headers.get("Retry-After")
            cancel.wait(self._get_backoff_time(attempt, retry_after))

        raise UnavailableError("UNKNOWN_ERROR", "Request failed with no error details")

    def _should_retry(self, status_code: int, attempt: int) -> bool:
        """
        Determine if a request should be retried.

        Args:
            status_code: HTTP status code
            attempt: Current attempt number (0-indexed)

        Returns:
            True if the request should be retried
        """
        if attempt >= self.retry_config.max_retries:
            return False

        return status_code in self.retry_config.retry_on

    def _get_backoff_time(
        self, attempt: int, retry_after: str | None
    ) -> float:
        """
        Calculate backoff time for retry.

        Uses exponential backoff with jitter, respecting Retry-After header
        if present.

        Args:
            attempt: Current attempt number (0-indexed)
            retry_after: Value of Retry-After header (if present)

        Returns:
            Time to wait in seconds
        """
        if retry_after and self.retry_config.respect_retry_after:
            try:
                return min(float(retry_after), self.retry_config.max_backoff)
            except ValueError:
                pass  # Fall through to exponential backoff

        base_wait = self.retry_config.backoff_factor ** attempt

        jitter_range = base_wait * self.retry_config.jitter
        jitter = random.uniform(-jitter_range, jitter_range)
        wait_time = base_wait + jitter

        return min(wait_time, self.retry_config.max_backoff)

    def _parse_error_response(self, response: httpx.Response) -> UnavailableError:
        """
        Parse an error response into a typed exception.

        GitHub reports exhausted rate limits as 403 with
        ``X-RateLimit-Remaining: 0``; those are mapped to RateLimitedError
        alongside plain 429 responses.

        Args:
            response: HTTP response with error status

        Returns:
            UnavailableError or RateLimitedError
        """
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        status_code = response.status_code
        message = data.get("message") or f"HTTP {status_code} from {response.request.url}"
        request_id = response.headers.get("X-GitHub-Request-Id") or response.headers.get(
            "X-VSS-ActivityId"
        )

        rate_limited = status_code == 429 or (
            status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"
        )
        if rate_limited:
            retry_after_str = response.headers.get("Retry-After", "60")
            try:
                retry_after = int(retry_after_str)
            except ValueError:
                retry_after = 60
            return RateLimitedError(
                "RATE_LIMITED", message, retry_after, status_code, request_id
            )

        if status_code == 404:
            code = "NOT_FOUND"
        elif status_code in (401, 403):
            code = "ACCESS_DENIED"
        elif status_code >= 500:
            code = "SERVER_ERROR"
        else:
            code = "HTTP_ERROR"

        return UnavailableError(code, message, status_code, request_id)
