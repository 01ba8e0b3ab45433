"""
Tests for HTTP Transport error mapping, retry behavior and cancellation.
"""

import json
import time
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from prbuild.cancellation import CancellationToken
from prbuild.exceptions import (
    OperationCancelledError,
    RateLimitedError,
    ResponseParseError,
    UnavailableError,
)
from prbuild.transport import HTTPTransport, RetryConfig

backoff_factor_strategy = st.floats(min_value=1.1, max_value=5.0)
attempt_strategy = st.integers(min_value=0, max_value=5)
retry_after_strategy = st.integers(min_value=1, max_value=60)


def make_transport(handler, retry_config: RetryConfig | None = None) -> HTTPTransport:
    return HTTPTransport(
        base_url="https://api.github.com",
        retry_config=retry_config,
        transport=httpx.MockTransport(handler),
    )


# ============================================================================
# Backoff
# ============================================================================


@given(
    backoff_factor=backoff_factor_strategy,
    attempt=attempt_strategy,
)
@settings(max_examples=100)
def test_exponential_backoff_timing(backoff_factor: float, attempt: int) -> None:
    """
    For any backoff_factor B and attempt number N, the wait time before
    attempt N is B^N seconds within the jitter range.
    """
    config = RetryConfig(
        backoff_factor=backoff_factor,
        jitter=0.1,
        max_backoff=1000.0,
    )
    transport = HTTPTransport(base_url="https://api.github.com", retry_config=config)

    expected_base = backoff_factor ** attempt
    actual = transport._get_backoff_time(attempt, None)

    min_expected = min(expected_base * 0.9, config.max_backoff)
    max_expected = min(expected_base * 1.1, config.max_backoff)

    assert min_expected <= actual <= max_expected, (
        f"Backoff time {actual} not in expected range [{min_expected}, {max_expected}] "
        f"for attempt {attempt} with factor {backoff_factor}"
    )


@given(retry_after=retry_after_strategy)
@settings(max_examples=100)
def test_retry_after_header_respected(retry_after: int) -> None:
    """A Retry-After header value is used as the wait time."""
    transport = HTTPTransport(
        base_url="https://api.github.com",
        retry_config=RetryConfig(respect_retry_after=True),
    )

    assert transport._get_backoff_time(0, str(retry_after)) == float(retry_after)


@given(
    status_code=st.sampled_from([400, 401, 403, 404, 409, 422]),
    attempt=st.integers(min_value=0, max_value=2),
)
@settings(max_examples=100)
def test_no_retry_on_non_retryable_errors(status_code: int, attempt: int) -> None:
    transport = HTTPTransport(
        base_url="https://api.github.com",
        retry_config=RetryConfig(max_retries=3),
    )

    assert not transport._should_retry(status_code, attempt)


@given(
    status_code=st.sampled_from([429, 500, 502, 503]),
    attempt=st.integers(min_value=0, max_value=2),
)
@settings(max_examples=100)
def test_retry_on_retryable_errors(status_code: int, attempt: int) -> None:
    transport = HTTPTransport(
        base_url="https://api.github.com",
        retry_config=RetryConfig(max_retries=3),
    )

    assert transport._should_retry(status_code, attempt)


def test_retries_disabled_by_default() -> None:
    transport = HTTPTransport(base_url="https://api.github.com")

    assert transport.retry_config.max_retries == 0
    assert not transport._should_retry(503, 0)


# ============================================================================
# Requests
# ============================================================================


def test_get_json_returns_decoded_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"total_count": 0, "check_runs": []})

    transport = make_transport(handler)
    data = transport.get_json("/repos/dotnet/maui/commits/abc/check-runs", params={"page": 2})

    assert data == {"total_count": 0, "check_runs": []}
    assert seen[0].url.path == "/repos/dotnet/maui/commits/abc/check-runs"
    assert seen[0].url.params["page"] == "2"


def test_single_attempt_without_retry() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json={"message": "Service Unavailable"})

    transport = make_transport(handler)

    with pytest.raises(UnavailableError) as exc_info:
        transport.get_json("/anything")

    assert len(calls) == 1
    assert exc_info.value.status_code == 503
    assert exc_info.value.code == "SERVER_ERROR"
    assert exc_info.value.message == "Service Unavailable"


def test_retries_until_success_when_enabled() -> None:
    responses = iter(
        [
            httpx.Response(502),
            httpx.Response(503),
            httpx.Response(200, json={"ok": True}),
        ]
    )

    transport = make_transport(
        lambda request: next(responses),
        RetryConfig(max_retries=2, backoff_factor=1.0),
    )

    with patch.object(CancellationToken, "wait") as wait:
        assert transport.get_json("/flaky") == {"ok": True}

    assert wait.call_count == 2


def test_max_retries_exceeded() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    transport = make_transport(handler, RetryConfig(max_retries=2))

    with patch.object(CancellationToken, "wait"):
        with pytest.raises(UnavailableError):
            transport.get_json("/down")

    assert len(calls) == 3


@pytest.mark.parametrize(
    ("status_code", "code"),
    [
        (401, "ACCESS_DENIED"),
        (403, "ACCESS_DENIED"),
        (404, "NOT_FOUND"),
        (422, "HTTP_ERROR"),
        (500, "SERVER_ERROR"),
    ],
)
def test_error_status_mapping(status_code: int, code: str) -> None:
    transport = make_transport(lambda request: httpx.Response(status_code))

    with pytest.raises(UnavailableError) as exc_info:
        transport.get_json("/x")

    assert not isinstance(exc_info.value, RateLimitedError)
    assert exc_info.value.code == code
    assert exc_info.value.status_code == status_code


def test_429_is_rate_limited() -> None:
    transport = make_transport(
        lambda request: httpx.Response(429, headers={"Retry-After": "17"})
    )

    with pytest.raises(RateLimitedError) as exc_info:
        transport.get_json("/x")

    assert exc_info.value.retry_after == 17


def test_github_secondary_rate_limit() -> None:
    transport = make_transport(
        lambda request: httpx.Response(
            403,
            headers={"X-RateLimit-Remaining": "0"},
            json={"message": "API rate limit exceeded"},
        )
    )

    with pytest.raises(RateLimitedError) as exc_info:
        transport.get_json("/x")

    assert exc_info.value.status_code == 403
    assert "rate limit" in exc_info.value.message


def test_network_error_is_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    transport = make_transport(handler)

    with pytest.raises(UnavailableError) as exc_info:
        transport.get_json("/x")

    assert exc_info.value.code == "CONNECTION_ERROR"


def test_invalid_json_is_parse_error() -> None:
    transport = make_transport(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

    with pytest.raises(ResponseParseError):
        transport.get_json("/x")


def test_patched_client_request() -> None:
    """The underlying client can be patched like any httpx.Client."""
    transport = HTTPTransport(base_url="https://dev.azure.com")
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.json.return_value = {"value": []}

    with patch.object(transport._client, "request", return_value=mock_response) as request:
        assert transport.get_json("/org/proj/_apis/build/builds") == {"value": []}

    args, kwargs = request.call_args
    assert args == ("GET", "/org/proj/_apis/build/builds")
    assert kwargs["timeout"] == pytest.approx(30.0)


# ============================================================================
# Cancellation
# ============================================================================


def test_cancelled_token_prevents_request() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    transport = make_transport(handler)
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCancelledError):
        transport.get_json("/x", cancel=token)

    assert calls == []


def test_cancelled_during_request_discards_response() -> None:
    token = CancellationToken()

    def handler(request: httpx.Request) -> httpx.Response:
        token.cancel()
        return httpx.Response(200, json={"ok": True})

    transport = make_transport(handler)

    with pytest.raises(OperationCancelledError):
        transport.get_json("/x", cancel=token)


def test_expired_deadline_cancels() -> None:
    token = CancellationToken(timeout=0)

    assert token.cancelled
    with pytest.raises(OperationCancelledError):
        token.raise_if_cancelled()


def deadline_timeout_handler(request: httpx.Request) -> httpx.Response:
    """Outlives a short token deadline, then times out as httpx would."""
    time.sleep(0.1)
    raise httpx.ReadTimeout("timed out", request=request)


def test_request_outliving_deadline_is_cancellation() -> None:
    transport = make_transport(deadline_timeout_handler, RetryConfig(max_retries=2))
    token = CancellationToken(timeout=0.05)

    with pytest.raises(OperationCancelledError):
        transport.get_json("/x", cancel=token)


def test_timeout_without_deadline_is_unavailable() -> None:
    transport = make_transport(deadline_timeout_handler)

    with pytest.raises(UnavailableError) as exc_info:
        transport.get_json("/x", cancel=CancellationToken(timeout=30))

    assert exc_info.value.code == "CONNECTION_ERROR"


def test_download_outliving_deadline_is_cancellation(tmp_path: Path) -> None:
    transport = make_transport(deadline_timeout_handler)
    destination = tmp_path / "artifacts.zip"

    with pytest.raises(OperationCancelledError):
        transport.download(
            "https://dev.azure.com/a/b/file.zip", destination, cancel=CancellationToken(timeout=0.05)
        )

    assert not destination.exists()


def test_cancellation_interrupts_backoff() -> None:
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCancelledError):
        token.wait(30)


# ============================================================================
# Downloads
# ============================================================================


def test_download_streams_to_file(tmp_path: Path) -> None:
    payload = b"PK\x03\x04" + b"x" * 200_000

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Accept"] == "*/*"
        return httpx.Response(200, content=payload)

    transport = make_transport(handler)
    destination = tmp_path / "nested" / "artifacts.zip"

    result = transport.download("https://dev.azure.com/a/b/file.zip", destination)

    assert result == destination
    assert destination.read_bytes() == payload


def test_download_failure_leaves_no_file(tmp_path: Path) -> None:
    transport = make_transport(
        lambda request: httpx.Response(404, content=json.dumps({"message": "gone"}).encode())
    )
    destination = tmp_path / "artifacts.zip"

    with pytest.raises(UnavailableError) as exc_info:
        transport.download("https://dev.azure.com/a/b/file.zip", destination)

    assert exc_info.value.status_code == 404
    assert not destination.exists()


def test_download_cancelled_mid_stream_removes_partial_file(tmp_path: Path) -> None:
    token = CancellationToken()

    class CancellingStream(httpx.SyncByteStream):
        def __iter__(self):
            yield b"first chunk"
            token.cancel()
            yield b"second chunk"

    transport = make_transport(lambda request: httpx.Response(200, stream=CancellingStream()))
    destination = tmp_path / "artifacts.zip"

    with pytest.raises(OperationCancelledError):
        transport.download("https://dev.azure.com/a/b/file.zip", destination, cancel=token, chunk_size=4)

    assert not destination.exists()
