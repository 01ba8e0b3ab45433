"""prbuild exception classes."""


class PrBuildError(Exception):
    """Base exception for all prbuild errors."""

    def __init__(
        self, code: str, message: str, request_id: str | None = None
    ) -> None:
        self.code = code
        self.message = message
        self.request_id = request_id
        super().__init__(f"[{code}] {message}")


class ConfigurationError(PrBuildError):
    """Raised when resolver configuration is invalid or missing."""

    def __init__(self, message: str) -> None:
        super().__init__("CONFIGURATION_ERROR", message)


class UnavailableError(PrBuildError):
    """Raised when a remote API does not respond successfully."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(code, message, request_id)
        self.status_code = status_code


class RateLimitedError(UnavailableError):
    """Raised when rate limited."""

    def __init__(
        self,
        code: str,
        message: str,
        retry_after: int,
        status_code: int | None = 429,
        request_id: str | None = None,
    ) -> None:
        super().__init__(code, message, status_code, request_id)
        self.retry_after = retry_after


class ResponseParseError(PrBuildError):
    """Raised when a successful response cannot be interpreted."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__("PARSE_ERROR", message)
        self.url = url


class BuildNotFoundError(PrBuildError):
    """Raised when no verified build could be resolved for a pull request."""

    def __init__(self, pr_number: int, message: str) -> None:
        super().__init__("BUILD_NOT_FOUND", message)
        self.pr_number = pr_number


class DownloadError(PrBuildError):
    """Raised when an artifact cannot be downloaded or extracted."""

    def __init__(self, message: str, build_id: int | None = None) -> None:
        super().__init__("DOWNLOAD_ERROR", message)
        self.build_id = build_id


class PackageNotFoundError(PrBuildError):
    """Raised when extracted artifacts do not contain a usable package."""

    def __init__(self, message: str) -> None:
        super().__init__("PACKAGE_NOT_FOUND", message)


class OperationCancelledError(PrBuildError):
    """Raised when the caller's cancellation token fires."""

    def __init__(self, message: str = "Operation was cancelled") -> None:
        super().__init__("CANCELLED", message)
