from enum import Enum


class ErrorKind(str, Enum):
    INVALID_URL = "InvalidUrl"
    TIMEOUT = "Timeout"
    HTTP_ERROR = "HttpError"
    BLOCKED = "Blocked"
    UNSUPPORTED = "Unsupported"
    RATE_LIMITED = "RateLimited"
    REMOTE_ERROR = "RemoteError"
    NETWORK_ERROR = "NetworkError"
    TOO_MANY_URLS = "TooManyUrls"
    EMPTY_BATCH = "EmptyBatch"
    INVALID_INPUT = "InvalidInput"


class AcquisitionError(Exception):
    """Per-attempt failure raised by the fetcher and the strategies."""

    kind = ErrorKind.REMOTE_ERROR

    def describe(self) -> str:
        return f"{self.kind.value}: {self}"


class InvalidUrl(AcquisitionError):
    kind = ErrorKind.INVALID_URL

    def __init__(self, url):
        super().__init__(f"Invalid URL: {url!r} is not an absolute http(s) URL")
        self.url = url


class FetchTimeout(AcquisitionError):
    kind = ErrorKind.TIMEOUT


class HttpError(AcquisitionError):
    kind = ErrorKind.HTTP_ERROR

    def __init__(self, status: int, message: str = ""):
        super().__init__(message or f"HTTP {status}")
        self.status = status


class Blocked(AcquisitionError):
    kind = ErrorKind.BLOCKED


class Unsupported(AcquisitionError):
    kind = ErrorKind.UNSUPPORTED


class RateLimited(AcquisitionError):
    kind = ErrorKind.RATE_LIMITED


class RemoteError(AcquisitionError):
    kind = ErrorKind.REMOTE_ERROR


class NetworkError(AcquisitionError):
    kind = ErrorKind.NETWORK_ERROR


class BatchValidationError(ValueError):
    """Rejects a whole batch before any work starts."""

    kind = ErrorKind.INVALID_INPUT

    def describe(self) -> str:
        return f"{self.kind.value}: {self}"


class TooManyUrls(BatchValidationError):
    kind = ErrorKind.TOO_MANY_URLS


class EmptyBatch(BatchValidationError):
    kind = ErrorKind.EMPTY_BATCH


class InvalidInput(BatchValidationError):
    kind = ErrorKind.INVALID_INPUT
