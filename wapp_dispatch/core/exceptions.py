from typing import Any, Dict, Optional


class DispatchError(Exception):
    """Base error for the dispatch pipeline and media storage"""
    def __init__(self, message: str, status_code: int = None, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(DispatchError):
    """Raised when a job or media upload is malformed. Detected before any external call."""
    pass


class JobParseError(ValidationError):
    """Raised when a raw channel payload is not a valid job document"""
    pass


class NotFoundError(DispatchError):
    """Raised when a referenced resource does not exist"""
    pass


class ConfigurationError(DispatchError):
    """Raised at construction time when required credentials or config are missing"""
    pass


class UpstreamError(DispatchError):
    """Raised when the messaging provider, a storage backend or the datastore rejects a call"""

    RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

    def __init__(
        self,
        message: str,
        status_code: int = None,
        details: dict = None,
        retryable: Optional[bool] = None,
    ):
        super().__init__(message, status_code=status_code, details=details)
        self._retryable = retryable

    @property
    def retryable(self) -> bool:
        """Network failures, timeouts, throttling and 5xx are transient; other 4xx are permanent"""
        if self._retryable is not None:
            return self._retryable
        if self.status_code is None:
            return True
        return self.status_code in self.RETRYABLE_STATUS_CODES or self.status_code >= 500


class MediaValidationError(ValidationError):
    """Raised when an upload violates the file name, type or size limits"""
    pass


class MediaNotFoundError(NotFoundError):
    """Raised when a storage backend has no asset with the given id"""
    pass


def is_retryable_error(error: BaseException) -> bool:
    """Whether a failed dispatch attempt is worth repeating"""
    if isinstance(error, UpstreamError):
        return error.retryable
    if isinstance(error, DispatchError):
        return False
    return isinstance(error, (TimeoutError, ConnectionError))


def error_summary(error: BaseException) -> Dict[str, Any]:
    """Flat description of an error for logs and dead-letter entries"""
    summary = {
        "error_type": type(error).__name__,
        "error": getattr(error, "message", None) or str(error),
    }
    if isinstance(error, DispatchError):
        if error.status_code is not None:
            summary["status_code"] = error.status_code
        if error.details:
            summary["details"] = error.details
    return summary
