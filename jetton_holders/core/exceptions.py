"""Custom exceptions for the holder analytics tool."""


class HolderToolError(Exception):
    """Base exception for all holder analytics errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class DataSourceError(HolderToolError):
    """Raised when a data source fails or returns a non-success status."""

    def __init__(
        self,
        source: str,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
    ):
        full_message = f"[{source}] {message}"
        super().__init__(
            full_message,
            {
                "source": source,
                "endpoint": endpoint,
                "status_code": status_code,
            },
        )
        self.source = source
        self.endpoint = endpoint
        self.status_code = status_code


class RateLimitError(DataSourceError):
    """Raised when the API keeps answering 429 after the single retry."""

    def __init__(
        self,
        source: str,
        retry_after_seconds: float | None = None,
        endpoint: str | None = None,
    ):
        message = "Rate limit exceeded"
        if retry_after_seconds:
            message += f", retry after {retry_after_seconds:g}s"
        super().__init__(source, message, endpoint=endpoint, status_code=429)
        self.retry_after_seconds = retry_after_seconds


class AuthorizationError(DataSourceError):
    """Raised when an anonymous request is still refused (401/403)."""

    def __init__(
        self,
        source: str,
        status_code: int,
        endpoint: str | None = None,
    ):
        super().__init__(
            source,
            f"Authorization refused (HTTP {status_code})",
            endpoint=endpoint,
            status_code=status_code,
        )


class ValidationError(HolderToolError):
    """Raised when input data fails validation."""

    def __init__(self, field: str, value: str, reason: str):
        message = f"Validation failed for {field}={value}: {reason}"
        super().__init__(message, {"field": field, "value": value, "reason": reason})
        self.field = field
        self.value = value
        self.reason = reason


class ConfigurationError(HolderToolError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, config_key: str, message: str):
        full_message = f"Configuration error [{config_key}]: {message}"
        super().__init__(full_message, {"config_key": config_key})
        self.config_key = config_key
