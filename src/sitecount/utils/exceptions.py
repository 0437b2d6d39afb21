"""Custom exception classes for sitecount."""


class SiteCountError(Exception):
    """Base exception for all sitecount errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict | None = None,
    ):
        """Initialize SiteCountError.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert exception to dictionary for logging or display."""
        result = {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class CounterUnavailableError(SiteCountError):
    """Raised when no configured counter endpoint could serve a request."""

    def __init__(
        self,
        namespace: str,
        failures: list[str] | None = None,
        message: str | None = None,
    ):
        """Initialize CounterUnavailableError.

        Args:
            namespace: Counter namespace the request was scoped to.
            failures: One entry per endpoint that was tried.
            message: Optional custom message.
        """
        self.namespace = namespace
        self.failures = failures or []
        super().__init__(
            message=message or f"Counter service unavailable for namespace '{namespace}'",
            error_code="COUNTER_UNAVAILABLE",
            details={"namespace": namespace, "failures": self.failures},
        )


class CounterCooldownError(CounterUnavailableError):
    """Raised when remote calls are suppressed after a recent failure."""

    def __init__(self, namespace: str, retry_after: float | None = None):
        """Initialize CounterCooldownError.

        Args:
            namespace: Counter namespace the request was scoped to.
            retry_after: Seconds until remote calls are attempted again.
        """
        self.retry_after = retry_after
        super().__init__(
            namespace=namespace,
            message=f"Counter service for namespace '{namespace}' is cooling down",
        )
        self.error_code = "COUNTER_COOLDOWN"
        if retry_after is not None:
            self.details["retry_after_seconds"] = round(retry_after, 1)


class GeolocationError(SiteCountError):
    """Raised when the IP geolocation lookup fails."""

    def __init__(self, message: str = "Geolocation lookup failed", original_error: str | None = None):
        """Initialize GeolocationError."""
        super().__init__(
            message=message,
            error_code="GEOLOCATION_FAILED",
            details={"original_error": original_error} if original_error else None,
        )


class StorageError(SiteCountError):
    """Raised when the local key-value store cannot be read or written."""

    def __init__(self, key: str, original_error: str | None = None):
        """Initialize StorageError.

        Args:
            key: Storage key being accessed.
            original_error: Underlying error text.
        """
        self.key = key
        super().__init__(
            message=f"Local storage failed for key '{key}'",
            error_code="STORAGE_FAILED",
            details={"key": key, "original_error": original_error},
        )
