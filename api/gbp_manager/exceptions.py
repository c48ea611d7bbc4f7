"""
Exception hierarchy for GBP Manager.

Every error carries an HTTP-ish ``status_code`` so the API layer can surface
distinguishable responses, plus a ``retryable`` marker the caller can use to
decide between prompting the user and trying again later. The core never
retries quota errors itself.
"""

from typing import Any, Optional


# =============================================================================
# Base Exceptions
# =============================================================================


class GBPManagerError(Exception):
    """Base exception for all GBP Manager errors."""

    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class RetryableError(GBPManagerError):
    """Transient errors: rate limits, timeouts, upstream outages."""

    retryable = True


class PermanentError(GBPManagerError):
    """Errors that won't be fixed by retrying without user action."""

    pass


# =============================================================================
# Remote Directory (Google Business Profile API) Errors
# =============================================================================


class RemoteDirectoryError(GBPManagerError):
    """Base exception for Google Business Profile API failures."""

    status_code = 502

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        remote_status: Optional[int] = None,
    ):
        self.remote_status = remote_status
        super().__init__(message, details)


class RemoteAuthError(RemoteDirectoryError, PermanentError):
    """Expired or invalid credential. The user must reconnect Google."""

    status_code = 401


class RemotePermissionError(RemoteDirectoryError, PermanentError):
    """Access denied for this account or location."""

    status_code = 403


class RemoteQuotaError(RemoteDirectoryError, RetryableError):
    """Quota exceeded. Retry later; backoff is the caller's policy."""

    status_code = 429


class RemoteNotFoundError(RemoteDirectoryError, PermanentError):
    """Account, location or endpoint not found."""

    status_code = 404


class RemoteBadRequestError(RemoteDirectoryError, PermanentError):
    """Request rejected by the API (invalid argument / schema drift)."""

    status_code = 400


class RemoteUnavailableError(RemoteDirectoryError, RetryableError):
    """Upstream 5xx, timeout or transport failure."""

    status_code = 503


def classify_remote_status(
    status: Optional[int],
    message: str,
    details: Optional[dict[str, Any]] = None,
) -> RemoteDirectoryError:
    """Map an upstream HTTP status onto the remote error taxonomy."""
    lowered = message.lower()
    if status == 401:
        return RemoteAuthError(message, details, remote_status=status)
    # Google reports some quota exhaustion as 403; the text only matters there
    if status == 429 or (status == 403 and ("resource_exhausted" in lowered or "quota" in lowered)):
        return RemoteQuotaError(message, details, remote_status=status)
    if status == 403:
        return RemotePermissionError(message, details, remote_status=status)
    if status == 404:
        return RemoteNotFoundError(message, details, remote_status=status)
    if status == 400:
        return RemoteBadRequestError(message, details, remote_status=status)
    if status is None or status >= 500:
        return RemoteUnavailableError(message, details, remote_status=status)
    return RemoteDirectoryError(message, details, remote_status=status)


# =============================================================================
# Local Record Errors
# =============================================================================


class RecordNotFoundError(PermanentError):
    """Record missing or owned by another organization (never distinguished)."""

    status_code = 404

    def __init__(self, resource: str, record_id: Any = None):
        self.resource = resource
        self.record_id = record_id
        details = {"id": str(record_id)} if record_id is not None else None
        super().__init__(f"{resource} not found", details)


class OrganizationNotFoundError(PermanentError):
    """The calling user is not attached to an organization."""

    status_code = 400

    def __init__(self, user_id: Any):
        self.user_id = user_id
        super().__init__("User does not have an organization", {"user_id": str(user_id)})


class ValidationError(PermanentError):
    """Invalid input for an operation."""

    status_code = 400


class ConflictError(PermanentError):
    """The operation conflicts with the record's current state."""

    status_code = 409


class InvalidTransitionError(ValidationError):
    """Lifecycle status change not allowed."""

    def __init__(self, entity: str, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move {entity} from {current} to {target}",
            {"current": current, "target": target},
        )


# =============================================================================
# Configuration / Policy Errors
# =============================================================================


class ConfigurationError(PermanentError):
    """Raised when configuration is invalid or missing."""

    status_code = 500

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details)


class SyntheticDataDisabledError(PermanentError):
    """The remote source has no data and placeholder data is switched off."""

    status_code = 503
