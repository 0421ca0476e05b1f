"""
Custom error types and exit codes for the résumé site.
"""


class ResumeSiteError(Exception):
    """Base exception for résumé site errors."""

    exit_code = 1
    status_code = 500
    code = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(ResumeSiteError):
    """Configuration or path-related errors."""

    exit_code = 2
    code = "configuration_error"


class ValidationError(ResumeSiteError):
    """Submitted data has the wrong shape."""

    exit_code = 5
    status_code = 400
    code = "invalid_payload"


class AuthenticationError(ResumeSiteError):
    """Missing or rejected credentials."""

    exit_code = 6
    status_code = 401
    code = "unauthorized"


class NotFoundError(ResumeSiteError):
    """A referenced row does not exist."""

    exit_code = 7
    status_code = 404
    code = "not_found"


class StoreError(ResumeSiteError):
    """A write against the store failed and was rolled back."""

    exit_code = 8
    status_code = 500
    code = "store_error"


class StoreUnavailableError(StoreError):
    """The store could not be read."""

    status_code = 503
    code = "store_unavailable"


# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_VALIDATION_ERROR = 5
EXIT_AUTH_ERROR = 6
EXIT_STORE_ERROR = 8
