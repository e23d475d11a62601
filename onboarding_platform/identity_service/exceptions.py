"""
Error taxonomy for the identity service.

Domain errors are expected outcomes that callers translate into responses.
Operational errors signal configuration or infrastructure problems.
"""


class IdentityError(Exception):
    """Base class for every error raised by the identity service."""

    detail = "Identity service error"

    def __init__(self, detail: str = None):
        super().__init__(detail or self.detail)
        self.detail = detail or self.detail


class EmailTaken(IdentityError):
    detail = "Email already registered"


class NotFound(IdentityError):
    detail = "User not found"


class InvalidCredentials(IdentityError):
    detail = "Invalid credentials"


class InvalidOrExpiredToken(IdentityError):
    detail = "Invalid or expired token"


class ConfigurationError(IdentityError):
    """Raised at startup when required configuration is missing."""

    detail = "Identity service is misconfigured"


class StoreUnavailable(IdentityError):
    """Transient persistence failure; the caller may retry."""

    detail = "Service temporarily unavailable"
