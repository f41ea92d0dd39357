from __future__ import annotations


class ServiceError(Exception):
    """Base class for errors the service surfaces to its callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ServiceError):
    """Raised when a user or another resource does not exist."""


class Unauthorized(ServiceError):
    """Raised for missing, invalid or expired credentials."""


class ValidationError(ServiceError):
    """Raised when an inbound request is malformed."""


class AlreadyExists(ServiceError):
    """Raised when a username or email is already registered."""


class ConfigurationError(ServiceError):
    """Raised at startup when provider configuration is unusable."""


class VendorError(ServiceError):
    """Wraps transport failures, vendor rejections and unparseable vendor responses."""

    def __init__(self, vendor: str, operation: str, message: str, status_code: int | None = None):
        super().__init__(f"{vendor} {operation}: {message}")
        self.vendor = vendor
        self.operation = operation
        self.status_code = status_code

    def log_fields(self) -> dict:
        return {
            "vendor": self.vendor,
            "vendor_operation": self.operation,
            "vendor_status_code": self.status_code,
        }
