class PortalError(Exception):
    """Base exception for all portal errors."""


class ValidationError(PortalError):
    """Raised when an upload or request carries missing or invalid input."""


class ForbiddenError(PortalError):
    """Raised when a caller lacks the privilege an operation requires."""


class NotFoundError(PortalError):
    """Raised for unknown ids and for records the caller may not see."""


class StorageError(PortalError):
    """Raised when blob or record persistence fails, or a payload is missing."""


class UpstreamConfigError(PortalError):
    """Raised at startup when the deployment cannot be served as configured."""
