"""Error taxonomy shared by the store layer and the HTTP handlers."""
from typing import Optional


class MoneyManagerError(Exception):
    """Base error carrying an HTTP status, a machine code and a client-safe message."""

    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(MoneyManagerError):
    code = "configuration_error"
    default_message = "Invalid configuration"


class ConnectivityError(MoneyManagerError):
    code = "connectivity_error"
    default_message = "Store is unreachable"


class ValidationError(MoneyManagerError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class NotFoundError(MoneyManagerError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ConflictError(MoneyManagerError):
    status_code = 409
    code = "conflict"
    default_message = "Conflicts with an existing record"


class InternalError(MoneyManagerError):
    pass


class ServiceUnavailableError(MoneyManagerError):
    status_code = 503
    code = "service_unavailable"
    default_message = "Database service not available"


class StoreTimeoutError(InternalError):
    status_code = 504
    code = "store_timeout"
    default_message = "Store request timed out"
