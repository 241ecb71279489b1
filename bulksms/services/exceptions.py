class ServiceError(Exception):
    """Base exception for service-level errors."""


class ValidationError(ServiceError):
    """Request rejected before any send attempt."""


class ProviderError(ServiceError):
    """Transport failure or batch-level rejection reported by the SMS provider."""


class LedgerError(ServiceError):
    """Persisting to or reading from the send ledger failed."""


class NotFoundError(ServiceError):
    pass


class AuthenticationError(ServiceError):
    pass
