"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class UnauthenticatedError(DomainException):
    """No valid caller identity could be resolved"""

    pass


class IdentityProviderError(DomainException):
    """Identity provider timed out, errored, or returned malformed data"""

    pass


class ProfileUnavailableError(DomainException):
    """Caller is authenticated but has no tier/role profile"""

    pass


class ForbiddenError(DomainException):
    """Caller's role does not permit the operation"""

    pass


class InsufficientTierError(DomainException):
    """Caller's membership tier is below the submission's minimum tier"""

    pass


class InsufficientCreditsError(DomainException):
    """No credit left and the request cannot be queued"""

    pass


class QueueCapacityReachedError(DomainException):
    """No credit left and the personal queue is already full"""

    pass


class PersistenceError(DomainException):
    """Read or write against the relational store failed"""

    pass


class NotFoundError(DomainException):
    """Referenced user or submission does not exist"""

    pass


class InvalidRequestError(DomainException):
    """Request data is missing fields or malformed"""

    pass
