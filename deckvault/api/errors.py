"""Mapping from domain exceptions to HTTP errors"""

from typing import Dict, Tuple, Type
from fastapi import HTTPException

from deckvault.domain.exceptions import (
    DomainException,
    ForbiddenError,
    IdentityProviderError,
    InsufficientCreditsError,
    InsufficientTierError,
    InvalidRequestError,
    NotFoundError,
    PersistenceError,
    ProfileUnavailableError,
    QueueCapacityReachedError,
    UnauthenticatedError,
)

ERROR_RESPONSES: Dict[Type[DomainException], Tuple[int, str]] = {
    UnauthenticatedError: (401, "UNAUTHORIZED"),
    ProfileUnavailableError: (403, "PROFILE_ERROR"),
    InsufficientTierError: (403, "INSUFFICIENT_TIER"),
    ForbiddenError: (403, "FORBIDDEN"),
    NotFoundError: (404, "NOT_FOUND"),
    InvalidRequestError: (400, "VALIDATION_ERROR"),
    InsufficientCreditsError: (429, "NO_CREDITS"),
    QueueCapacityReachedError: (429, "QUEUE_FULL"),
    PersistenceError: (503, "DATABASE_ERROR"),
    IdentityProviderError: (503, "AUTH_UNAVAILABLE"),
}

# Internal details of these stay in the logs
GENERIC_MESSAGES: Dict[str, str] = {
    "DATABASE_ERROR": "Storage is temporarily unavailable. Please try again.",
    "AUTH_UNAVAILABLE": "Sign-in service is temporarily unavailable. Please try again.",
}


def error_code(exc: DomainException) -> str:
    for exc_type, (_, code) in ERROR_RESPONSES.items():
        if isinstance(exc, exc_type):
            return code
    return "INTERNAL_ERROR"


def to_http_exception(exc: DomainException) -> HTTPException:
    """Build the `{"detail": {"code", "message"}}` error response for a domain exception"""
    for exc_type, (status_code, code) in ERROR_RESPONSES.items():
        if isinstance(exc, exc_type):
            message = GENERIC_MESSAGES.get(code, str(exc))
            return HTTPException(status_code=status_code, detail={"code": code, "message": message})

    return HTTPException(
        status_code=500,
        detail={"code": "INTERNAL_ERROR", "message": "An unexpected error occurred. Please try again later."},
    )
