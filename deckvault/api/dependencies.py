"""Dependency injection for FastAPI endpoints"""

from datetime import date, datetime, timezone
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from deckvault.api.errors import to_http_exception
from deckvault.config import settings
from deckvault.domain.exceptions import (
    DomainException,
    ForbiddenError,
    ProfileUnavailableError,
    UnauthenticatedError,
)
from deckvault.domain.models import CurrentUser, Profile
from deckvault.domain.ports import IdentityPort
from deckvault.infrastructure.clients.identity import IdentityClient
from deckvault.infrastructure.database.repositories import (
    CreditLedgerRepository,
    DistributionLogRepository,
    GrantHistoryRepository,
    ProfileRepository,
    SubmissionRepository,
)
from deckvault.infrastructure.database.session import get_db
from deckvault.services.admin import AdminService
from deckvault.services.credit_ledger import CreditLedgerService
from deckvault.services.submissions import SubmissionService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_today() -> date:
    """Current UTC date; overridden in tests to pin the credit month"""
    return datetime.now(timezone.utc).date()


def get_identity_client() -> IdentityPort:
    """Provide identity provider client instance"""
    return IdentityClient()


async def get_current_user(
    authorization: str | None = Header(default=None),
    identity: IdentityPort = Depends(get_identity_client),
) -> CurrentUser:
    """Resolve the `Authorization: Bearer <token>` header to a user"""
    if not authorization:
        raise to_http_exception(UnauthenticatedError("Authentication required. Please sign in."))

    token = authorization.replace("Bearer ", "", 1).strip()
    try:
        return await identity.get_current_user(token)
    except DomainException as e:
        raise to_http_exception(e)


def get_profile(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Profile:
    """Load the caller's tier/role profile"""
    try:
        profile = ProfileRepository(db).get(current_user.user_id)
    except DomainException as e:
        raise to_http_exception(e)

    if profile is None:
        raise to_http_exception(
            ProfileUnavailableError("Unable to verify Patreon tier. Please ensure your account is linked.")
        )
    if profile.email is None:
        profile.email = current_user.email
    return profile


def require_admin(profile: Profile = Depends(get_profile)) -> Profile:
    """Allow only admin, moderator, and developer roles"""
    if not profile.is_privileged:
        raise to_http_exception(ForbiddenError("Forbidden - Admin access required"))
    return profile


def get_ledger_service(db: Session = Depends(get_db)) -> CreditLedgerService:
    return CreditLedgerService(CreditLedgerRepository(db), max_retries=settings.ledger_max_retries)


def get_submission_service(
    db: Session = Depends(get_db),
    ledger: CreditLedgerService = Depends(get_ledger_service),
) -> SubmissionService:
    return SubmissionService(ledger, SubmissionRepository(db), max_queued=settings.max_queued_submissions)


def get_admin_service(
    db: Session = Depends(get_db),
    ledger: CreditLedgerService = Depends(get_ledger_service),
) -> AdminService:
    return AdminService(
        ledger=ledger,
        profiles=ProfileRepository(db),
        submissions=SubmissionRepository(db),
        grant_history=GrantHistoryRepository(db),
        distribution_logs=DistributionLogRepository(db),
    )
