"""GET /v1/credits/me - Caller's credit balances and eligibility"""

from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from deckvault.api.dependencies import get_ledger_service, get_profile, get_today
from deckvault.api.errors import to_http_exception
from deckvault.api.v1.schemas import EligibilityResponse
from deckvault.config import settings
from deckvault.domain.exceptions import DomainException
from deckvault.domain.models import Profile, SubmissionType
from deckvault.infrastructure.database.repositories import SubmissionRepository
from deckvault.infrastructure.database.session import get_db
from deckvault.services.credit_ledger import CreditLedgerService
from deckvault.utils.date_utils import month_key

router = APIRouter()


@router.get("/credits/me", response_model=EligibilityResponse)
def get_my_credits(
    profile: Profile = Depends(get_profile),
    ledger: CreditLedgerService = Depends(get_ledger_service),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Remaining credits, per-type eligibility, and the tier's monthly allotment.

    Runs the monthly refresh first so a new month shows its fresh allocation.
    """
    try:
        ledger.refresh_all(profile.user_id, profile.tier, today)
        snapshot = ledger.get_eligibility(profile.user_id, profile.tier)

        submission_repo = SubmissionRepository(db)
        queued = {
            submission_type.value: submission_repo.count_queued(profile.user_id, submission_type, month_key(today))
            for submission_type in SubmissionType
        }
    except DomainException as e:
        raise to_http_exception(e)

    return EligibilityResponse(
        user_id=snapshot.user_id,
        tier=snapshot.tier,
        balances=snapshot.balances,
        eligibility=snapshot.eligibility,
        monthly_allocation=snapshot.monthly_allocation,
        queued=queued,
        max_queued=settings.max_queued_submissions,
    )
