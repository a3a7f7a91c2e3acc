"""Admin operations - manual credit grants, tier changes, monthly distribution, submission status"""

import logging
from datetime import date
from typing import List, Optional, Tuple

from deckvault.domain.exceptions import InvalidRequestError, NotFoundError
from deckvault.domain.models import (
    CreditGrant,
    DistributionLog,
    EligibilitySnapshot,
    Profile,
    SubmissionRecord,
    SubmissionStatus,
)
from deckvault.domain.ports import DistributionLogPort, GrantHistoryPort, ProfilePort, SubmissionPort
from deckvault.domain.tiers import CREDIT_TYPES, TIER_NAMES
from deckvault.services.credit_ledger import CreditLedgerService
from deckvault.utils.date_utils import month_start

logger = logging.getLogger(__name__)

MAX_GRANT_AMOUNT = 100

# Admins move submissions through these; drafts stay owned by the member
ADMIN_SUBMISSION_STATUSES = [
    SubmissionStatus.PENDING,
    SubmissionStatus.QUEUED,
    SubmissionStatus.IN_PROGRESS,
    SubmissionStatus.COMPLETED,
    SubmissionStatus.REJECTED,
]


class AdminService:
    """Operations behind the admin console"""

    def __init__(
        self,
        ledger: CreditLedgerService,
        profiles: ProfilePort,
        submissions: SubmissionPort,
        grant_history: GrantHistoryPort,
        distribution_logs: DistributionLogPort,
    ):
        self._ledger = ledger
        self._profiles = profiles
        self._submissions = submissions
        self._grant_history = grant_history
        self._distribution_logs = distribution_logs

    def grant_credits(self, admin: Profile, user_id: str, credit_type: str, amount: int) -> int:
        """
        Add or remove credits for a user and record the grant.

        Returns:
            New balance (floored at zero)
        """
        if credit_type not in CREDIT_TYPES:
            raise InvalidRequestError(f"Invalid credit type. Must be one of: {', '.join(CREDIT_TYPES)}")
        if amount < -MAX_GRANT_AMOUNT or amount > MAX_GRANT_AMOUNT:
            raise InvalidRequestError(f"Amount must be between -{MAX_GRANT_AMOUNT} and {MAX_GRANT_AMOUNT}")

        target = self._require_profile(user_id)
        new_balance = self._ledger.adjust(user_id, credit_type, amount)

        self._grant_history.record(
            user_id=user_id,
            credit_type=credit_type,
            amount=amount,
            granted_by=admin.user_id,
            tier=target.tier,
            notes="Manual grant by admin",
        )
        logger.info(
            "Credits granted manually",
            extra={
                "user_id": user_id,
                "credit_type": credit_type,
                "amount": amount,
                "granted_by": admin.user_id,
                "new_balance": new_balance,
            },
        )
        return new_balance

    def get_user_credits(self, user_id: str) -> Tuple[EligibilitySnapshot, List[CreditGrant]]:
        """Current balances (no refresh) and recent manual grants"""
        target = self._require_profile(user_id)
        return self._ledger.get_eligibility(user_id, target.tier), self._grant_history.list_by_user(user_id)

    def update_tier(self, user_id: str, tier: Optional[str]) -> Profile:
        if tier is not None and tier not in TIER_NAMES:
            raise InvalidRequestError("Invalid tier")

        profile = self._profiles.update_tier(user_id, tier)
        if profile is None:
            raise NotFoundError("User not found")
        return profile

    def run_distribution(self, triggered_by: str, today: Optional[date] = None) -> DistributionLog:
        """
        Refresh every member's ledger for the current month.

        Members already refreshed this month are untouched, so a manual run
        after the scheduled one grants nothing twice.
        """
        current_month = month_start(today)
        log = self._distribution_logs.start(triggered_by)
        users_processed = 0
        credits_granted = 0
        unsaved_users: List[str] = []

        try:
            for profile in self._profiles.list_all():
                results = self._ledger.refresh_all(profile.user_id, profile.tier, current_month)
                credits_granted += sum(r.balance for r in results.values() if r.refreshed)
                if any(not r.persisted for r in results.values()):
                    unsaved_users.append(profile.user_id)
                users_processed += 1
        except Exception as e:
            logger.error(
                f"Credit distribution failed: {e}",
                extra={"distribution_id": log.id, "users_processed": users_processed},
            )
            self._distribution_logs.finish(log.id, "failed", users_processed, credits_granted, str(e))
            raise

        if unsaved_users:
            # Refresh swallows write failures; the run itself must not report success
            message = f"Credits could not be saved for {len(unsaved_users)} user(s)"
            logger.error(
                message,
                extra={"distribution_id": log.id, "unsaved_users": unsaved_users},
            )
            return self._distribution_logs.finish(log.id, "failed", users_processed, credits_granted, message)

        return self._distribution_logs.finish(log.id, "completed", users_processed, credits_granted)

    def list_distributions(self, limit: int = 10) -> List[DistributionLog]:
        return self._distribution_logs.list_recent(limit)

    def update_submission_status(self, submission_id: str, status: str) -> SubmissionRecord:
        try:
            new_status = SubmissionStatus(status)
        except ValueError:
            raise InvalidRequestError("Invalid status")
        if new_status not in ADMIN_SUBMISSION_STATUSES:
            raise InvalidRequestError("Invalid status")

        record = self._submissions.update_status(submission_id, new_status)
        if record is None:
            raise NotFoundError("Submission not found")
        return record

    def _require_profile(self, user_id: str) -> Profile:
        profile = self._profiles.get(user_id)
        if profile is None:
            raise NotFoundError("User not found")
        return profile
