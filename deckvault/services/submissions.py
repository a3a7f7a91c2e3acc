"""
Submission flow - tier gate, credit refresh, consumption, queueing, refund.

Order within one request is fixed: refresh -> consume -> write record, with a
refund if the write fails after a credit was spent.
"""

import logging
from datetime import date
from typing import List, Optional

from deckvault.domain.exceptions import (
    InsufficientCreditsError,
    InsufficientTierError,
    PersistenceError,
    QueueCapacityReachedError,
)
from deckvault.domain.models import (
    Profile,
    SubmissionOutcome,
    SubmissionRecord,
    SubmissionRequest,
    SubmissionStatus,
    SubmissionType,
)
from deckvault.domain.ports import SubmissionPort
from deckvault.domain.queue_policy import QueueDecision, decide_submission
from deckvault.domain.tiers import MINIMUM_TIER, SUBMISSION_CREDIT_TYPE, allocation_for, has_minimum_tier
from deckvault.domain.validation import validate_submission
from deckvault.infrastructure.observability.metrics import record_submission
from deckvault.services.credit_ledger import CreditLedgerService
from deckvault.utils.date_utils import month_key, month_start

logger = logging.getLogger(__name__)


class SubmissionService:
    """Accepts deck and roast requests against the caller's credits"""

    def __init__(self, ledger: CreditLedgerService, submissions: SubmissionPort, max_queued: int = 3):
        self._ledger = ledger
        self._submissions = submissions
        self._max_queued = max_queued

    def requires_credit_check(self, profile: Profile, request: SubmissionRequest) -> bool:
        """Drafts and privileged roles skip tier gating and credits"""
        return not (request.is_draft or profile.is_privileged)

    def submit(self, profile: Profile, request: SubmissionRequest, today: Optional[date] = None) -> SubmissionOutcome:
        """
        Create a submission for `profile`.

        Flow:
        1. Validate fields (before any credit is touched)
        2. Drafts / privileged roles: write straight away
        3. Enforce minimum tier for the submission type
        4. Refresh the month's allocation
        5. Queue policy on the refreshed balance and this month's queued count
        6. CONSUME: spend one credit, write as `pending`, refund on write failure
        7. QUEUE: write as `queued`; REJECT: QueueCapacityReachedError

        Raises:
            InvalidRequestError: Missing or malformed fields
            InsufficientTierError: Tier below the type's minimum
            InsufficientCreditsError: No credits and the tier grants none of this type
            QueueCapacityReachedError: No credits and the personal queue is full
            PersistenceError: Ledger or submission store failure
        """
        validate_submission(request)
        current_month = month_start(today)
        submission_type = request.submission_type

        if not self.requires_credit_check(profile, request):
            status = SubmissionStatus.DRAFT if request.is_draft else SubmissionStatus.PENDING
            return self._outcome(self._create(profile, request, status, current_month), None)

        minimum = MINIMUM_TIER[submission_type]
        if not has_minimum_tier(profile.tier, minimum):
            raise InsufficientTierError(
                f"{submission_type.value.capitalize()} submissions require {minimum} tier or higher. "
                f"Your current tier: {profile.tier or 'none'}"
            )

        credit_type = SUBMISSION_CREDIT_TYPE[submission_type]
        refresh = self._ledger.check_and_refresh(profile.user_id, profile.tier, credit_type, current_month)

        decision = self._decide(profile, submission_type, refresh.balance, current_month)
        if decision is QueueDecision.CONSUME:
            result = self._ledger.consume(profile.user_id, credit_type)
            if result.consumed:
                try:
                    record = self._create(profile, request, SubmissionStatus.PENDING, current_month)
                except PersistenceError:
                    self._ledger.refund(profile.user_id, credit_type)
                    raise
                return self._outcome(record, result.balance)

            # Another request spent the last credit between refresh and consume
            logger.info(
                "Credit consumed concurrently, falling back to queue policy",
                extra={"user_id": profile.user_id, "credit_type": credit_type},
            )
            decision = self._decide(profile, submission_type, 0, current_month)

        if allocation_for(profile.tier, credit_type) <= 0:
            raise InsufficientCreditsError(
                f"You have no {credit_type} credits. Credits refresh on the 1st of next month."
            )

        if decision is QueueDecision.REJECT:
            raise QueueCapacityReachedError(
                f"You have {self._max_queued} requests waiting to be built. "
                "Once one is completed, you can submit another."
            )

        record = self._create(profile, request, SubmissionStatus.QUEUED, current_month)
        return self._outcome(record, 0)

    def _decide(
        self,
        profile: Profile,
        submission_type: SubmissionType,
        balance: int,
        current_month: date,
    ) -> QueueDecision:
        # Count and insert are separate statements; concurrent requests can overshoot max_queued by a few
        queued = self._submissions.count_queued(profile.user_id, submission_type, month_key(current_month))
        return decide_submission(balance, queued, self._max_queued)

    def list_active(self, user_id: str) -> List[SubmissionRecord]:
        return self._submissions.list_active_for_user(user_id)

    def _create(
        self,
        profile: Profile,
        request: SubmissionRequest,
        status: SubmissionStatus,
        current_month: date,
    ) -> SubmissionRecord:
        record = self._submissions.create(
            user_id=profile.user_id,
            submission_type=request.submission_type,
            status=status,
            submission_month=month_key(current_month),
            tier=profile.tier,
            details=request.fields,
        )
        record_submission(request.submission_type.value, status.value, profile.tier)
        return record

    def _outcome(self, record: SubmissionRecord, credits_remaining: Optional[int]) -> SubmissionOutcome:
        # The record is already committed; a failed count must not fail the request
        try:
            submission_number = self._submissions.count_by_type(record.submission_type)
        except PersistenceError as e:
            logger.warning(f"Could not count submissions: {e}", extra={"submission_id": record.id})
            submission_number = 1

        return SubmissionOutcome(
            record=record,
            submission_number=submission_number,
            credits_remaining=credits_remaining,
        )
