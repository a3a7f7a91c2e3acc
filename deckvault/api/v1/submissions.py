"""POST /v1/submissions/{deck,roast} and GET /v1/submissions/me - member submission endpoints"""

import time
import logging
from datetime import date
from typing import Any, Dict
from fastapi import APIRouter, Depends, Request

from deckvault.api.dependencies import get_profile, get_request_id, get_submission_service, get_today
from deckvault.api.errors import error_code, to_http_exception
from deckvault.api.v1.schemas import (
    DeckSubmissionRequest,
    MySubmissionsResponse,
    RoastSubmissionRequest,
    SubmissionItem,
    SubmissionResponse,
)
from deckvault.domain.exceptions import DomainException
from deckvault.domain.models import Profile, SubmissionRequest, SubmissionType
from deckvault.infrastructure.observability.logging import log_submission
from deckvault.infrastructure.observability.metrics import record_rejection
from deckvault.services.submissions import SubmissionService

router = APIRouter()


def _submit(
    submission_type: SubmissionType,
    fields: Dict[str, Any],
    is_draft: bool,
    request: Request,
    profile: Profile,
    service: SubmissionService,
    today: date,
) -> SubmissionResponse:
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        outcome = service.submit(
            profile,
            SubmissionRequest(submission_type=submission_type, fields=fields, is_draft=is_draft),
            today=today,
        )
    except DomainException as e:
        code = error_code(e)
        record_rejection(submission_type.value, code)
        log = logging.error if code in ("DATABASE_ERROR", "INTERNAL_ERROR") else logging.warning
        log(
            f"Submission rejected: {e}",
            extra={
                "request_id": request_id,
                "user_id": profile.user_id,
                "submission_type": submission_type.value,
                "reason": code,
            },
        )
        raise to_http_exception(e)

    duration_ms = (time.time() - start_time) * 1000
    log_submission(
        request_id,
        profile.user_id,
        submission_type.value,
        outcome.record.status.value,
        outcome.credits_remaining,
        duration_ms,
    )

    return SubmissionResponse(
        id=outcome.record.id,
        status=outcome.record.status.value,
        submission_number=outcome.submission_number,
        credits_remaining=outcome.credits_remaining,
    )


@router.post("/submissions/deck", response_model=SubmissionResponse, status_code=201)
def submit_deck(
    request_body: DeckSubmissionRequest,
    request: Request,
    profile: Profile = Depends(get_profile),
    service: SubmissionService = Depends(get_submission_service),
    today: date = Depends(get_today),
):
    """
    Request a custom deck build.

    Non-draft requests from non-privileged members spend one deck credit,
    or are queued when the month's credits are used up.
    """
    fields = request_body.model_dump(exclude={"is_draft"})
    return _submit(SubmissionType.DECK, fields, request_body.is_draft, request, profile, service, today)


@router.post("/submissions/roast", response_model=SubmissionResponse, status_code=201)
def submit_roast(
    request_body: RoastSubmissionRequest,
    request: Request,
    profile: Profile = Depends(get_profile),
    service: SubmissionService = Depends(get_submission_service),
    today: date = Depends(get_today),
):
    """Request a deck roast; spends one roast credit"""
    fields = request_body.model_dump(exclude={"is_draft"})
    fields["email"] = profile.email
    return _submit(SubmissionType.ROAST, fields, request_body.is_draft, request, profile, service, today)


@router.get("/submissions/me", response_model=MySubmissionsResponse)
def get_my_submissions(
    profile: Profile = Depends(get_profile),
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Retrieve the caller's open submissions.

    Returns:
        Pending, queued, and in-progress submissions, newest first
    """
    try:
        records = service.list_active(profile.user_id)
    except DomainException as e:
        raise to_http_exception(e)

    return MySubmissionsResponse(
        user_id=profile.user_id,
        submissions=[
            SubmissionItem(
                id=r.id,
                submission_type=r.submission_type.value,
                status=r.status.value,
                submission_month=r.submission_month,
                commander=r.details.get("commander"),
                bracket=r.details.get("bracket"),
                created_at=r.created_at.isoformat(),
            )
            for r in records
        ],
    )
