"""Admin endpoints - manual grants, tier changes, credit distribution, submission status"""

import logging
from datetime import date
from fastapi import APIRouter, Depends, Request

from deckvault.api.dependencies import get_admin_service, get_request_id, get_today, require_admin
from deckvault.api.errors import to_http_exception
from deckvault.api.v1.schemas import (
    AdminUserCreditsResponse,
    CreditGrantItem,
    DistributionHistoryResponse,
    DistributionLogItem,
    GrantCreditsRequest,
    GrantCreditsResponse,
    ProfileResponse,
    SubmissionItem,
    UpdateSubmissionStatusRequest,
    UpdateTierRequest,
)
from deckvault.domain.exceptions import DomainException
from deckvault.domain.models import DistributionLog, Profile
from deckvault.services.admin import AdminService

router = APIRouter(prefix="/admin")


def _log_item(log: DistributionLog) -> DistributionLogItem:
    return DistributionLogItem(
        id=log.id,
        triggered_by=log.triggered_by,
        status=log.status,
        users_processed=log.users_processed,
        credits_granted=log.credits_granted,
        started_at=log.started_at.isoformat(),
        completed_at=log.completed_at.isoformat() if log.completed_at else None,
        error_message=log.error_message,
    )


@router.post("/users/{user_id}/credits", response_model=GrantCreditsResponse)
def grant_credits(
    user_id: str,
    request_body: GrantCreditsRequest,
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """
    Add (or, with a negative amount, remove) credits for a member.

    The resulting balance never drops below zero.
    """
    try:
        new_balance = service.grant_credits(admin, user_id, request_body.credit_type, request_body.amount)
    except DomainException as e:
        raise to_http_exception(e)

    action = "Added" if request_body.amount > 0 else "Removed"
    return GrantCreditsResponse(
        user_id=user_id,
        credit_type=request_body.credit_type,
        amount=request_body.amount,
        new_balance=new_balance,
        message=f"{action} {abs(request_body.amount)} {request_body.credit_type} credit(s)",
    )


@router.get("/users/{user_id}/credits", response_model=AdminUserCreditsResponse)
def get_user_credits(
    user_id: str,
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    try:
        snapshot, grants = service.get_user_credits(user_id)
    except DomainException as e:
        raise to_http_exception(e)

    return AdminUserCreditsResponse(
        user_id=snapshot.user_id,
        tier=snapshot.tier,
        balances=snapshot.balances,
        eligibility=snapshot.eligibility,
        monthly_allocation=snapshot.monthly_allocation,
        grants=[
            CreditGrantItem(
                credit_type=g.credit_type,
                amount=g.amount,
                granted_by=g.granted_by,
                notes=g.notes,
                created_at=g.created_at.isoformat(),
            )
            for g in grants
        ],
    )


@router.put("/users/{user_id}/tier", response_model=ProfileResponse)
def update_tier(
    user_id: str,
    request_body: UpdateTierRequest,
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Set a member's tier; credits follow at the next monthly refresh"""
    try:
        profile = service.update_tier(user_id, request_body.tier)
    except DomainException as e:
        raise to_http_exception(e)

    logging.info(
        "Tier updated",
        extra={"user_id": user_id, "tier": profile.tier, "updated_by": admin.user_id},
    )
    return ProfileResponse(
        user_id=profile.user_id,
        email=profile.email,
        tier=profile.tier,
        role=profile.role,
        message=f"Tier updated to {profile.tier or 'none'}",
    )


@router.post("/credits/distribute", response_model=DistributionLogItem)
def distribute_credits(
    request: Request,
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
    today: date = Depends(get_today),
):
    """
    Run the monthly credit refresh for every member.

    Idempotent within a month: members already refreshed are skipped.
    """
    logging.info(
        "Manual credit distribution triggered",
        extra={"request_id": get_request_id(request), "triggered_by": admin.user_id},
    )
    try:
        log = service.run_distribution(f"manual:{admin.user_id}", today=today)
    except DomainException as e:
        raise to_http_exception(e)

    return _log_item(log)


@router.get("/credits/distribute", response_model=DistributionHistoryResponse)
def get_distribution_history(
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Ten most recent distribution runs, newest first"""
    try:
        logs = service.list_distributions(limit=10)
    except DomainException as e:
        raise to_http_exception(e)

    return DistributionHistoryResponse(history=[_log_item(log) for log in logs])


@router.patch("/submissions/{submission_id}", response_model=SubmissionItem)
def update_submission_status(
    submission_id: str,
    request_body: UpdateSubmissionStatusRequest,
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    try:
        record = service.update_submission_status(submission_id, request_body.status)
    except DomainException as e:
        raise to_http_exception(e)

    return SubmissionItem(
        id=record.id,
        submission_type=record.submission_type.value,
        status=record.status.value,
        submission_month=record.submission_month,
        commander=record.details.get("commander"),
        bracket=record.details.get("bracket"),
        created_at=record.created_at.isoformat(),
    )
