"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Union


class DeckSubmissionRequest(BaseModel):
    """Request body for POST /v1/submissions/deck"""

    patreon_username: Optional[str] = None
    email: Optional[str] = None
    discord_username: Optional[str] = None
    commander: Optional[str] = None
    color_preference: Optional[str] = None
    theme: Optional[str] = None
    bracket: Optional[str] = None
    budget: Optional[str] = None
    coffee: Optional[str] = None
    ideal_date: Optional[str] = None
    mystery_deck: Optional[Union[bool, str]] = None
    is_draft: bool = False


class RoastSubmissionRequest(BaseModel):
    """Request body for POST /v1/submissions/roast"""

    preferred_name: Optional[str] = None
    deck_description: Optional[str] = None
    moxfield_link: Optional[str] = None
    target_bracket: Optional[str] = None
    art_choices_intentional: Optional[str] = None
    is_draft: bool = False


class SubmissionResponse(BaseModel):
    """Response for POST /v1/submissions/{type}"""

    id: str
    status: str
    submission_number: int
    credits_remaining: Optional[int] = None


class SubmissionItem(BaseModel):
    """Single submission in a member's list"""

    id: str
    submission_type: str
    status: str
    submission_month: Optional[str] = None
    commander: Optional[str] = None
    bracket: Optional[str] = None
    created_at: str


class MySubmissionsResponse(BaseModel):
    """Response for GET /v1/submissions/me"""

    user_id: str
    submissions: List[SubmissionItem]


class EligibilityResponse(BaseModel):
    """Response for GET /v1/credits/me"""

    user_id: str
    tier: Optional[str] = None
    balances: Dict[str, int]
    eligibility: Dict[str, bool]
    monthly_allocation: Dict[str, int]
    queued: Dict[str, int] = Field(default_factory=dict)
    max_queued: int


class GrantCreditsRequest(BaseModel):
    """Request body for POST /v1/admin/users/{user_id}/credits"""

    credit_type: str = Field(..., min_length=1)
    amount: int


class GrantCreditsResponse(BaseModel):
    user_id: str
    credit_type: str
    amount: int
    new_balance: int
    message: str


class CreditGrantItem(BaseModel):
    credit_type: str
    amount: int
    granted_by: Optional[str] = None
    notes: Optional[str] = None
    created_at: str


class AdminUserCreditsResponse(BaseModel):
    """Response for GET /v1/admin/users/{user_id}/credits"""

    user_id: str
    tier: Optional[str] = None
    balances: Dict[str, int]
    eligibility: Dict[str, bool]
    monthly_allocation: Dict[str, int]
    grants: List[CreditGrantItem]


class UpdateTierRequest(BaseModel):
    """Request body for PUT /v1/admin/users/{user_id}/tier; null removes the tier"""

    tier: Optional[str] = None


class ProfileResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    tier: Optional[str] = None
    role: str
    message: str


class DistributionLogItem(BaseModel):
    id: int
    triggered_by: str
    status: str
    users_processed: int
    credits_granted: int
    started_at: str
    completed_at: Optional[str] = None
    error_message: Optional[str] = None


class DistributionHistoryResponse(BaseModel):
    """Response for GET /v1/admin/credits/distribute"""

    history: List[DistributionLogItem]


class UpdateSubmissionStatusRequest(BaseModel):
    """Request body for PATCH /v1/admin/submissions/{submission_id}"""

    status: str
