"""Membership tier catalog - ranks and monthly credit allocations"""

from typing import Dict, List, Optional
from deckvault.domain.models import MembershipTier, SubmissionType

CREDIT_TYPE_DECK = "deck"
CREDIT_TYPE_ROAST = "roast"
CREDIT_TYPES: List[str] = [CREDIT_TYPE_DECK, CREDIT_TYPE_ROAST]

# Ascending rank order
TIERS: List[MembershipTier] = [
    MembershipTier(name="Citizen", rank=0, monthly_allocation={}),
    MembershipTier(name="Knight", rank=1, monthly_allocation={}),
    MembershipTier(name="Emissary", rank=2, monthly_allocation={CREDIT_TYPE_ROAST: 1}),
    MembershipTier(name="Duke", rank=3, monthly_allocation={CREDIT_TYPE_DECK: 1, CREDIT_TYPE_ROAST: 1}),
    MembershipTier(name="Wizard", rank=4, monthly_allocation={CREDIT_TYPE_DECK: 2, CREDIT_TYPE_ROAST: 1}),
    MembershipTier(name="ArchMage", rank=5, monthly_allocation={CREDIT_TYPE_DECK: 3, CREDIT_TYPE_ROAST: 1}),
]

TIER_CATALOG: Dict[str, MembershipTier] = {tier.name: tier for tier in TIERS}
TIER_NAMES: List[str] = [tier.name for tier in TIERS]

# Minimum tier for a non-privileged, non-draft submission
MINIMUM_TIER: Dict[SubmissionType, str] = {
    SubmissionType.DECK: "Duke",
    SubmissionType.ROAST: "Emissary",
}

# Each submission type spends from the pool of the same name
SUBMISSION_CREDIT_TYPE: Dict[SubmissionType, str] = {
    SubmissionType.DECK: CREDIT_TYPE_DECK,
    SubmissionType.ROAST: CREDIT_TYPE_ROAST,
}


def get_tier(name: Optional[str]) -> Optional[MembershipTier]:
    if not name:
        return None
    return TIER_CATALOG.get(name)


def allocation_for(tier: Optional[str], credit_type: str) -> int:
    """Monthly allocation of `credit_type` for `tier`; unknown tier or type yields 0"""
    membership = get_tier(tier)
    if membership is None:
        return 0
    return max(membership.monthly_allocation.get(credit_type, 0), 0)


def monthly_allocations(tier: Optional[str]) -> Dict[str, int]:
    """Allocation for every known credit type, zero-filled"""
    return {credit_type: allocation_for(tier, credit_type) for credit_type in CREDIT_TYPES}


def has_minimum_tier(tier: Optional[str], minimum: str) -> bool:
    """True when `tier` ranks at or above `minimum`; unknown tiers never qualify"""
    membership = get_tier(tier)
    required = get_tier(minimum)
    if membership is None or required is None:
        return False
    return membership.rank >= required.rank
