"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional


class SubmissionType(str, Enum):
    """Kind of work a member requests"""

    DECK = "deck"
    ROAST = "roast"


class SubmissionStatus(str, Enum):
    """Lifecycle status of a submission record"""

    DRAFT = "draft"
    PENDING = "pending"
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class ConsumeStatus(str, Enum):
    CONSUMED = "consumed"
    INSUFFICIENT = "insufficient"


PRIVILEGED_ROLES = frozenset({"admin", "moderator", "developer"})


@dataclass(frozen=True)
class MembershipTier:
    """Membership tier with its rank and monthly credit allocation"""

    name: str
    rank: int
    monthly_allocation: Dict[str, int]


@dataclass
class LedgerState:
    """
    Snapshot of one user's credit ledger row.

    `version` is the compare-and-swap token of the stored row; a ledger that
    has never been written has `exists=False` and version 0.
    """

    user_id: str
    balances: Dict[str, int] = field(default_factory=dict)
    last_granted: Dict[str, date] = field(default_factory=dict)
    version: int = 0
    exists: bool = False
    updated_at: Optional[datetime] = None

    def balance(self, credit_type: str) -> int:
        return max(self.balances.get(credit_type, 0), 0)


@dataclass
class RefreshResult:
    """Outcome of a monthly refresh check"""

    balance: int
    refreshed: bool
    persisted: bool = True  # False when the reset was due but could not be written


@dataclass
class ConsumeResult:
    """Outcome of a single-credit consumption"""

    status: ConsumeStatus
    balance: int

    @property
    def consumed(self) -> bool:
        return self.status is ConsumeStatus.CONSUMED


@dataclass
class EligibilitySnapshot:
    """Read-only view of a user's balances and tier allotments"""

    user_id: str
    tier: Optional[str]
    balances: Dict[str, int]
    eligibility: Dict[str, bool]
    monthly_allocation: Dict[str, int]


@dataclass
class CurrentUser:
    """Authenticated caller resolved by the identity provider"""

    user_id: str
    email: Optional[str] = None


@dataclass
class Profile:
    """Membership profile: tier label and site role"""

    user_id: str
    email: Optional[str]
    tier: Optional[str]
    role: str = "user"
    patreon_id: Optional[str] = None

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


@dataclass
class SubmissionRequest:
    """Incoming deck or roast request before any credit checks"""

    submission_type: SubmissionType
    fields: Dict[str, Any]
    is_draft: bool = False


@dataclass
class SubmissionRecord:
    """Persisted submission"""

    id: str
    user_id: str
    submission_type: SubmissionType
    status: SubmissionStatus
    submission_month: Optional[str]
    created_at: datetime
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SubmissionOutcome:
    """Result handed back to the submit endpoints"""

    record: SubmissionRecord
    submission_number: int
    credits_remaining: Optional[int] = None  # None when no credit check ran


@dataclass
class DistributionLog:
    """One run of the monthly credit distribution"""

    id: int
    triggered_by: str
    status: str
    users_processed: int
    credits_granted: int
    started_at: datetime
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None


@dataclass
class CreditGrant:
    """Manual credit adjustment made from the admin console"""

    user_id: str
    credit_type: str
    amount: int
    granted_by: Optional[str]
    tier: Optional[str]
    notes: Optional[str]
    created_at: datetime
