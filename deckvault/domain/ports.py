"""
Ports the services depend on.

Infrastructure adapters (SQLAlchemy repositories, the httpx identity client)
implement these; services only see the protocols, so tests can swap in fakes.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Protocol

from deckvault.domain.models import (
    CreditGrant,
    CurrentUser,
    DistributionLog,
    LedgerState,
    Profile,
    SubmissionRecord,
    SubmissionStatus,
    SubmissionType,
)


class CreditLedgerPort(Protocol):
    """Row-level access to the per-user credit ledger"""

    def load(self, user_id: str) -> LedgerState:  # pragma: no cover - Protocol
        """Current ledger row; a missing row comes back zeroed with exists=False"""
        ...

    def compare_and_swap(
        self,
        state: LedgerState,
        balances: Dict[str, int],
        last_granted: Dict[str, date],
    ) -> bool:  # pragma: no cover - Protocol
        """
        Write `balances`/`last_granted` only if the stored row still matches
        `state.version` (or is still absent). Returns False when another
        writer got there first; raises PersistenceError when storage fails.
        """
        ...


class SubmissionPort(Protocol):
    """Persistence of submission records"""

    def create(
        self,
        user_id: str,
        submission_type: SubmissionType,
        status: SubmissionStatus,
        submission_month: str,
        tier: Optional[str],
        details: Dict[str, Any],
    ) -> SubmissionRecord:  # pragma: no cover - Protocol
        ...

    def count_queued(
        self, user_id: str, submission_type: SubmissionType, submission_month: str
    ) -> int:  # pragma: no cover - Protocol
        ...

    def count_by_type(self, submission_type: SubmissionType) -> int:  # pragma: no cover - Protocol
        ...

    def list_active_for_user(self, user_id: str) -> List[SubmissionRecord]:  # pragma: no cover - Protocol
        ...

    def update_status(
        self, submission_id: str, status: SubmissionStatus
    ) -> Optional[SubmissionRecord]:  # pragma: no cover - Protocol
        ...


class ProfilePort(Protocol):
    """Tier/role profile lookup"""

    def get(self, user_id: str) -> Optional[Profile]:  # pragma: no cover - Protocol
        ...

    def list_all(self) -> List[Profile]:  # pragma: no cover - Protocol
        ...

    def update_tier(self, user_id: str, tier: Optional[str]) -> Optional[Profile]:  # pragma: no cover - Protocol
        ...


class IdentityPort(Protocol):
    """Resolves an access token to the calling user"""

    async def get_current_user(self, access_token: str) -> CurrentUser:  # pragma: no cover - Protocol
        ...


class GrantHistoryPort(Protocol):
    def record(
        self,
        user_id: str,
        credit_type: str,
        amount: int,
        granted_by: str,
        tier: Optional[str],
        notes: Optional[str],
    ) -> None:  # pragma: no cover - Protocol
        ...

    def list_by_user(self, user_id: str, limit: int = 20) -> List[CreditGrant]:  # pragma: no cover - Protocol
        ...


class DistributionLogPort(Protocol):
    def start(self, triggered_by: str) -> DistributionLog:  # pragma: no cover - Protocol
        ...

    def finish(
        self,
        log_id: int,
        status: str,
        users_processed: int,
        credits_granted: int,
        error_message: Optional[str] = None,
    ) -> DistributionLog:  # pragma: no cover - Protocol
        ...

    def list_recent(self, limit: int = 10) -> List[DistributionLog]:  # pragma: no cover - Protocol
        ...
