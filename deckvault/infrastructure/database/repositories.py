"""Data access layer for profiles, the credit ledger, and submissions"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional
from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from deckvault.domain.exceptions import PersistenceError
from deckvault.domain.models import (
    CreditGrant,
    DistributionLog,
    LedgerState,
    Profile,
    SubmissionRecord,
    SubmissionStatus,
    SubmissionType,
)
from deckvault.infrastructure.database.models import (
    CreditDistributionLog,
    CreditGrantHistory,
    DeckSubmission,
    ProfileRow,
    UserCredits,
    utcnow,
)
from deckvault.utils.date_utils import parse_month_key

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = [SubmissionStatus.PENDING.value, SubmissionStatus.QUEUED.value, SubmissionStatus.IN_PROGRESS.value]


def _persistence_error(db: Session, operation: str, error: SQLAlchemyError, **context: Any) -> PersistenceError:
    """Roll back, log with context, and wrap a SQLAlchemy failure"""
    db.rollback()
    logger.error(f"Database error during {operation}: {error}", extra={"operation": operation, **context})
    return PersistenceError(f"{operation} failed")


class CreditLedgerRepository:
    """
    Repository for the `user_credits` ledger.

    JSON maps are converted to typed dicts here and nowhere else. Every write
    is a single conditional statement, committed immediately.
    """

    def __init__(self, db: Session):
        self.db = db

    def load(self, user_id: str) -> LedgerState:
        """Read the ledger row without going through the identity map"""
        try:
            row = self.db.execute(
                select(
                    UserCredits.credits,
                    UserCredits.last_granted,
                    UserCredits.version,
                    UserCredits.updated_at,
                ).where(UserCredits.user_id == user_id)
            ).one_or_none()
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "ledger_load", e, user_id=user_id) from e

        if row is None:
            return LedgerState(user_id=user_id)

        last_granted: Dict[str, date] = {}
        for credit_type, value in (row.last_granted or {}).items():
            parsed = parse_month_key(value)
            if parsed is not None:
                last_granted[credit_type] = parsed

        return LedgerState(
            user_id=user_id,
            balances={k: int(v) for k, v in (row.credits or {}).items() if v is not None},
            last_granted=last_granted,
            version=row.version,
            exists=True,
            updated_at=row.updated_at,
        )

    def compare_and_swap(
        self,
        state: LedgerState,
        balances: Dict[str, int],
        last_granted: Dict[str, date],
    ) -> bool:
        """
        Insert the row if it is still absent, otherwise
        UPDATE ... WHERE user_id = :user_id AND version = :version.

        Returns False when a concurrent writer changed (or created) the row first.
        """
        now = utcnow()
        credits = dict(balances)
        granted = {credit_type: month.isoformat() for credit_type, month in last_granted.items()}

        try:
            if not state.exists:
                self.db.execute(
                    insert(UserCredits).values(
                        user_id=state.user_id,
                        credits=credits,
                        last_granted=granted,
                        version=1,
                        created_at=now,
                        updated_at=now,
                    )
                )
                self.db.commit()
                return True

            result = self.db.execute(
                update(UserCredits)
                .where(UserCredits.user_id == state.user_id, UserCredits.version == state.version)
                .values(
                    credits=credits,
                    last_granted=granted,
                    version=UserCredits.version + 1,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                return False

            self.db.commit()
            return True

        except IntegrityError:
            # Concurrent first write for the same user
            self.db.rollback()
            return False
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "ledger_write", e, user_id=state.user_id) from e


class ProfileRepository:
    """Repository for member profiles"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[Profile]:
        try:
            row = self.db.get(ProfileRow, user_id)
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "profile_load", e, user_id=user_id) from e
        return self._to_domain(row) if row else None

    def list_all(self) -> List[Profile]:
        try:
            rows = self.db.query(ProfileRow).order_by(ProfileRow.created_at).all()
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "profile_list", e) from e
        return [self._to_domain(row) for row in rows]

    def update_tier(self, user_id: str, tier: Optional[str]) -> Optional[Profile]:
        try:
            row = self.db.get(ProfileRow, user_id)
            if row is None:
                return None
            row.patreon_tier = tier
            row.updated_at = utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "profile_update_tier", e, user_id=user_id) from e
        return self._to_domain(row)

    @staticmethod
    def _to_domain(row: ProfileRow) -> Profile:
        return Profile(
            user_id=row.id,
            email=row.email,
            tier=row.patreon_tier,
            role=row.role or "user",
            patreon_id=row.patreon_id,
        )


def _clean(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _submission_columns(submission_type: SubmissionType, details: Dict[str, Any]) -> Dict[str, Any]:
    """Map request fields onto `deck_submissions` columns"""
    if submission_type is SubmissionType.ROAST:
        art = _clean(details.get("art_choices_intentional"))
        return {
            "patreon_username": _clean(details.get("preferred_name")),
            "email": _clean(details.get("email")),
            "theme": _clean(details.get("deck_description")),
            "bracket": _clean(details.get("target_bracket")),
            "deck_list_url": _clean(details.get("moxfield_link")),
            "notes": f"Art choices intentional: {art}" if art else None,
            "mystery_deck": False,
        }

    email = _clean(details.get("email"))
    mystery = details.get("mystery_deck")
    return {
        "patreon_username": _clean(details.get("patreon_username")),
        "email": email.lower() if email else None,
        "discord_username": _clean(details.get("discord_username")),
        "commander": _clean(details.get("commander")),
        "color_preference": _clean(details.get("color_preference")),
        "theme": _clean(details.get("theme")),
        "bracket": _clean(details.get("bracket")),
        "budget": _clean(details.get("budget")),
        "coffee_preference": _clean(details.get("coffee")),
        "ideal_date": _clean(details.get("ideal_date")),
        "mystery_deck": mystery is True or mystery == "yes",
    }


DETAIL_COLUMNS = [
    "patreon_username",
    "email",
    "discord_username",
    "commander",
    "color_preference",
    "theme",
    "bracket",
    "budget",
    "coffee_preference",
    "ideal_date",
    "mystery_deck",
    "deck_list_url",
    "notes",
]


class SubmissionRepository:
    """Repository for deck and roast submissions"""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user_id: str,
        submission_type: SubmissionType,
        status: SubmissionStatus,
        submission_month: str,
        tier: Optional[str],
        details: Dict[str, Any],
    ) -> SubmissionRecord:
        """Persist a submission and commit"""
        db_submission = DeckSubmission(
            user_id=user_id,
            submission_type=submission_type.value,
            status=status.value,
            submission_month=submission_month,
            patreon_tier=tier,
            **_submission_columns(submission_type, details),
        )
        try:
            self.db.add(db_submission)
            self.db.commit()
            self.db.refresh(db_submission)
        except SQLAlchemyError as e:
            raise _persistence_error(
                self.db, "submission_create", e, user_id=user_id, submission_type=submission_type.value
            ) from e
        return self._to_domain(db_submission)

    def count_queued(self, user_id: str, submission_type: SubmissionType, submission_month: str) -> int:
        """Queued submissions of one type for a user in a given month"""
        try:
            return self.db.execute(
                select(func.count())
                .select_from(DeckSubmission)
                .where(
                    DeckSubmission.user_id == user_id,
                    DeckSubmission.submission_type == submission_type.value,
                    DeckSubmission.status == SubmissionStatus.QUEUED.value,
                    DeckSubmission.submission_month == submission_month,
                )
            ).scalar_one()
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "submission_count_queued", e, user_id=user_id) from e

    def count_by_type(self, submission_type: SubmissionType) -> int:
        try:
            return self.db.execute(
                select(func.count())
                .select_from(DeckSubmission)
                .where(DeckSubmission.submission_type == submission_type.value)
            ).scalar_one()
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "submission_count", e) from e

    def list_active_for_user(self, user_id: str) -> List[SubmissionRecord]:
        """Pending, queued, and in-progress submissions, newest first"""
        try:
            rows = (
                self.db.query(DeckSubmission)
                .filter(DeckSubmission.user_id == user_id, DeckSubmission.status.in_(ACTIVE_STATUSES))
                .order_by(DeckSubmission.created_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "submission_list", e, user_id=user_id) from e
        return [self._to_domain(row) for row in rows]

    def update_status(self, submission_id: str, status: SubmissionStatus) -> Optional[SubmissionRecord]:
        try:
            submission_uuid = uuid.UUID(submission_id)
        except ValueError:
            return None

        try:
            row = self.db.get(DeckSubmission, submission_uuid)
            if row is None:
                return None
            row.status = status.value
            row.updated_at = utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "submission_update_status", e, submission_id=submission_id) from e
        return self._to_domain(row)

    @staticmethod
    def _to_domain(row: DeckSubmission) -> SubmissionRecord:
        details = {}
        for column in DETAIL_COLUMNS:
            value = getattr(row, column)
            if value is not None:
                details[column] = value

        return SubmissionRecord(
            id=str(row.id),
            user_id=row.user_id,
            submission_type=SubmissionType(row.submission_type),
            status=SubmissionStatus(row.status),
            submission_month=row.submission_month,
            created_at=row.created_at,
            details=details,
        )


class GrantHistoryRepository:
    """Repository for the manual grant audit trail"""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        user_id: str,
        credit_type: str,
        amount: int,
        granted_by: str,
        tier: Optional[str],
        notes: Optional[str],
    ) -> None:
        try:
            self.db.add(
                CreditGrantHistory(
                    user_id=user_id,
                    credit_type=credit_type,
                    amount=amount,
                    granted_by=granted_by,
                    tier=tier,
                    notes=notes,
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "grant_history_record", e, user_id=user_id) from e

    def list_by_user(self, user_id: str, limit: int = 20) -> List[CreditGrant]:
        """Fetch recent grants for a user"""
        try:
            rows = (
                self.db.query(CreditGrantHistory)
                .filter(CreditGrantHistory.user_id == user_id)
                .order_by(CreditGrantHistory.created_at.desc(), CreditGrantHistory.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "grant_history_list", e, user_id=user_id) from e

        return [
            CreditGrant(
                user_id=row.user_id,
                credit_type=row.credit_type,
                amount=row.amount,
                granted_by=row.granted_by,
                tier=row.tier,
                notes=row.notes,
                created_at=row.created_at,
            )
            for row in rows
        ]


class DistributionLogRepository:
    """Repository for monthly distribution runs"""

    def __init__(self, db: Session):
        self.db = db

    def start(self, triggered_by: str) -> DistributionLog:
        row = CreditDistributionLog(triggered_by=triggered_by, status="running")
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "distribution_start", e) from e
        return self._to_domain(row)

    def finish(
        self,
        log_id: int,
        status: str,
        users_processed: int,
        credits_granted: int,
        error_message: Optional[str] = None,
    ) -> DistributionLog:
        try:
            row = self.db.get(CreditDistributionLog, log_id)
            row.status = status
            row.users_processed = users_processed
            row.credits_granted = credits_granted
            row.error_message = error_message
            row.completed_at = utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "distribution_finish", e, distribution_id=log_id) from e
        return self._to_domain(row)

    def list_recent(self, limit: int = 10) -> List[DistributionLog]:
        try:
            rows = (
                self.db.query(CreditDistributionLog)
                .order_by(CreditDistributionLog.started_at.desc(), CreditDistributionLog.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            raise _persistence_error(self.db, "distribution_list", e) from e
        return [self._to_domain(row) for row in rows]

    @staticmethod
    def _to_domain(row: CreditDistributionLog) -> DistributionLog:
        return DistributionLog(
            id=row.id,
            triggered_by=row.triggered_by,
            status=row.status,
            users_processed=row.users_processed,
            credits_granted=row.credits_granted,
            started_at=row.started_at,
            completed_at=row.completed_at,
            error_message=row.error_message,
        )
