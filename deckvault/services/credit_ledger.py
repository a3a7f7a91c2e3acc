"""
Credit ledger service - monthly refresh, consumption, refund, and eligibility.

Every mutation follows the same loop: load the ledger row, decide in Python,
then write through the port's compare-and-swap. A lost swap means another
request changed the row in between, so the row is reloaded and the decision
made again. The conditional write is what keeps two concurrent consumptions
from both spending the last credit.
"""

import logging
from datetime import date
from typing import Dict, Optional

from deckvault.domain.exceptions import PersistenceError
from deckvault.domain.models import (
    ConsumeResult,
    ConsumeStatus,
    EligibilitySnapshot,
    LedgerState,
    RefreshResult,
)
from deckvault.domain.ports import CreditLedgerPort
from deckvault.domain.tiers import CREDIT_TYPES, allocation_for, monthly_allocations
from deckvault.infrastructure.observability.metrics import record_credit_operation, refund_failure_counter
from deckvault.utils.date_utils import month_start

logger = logging.getLogger(__name__)


class LedgerContentionError(PersistenceError):
    """Compare-and-swap kept losing until the retry budget ran out"""

    pass


class CreditLedgerService:
    """Business rules for the per-user credit ledger"""

    def __init__(self, ledger: CreditLedgerPort, max_retries: int = 10):
        self._ledger = ledger
        self._max_retries = max_retries

    def check_and_refresh(
        self,
        user_id: str,
        tier: Optional[str],
        credit_type: str,
        current_month: date,
    ) -> RefreshResult:
        """
        Grant the tier's monthly allocation once per calendar month.

        The balance is reset to the allocation only when `last_granted` for the
        credit type is missing or older than `current_month`; later calls in the
        same month are no-ops, so consumption earlier in the month is kept.

        A failed write is logged and the stored (stale) balance is returned with
        `persisted=False`; the request carries on with what storage holds.

        Raises:
            PersistenceError: If the ledger cannot be read
        """
        current_month = month_start(current_month)

        for _ in range(self._max_retries):
            state = self._ledger.load(user_id)
            last = state.last_granted.get(credit_type)
            if last is not None and last >= current_month:
                record_credit_operation(credit_type, "refresh", "noop")
                return RefreshResult(balance=state.balance(credit_type), refreshed=False)

            allocation = allocation_for(tier, credit_type)
            balances = {**state.balances, credit_type: allocation}
            last_granted = {**state.last_granted, credit_type: current_month}

            try:
                written = self._ledger.compare_and_swap(state, balances, last_granted)
            except PersistenceError as e:
                logger.error(
                    f"Failed to refresh credits: {e}",
                    extra={"user_id": user_id, "credit_type": credit_type, "operation": "refresh"},
                )
                record_credit_operation(credit_type, "refresh", "failed")
                return RefreshResult(balance=state.balance(credit_type), refreshed=False, persisted=False)

            if written:
                record_credit_operation(credit_type, "refresh", "applied")
                logger.info(
                    "Monthly credits granted",
                    extra={
                        "user_id": user_id,
                        "credit_type": credit_type,
                        "tier": tier,
                        "allocation": allocation,
                        "month": current_month.isoformat(),
                    },
                )
                return RefreshResult(balance=allocation, refreshed=True)

        raise self._contention(user_id, credit_type, "refresh")

    def consume(self, user_id: str, credit_type: str) -> ConsumeResult:
        """
        Spend exactly one credit if the balance is positive.

        Returns an INSUFFICIENT result without writing when the balance is zero.
        The decrement commits on its own; if the work it pays for fails, the
        caller must call `refund`.

        Raises:
            PersistenceError: On storage failure or exhausted retries
        """
        for _ in range(self._max_retries):
            state = self._ledger.load(user_id)
            balance = state.balance(credit_type)
            if balance <= 0:
                record_credit_operation(credit_type, "consume", "insufficient")
                return ConsumeResult(status=ConsumeStatus.INSUFFICIENT, balance=0)

            balances = {**state.balances, credit_type: balance - 1}
            if self._swap(state, balances, state.last_granted, credit_type, "consume"):
                record_credit_operation(credit_type, "consume", "applied")
                return ConsumeResult(status=ConsumeStatus.CONSUMED, balance=balance - 1)

        raise self._contention(user_id, credit_type, "consume")

    def refund(self, user_id: str, credit_type: str, amount: int = 1) -> bool:
        """
        Best-effort compensation for a consumed credit.

        Never raises: a failed refund is logged and counted, and False is
        returned so the original error stays the one surfaced to the user.
        """
        try:
            for _ in range(self._max_retries):
                state = self._ledger.load(user_id)
                balances = {**state.balances, credit_type: state.balance(credit_type) + amount}
                if self._swap(state, balances, state.last_granted, credit_type, "refund"):
                    record_credit_operation(credit_type, "refund", "applied")
                    return True
            raise self._contention(user_id, credit_type, "refund")
        except PersistenceError as e:
            refund_failure_counter.labels(credit_type=credit_type).inc()
            record_credit_operation(credit_type, "refund", "failed")
            logger.error(
                f"Failed to refund credit: {e}",
                extra={"user_id": user_id, "credit_type": credit_type, "operation": "refund", "amount": amount},
            )
            return False

    def adjust(self, user_id: str, credit_type: str, amount: int) -> int:
        """Add (or remove) credits manually; the balance floors at zero. Returns the new balance."""
        for _ in range(self._max_retries):
            state = self._ledger.load(user_id)
            new_balance = max(0, state.balance(credit_type) + amount)
            balances = {**state.balances, credit_type: new_balance}
            if self._swap(state, balances, state.last_granted, credit_type, "grant"):
                record_credit_operation(credit_type, "grant", "applied")
                return new_balance

        raise self._contention(user_id, credit_type, "grant")

    def get_eligibility(self, user_id: str, tier: Optional[str]) -> EligibilitySnapshot:
        """Read-only balances, per-type eligibility, and the tier's allotments"""
        state = self._ledger.load(user_id)
        balances: Dict[str, int] = {credit_type: state.balance(credit_type) for credit_type in CREDIT_TYPES}
        for credit_type in state.balances:
            balances.setdefault(credit_type, state.balance(credit_type))

        return EligibilitySnapshot(
            user_id=user_id,
            tier=tier,
            balances=balances,
            eligibility={credit_type: balance > 0 for credit_type, balance in balances.items()},
            monthly_allocation=monthly_allocations(tier),
        )

    def refresh_all(self, user_id: str, tier: Optional[str], current_month: date) -> Dict[str, RefreshResult]:
        """Run the monthly refresh for every known credit type"""
        return {
            credit_type: self.check_and_refresh(user_id, tier, credit_type, current_month)
            for credit_type in CREDIT_TYPES
        }

    def _swap(
        self,
        state: LedgerState,
        balances: Dict[str, int],
        last_granted: Dict[str, date],
        credit_type: str,
        operation: str,
    ) -> bool:
        try:
            return self._ledger.compare_and_swap(state, balances, last_granted)
        except PersistenceError:
            logger.error(
                "Credit ledger write failed",
                extra={"user_id": state.user_id, "credit_type": credit_type, "operation": operation},
            )
            raise

    def _contention(self, user_id: str, credit_type: str, operation: str) -> LedgerContentionError:
        logger.error(
            "Credit ledger contention, giving up",
            extra={
                "user_id": user_id,
                "credit_type": credit_type,
                "operation": operation,
                "attempts": self._max_retries,
            },
        )
        return LedgerContentionError(f"Ledger for {user_id} kept changing during {operation}")
