"""Submission queue policy for members whose credits are exhausted"""

from enum import Enum


class QueueDecision(str, Enum):
    CONSUME = "consume"  # spend a credit, submission is pending
    QUEUE = "queue"  # no credit charged, submission is queued
    REJECT = "reject"  # personal queue is full


def decide_submission(credit_balance: int, current_queued_count: int, max_queued: int) -> QueueDecision:
    """
    Decide how a non-draft request is accepted.

    Decision table:
    - balance > 0                      -> CONSUME
    - balance == 0, queued < max       -> QUEUE
    - balance == 0, queued >= max      -> REJECT

    Args:
        credit_balance: Balance after refresh, before consumption
        current_queued_count: Caller's queued submissions this period
        max_queued: Queue capacity per user

    Example:
        decide_submission(0, 2, 3) -> QUEUE
        decide_submission(0, 3, 3) -> REJECT
    """
    if credit_balance > 0:
        return QueueDecision.CONSUME
    if current_queued_count < max_queued:
        return QueueDecision.QUEUE
    return QueueDecision.REJECT
