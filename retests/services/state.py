"""
Retest target state after a recorded attempt.
IN_PROGRESS -> PASSED | FAILED; both terminal.
"""
import logging
from typing import NamedTuple

from retests.exceptions import ConcurrencyConflict
from retests.models import RetestTarget

logger = logging.getLogger(__name__)


class RetestOutcome(NamedTuple):
    passed: bool
    next_attempt_number: int
    attempts_exhausted: bool
    should_complete: bool
    status: str


def compute_retest_state(percentage, passing_threshold, current_attempt, max_attempts):
    passed = percentage >= passing_threshold
    next_attempt_number = max_attempts if passed else current_attempt + 1
    exhausted = next_attempt_number >= max_attempts
    if passed:
        status = RetestTarget.STATUS_PASSED
    elif exhausted:
        status = RetestTarget.STATUS_FAILED
    else:
        status = RetestTarget.STATUS_IN_PROGRESS
    return RetestOutcome(
        passed=passed,
        next_attempt_number=next_attempt_number,
        attempts_exhausted=exhausted,
        should_complete=exhausted or passed,
        status=status,
    )


def apply_retest_state(target, outcome, now, log=None):
    """
    Conditional update on the open target row. 0 rows -> ConcurrencyConflict.
    completed_at is only written while still null.
    """
    log = log or logger
    updates = {
        'attempt_number': outcome.next_attempt_number,
        'last_attempt_at': now,
        'passed': outcome.passed,
        'is_completed': outcome.should_complete,
        'status': outcome.status,
        'updated_at': now,
    }
    if outcome.should_complete and target.completed_at is None:
        updates['completed_at'] = now
    rows = RetestTarget.objects.filter(pk=target.pk, is_completed=False).update(**updates)
    if rows == 0:
        log.warning("retest_state_conflict target_id=%s", target.pk)
        raise ConcurrencyConflict()
    for field, value in updates.items():
        setattr(target, field, value)
    log.info(
        "retest_state_updated target_id=%s attempt_number=%s status=%s is_completed=%s",
        target.pk, outcome.next_attempt_number, outcome.status, outcome.should_complete,
    )
    return target
