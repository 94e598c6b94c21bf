"""
Eligibility check for a retest submission: target exists, window open,
target not completed, attempts left. No side effects.
"""
import logging

from retests.exceptions import (
    MaxAttemptsReached,
    RetestAlreadyCompleted,
    RetestNotFound,
    RetestWindowClosed,
)
from retests.models import RetestTarget

logger = logging.getLogger(__name__)


def effective_max_attempts(target):
    """Target-level override, else assignment.max_attempts, else 1."""
    return target.effective_max_attempts


def load_target(retest_assignment_id, student_id, for_update=False):
    """
    RetestTarget joined with its assignment. for_update=True takes a row lock
    (must be called inside transaction.atomic()).
    """
    qs = RetestTarget.objects.select_related('retest_assignment')
    if for_update:
        # of=('self',) keeps the lock on the target row only
        qs = qs.select_for_update(of=('self',))
    try:
        return qs.get(retest_assignment_id=retest_assignment_id, student_id=student_id)
    except RetestTarget.DoesNotExist:
        raise RetestNotFound()


def ensure_eligible(target, now, log=None):
    """Raise the first failing rule for an already-loaded target."""
    log = log or logger
    assignment = target.retest_assignment
    if not assignment.is_window_open(now):
        log.info(
            "retest_rejected reason=window_closed window_start=%s window_end=%s",
            assignment.window_start.isoformat(), assignment.window_end.isoformat(),
        )
        raise RetestWindowClosed()
    if target.is_completed:
        log.info("retest_rejected reason=already_completed status=%s", target.status)
        raise RetestAlreadyCompleted()
    max_attempts = effective_max_attempts(target)
    if target.attempt_number >= max_attempts:
        log.info(
            "retest_rejected reason=max_attempts attempt_number=%s max_attempts=%s",
            target.attempt_number, max_attempts,
        )
        raise MaxAttemptsReached()
    return target


def check_eligibility(retest_assignment_id, student_id, now, log=None):
    """Load and validate without locking (read-only callers)."""
    target = load_target(retest_assignment_id, student_id)
    return ensure_eligible(target, now, log=log)
