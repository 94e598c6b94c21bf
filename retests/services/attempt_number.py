"""
Attempt number to record for a retest submission.
Early pass jumps to the final slot; otherwise the next free slot
by both the target counter and the stored attempts.
"""
from django.db.models import Max

from retests.models import TestAttempt


def stored_max_attempt(student_id, parent_test_id):
    """Highest attempt_number stored for (student, parent test); 0 when none."""
    result = TestAttempt.objects.filter(
        student_id=student_id,
        test_id=parent_test_id,
    ).aggregate(max_number=Max('attempt_number'))
    return result['max_number'] or 0


def resolve_attempt_number(current_attempt, max_attempts, percentage, passing_threshold, stored_max):
    next_from_target = current_attempt + 1
    next_from_store = stored_max + 1
    if percentage >= passing_threshold:
        # Never land on a slot already used by an earlier retest of the same test
        return max(max_attempts, next_from_store)
    return max(next_from_store, next_from_target)
