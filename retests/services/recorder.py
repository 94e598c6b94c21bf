"""
Idempotent write of a retest attempt keyed by (student, parent test, attempt number).
A retried request with the same resolved number updates the row in place.
"""
import logging

from retests.models import TestAttempt

logger = logging.getLogger(__name__)


def record_attempt(student, parent_test_id, attempt_number, fields, log=None):
    """
    fields: every other TestAttempt column (score, max_score, percentage, answers, ...).
    Returns (attempt, created).
    """
    log = log or logger
    attempt, created = TestAttempt.objects.update_or_create(
        student=student,
        test_id=parent_test_id,
        attempt_number=attempt_number,
        defaults=fields,
    )
    log.info(
        "attempt_recorded attempt_id=%s test_id=%s attempt_number=%s created=%s",
        attempt.id, parent_test_id, attempt_number, created,
    )
    return attempt, created
