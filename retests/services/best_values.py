"""
Best retest values for the teacher dashboard.
Scans every attempt for (student, parent test) and copies the best one onto
the student's plain result rows. Idempotent; safe to call repeatedly.
"""
import logging

from django.db import transaction

from retests.models import TestAttempt, TestResult

logger = logging.getLogger(__name__)


def best_attempt(student_id, parent_test_id, test_type=None):
    """Highest percentage, then highest score, then earliest attempt. None when no attempts."""
    qs = TestAttempt.objects.filter(student_id=student_id, test_id=parent_test_id)
    if test_type:
        qs = qs.filter(test_type=test_type)
    return qs.order_by('-percentage', '-score', 'attempt_number').first()


def update_best_retest_values(student_id, parent_test_id, test_type=None):
    """
    Write best_retest_* on matching TestResult rows.
    Returns the number of result rows updated (0 when the student has no plain result).
    """
    best = best_attempt(student_id, parent_test_id, test_type=test_type)
    results = TestResult.objects.filter(student_id=student_id, test_id=parent_test_id)
    if test_type:
        results = results.filter(test_type=test_type)
    if best is None:
        values = {
            'best_retest_score': None,
            'best_retest_max_score': None,
            'best_retest_percentage': None,
            'best_retest_attempt_number': None,
        }
    else:
        values = {
            'best_retest_score': best.score,
            'best_retest_max_score': best.max_score,
            'best_retest_percentage': best.percentage,
            'best_retest_attempt_number': best.attempt_number,
        }
    with transaction.atomic():
        updated = results.update(**values)
    logger.info(
        "best_retest_values_updated student_id=%s test_id=%s rows=%s attempt_number=%s",
        student_id, parent_test_id, updated, values['best_retest_attempt_number'],
    )
    return updated
