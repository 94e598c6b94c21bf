"""
Score-based test submission.
Plain submissions write one TestResult row. Retest submissions run
eligibility -> attempt number -> record -> target state in one transaction
with the target row locked, then refresh best retest values.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from accounts.tokens import student_claims
from retests.models import TestResult
from retests.services.attempt_number import resolve_attempt_number, stored_max_attempt
from retests.services.best_values import update_best_retest_values
from retests.services.eligibility import effective_max_attempts, ensure_eligible, load_target
from retests.services.recorder import record_attempt
from retests.services.state import apply_retest_state, compute_retest_state

logger = logging.getLogger(__name__)


class SubmissionLog(logging.LoggerAdapter):
    """Appends student_id / retest_assignment_id to every message."""

    def process(self, msg, kwargs):
        context = ' '.join(f'{k}={v}' for k, v in self.extra.items())
        return f'{msg} {context}', kwargs


class SubmissionResult(NamedTuple):
    result_id: int
    score: Decimal
    max_score: Decimal
    percentage: Decimal
    attempt_number: Optional[int] = None
    retest_status: Optional[str] = None
    retest_completed: Optional[bool] = None


def compute_percentage(score, max_score):
    """score / max_score * 100, two decimals, half up."""
    value = Decimal(score) / Decimal(max_score) * 100
    return value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def convert_class(value):
    """'1/15' -> 15, '15' -> 15, anything else -> None."""
    text = str(value or '').strip()
    if '/' in text:
        text = text.split('/')[1]
    try:
        return int(text)
    except ValueError:
        return None


def stored_answers(data):
    """Order-agnostic answers when the client sends answers_by_id."""
    if data.get('answers_by_id'):
        return {
            'answers_by_id': data['answers_by_id'],
            'question_order': data.get('question_order') or [],
        }
    return data['answers']


def _common_fields(test_type, data, claims, percentage):
    return {
        'test_type': test_type,
        'test_name': data['test_name'],
        'teacher_id': data['teacher_id'],
        'subject_id': data['subject_id'],
        'score': data['score'],
        'max_score': data['maxScore'],
        'percentage': percentage,
        'answers': stored_answers(data),
        'answers_by_id': data.get('answers_by_id') or {},
        'question_order': data.get('question_order') or [],
        'time_taken': data.get('time_taken'),
        'started_at': data.get('started_at'),
        'submitted_at': data.get('submitted_at'),
        'is_completed': bool(data.get('submitted_at')) or data.get('is_completed') is True,
        'caught_cheating': data.get('caught_cheating') or False,
        'visibility_change_times': data.get('visibility_change_times') or 0,
        'academic_period_id': data.get('academic_period_id'),
        'grade': claims['grade'],
        'class_name': convert_class(claims['class']),
        'number': claims['number'],
        'name': claims['name'] or '',
        'surname': claims['surname'] or '',
        'nickname': claims['nickname'] or '',
    }


def submit_test(student, token, test_type, data, now=None):
    """
    data: validated TestSubmissionSerializer output.
    Raises retests.exceptions errors for ineligible retests.
    """
    now = now or timezone.now()
    claims = student_claims(token, student)
    percentage = compute_percentage(data['score'], data['maxScore'])
    fields = _common_fields(test_type, data, claims, percentage)
    retest_assignment_id = data.get('retest_assignment_id')

    if not retest_assignment_id:
        result = TestResult.objects.create(student=student, test_id=data['test_id'], **fields)
        logger.info(
            "test_submitted result_id=%s student_id=%s test_type=%s test_id=%s percentage=%s",
            result.id, student.id, test_type, data['test_id'], percentage,
        )
        return SubmissionResult(result.id, data['score'], data['maxScore'], percentage)

    log = SubmissionLog(logger, {'student_id': student.id, 'retest_assignment_id': retest_assignment_id})
    return _submit_retest(student, test_type, data, fields, percentage, now, log)


def _submit_retest(student, test_type, data, fields, percentage, now, log):
    parent_test_id = data.get('parent_test_id') or data['test_id']

    with transaction.atomic():
        target = load_target(data['retest_assignment_id'], student.id, for_update=True)
        ensure_eligible(target, now, log=log)
        assignment = target.retest_assignment
        max_attempts = effective_max_attempts(target)
        threshold = assignment.passing_threshold
        current_attempt = target.attempt_number

        attempt_number = resolve_attempt_number(
            current_attempt,
            max_attempts,
            percentage,
            threshold,
            stored_max_attempt(student.id, parent_test_id),
        )
        log.debug(
            "attempt_number_resolved current=%s max_attempts=%s percentage=%s threshold=%s resolved=%s",
            current_attempt, max_attempts, percentage, threshold, attempt_number,
        )
        attempt, _ = record_attempt(
            student,
            parent_test_id,
            attempt_number,
            dict(fields, retest_assignment=assignment),
            log=log,
        )
        outcome = compute_retest_state(percentage, threshold, current_attempt, max_attempts)
        apply_retest_state(target, outcome, now, log=log)

    try:
        update_best_retest_values(student.id, parent_test_id, test_type=test_type)
    except DatabaseError:
        # Attempt and target state are already committed
        log.exception("best_retest_values_failed test_id=%s", parent_test_id)

    return SubmissionResult(
        attempt.id,
        data['score'],
        data['maxScore'],
        percentage,
        attempt_number=attempt_number,
        retest_status=outcome.status,
        retest_completed=outcome.should_complete,
    )
