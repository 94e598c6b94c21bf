"""
Teacher-side retest operations: create, list with status counts, cancel,
eligible students.
"""
import logging

from django.db import transaction
from django.db.models import Count, DecimalField, F, Max, Q, Value
from django.db.models.functions import Coalesce, Greatest

from accounts.models import User
from retests.models import RetestAssignment, RetestTarget, TestResult

logger = logging.getLogger(__name__)


def create_retest(teacher, student_ids, **assignment_fields):
    """
    Assignment + one IN_PROGRESS target per student (duplicates ignored),
    and flag the students' original results. One transaction.
    Unknown or non-student ids are skipped. Returns (assignment, targets_created).
    """
    students = list(
        User.objects.filter(id__in=set(student_ids), role=User.ROLE_STUDENT).values_list('id', flat=True)
    )
    with transaction.atomic():
        assignment = RetestAssignment.objects.create(teacher=teacher, **assignment_fields)
        targets = RetestTarget.objects.bulk_create(
            [
                RetestTarget(
                    retest_assignment=assignment,
                    student_id=student_id,
                    max_attempts=assignment.max_attempts,
                )
                for student_id in students
            ],
            ignore_conflicts=True,
        )
        flagged = TestResult.objects.filter(
            student_id__in=students,
            test_id=assignment.original_test_id,
            test_type=assignment.test_type,
        ).update(retest_offered=True, retest_assignment=assignment)
    logger.info(
        "retest_created retest_id=%s teacher_id=%s test_type=%s test_id=%s targets=%s results_flagged=%s",
        assignment.id, teacher.id, assignment.test_type, assignment.original_test_id, len(targets), flagged,
    )
    return assignment, len(targets)


def assignments_with_counts(teacher_id=None):
    qs = RetestAssignment.objects.annotate(
        targets_count=Count('targets'),
        in_progress_count=Count('targets', filter=Q(targets__status=RetestTarget.STATUS_IN_PROGRESS)),
        passed_count=Count('targets', filter=Q(targets__status=RetestTarget.STATUS_PASSED)),
        failed_count=Count('targets', filter=Q(targets__status=RetestTarget.STATUS_FAILED)),
    )
    if teacher_id is not None:
        qs = qs.filter(teacher_id=teacher_id)
    return qs


def cancel_retest(assignment, now):
    """
    Close the window: window_end = min(window_end, now) and mark cancelled_at.
    Targets are left as they are.
    """
    update_fields = []
    if assignment.window_end > now:
        assignment.window_end = max(now, assignment.window_start)
        update_fields.append('window_end')
    if assignment.cancelled_at is None:
        assignment.cancelled_at = now
        update_fields.append('cancelled_at')
    if update_fields:
        assignment.save(update_fields=update_fields + ['updated_at'])
    logger.info("retest_cancelled retest_id=%s window_end=%s", assignment.id, assignment.window_end.isoformat())
    return assignment


def targets_for(assignment):
    return (
        RetestTarget.objects.filter(retest_assignment=assignment)
        .select_related('student', 'retest_assignment')
        .annotate(student_surname=F('student__surname'), student_name=F('student__name'))
    )


def eligible_students(test_type, original_test_id, threshold):
    """
    Per student, the best percentage on the test (original result or any retest
    attempt copied onto it) below threshold. Rows: student_id, best_percentage, names.
    """
    best = Greatest(
        F('percentage'),
        Coalesce(F('best_retest_percentage'), F('percentage')),
        output_field=DecimalField(max_digits=5, decimal_places=2),
    )
    return (
        TestResult.objects.filter(test_type=test_type, test_id=original_test_id)
        .values('student_id', 'student__name', 'student__surname', 'student__nickname')
        .annotate(best_percentage=Max(best))
        .filter(best_percentage__lt=Value(threshold, output_field=DecimalField(max_digits=5, decimal_places=2)))
    )
