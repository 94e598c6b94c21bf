"""
Retest counter reconciliation.
Finds open targets whose attempt_number is behind the number of attempts
recorded for their assignment and moves them forward (never past the effective max).
A recorded passing attempt, or reaching the max, completes the target the same
way a submission would (PASSED / FAILED, completed_at only while null).
Usage: python manage.py sync_retest_counters [--apply]
Without --apply: dry-run only (report, no changes).
"""
from django.core.management.base import BaseCommand
from django.db import transaction
from django.db.models import Count, Max, OuterRef, Subquery
from django.utils import timezone

from retests.models import RetestTarget, TestAttempt


def _recorded(aggregate):
    return Subquery(
        TestAttempt.objects.filter(
            retest_assignment_id=OuterRef('retest_assignment_id'),
            student_id=OuterRef('student_id'),
        )
        .order_by()
        .values('student_id')
        .annotate(value=aggregate)
        .values('value')
    )


def reconciled_state(target):
    """Counter and state the target should hold, given its recorded attempts."""
    max_attempts = target.effective_max_attempts
    best = target.recorded_best
    passed = best is not None and best >= target.retest_assignment.passing_threshold
    if passed:
        attempt_number = max_attempts
        status = RetestTarget.STATUS_PASSED
    else:
        attempt_number = min(target.recorded_count, max_attempts)
        status = RetestTarget.STATUS_FAILED if attempt_number >= max_attempts else RetestTarget.STATUS_IN_PROGRESS
    return {
        'attempt_number': attempt_number,
        'passed': passed,
        'status': status,
        'is_completed': status != RetestTarget.STATUS_IN_PROGRESS,
    }


class Command(BaseCommand):
    help = 'Reconcile retest_targets.attempt_number with recorded test_attempts'

    def add_arguments(self, parser):
        parser.add_argument(
            '--apply',
            action='store_true',
            help='Apply fixes (default: dry-run only)',
        )

    def handle(self, *args, **options):
        apply = options['apply']
        if not apply:
            self.stdout.write(self.style.WARNING('DRY RUN - no changes will be made. Use --apply to fix.'))

        targets = (
            RetestTarget.objects.select_related('retest_assignment')
            .annotate(
                recorded_count=_recorded(Count('id')),
                recorded_best=_recorded(Max('percentage')),
                recorded_last=_recorded(Max('created_at')),
            )
            .order_by('id')
        )

        stats = {'behind': 0, 'fixed': 0, 'completed': 0, 'skipped_completed': 0}
        for target in targets.iterator():
            if not target.recorded_count:
                continue
            state = reconciled_state(target)
            behind = (
                state['attempt_number'] > target.attempt_number
                or (state['is_completed'] and not target.is_completed)
            )
            if not behind:
                continue
            stats['behind'] += 1
            self.stdout.write(
                f'  Target {target.id} (retest {target.retest_assignment_id}, student {target.student_id}): '
                f'attempt_number={target.attempt_number} recorded={target.recorded_count} '
                f'-> {state["attempt_number"]} {state["status"]}'
            )
            if target.is_completed:
                stats['skipped_completed'] += 1
                self.stdout.write(self.style.WARNING('    Skipped (completed)'))
                continue
            if not apply:
                continue

            updates = dict(state, updated_at=timezone.now())
            if target.last_attempt_at is None or target.last_attempt_at < target.recorded_last:
                updates['last_attempt_at'] = target.recorded_last
            if state['is_completed'] and target.completed_at is None:
                updates['completed_at'] = target.recorded_last
            with transaction.atomic():
                updated = RetestTarget.objects.filter(
                    pk=target.pk,
                    is_completed=False,
                    attempt_number=target.attempt_number,
                ).update(**updates)
            stats['fixed'] += updated
            if updated and state['is_completed']:
                stats['completed'] += 1

        self.stdout.write('')
        self.stdout.write(
            f"Summary: behind={stats['behind']} fixed={stats['fixed']} completed={stats['completed']} "
            f"skipped_completed={stats['skipped_completed']}"
        )
        if apply:
            self.stdout.write(self.style.SUCCESS('Done.'))
