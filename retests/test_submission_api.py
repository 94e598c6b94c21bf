"""
POST /api/student/tests/<test_type>/submit
- 401 without token / expired token, 403 for teacher, 400 for missing fields
- plain submission writes one result row and never touches retest targets
- retest: early pass, exhaustion, window, completed target, best values
"""
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from accounts.tokens import RoleAccessToken
from retests.models import RetestAssignment, RetestTarget, TestAttempt, TestResult

SUBMIT_URL = '/api/student/tests/multiple_choice/submit'


class SubmissionApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.now = timezone.now()
        self.teacher = User.objects.create_user(
            email="teacher@submit.test", password="pass123", name="Tom", role="teacher",
        )
        self.student = User.objects.create_user(
            email="student@submit.test",
            password="pass123",
            name="Ann",
            surname="Lee",
            nickname="annie",
            role="student",
            grade="M1",
            class_name="1/15",
            number=7,
        )
        self.assignment = RetestAssignment.objects.create(
            teacher=self.teacher,
            test_type='multiple_choice',
            original_test_id=100,
            subject_id=3,
            passing_threshold=Decimal('50'),
            max_attempts=3,
            window_start=self.now - timedelta(hours=1),
            window_end=self.now + timedelta(hours=1),
        )
        self.target = RetestTarget.objects.create(
            retest_assignment=self.assignment,
            student=self.student,
            max_attempts=3,
        )

    def _auth_header(self, user: User) -> dict:
        token = str(RoleAccessToken.for_user(user))
        return {"HTTP_AUTHORIZATION": f"Bearer {token}"}

    def _payload(self, score, max_score=10, retest=True, **extra):
        payload = {
            'test_id': 100,
            'test_name': 'Fractions',
            'teacher_id': str(self.teacher.id),
            'subject_id': 3,
            'score': score,
            'maxScore': max_score,
            'answers': {'1': 'a', '2': 'c'},
            'submitted_at': self.now.isoformat(),
        }
        if retest:
            payload['retest_assignment_id'] = self.assignment.id
            payload['parent_test_id'] = 100
        payload.update(extra)
        return payload

    def _submit(self, payload, user=None):
        return self.client.post(SUBMIT_URL, payload, format='json', **self._auth_header(user or self.student))

    def test_missing_token_returns_401(self):
        r = self.client.post(SUBMIT_URL, self._payload(5), format='json')
        self.assertEqual(r.status_code, 401)
        self.assertFalse(r.data['success'])

    def test_expired_token_returns_token_expired(self):
        token = RoleAccessToken.for_user(self.student)
        token.set_exp(from_time=self.now - timedelta(hours=2), lifetime=timedelta(minutes=5))
        r = self.client.post(
            SUBMIT_URL, self._payload(5), format='json', HTTP_AUTHORIZATION=f"Bearer {token}",
        )
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.data['code'], 'TOKEN_EXPIRED')
        self.assertEqual(r.data['message'], 'Token expired')

    def test_teacher_token_returns_403(self):
        r = self._submit(self._payload(5), user=self.teacher)
        self.assertEqual(r.status_code, 403)
        self.assertEqual(TestAttempt.objects.count(), 0)

    def test_missing_fields_returns_400(self):
        r = self._submit({'test_id': 100, 'score': 1})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['code'], 'validation_error')
        self.assertIn('maxScore', r.data['errors'])
        self.assertIn('answers', r.data['errors'])

    def test_zero_max_score_rejected(self):
        r = self._submit(self._payload(0, max_score=0))
        self.assertEqual(r.status_code, 400)

    def test_unscored_type_not_found(self):
        r = self.client.post(
            '/api/student/tests/drawing/submit', self._payload(5), format='json', **self._auth_header(self.student),
        )
        self.assertEqual(r.status_code, 404)

    def test_plain_submission_writes_result_only(self):
        r = self._submit(self._payload(2, max_score=3, retest=False))
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.data['success'])
        self.assertEqual(r.data['percentage_score'], 66.67)
        self.assertEqual(r.data['message'], 'Multiple Choice test submitted successfully')

        result = TestResult.objects.get(pk=r.data['result_id'])
        self.assertEqual(result.class_name, 15)
        self.assertEqual(result.grade, 'M1')
        self.assertEqual(result.nickname, 'annie')
        self.assertEqual(result.percentage, Decimal('66.67'))
        self.assertTrue(result.is_completed)
        self.assertEqual(TestAttempt.objects.count(), 0)

        self.target.refresh_from_db()
        self.assertEqual(self.target.attempt_number, 0)
        self.assertIsNone(self.target.last_attempt_at)

    def test_answers_by_id_stored_order_agnostic(self):
        r = self._submit(self._payload(
            5, retest=False, answers_by_id={'11': 'b'}, question_order=[11], submitted_at=None,
        ))
        self.assertEqual(r.status_code, 200)
        result = TestResult.objects.get(pk=r.data['result_id'])
        self.assertEqual(result.answers, {'answers_by_id': {'11': 'b'}, 'question_order': [11]})
        self.assertFalse(result.is_completed)

    def test_early_pass_jumps_to_last_attempt(self):
        r = self._submit(self._payload(7))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['attempt_number'], 3)
        self.assertEqual(r.data['retest_status'], RetestTarget.STATUS_PASSED)

        attempt = TestAttempt.objects.get(pk=r.data['result_id'])
        self.assertEqual(attempt.attempt_number, 3)
        self.assertEqual(attempt.test_id, 100)
        self.assertEqual(attempt.retest_assignment_id, self.assignment.id)

        self.target.refresh_from_db()
        self.assertEqual(self.target.attempt_number, 3)
        self.assertEqual(self.target.status, RetestTarget.STATUS_PASSED)
        self.assertTrue(self.target.is_completed)
        self.assertTrue(self.target.passed)
        self.assertIsNotNone(self.target.completed_at)

    def test_exhaustion_without_pass(self):
        self.target.max_attempts = 2
        self.target.save()

        r1 = self._submit(self._payload(3))
        self.assertEqual(r1.status_code, 200)
        self.target.refresh_from_db()
        self.assertEqual(self.target.status, RetestTarget.STATUS_IN_PROGRESS)
        self.assertEqual(self.target.attempt_number, 1)
        self.assertFalse(self.target.is_completed)

        r2 = self._submit(self._payload(4))
        self.assertEqual(r2.status_code, 200)
        self.target.refresh_from_db()
        self.assertEqual(self.target.status, RetestTarget.STATUS_FAILED)
        self.assertEqual(self.target.attempt_number, 2)
        self.assertTrue(self.target.is_completed)
        self.assertFalse(self.target.passed)
        self.assertEqual(
            list(TestAttempt.objects.filter(student=self.student, test_id=100).values_list('attempt_number', flat=True)),
            [1, 2],
        )

    def test_window_closed_rejected(self):
        self.assignment.window_start = self.now - timedelta(days=2)
        self.assignment.window_end = self.now - timedelta(days=1)
        self.assignment.save()
        r = self._submit(self._payload(10))
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['code'], 'retest_window_closed')
        self.assertEqual(r.data['message'], 'Retest window is not active')
        self.assertEqual(TestAttempt.objects.count(), 0)

    def test_completed_target_rejected_and_unchanged(self):
        r = self._submit(self._payload(9))
        self.assertEqual(r.status_code, 200)
        self.target.refresh_from_db()
        completed_at = self.target.completed_at

        r = self._submit(self._payload(2))
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['code'], 'retest_already_completed')
        self.target.refresh_from_db()
        self.assertEqual(self.target.completed_at, completed_at)
        self.assertEqual(self.target.status, RetestTarget.STATUS_PASSED)
        self.assertEqual(TestAttempt.objects.count(), 1)

    def test_max_attempts_reached(self):
        self.target.attempt_number = 3
        self.target.save()
        r = self._submit(self._payload(2))
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['code'], 'max_attempts_reached')

    def test_unassigned_retest_not_found(self):
        r = self._submit(self._payload(2, retest_assignment_id=self.assignment.id + 50))
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['message'], 'Retest not found or not assigned to this student')

    def test_best_values_written_to_original_result(self):
        original = self._submit(self._payload(2, retest=False))
        self.assertEqual(original.status_code, 200)

        self._submit(self._payload(3))
        self._submit(self._payload(6))

        result = TestResult.objects.get(pk=original.data['result_id'])
        self.assertEqual(result.best_retest_score, Decimal('6.00'))
        self.assertEqual(result.best_retest_percentage, Decimal('60.00'))
        self.assertEqual(result.best_retest_attempt_number, 3)

    def test_best_values_failure_still_succeeds(self):
        with mock.patch(
            'retests.services.submission.update_best_retest_values',
            side_effect=DatabaseError('aggregate failed'),
        ):
            with self.assertLogs('retests.services.submission', level='ERROR'):
                r = self._submit(self._payload(8))
        self.assertEqual(r.status_code, 200)
        self.target.refresh_from_db()
        self.assertTrue(self.target.is_completed)

    def test_storage_failure_returns_500(self):
        with mock.patch('retests.services.submission.TestResult') as result_model:
            result_model.objects.create.side_effect = DatabaseError('connection lost')
            with self.assertLogs('config.exceptions', level='ERROR'):
                r = self._submit(self._payload(5, retest=False))
        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.data['code'], 'storage_error')
        self.assertEqual(r.data['message'], 'Database error')

    def test_no_duplicate_attempt_numbers(self):
        self.target.max_attempts = 5
        self.target.save()
        for score in (1, 2, 3, 9):
            self.assertEqual(self._submit(self._payload(score)).status_code, 200)
        numbers = list(TestAttempt.objects.filter(student=self.student, test_id=100).values_list('attempt_number', flat=True))
        self.assertEqual(numbers, [1, 2, 3, 5])
        self.assertEqual(len(numbers), len(set(numbers)))
