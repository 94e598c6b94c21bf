"""
Teacher retest endpoints:
- create: targets per student (duplicates ignored), original results flagged
- list with per-status counts; only own retests
- cancel closes the window; students are then rejected
- targets ordered by surname; eligible students below threshold
- student list shows availability
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from accounts.tokens import RoleAccessToken
from retests.models import RetestAssignment, RetestTarget, TestResult


def _result(student, test_id, percentage, **extra):
    fields = {
        'test_type': 'multiple_choice',
        'test_name': 'Fractions',
        'teacher_id': 't-1',
        'subject_id': 3,
        'score': Decimal(percentage) / 10,
        'max_score': Decimal('10'),
        'percentage': Decimal(percentage),
        'answers': {},
    }
    fields.update(extra)
    return TestResult.objects.create(student=student, test_id=test_id, **fields)


class TeacherRetestApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.now = timezone.now()
        self.teacher = User.objects.create_user(
            email="teacher@retests.test", password="pass123", name="Tom", role="teacher",
        )
        self.other_teacher = User.objects.create_user(
            email="other@retests.test", password="pass123", name="Olga", role="teacher",
        )
        self.admin = User.objects.create_user(
            email="admin@retests.test", password="pass123", name="Ada", role="admin",
        )
        self.students = [
            User.objects.create_user(
                email=f"s{i}@retests.test",
                password="pass123",
                name=name,
                surname=surname,
                role="student",
                grade="M1",
                class_name="1/15",
                number=i + 1,
            )
            for i, (name, surname) in enumerate([('Cara', 'Young'), ('Ben', 'Adams'), ('Dan', 'Moss')])
        ]

    def _auth_header(self, user: User) -> dict:
        token = str(RoleAccessToken.for_user(user))
        return {"HTTP_AUTHORIZATION": f"Bearer {token}"}

    def _create_payload(self, **extra):
        payload = {
            'test_type': 'multiple_choice',
            'original_test_id': 100,
            'subject_id': 3,
            'grade': 'M1',
            'class': '1/15',
            'student_ids': [s.id for s in self.students[:2]] + [self.students[0].id],
            'passing_threshold': 60,
            'max_attempts': 2,
            'window_start': (self.now - timedelta(minutes=5)).isoformat(),
            'window_end': (self.now + timedelta(days=1)).isoformat(),
        }
        payload.update(extra)
        return payload

    def _create(self, user=None, **extra):
        return self.client.post(
            '/api/teacher/retests', self._create_payload(**extra), format='json',
            **self._auth_header(user or self.teacher),
        )

    def test_create_retest(self):
        original = _result(self.students[0], 100, '30')
        untouched = _result(self.students[2], 100, '20')

        r = self._create()
        self.assertEqual(r.status_code, 201)
        self.assertTrue(r.data['success'])
        assignment = RetestAssignment.objects.get(pk=r.data['retest_id'])
        self.assertEqual(assignment.teacher, self.teacher)
        self.assertEqual(assignment.class_name, '1/15')
        self.assertEqual(assignment.passing_threshold, Decimal('60.00'))

        targets = RetestTarget.objects.filter(retest_assignment=assignment)
        self.assertEqual(targets.count(), 2)
        for target in targets:
            self.assertEqual(target.status, RetestTarget.STATUS_IN_PROGRESS)
            self.assertEqual(target.attempt_number, 0)
            self.assertEqual(target.max_attempts, 2)

        original.refresh_from_db()
        untouched.refresh_from_db()
        self.assertTrue(original.retest_offered)
        self.assertEqual(original.retest_assignment_id, assignment.id)
        self.assertFalse(untouched.retest_offered)

    def test_create_defaults(self):
        payload = self._create_payload()
        del payload['passing_threshold']
        del payload['max_attempts']
        r = self.client.post('/api/teacher/retests', payload, format='json', **self._auth_header(self.teacher))
        self.assertEqual(r.status_code, 201)
        assignment = RetestAssignment.objects.get(pk=r.data['retest_id'])
        self.assertEqual(assignment.passing_threshold, Decimal('50.00'))
        self.assertEqual(assignment.max_attempts, 1)
        self.assertEqual(assignment.scoring_policy, RetestAssignment.SCORING_BEST)

    def test_create_rejects_bad_window_and_empty_students(self):
        r = self._create(window_end=(self.now - timedelta(days=1)).isoformat())
        self.assertEqual(r.status_code, 400)
        self.assertIn('window_end', r.data['errors'])
        r = self._create(student_ids=[])
        self.assertEqual(r.status_code, 400)
        self.assertEqual(RetestAssignment.objects.count(), 0)

    def test_student_cannot_create(self):
        r = self._create(user=self.students[0])
        self.assertEqual(r.status_code, 403)

    def test_admin_creates_for_teacher(self):
        r = self._create(user=self.admin)
        self.assertEqual(r.status_code, 400)
        self.assertIn('teacher_id', r.data['errors'])
        r = self._create(user=self.admin, teacher_id=self.other_teacher.id)
        self.assertEqual(r.status_code, 201)
        self.assertEqual(RetestAssignment.objects.get(pk=r.data['retest_id']).teacher, self.other_teacher)

    def test_list_with_counts(self):
        retest_id = self._create().data['retest_id']
        self._create(user=self.admin, teacher_id=self.other_teacher.id)
        RetestTarget.objects.filter(retest_assignment_id=retest_id, student=self.students[0]).update(
            status=RetestTarget.STATUS_PASSED, is_completed=True,
        )

        r = self.client.get('/api/teacher/retests', **self._auth_header(self.teacher))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(len(r.data['results']), 1)
        row = r.data['results'][0]
        self.assertEqual(row['id'], retest_id)
        self.assertEqual(row['targets_count'], 2)
        self.assertEqual(row['passed_count'], 1)
        self.assertEqual(row['in_progress_count'], 1)
        self.assertEqual(row['failed_count'], 0)

        r = self.client.get('/api/teacher/retests', **self._auth_header(self.admin))
        self.assertEqual(len(r.data['results']), 2)

    def test_cancel_closes_window(self):
        retest_id = self._create().data['retest_id']
        r = self.client.post(f'/api/teacher/retests/{retest_id}/cancel', **self._auth_header(self.teacher))
        self.assertEqual(r.status_code, 200)
        assignment = RetestAssignment.objects.get(pk=retest_id)
        self.assertLessEqual(assignment.window_end, timezone.now())

        r = self.client.post(
            '/api/student/tests/multiple_choice/submit',
            {
                'test_id': 100, 'test_name': 'Fractions', 'teacher_id': str(self.teacher.id), 'subject_id': 3,
                'score': 9, 'maxScore': 10, 'answers': {}, 'retest_assignment_id': retest_id,
            },
            format='json',
            **self._auth_header(self.students[0]),
        )
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['code'], 'retest_window_closed')

    def test_cancel_keeps_earlier_window_end(self):
        window_end = self.now - timedelta(minutes=1)
        retest_id = self._create(window_end=window_end.isoformat()).data['retest_id']
        self.client.post(f'/api/teacher/retests/{retest_id}/cancel', **self._auth_header(self.teacher))
        self.assertEqual(RetestAssignment.objects.get(pk=retest_id).window_end, window_end)

    def test_cancel_before_window_opens_stays_closed_at_start(self):
        retest_id = self._create(
            window_start=(self.now + timedelta(hours=1)).isoformat(),
            window_end=(self.now + timedelta(days=1)).isoformat(),
        ).data['retest_id']
        r = self.client.post(f'/api/teacher/retests/{retest_id}/cancel', **self._auth_header(self.teacher))
        self.assertEqual(r.status_code, 200)
        self.assertIsNotNone(r.data['cancelled_at'])

        assignment = RetestAssignment.objects.get(pk=retest_id)
        self.assertEqual(assignment.window_end, assignment.window_start)
        self.assertIsNotNone(assignment.cancelled_at)
        self.assertFalse(assignment.is_window_open(assignment.window_start))

    def test_other_teacher_cannot_cancel(self):
        retest_id = self._create().data['retest_id']
        r = self.client.post(f'/api/teacher/retests/{retest_id}/cancel', **self._auth_header(self.other_teacher))
        self.assertEqual(r.status_code, 404)

    def test_targets_ordered_by_surname(self):
        retest_id = self._create(student_ids=[s.id for s in self.students]).data['retest_id']
        r = self.client.get(f'/api/teacher/retests/{retest_id}/targets', **self._auth_header(self.teacher))
        self.assertEqual(r.status_code, 200)
        self.assertEqual([row['surname'] for row in r.data['results']], ['Adams', 'Moss', 'Young'])
        self.assertEqual(r.data['results'][0]['attempt_count'], 0)
        self.assertEqual(r.data['results'][0]['max_attempts'], 2)

    def test_eligible_students(self):
        _result(self.students[0], 100, '30')
        _result(self.students[1], 100, '80')
        _result(self.students[2], 100, '45', best_retest_percentage=Decimal('60'))
        _result(self.students[2], 200, '10')

        r = self.client.get(
            '/api/teacher/retests/eligible-students',
            {'test_type': 'multiple_choice', 'original_test_id': 100},
            **self._auth_header(self.teacher),
        )
        self.assertEqual(r.status_code, 200)
        self.assertEqual([row['student_id'] for row in r.data['results']], [self.students[0].id])

        r = self.client.get(
            '/api/teacher/retests/eligible-students',
            {'test_type': 'multiple_choice', 'original_test_id': 100, 'threshold': 90},
            **self._auth_header(self.teacher),
        )
        self.assertEqual(
            [row['student_id'] for row in r.data['results']],
            [self.students[0].id, self.students[2].id, self.students[1].id],
        )

    def test_eligible_students_requires_test(self):
        r = self.client.get('/api/teacher/retests/eligible-students', **self._auth_header(self.teacher))
        self.assertEqual(r.status_code, 400)
        self.assertIn('original_test_id', r.data['errors'])

    def test_student_retest_list(self):
        retest_id = self._create().data['retest_id']
        r = self.client.get('/api/student/retests', **self._auth_header(self.students[0]))
        self.assertEqual(r.status_code, 200)
        row = r.data['results'][0]
        self.assertEqual(row['retest_assignment_id'], retest_id)
        self.assertTrue(row['available'])
        self.assertEqual(row['attempts_left'], 2)
        self.assertEqual(row['max_attempts'], 2)

        r = self.client.get('/api/student/retests', **self._auth_header(self.students[2]))
        self.assertEqual(r.data['results'], [])
