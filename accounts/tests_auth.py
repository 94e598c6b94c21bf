"""
Bearer token handling:
- access token carries role and student snapshot claims (sub as string)
- expired token -> 401 TOKEN_EXPIRED, garbage -> 401 INVALID_TOKEN
- missing header -> 401, wrong role -> 403
"""
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from accounts.tokens import RoleAccessToken, student_claims


class TokenClaimsTests(TestCase):
    def setUp(self):
        self.student = User.objects.create_user(
            email="student@auth.test",
            password="pass123",
            name="Ann",
            surname="Lee",
            nickname="annie",
            role="student",
            grade="M1",
            class_name="1/15",
            number=7,
        )

    def test_claims(self):
        token = RoleAccessToken.for_user(self.student)
        self.assertEqual(token['sub'], str(self.student.id))
        self.assertEqual(token['role'], 'student')
        self.assertEqual(token['class'], '1/15')
        self.assertEqual(token['number'], 7)
        self.assertEqual(token['nickname'], 'annie')

    def test_student_claims_prefer_token(self):
        token = RoleAccessToken.for_user(self.student)
        token['grade'] = 'M2'
        claims = student_claims(token, self.student)
        self.assertEqual(claims['grade'], 'M2')
        self.assertEqual(claims['class'], '1/15')

    def test_student_claims_fall_back_to_user(self):
        claims = student_claims(None, self.student)
        self.assertEqual(claims['surname'], 'Lee')
        self.assertEqual(claims['number'], 7)


class BearerAuthTests(TestCase):
    url = '/api/student/retests'

    def setUp(self):
        self.client = APIClient()
        self.student = User.objects.create_user(
            email="student@bearer.test", password="pass123", name="Ann", role="student", grade="M1",
        )
        self.teacher = User.objects.create_user(
            email="teacher@bearer.test", password="pass123", name="Tom", role="teacher",
        )

    def _auth_header(self, user: User) -> dict:
        token = str(RoleAccessToken.for_user(user))
        return {"HTTP_AUTHORIZATION": f"Bearer {token}"}

    def test_valid_token(self):
        r = self.client.get(self.url, **self._auth_header(self.student))
        self.assertEqual(r.status_code, 200)

    def test_missing_header(self):
        r = self.client.get(self.url)
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.data['code'], 'not_authenticated')

    def test_expired_token(self):
        token = RoleAccessToken.for_user(self.student)
        token.set_exp(from_time=timezone.now() - timedelta(days=1), lifetime=timedelta(minutes=1))
        r = self.client.get(self.url, HTTP_AUTHORIZATION=f"Bearer {token}")
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.data['code'], 'TOKEN_EXPIRED')

    def test_invalid_token(self):
        r = self.client.get(self.url, HTTP_AUTHORIZATION="Bearer not-a-jwt")
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.data['code'], 'INVALID_TOKEN')
        self.assertEqual(r.data['message'], 'Invalid token')

    def test_wrong_role(self):
        r = self.client.get(self.url, **self._auth_header(self.teacher))
        self.assertEqual(r.status_code, 403)
        self.assertEqual(r.data['code'], 'permission_denied')
        self.assertEqual(r.data['message'], 'Access denied. Student role required.')
