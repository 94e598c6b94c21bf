"""
Student API URLs
"""
from django.urls import path
from ..views.student import (
    submit_test_view,
    student_retests_view,
)

app_name = 'student'

urlpatterns = [
    path('tests/<str:test_type>/submit', submit_test_view, name='test-submit'),
    path('retests', student_retests_view, name='retests'),
]
