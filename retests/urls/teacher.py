"""
Teacher API URLs
"""
from django.urls import path
from ..views.teacher import (
    retests_view,
    retest_cancel_view,
    retest_targets_view,
    eligible_students_view,
)

app_name = 'teacher'

urlpatterns = [
    path('retests', retests_view, name='retests'),
    path('retests/eligible-students', eligible_students_view, name='retest-eligible-students'),
    path('retests/<int:pk>/cancel', retest_cancel_view, name='retest-cancel'),
    path('retests/<int:pk>/targets', retest_targets_view, name='retest-targets'),
]
