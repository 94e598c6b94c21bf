"""
Cursor pagination for retest lists. ?limit= caps at RETEST_MAX_PAGE_SIZE.
"""
from django.conf import settings
from rest_framework.pagination import CursorPagination


class RetestCursorPagination(CursorPagination):
    page_size = settings.RETEST_PAGE_SIZE
    page_size_query_param = 'limit'
    max_page_size = settings.RETEST_MAX_PAGE_SIZE
    ordering = ('-created_at', '-id')


class TargetCursorPagination(RetestCursorPagination):
    ordering = ('student_surname', 'student_name', 'id')


class EligibleStudentCursorPagination(RetestCursorPagination):
    ordering = ('best_percentage', 'student_id')
