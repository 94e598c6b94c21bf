"""
Teacher API: create, list and cancel retests; per-retest targets; eligible students.
Admins may act for any teacher (teacher_id in body or query).
"""
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.models import User
from accounts.permissions import IsTeacherOrAdmin
from retests.models import RetestAssignment, TEST_TYPE_CHOICES
from retests.pagination import (
    EligibleStudentCursorPagination,
    RetestCursorPagination,
    TargetCursorPagination,
)
from retests.serializers import (
    EligibleStudentSerializer,
    RetestAssignmentSerializer,
    RetestCreateSerializer,
    RetestTargetSerializer,
)
from retests.services.assignments import (
    assignments_with_counts,
    cancel_retest,
    create_retest,
    eligible_students,
    targets_for,
)


def _is_admin(user):
    return user.role == User.ROLE_ADMIN


def _get_assignment_for(request, pk):
    """Teachers see only their own retests; admins see all. 404 otherwise."""
    qs = RetestAssignment.objects.all()
    if not _is_admin(request.user):
        qs = qs.filter(teacher=request.user)
    return get_object_or_404(qs, pk=pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsTeacherOrAdmin])
def retests_view(request):
    """
    GET  /api/teacher/retests - own retests with status counts (admin: ?teacher_id=)
    POST /api/teacher/retests - create retest + targets
    """
    if request.method == 'GET':
        teacher_id = request.user.id
        if _is_admin(request.user):
            raw = request.query_params.get('teacher_id')
            teacher_id = int(raw) if raw and raw.isdigit() else None
        qs = assignments_with_counts(teacher_id)
        paginator = RetestCursorPagination()
        page = paginator.paginate_queryset(qs, request)
        return paginator.get_paginated_response(RetestAssignmentSerializer(page, many=True).data)

    serializer = RetestCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)
    student_ids = data.pop('student_ids')
    teacher_id = data.pop('teacher_id', None)
    teacher = request.user
    if _is_admin(request.user):
        if teacher_id is None:
            raise ValidationError({'teacher_id': 'teacher_id is required for admin.'})
        teacher = User.objects.get(id=teacher_id)
    assignment, targets = create_retest(teacher, student_ids, **data)
    return Response(
        {'success': True, 'retest_id': assignment.id, 'targets_created': targets},
        status=status.HTTP_201_CREATED,
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsTeacherOrAdmin])
def retest_cancel_view(request, pk):
    """POST /api/teacher/retests/<id>/cancel - close the attempt window now."""
    assignment = _get_assignment_for(request, pk)
    cancel_retest(assignment, timezone.now())
    return Response({
        'success': True,
        'retest_id': assignment.id,
        'window_end': assignment.window_end,
        'cancelled_at': assignment.cancelled_at,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsTeacherOrAdmin])
def retest_targets_view(request, pk):
    """GET /api/teacher/retests/<id>/targets - students ordered by surname, name."""
    assignment = _get_assignment_for(request, pk)
    paginator = TargetCursorPagination()
    page = paginator.paginate_queryset(targets_for(assignment), request)
    return paginator.get_paginated_response(RetestTargetSerializer(page, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsTeacherOrAdmin])
def eligible_students_view(request):
    """
    GET /api/teacher/retests/eligible-students?test_type=&original_test_id=&threshold=
    Students whose best percentage is below threshold, lowest first.
    """
    params = request.query_params
    test_type = params.get('test_type')
    original_test_id = params.get('original_test_id')
    errors = {}
    if test_type not in dict(TEST_TYPE_CHOICES):
        errors['test_type'] = 'Unknown test type.'
    if not original_test_id or not original_test_id.isdigit():
        errors['original_test_id'] = 'original_test_id is required.'
    try:
        threshold = Decimal(params.get('threshold') or str(settings.RETEST_DEFAULT_PASSING_THRESHOLD))
    except InvalidOperation:
        errors['threshold'] = 'threshold must be a number.'
    if errors:
        raise ValidationError(errors)

    qs = eligible_students(test_type, int(original_test_id), threshold)
    paginator = EligibleStudentCursorPagination()
    page = paginator.paginate_queryset(qs, request)
    return paginator.get_paginated_response(EligibleStudentSerializer(page, many=True).data)
