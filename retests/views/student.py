"""
Student API: submit score-based tests (plain or retest) and list own retests.
"""
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsStudent
from retests.models import RetestTarget, SCORED_TEST_TYPES, TEST_TYPE_CHOICES
from retests.pagination import RetestCursorPagination
from retests.serializers import StudentRetestSerializer, TestSubmissionSerializer
from retests.services.submission import submit_test


TEST_TYPE_LABELS = dict(TEST_TYPE_CHOICES)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStudent])
def submit_test_view(request, test_type):
    """
    POST /api/student/tests/<test_type>/submit
    Body: test_id, test_name, teacher_id, subject_id, score, maxScore, answers (+ optional retest fields).
    """
    if test_type not in SCORED_TEST_TYPES:
        raise NotFound('Unknown test type')
    serializer = TestSubmissionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    result = submit_test(request.user, request.auth, test_type, serializer.validated_data)

    data = {
        'success': True,
        'result_id': result.result_id,
        'score': float(result.score),
        'max_score': float(result.max_score),
        'percentage_score': float(result.percentage),
        'message': f'{TEST_TYPE_LABELS[test_type]} test submitted successfully',
    }
    if result.attempt_number is not None:
        data['attempt_number'] = result.attempt_number
        data['retest_status'] = result.retest_status
        data['retest_completed'] = result.retest_completed
    return Response(data, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStudent])
def student_retests_view(request):
    """GET /api/student/retests - caller's retest targets, newest first."""
    qs = RetestTarget.objects.filter(student=request.user).select_related('retest_assignment')
    if request.query_params.get('open') in ('1', 'true'):
        qs = qs.filter(is_completed=False)
    paginator = RetestCursorPagination()
    page = paginator.paginate_queryset(qs, request)
    serializer = StudentRetestSerializer(page, many=True, context={'now': timezone.now()})
    return paginator.get_paginated_response(serializer.data)
