"""
Serializers for retests app (submissions, retest assignments, targets)
"""
from decimal import Decimal

from django.conf import settings
from rest_framework import serializers

from accounts.models import User
from .models import RetestAssignment, RetestTarget, TEST_TYPE_CHOICES


class TestSubmissionSerializer(serializers.Serializer):
    """Score-based submission; score and maxScore are computed by the client."""
    test_id = serializers.IntegerField(min_value=1)
    test_name = serializers.CharField(max_length=255)
    teacher_id = serializers.CharField(max_length=64)
    subject_id = serializers.IntegerField(min_value=1)
    score = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    maxScore = serializers.DecimalField(max_digits=10, decimal_places=2)
    answers = serializers.JSONField()

    retest_assignment_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    parent_test_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    started_at = serializers.DateTimeField(required=False, allow_null=True)
    submitted_at = serializers.DateTimeField(required=False, allow_null=True)
    time_taken = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    caught_cheating = serializers.BooleanField(required=False, default=False)
    visibility_change_times = serializers.IntegerField(required=False, default=0, min_value=0)
    is_completed = serializers.BooleanField(required=False, allow_null=True)
    answers_by_id = serializers.JSONField(required=False, allow_null=True)
    question_order = serializers.JSONField(required=False, allow_null=True)
    academic_period_id = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs['maxScore'] <= 0:
            raise serializers.ValidationError({'maxScore': 'maxScore must be greater than 0.'})
        if attrs['score'] > attrs['maxScore']:
            raise serializers.ValidationError({'score': 'score cannot exceed maxScore.'})
        return attrs


class RetestCreateSerializer(serializers.Serializer):
    test_type = serializers.ChoiceField(choices=TEST_TYPE_CHOICES)
    original_test_id = serializers.IntegerField(min_value=1)
    subject_id = serializers.IntegerField(min_value=1)
    grade = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True)
    # Client sends "class"
    class_name = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True)
    student_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    passing_threshold = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False,
    )
    scoring_policy = serializers.ChoiceField(
        choices=RetestAssignment.SCORING_POLICY_CHOICES, default=RetestAssignment.SCORING_BEST,
    )
    max_attempts = serializers.IntegerField(min_value=1, required=False)
    window_start = serializers.DateTimeField()
    window_end = serializers.DateTimeField()
    teacher_id = serializers.IntegerField(required=False, min_value=1)

    def to_internal_value(self, data):
        if hasattr(data, 'copy') and 'class' in data and 'class_name' not in data:
            data = data.copy()
            data['class_name'] = data['class']
        return super().to_internal_value(data)

    def validate(self, attrs):
        if attrs['window_end'] < attrs['window_start']:
            raise serializers.ValidationError({'window_end': 'window_end must not be before window_start.'})
        attrs.setdefault('passing_threshold', Decimal(str(settings.RETEST_DEFAULT_PASSING_THRESHOLD)))
        attrs.setdefault('max_attempts', settings.RETEST_DEFAULT_MAX_ATTEMPTS)
        return attrs

    def validate_teacher_id(self, value):
        if not User.objects.filter(id=value, role=User.ROLE_TEACHER).exists():
            raise serializers.ValidationError('Teacher not found.')
        return value


class RetestAssignmentSerializer(serializers.ModelSerializer):
    """Teacher list row with per-status target counts."""
    teacher_id = serializers.IntegerField(read_only=True)
    class_name = serializers.CharField(read_only=True)
    targets_count = serializers.IntegerField(read_only=True, default=0)
    in_progress_count = serializers.IntegerField(read_only=True, default=0)
    passed_count = serializers.IntegerField(read_only=True, default=0)
    failed_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = RetestAssignment
        fields = [
            'id', 'teacher_id', 'test_type', 'original_test_id', 'subject_id', 'grade', 'class_name',
            'passing_threshold', 'scoring_policy', 'max_attempts', 'window_start', 'window_end', 'cancelled_at',
            'created_at', 'updated_at',
            'targets_count', 'in_progress_count', 'passed_count', 'failed_count',
        ]
        read_only_fields = fields


class RetestTargetSerializer(serializers.ModelSerializer):
    """Teacher view of one student's progress."""
    student_id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(source='student.name', read_only=True)
    surname = serializers.CharField(source='student.surname', read_only=True)
    nickname = serializers.CharField(source='student.nickname', read_only=True)
    max_attempts = serializers.IntegerField(source='effective_max_attempts', read_only=True)
    attempt_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = RetestTarget
        fields = [
            'id', 'retest_assignment_id', 'student_id', 'name', 'surname', 'nickname',
            'attempt_number', 'attempt_count', 'max_attempts', 'is_completed', 'passed', 'status',
            'last_attempt_at', 'completed_at',
        ]
        read_only_fields = fields


class StudentRetestSerializer(serializers.ModelSerializer):
    """Student view: what is open and how many attempts are left."""
    test_type = serializers.CharField(source='retest_assignment.test_type', read_only=True)
    original_test_id = serializers.IntegerField(source='retest_assignment.original_test_id', read_only=True)
    subject_id = serializers.IntegerField(source='retest_assignment.subject_id', read_only=True)
    passing_threshold = serializers.DecimalField(
        source='retest_assignment.passing_threshold', max_digits=5, decimal_places=2, read_only=True,
    )
    window_start = serializers.DateTimeField(source='retest_assignment.window_start', read_only=True)
    window_end = serializers.DateTimeField(source='retest_assignment.window_end', read_only=True)
    max_attempts = serializers.IntegerField(source='effective_max_attempts', read_only=True)
    attempts_left = serializers.IntegerField(read_only=True)
    available = serializers.SerializerMethodField()

    class Meta:
        model = RetestTarget
        fields = [
            'id', 'retest_assignment_id', 'test_type', 'original_test_id', 'subject_id',
            'passing_threshold', 'window_start', 'window_end',
            'attempt_number', 'max_attempts', 'attempts_left', 'passed', 'status', 'is_completed',
            'available',
        ]
        read_only_fields = fields

    def get_available(self, obj):
        now = self.context['now']
        return (
            not obj.is_completed
            and obj.attempts_left > 0
            and obj.retest_assignment.is_window_open(now)
        )


class EligibleStudentSerializer(serializers.Serializer):
    student_id = serializers.IntegerField()
    name = serializers.CharField(source='student__name')
    surname = serializers.CharField(source='student__surname')
    nickname = serializers.CharField(source='student__nickname')
    best_percentage = serializers.DecimalField(max_digits=5, decimal_places=2)
