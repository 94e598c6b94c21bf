"""
Admin configuration for retests app
"""
from django.contrib import admin
from .models import RetestAssignment, RetestTarget, TestAttempt, TestResult


class RetestTargetInline(admin.TabularInline):
    model = RetestTarget
    extra = 0
    fields = ['student', 'max_attempts', 'attempt_number', 'status', 'is_completed', 'passed', 'completed_at']
    readonly_fields = ['attempt_number', 'status', 'is_completed', 'passed', 'completed_at']
    raw_id_fields = ['student']


@admin.register(RetestAssignment)
class RetestAssignmentAdmin(admin.ModelAdmin):
    list_display = ['id', 'test_type', 'original_test_id', 'teacher', 'max_attempts', 'passing_threshold', 'window_start', 'window_end', 'cancelled_at']
    list_filter = ['test_type', 'scoring_policy']
    search_fields = ['teacher__email', 'teacher__surname']
    readonly_fields = ['cancelled_at', 'created_at', 'updated_at']
    inlines = [RetestTargetInline]


@admin.register(RetestTarget)
class RetestTargetAdmin(admin.ModelAdmin):
    list_display = ['retest_assignment', 'student', 'attempt_number', 'status', 'is_completed', 'last_attempt_at']
    list_filter = ['status', 'is_completed']
    search_fields = ['student__email', 'student__surname']
    readonly_fields = ['created_at', 'updated_at', 'last_attempt_at', 'completed_at']
    raw_id_fields = ['student', 'retest_assignment']


@admin.register(TestAttempt)
class TestAttemptAdmin(admin.ModelAdmin):
    """Retest attempts (read-mostly)"""
    list_display = ['student', 'test_type', 'test_id', 'attempt_number', 'score', 'max_score', 'percentage', 'created_at']
    list_filter = ['test_type', 'is_completed']
    search_fields = ['test_name', 'student__email', 'student__surname']
    readonly_fields = ['created_at', 'updated_at']
    raw_id_fields = ['student', 'retest_assignment']


@admin.register(TestResult)
class TestResultAdmin(admin.ModelAdmin):
    """Test Result Admin"""
    list_display = ['test_name', 'student', 'test_type', 'score', 'max_score', 'percentage', 'retest_offered', 'created_at']
    list_filter = ['test_type', 'retest_offered']
    search_fields = ['test_name', 'student__email', 'student__surname']
    readonly_fields = ['created_at']
    raw_id_fields = ['student', 'retest_assignment']
    ordering = ['-created_at']
