"""
Retest assignment, per-student retest target, numbered attempts and plain test results.
Attempts accumulate against the parent test id; (student, test_id, attempt_number) is unique.
"""
from django.db import models
from accounts.models import User


TEST_TYPE_CHOICES = [
    ('multiple_choice', 'Multiple Choice'),
    ('true_false', 'True/False'),
    ('input', 'Input'),
    ('matching_type', 'Matching Type'),
    ('word_matching', 'Word Matching'),
    ('drawing', 'Drawing'),
    ('fill_blanks', 'Fill Blanks'),
    ('speaking', 'Speaking'),
]

# Types graded from a client-computed score (drawing/speaking go through manual review)
SCORED_TEST_TYPES = (
    'multiple_choice',
    'true_false',
    'input',
    'matching_type',
    'word_matching',
    'fill_blanks',
)


class RetestAssignment(models.Model):
    """Teacher-defined retest offer for one original test. Immutable apart from cancel (window_end, cancelled_at)."""
    SCORING_BEST = 'BEST'
    SCORING_POLICY_CHOICES = [
        (SCORING_BEST, 'Best attempt'),
    ]
    teacher = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='retest_assignments',
        limit_choices_to={'role': 'teacher'},
        db_column='teacher_id',
    )
    test_type = models.CharField(max_length=30, choices=TEST_TYPE_CHOICES)
    original_test_id = models.PositiveIntegerField(db_index=True)
    subject_id = models.PositiveIntegerField()
    grade = models.CharField(max_length=20, blank=True, null=True)
    class_name = models.CharField(max_length=20, blank=True, null=True)
    passing_threshold = models.DecimalField(max_digits=5, decimal_places=2, default=50)
    scoring_policy = models.CharField(max_length=20, choices=SCORING_POLICY_CHOICES, default=SCORING_BEST)
    max_attempts = models.PositiveIntegerField(default=1)
    window_start = models.DateTimeField()
    window_end = models.DateTimeField()
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'retest_assignments'
        verbose_name = 'Retest Assignment'
        verbose_name_plural = 'Retest Assignments'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['teacher', 'created_at'], name='retest_teacher_created_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(window_end__gte=models.F('window_start')),
                name='retest_window_end_after_start',
            ),
            models.CheckConstraint(
                condition=models.Q(max_attempts__gte=1),
                name='retest_max_attempts_positive',
            ),
        ]

    def __str__(self):
        return f"Retest {self.id}: {self.test_type} #{self.original_test_id}"

    def is_window_open(self, now):
        if self.cancelled_at is not None:
            return False
        return self.window_start <= now <= self.window_end


class RetestTarget(models.Model):
    """
    One per student per assignment. attempt_number = attempts consumed (0 when created).
    Once is_completed is set nothing mutates attempt_number, status or completed_at.
    """
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_PASSED = 'PASSED'
    STATUS_FAILED = 'FAILED'
    STATUS_CHOICES = [
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_PASSED, 'Passed'),
        (STATUS_FAILED, 'Failed'),
    ]
    retest_assignment = models.ForeignKey(
        RetestAssignment,
        on_delete=models.CASCADE,
        related_name='targets',
    )
    student = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='retest_targets',
        limit_choices_to={'role': 'student'},
    )
    max_attempts = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text='Per-student override; assignment.max_attempts when empty',
    )
    attempt_number = models.PositiveIntegerField(default=0)
    is_completed = models.BooleanField(default=False, db_index=True)
    passed = models.BooleanField(default=False)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_IN_PROGRESS, db_index=True)
    last_attempt_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'retest_targets'
        verbose_name = 'Retest Target'
        verbose_name_plural = 'Retest Targets'
        unique_together = [['retest_assignment', 'student']]
        indexes = [
            models.Index(fields=['student', 'is_completed'], name='retest_tgt_student_done_idx'),
        ]

    def __str__(self):
        return f"Retest {self.retest_assignment_id} -> student {self.student_id} ({self.status})"

    @property
    def effective_max_attempts(self):
        return self.max_attempts or self.retest_assignment.max_attempts or 1

    @property
    def attempt_count(self):
        """Read-only mirror of attempt_number kept for older clients."""
        return self.attempt_number

    @property
    def attempts_left(self):
        return max(0, self.effective_max_attempts - self.attempt_number)


class SubmissionFields(models.Model):
    """Columns shared by retest attempts and plain results (submission metadata + student snapshot)."""
    test_type = models.CharField(max_length=30, choices=TEST_TYPE_CHOICES)
    test_name = models.CharField(max_length=255)
    teacher_id = models.CharField(max_length=64)
    subject_id = models.PositiveIntegerField()
    score = models.DecimalField(max_digits=10, decimal_places=2)
    max_score = models.DecimalField(max_digits=10, decimal_places=2)
    percentage = models.DecimalField(max_digits=5, decimal_places=2)
    answers = models.JSONField(default=dict, blank=True)
    answers_by_id = models.JSONField(default=dict, blank=True)
    question_order = models.JSONField(default=list, blank=True)
    time_taken = models.PositiveIntegerField(null=True, blank=True, help_text='Seconds')
    started_at = models.DateTimeField(null=True, blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    is_completed = models.BooleanField(default=False)
    caught_cheating = models.BooleanField(default=False)
    visibility_change_times = models.PositiveIntegerField(default=0)
    academic_period_id = models.PositiveIntegerField(null=True, blank=True)
    grade = models.CharField(max_length=20, blank=True, null=True)
    class_name = models.PositiveIntegerField(null=True, blank=True, help_text='"1/15" is stored as 15')
    number = models.PositiveIntegerField(null=True, blank=True)
    name = models.CharField(max_length=100, blank=True)
    surname = models.CharField(max_length=100, blank=True)
    nickname = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True


class TestAttempt(SubmissionFields):
    """Numbered retest attempt; test_id is the parent (original) test id."""
    student = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='test_attempts',
        limit_choices_to={'role': 'student'},
    )
    test_id = models.PositiveIntegerField()
    attempt_number = models.PositiveIntegerField()
    retest_assignment = models.ForeignKey(
        RetestAssignment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='attempts',
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'test_attempts'
        verbose_name = 'Test Attempt'
        verbose_name_plural = 'Test Attempts'
        ordering = ['student', 'test_id', 'attempt_number']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'test_id', 'attempt_number'],
                name='uniq_attempt_student_test_number',
            ),
        ]
        indexes = [
            models.Index(fields=['retest_assignment', 'student'], name='attempt_retest_student_idx'),
        ]

    def __str__(self):
        return f"Student {self.student_id} test {self.test_id} attempt {self.attempt_number}"


class TestResult(SubmissionFields):
    """
    Plain (non-retest) result row, always "attempt 1".
    best_retest_* columns are maintained by update_best_retest_values for the dashboard.
    """
    student = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='test_results',
        limit_choices_to={'role': 'student'},
    )
    test_id = models.PositiveIntegerField()
    retest_offered = models.BooleanField(default=False)
    retest_assignment = models.ForeignKey(
        RetestAssignment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='original_results',
    )
    best_retest_score = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    best_retest_max_score = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    best_retest_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    best_retest_attempt_number = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        db_table = 'test_results'
        verbose_name = 'Test Result'
        verbose_name_plural = 'Test Results'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['student', 'test_id'], name='result_student_test_idx'),
            models.Index(fields=['test_type', 'test_id'], name='result_type_test_idx'),
        ]

    def __str__(self):
        return f"{self.test_name} - student {self.student_id} - {self.score}/{self.max_score}"
