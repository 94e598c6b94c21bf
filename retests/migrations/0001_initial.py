# Initial schema: retest assignments, per-student targets, numbered attempts, plain results

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


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


def submission_fields():
    return [
        ('test_type', models.CharField(choices=TEST_TYPE_CHOICES, max_length=30)),
        ('test_name', models.CharField(max_length=255)),
        ('teacher_id', models.CharField(max_length=64)),
        ('subject_id', models.PositiveIntegerField()),
        ('score', models.DecimalField(decimal_places=2, max_digits=10)),
        ('max_score', models.DecimalField(decimal_places=2, max_digits=10)),
        ('percentage', models.DecimalField(decimal_places=2, max_digits=5)),
        ('answers', models.JSONField(blank=True, default=dict)),
        ('answers_by_id', models.JSONField(blank=True, default=dict)),
        ('question_order', models.JSONField(blank=True, default=list)),
        ('time_taken', models.PositiveIntegerField(blank=True, help_text='Seconds', null=True)),
        ('started_at', models.DateTimeField(blank=True, null=True)),
        ('submitted_at', models.DateTimeField(blank=True, null=True)),
        ('is_completed', models.BooleanField(default=False)),
        ('caught_cheating', models.BooleanField(default=False)),
        ('visibility_change_times', models.PositiveIntegerField(default=0)),
        ('academic_period_id', models.PositiveIntegerField(blank=True, null=True)),
        ('grade', models.CharField(blank=True, max_length=20, null=True)),
        ('class_name', models.PositiveIntegerField(blank=True, help_text='"1/15" is stored as 15', null=True)),
        ('number', models.PositiveIntegerField(blank=True, null=True)),
        ('name', models.CharField(blank=True, max_length=100)),
        ('surname', models.CharField(blank=True, max_length=100)),
        ('nickname', models.CharField(blank=True, max_length=100)),
        ('created_at', models.DateTimeField(auto_now_add=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='RetestAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('test_type', models.CharField(choices=TEST_TYPE_CHOICES, max_length=30)),
                ('original_test_id', models.PositiveIntegerField(db_index=True)),
                ('subject_id', models.PositiveIntegerField()),
                ('grade', models.CharField(blank=True, max_length=20, null=True)),
                ('class_name', models.CharField(blank=True, max_length=20, null=True)),
                ('passing_threshold', models.DecimalField(decimal_places=2, default=50, max_digits=5)),
                ('scoring_policy', models.CharField(choices=[('BEST', 'Best attempt')], default='BEST', max_length=20)),
                ('max_attempts', models.PositiveIntegerField(default=1)),
                ('window_start', models.DateTimeField()),
                ('window_end', models.DateTimeField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('teacher', models.ForeignKey(db_column='teacher_id', limit_choices_to={'role': 'teacher'}, on_delete=django.db.models.deletion.CASCADE, related_name='retest_assignments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Retest Assignment',
                'verbose_name_plural': 'Retest Assignments',
                'db_table': 'retest_assignments',
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['teacher', 'created_at'], name='retest_teacher_created_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('window_end__gte', models.F('window_start'))), name='retest_window_end_after_start'),
                    models.CheckConstraint(condition=models.Q(('max_attempts__gte', 1)), name='retest_max_attempts_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RetestTarget',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('max_attempts', models.PositiveIntegerField(blank=True, help_text='Per-student override; assignment.max_attempts when empty', null=True)),
                ('attempt_number', models.PositiveIntegerField(default=0)),
                ('is_completed', models.BooleanField(db_index=True, default=False)),
                ('passed', models.BooleanField(default=False)),
                ('status', models.CharField(choices=[('IN_PROGRESS', 'In Progress'), ('PASSED', 'Passed'), ('FAILED', 'Failed')], db_index=True, default='IN_PROGRESS', max_length=20)),
                ('last_attempt_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('retest_assignment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='targets', to='retests.retestassignment')),
                ('student', models.ForeignKey(limit_choices_to={'role': 'student'}, on_delete=django.db.models.deletion.CASCADE, related_name='retest_targets', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Retest Target',
                'verbose_name_plural': 'Retest Targets',
                'db_table': 'retest_targets',
                'unique_together': {('retest_assignment', 'student')},
                'indexes': [models.Index(fields=['student', 'is_completed'], name='retest_tgt_student_done_idx')],
            },
        ),
        migrations.CreateModel(
            name='TestAttempt',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                *submission_fields(),
                ('test_id', models.PositiveIntegerField()),
                ('attempt_number', models.PositiveIntegerField()),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('retest_assignment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='attempts', to='retests.retestassignment')),
                ('student', models.ForeignKey(limit_choices_to={'role': 'student'}, on_delete=django.db.models.deletion.CASCADE, related_name='test_attempts', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Test Attempt',
                'verbose_name_plural': 'Test Attempts',
                'db_table': 'test_attempts',
                'ordering': ['student', 'test_id', 'attempt_number'],
                'indexes': [models.Index(fields=['retest_assignment', 'student'], name='attempt_retest_student_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('student', 'test_id', 'attempt_number'), name='uniq_attempt_student_test_number'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TestResult',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                *submission_fields(),
                ('test_id', models.PositiveIntegerField()),
                ('retest_offered', models.BooleanField(default=False)),
                ('best_retest_score', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('best_retest_max_score', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('best_retest_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('best_retest_attempt_number', models.PositiveIntegerField(blank=True, null=True)),
                ('retest_assignment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='original_results', to='retests.retestassignment')),
                ('student', models.ForeignKey(limit_choices_to={'role': 'student'}, on_delete=django.db.models.deletion.CASCADE, related_name='test_results', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Test Result',
                'verbose_name_plural': 'Test Results',
                'db_table': 'test_results',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['student', 'test_id'], name='result_student_test_idx'),
                    models.Index(fields=['test_type', 'test_id'], name='result_type_test_idx'),
                ],
            },
        ),
    ]
