from django.db import models
from django.conf import settings
from schools.models import School
from academics.models import AcademicSession, ClassRoom, Section, Subject, StudentProfile

from . import domain

User = settings.AUTH_USER_MODEL


class Examination(models.Model):
    """One exam of one subject for a class (and optionally a section)"""
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='examinations')
    session = models.ForeignKey(AcademicSession, on_delete=models.CASCADE, related_name='examinations')
    name = models.CharField(max_length=200)
    exam_code = models.CharField(max_length=50, unique=True)
    exam_type = models.CharField(max_length=20, choices=domain.EXAM_TYPES)
    classroom = models.ForeignKey(ClassRoom, on_delete=models.CASCADE, related_name='examinations')
    section = models.ForeignKey(Section, on_delete=models.SET_NULL, null=True, blank=True, related_name='examinations')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='examinations')

    # Schedule
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField()

    # Marks configuration
    full_marks = models.DecimalField(max_digits=7, decimal_places=2, default=100)
    pass_marks = models.DecimalField(max_digits=7, decimal_places=2, default=33)
    grading_scale = models.CharField(max_length=20, choices=domain.GRADING_SCALES, default='gpa_5')
    grade_bands = models.JSONField(default=list, blank=True)

    status = models.CharField(max_length=20, choices=domain.EXAM_STATUSES, default=domain.DRAFT)

    # Snapshot of the last recomputation, written on every save
    statistics = models.JSONField(default=dict, blank=True)

    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_examinations')
    published_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='published_examinations')
    published_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-start_at', 'name']
        indexes = [
            models.Index(fields=['school', 'session'], name='results_exam_school_sess_idx'),
            models.Index(fields=['school', 'classroom', 'subject'], name='results_exam_class_subj_idx'),
            models.Index(fields=['school', 'exam_type', 'status'], name='results_exam_type_status_idx'),
            models.Index(fields=['school', 'start_at', 'end_at'], name='results_exam_window_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.exam_code})"


class ExamCandidate(models.Model):
    """A student registered to sit an examination"""
    examination = models.ForeignKey(Examination, on_delete=models.CASCADE, related_name='candidates')
    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name='exam_registrations')
    roll_number = models.CharField(max_length=50, blank=True)
    attendance_status = models.CharField(max_length=20, choices=domain.ATTENDANCE_STATUSES, default=domain.PENDING)
    registered_at = models.DateTimeField()

    class Meta:
        unique_together = ('examination', 'student')
        ordering = ['examination', 'roll_number']

    def __str__(self):
        return f"{self.student} - {self.examination.exam_code} ({self.attendance_status})"


class ExamResult(models.Model):
    """Individual student result in an examination"""
    examination = models.ForeignKey(Examination, on_delete=models.CASCADE, related_name='results')
    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name='exam_results')

    marks_obtained = models.DecimalField(max_digits=7, decimal_places=2)

    # Derived by the grading policy
    percentage = models.DecimalField(max_digits=5, decimal_places=2)
    grade = models.CharField(max_length=20, blank=True)
    gpa = models.DecimalField(max_digits=4, decimal_places=2, null=True, blank=True)

    remarks = models.TextField(blank=True)

    submitted_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='submitted_results')
    submitted_at = models.DateTimeField(null=True, blank=True)

    verified = models.BooleanField(default=False)
    verified_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='verified_results')
    verified_at = models.DateTimeField(null=True, blank=True)

    moderated = models.BooleanField(default=False)
    original_marks = models.DecimalField(max_digits=7, decimal_places=2, null=True, blank=True)
    moderation_reason = models.TextField(blank=True)
    moderated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='moderated_results')
    moderated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        unique_together = ('examination', 'student')
        ordering = ['examination', 'student']
        indexes = [
            models.Index(fields=['student'], name='results_result_student_idx'),
        ]

    @property
    def is_passed(self):
        return self.marks_obtained >= self.examination.pass_marks

    def __str__(self):
        return f"{self.student} - {self.examination.exam_code} - {self.grade}"
