from django.db import models
from django.conf import settings
from schools.models import School

# Swappable user model
User = settings.AUTH_USER_MODEL


class AcademicSession(models.Model):
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='sessions')
    name = models.CharField(max_length=50)  # e.g., 2025-2026
    start_date = models.DateField()
    end_date = models.DateField()
    is_current = models.BooleanField(default=False)

    class Meta:
        unique_together = ('school', 'name')
        ordering = ['-start_date']
        indexes = [
            models.Index(fields=['school', 'is_current'], name='acad_session_school_cur_idx'),
        ]

    def __str__(self):
        return f"{self.school.name} - {self.name}"

class ClassRoom(models.Model):
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='classrooms')
    name = models.CharField(max_length=100)  # e.g., Grade 1
    description = models.TextField(blank=True, null=True)
    class Meta:
        unique_together = ('school', 'name')
        ordering = ['name']
        indexes = [
            models.Index(fields=['school', 'name'], name='acad_class_school_name_idx'),
            models.Index(fields=['school'], name='acad_class_school_idx'),
        ]

    def __str__(self):
        return f"{self.school.name} - {self.name}"

class Section(models.Model):
    classroom = models.ForeignKey(ClassRoom, on_delete=models.CASCADE, related_name='sections')
    name = models.CharField(max_length=50)  # e.g., A, B

    class Meta:
        unique_together = ('classroom', 'name')

    def __str__(self):
        return f"{self.classroom.name} - {self.name}"

class Subject(models.Model):
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='subjects')
    name = models.CharField(max_length=100)
    code = models.CharField(max_length=20, blank=True, null=True)

    class Meta:
        unique_together = ('school', 'name')
        indexes = [
            models.Index(fields=['school', 'name'], name='acad_subject_school_name_idx'),
            models.Index(fields=['school'], name='acad_subject_school_idx'),
        ]

    def __str__(self):
        return self.name

class StudentProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='student_profile')
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='students')
    classroom = models.ForeignKey(ClassRoom, on_delete=models.SET_NULL, null=True, blank=True, related_name='students')
    section = models.ForeignKey(Section, on_delete=models.SET_NULL, null=True, blank=True, related_name='students')
    roll_number = models.CharField(max_length=50, blank=True, null=True)

    @property
    def display_name(self):
        return self.user.get_full_name() or self.user.username

    def __str__(self):
        return f"{self.display_name} ({self.school.name})"

    class Meta:
        indexes = [
            models.Index(fields=['school'], name='acad_student_school_idx'),
            models.Index(fields=['classroom'], name='acad_student_class_idx'),
            models.Index(fields=['section'], name='acad_student_section_idx'),
            models.Index(fields=['school', 'classroom'], name='acad_student_school_class_idx'),
        ]
