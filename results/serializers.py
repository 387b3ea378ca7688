from decimal import Decimal

from rest_framework import serializers
from schools.models import School
from academics.models import AcademicSession, ClassRoom, Section, Subject, StudentProfile
from .models import Examination, ExamCandidate, ExamResult
from . import domain, grading


class GradeBandSerializer(serializers.Serializer):
    grade = serializers.CharField(max_length=20)
    min_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100)
    max_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100)
    gpa = serializers.DecimalField(max_digits=4, decimal_places=2, required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['min_percentage'] > attrs['max_percentage']:
            raise serializers.ValidationError('min_percentage must not exceed max_percentage')
        return attrs


class ExaminationSerializer(serializers.ModelSerializer):
    classroom_name = serializers.CharField(source='classroom.name', read_only=True)
    section_name = serializers.CharField(source='section.name', read_only=True)
    subject_name = serializers.CharField(source='subject.name', read_only=True)
    session_name = serializers.CharField(source='session.name', read_only=True)

    class Meta:
        model = Examination
        fields = [
            'id', 'school', 'session', 'session_name', 'name', 'exam_code', 'exam_type',
            'classroom', 'classroom_name', 'section', 'section_name', 'subject', 'subject_name',
            'start_at', 'end_at', 'duration_minutes', 'full_marks', 'pass_marks',
            'grading_scale', 'grade_bands', 'status', 'statistics',
            'published_by', 'published_at', 'version',
        ]
        read_only_fields = fields


class ExamCreateSerializer(serializers.Serializer):
    exam_code = serializers.CharField(max_length=50)
    school = serializers.PrimaryKeyRelatedField(queryset=School.objects.all())
    session = serializers.PrimaryKeyRelatedField(queryset=AcademicSession.objects.all())
    name = serializers.CharField(max_length=200)
    subject = serializers.PrimaryKeyRelatedField(queryset=Subject.objects.all())
    classroom = serializers.PrimaryKeyRelatedField(queryset=ClassRoom.objects.all())
    section = serializers.PrimaryKeyRelatedField(queryset=Section.objects.all(), required=False, allow_null=True)
    exam_type = serializers.ChoiceField(choices=domain.EXAM_TYPES)
    start_at = serializers.DateTimeField()
    end_at = serializers.DateTimeField()
    duration_minutes = serializers.IntegerField(min_value=1)
    full_marks = serializers.DecimalField(max_digits=7, decimal_places=2, min_value=Decimal('0.01'))
    pass_marks = serializers.DecimalField(max_digits=7, decimal_places=2, min_value=0)
    grading_scale = serializers.ChoiceField(choices=domain.GRADING_SCALES, required=False)
    grade_bands = GradeBandSerializer(many=True, required=False)

    def validate(self, attrs):
        if attrs['pass_marks'] > attrs['full_marks']:
            raise serializers.ValidationError({'pass_marks': 'Pass marks cannot exceed full marks'})
        if attrs['end_at'] < attrs['start_at']:
            raise serializers.ValidationError({'end_at': 'Exam cannot end before it starts'})
        if attrs.get('grading_scale') == grading.CUSTOM and not attrs.get('grade_bands'):
            raise serializers.ValidationError({'grade_bands': 'Custom grading needs a band table'})
        if Examination.objects.filter(exam_code=attrs['exam_code']).exists():
            raise serializers.ValidationError({'exam_code': 'Exam code already in use'})
        return attrs


class CandidateModelSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source='student.display_name', read_only=True)

    class Meta:
        model = ExamCandidate
        fields = ['id', 'examination', 'student', 'student_name', 'roll_number', 'attendance_status', 'registered_at']


class ExamResultModelSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source='student.display_name', read_only=True)
    exam_code = serializers.CharField(source='examination.exam_code', read_only=True)
    is_passed = serializers.BooleanField(read_only=True)

    class Meta:
        model = ExamResult
        fields = [
            'id', 'examination', 'exam_code', 'student', 'student_name', 'marks_obtained',
            'percentage', 'grade', 'gpa', 'is_passed', 'remarks', 'submitted_by', 'submitted_at',
            'verified', 'verified_by', 'verified_at', 'moderated', 'original_marks',
            'moderation_reason', 'moderated_by', 'moderated_at',
        ]


# Domain objects (ExamRecord values) rendered for responses

class CandidateSerializer(serializers.Serializer):
    student_id = serializers.IntegerField()
    roll_number = serializers.CharField()
    attendance = serializers.CharField()
    registered_at = serializers.DateTimeField()


class ResultSerializer(serializers.Serializer):
    student_id = serializers.IntegerField()
    marks_obtained = serializers.DecimalField(max_digits=7, decimal_places=2)
    percentage = serializers.DecimalField(max_digits=5, decimal_places=2)
    grade = serializers.CharField()
    gpa = serializers.DecimalField(max_digits=4, decimal_places=2, allow_null=True)
    remarks = serializers.CharField(allow_blank=True)
    submitted_by = serializers.IntegerField(allow_null=True)
    submitted_at = serializers.DateTimeField(allow_null=True)
    verified = serializers.BooleanField()
    verified_by = serializers.IntegerField(allow_null=True)
    verified_at = serializers.DateTimeField(allow_null=True)
    moderated = serializers.BooleanField()
    original_marks = serializers.DecimalField(max_digits=7, decimal_places=2, allow_null=True)
    moderation_reason = serializers.CharField(allow_blank=True)
    moderated_by = serializers.IntegerField(allow_null=True)
    moderated_at = serializers.DateTimeField(allow_null=True)


# Request payloads

class RegisterCandidateSerializer(serializers.Serializer):
    student = serializers.PrimaryKeyRelatedField(queryset=StudentProfile.objects.all())
    roll_number = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')


class AttendanceSerializer(serializers.Serializer):
    student = serializers.IntegerField()
    attendance = serializers.ChoiceField(choices=domain.ATTENDANCE_STATUSES)


class StatusSerializer(serializers.Serializer):
    STATUS_CHOICES = [
        (value, label) for value, label in domain.EXAM_STATUSES
        if value not in (domain.DRAFT, domain.PUBLISHED)
    ]
    status = serializers.ChoiceField(choices=STATUS_CHOICES)


class SubmitResultSerializer(serializers.Serializer):
    student = serializers.IntegerField()
    marks_obtained = serializers.DecimalField(max_digits=7, decimal_places=2)
    remarks = serializers.CharField(required=False, allow_blank=True, default='')


class BulkSubmitSerializer(serializers.Serializer):
    results = SubmitResultSerializer(many=True, allow_empty=False)


class ModerateResultSerializer(serializers.Serializer):
    student = serializers.IntegerField()
    marks_obtained = serializers.DecimalField(max_digits=7, decimal_places=2)
    reason = serializers.CharField()


class VerifyResultSerializer(serializers.Serializer):
    student = serializers.IntegerField()


class PublishSerializer(serializers.Serializer):
    allow_early = serializers.BooleanField(required=False, default=False)
