from django.contrib import admin, messages
from django.db.models import F
from .models import Examination, ExamCandidate, ExamResult
from .exceptions import ExamError
from .services import ExamService

# Fixed once an exam exists; status and marks change through ExamService
LOCKED_EXAM_FIELDS = ['status', 'full_marks', 'pass_marks', 'grading_scale', 'grade_bands']


class ExamCandidateInline(admin.TabularInline):
    model = ExamCandidate
    extra = 0
    fields = ['student', 'roll_number', 'attendance_status', 'registered_at']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class ExamResultInline(admin.TabularInline):
    model = ExamResult
    extra = 0
    fields = ['student', 'marks_obtained', 'percentage', 'grade', 'gpa', 'verified', 'moderated']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Examination)
class ExaminationAdmin(admin.ModelAdmin):
    list_display = ['id', 'exam_code', 'name', 'exam_type', 'school', 'classroom', 'section', 'subject', 'start_at', 'status', 'pass_rate']
    list_filter = ['school', 'exam_type', 'status', 'grading_scale', 'classroom']
    search_fields = ['name', 'exam_code']
    date_hierarchy = 'start_at'
    readonly_fields = ['status', 'statistics', 'version', 'published_by', 'published_at', 'created_at', 'updated_at']
    inlines = [ExamCandidateInline, ExamResultInline]
    actions = ['recompute_statistics']

    def get_readonly_fields(self, request, obj=None):
        fields = list(super().get_readonly_fields(request, obj))
        if obj is not None:
            fields += [f for f in LOCKED_EXAM_FIELDS if f not in fields]
        return fields

    def save_model(self, request, obj, form, change):
        if not change:
            super().save_model(request, obj, form, change)
            return
        # edited columns only, with a version bump
        obj.version = F('version') + 1
        obj.save(update_fields=[*form.changed_data, 'version', 'updated_at'])
        obj.refresh_from_db(fields=['version'])

    def pass_rate(self, obj):
        if not obj.statistics.get('total_appeared'):
            return '-'
        return f"{obj.statistics.get('pass_percentage', 0)}%"
    pass_rate.short_description = 'Pass %'

    @admin.action(description='Recompute statistics for selected exams')
    def recompute_statistics(self, request, queryset):
        service = ExamService()
        done = 0
        for exam in queryset:
            try:
                service.recompute_statistics(exam.pk)
                done += 1
            except ExamError as exc:
                messages.warning(request, f"{exam.exam_code}: {exc.message}")
        messages.success(request, f"Statistics recomputed for {done} exam(s)")


@admin.register(ExamCandidate)
class ExamCandidateAdmin(admin.ModelAdmin):
    list_display = ['id', 'examination', 'student', 'roll_number', 'attendance_status', 'registered_at']
    list_filter = ['attendance_status', 'examination']
    search_fields = ['student__user__first_name', 'student__user__last_name', 'roll_number']

    # Registration and attendance go through the service; view only here
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ExamResult)
class ExamResultAdmin(admin.ModelAdmin):
    list_display = ['id', 'examination', 'student_name', 'marks_obtained', 'percentage', 'grade', 'gpa', 'is_passed', 'verified', 'moderated']
    list_filter = ['examination', 'grade', 'verified', 'moderated']
    search_fields = ['student__user__first_name', 'student__user__last_name', 'student__roll_number']
    # Marks change through the service so grade and statistics stay in step
    readonly_fields = [
        'examination', 'student', 'marks_obtained', 'percentage', 'grade', 'gpa',
        'submitted_by', 'submitted_at', 'verified', 'verified_by', 'verified_at',
        'moderated', 'original_marks', 'moderation_reason', 'moderated_by', 'moderated_at',
    ]

    def student_name(self, obj):
        return obj.student.display_name
    student_name.short_description = 'Student'

    def is_passed(self, obj):
        return obj.is_passed
    is_passed.boolean = True

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
