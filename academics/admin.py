from django.contrib import admin
from .models import AcademicSession, ClassRoom, Section, Subject, StudentProfile


@admin.register(AcademicSession)
class AcademicSessionAdmin(admin.ModelAdmin):
    list_display = ['id', 'school', 'name', 'start_date', 'end_date', 'is_current']
    list_filter = ['school', 'is_current']


@admin.register(ClassRoom)
class ClassRoomAdmin(admin.ModelAdmin):
    list_display = ['id', 'school', 'name']
    search_fields = ['name']


@admin.register(Section)
class SectionAdmin(admin.ModelAdmin):
    list_display = ['id', 'classroom', 'name']


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ['id', 'school', 'name', 'code']
    search_fields = ['name', 'code']


@admin.register(StudentProfile)
class StudentProfileAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'school', 'classroom', 'section', 'roll_number']
    list_filter = ['school', 'classroom']
    search_fields = ['user__username', 'user__first_name', 'roll_number']
