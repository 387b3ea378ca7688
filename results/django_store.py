"""ORM-backed ResultStore."""
import logging
from contextlib import contextmanager

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from academics.models import ClassRoom, StudentProfile, Subject

from .domain import Candidate, ExamRecord, MarksConfiguration, Result, Schedule
from .exceptions import ConflictError, ExamNotFoundError
from .models import ExamCandidate, Examination, ExamResult
from .store import ExamLocks, ResultStore, StudentEntry

logger = logging.getLogger(__name__)

# One registry per process: threads of the same worker queue here before
# taking the row lock.
_exam_locks = ExamLocks()


def to_record(exam):
    """Build an ExamRecord from an Examination with prefetched children"""
    candidates = [
        Candidate(c.student_id, c.roll_number, c.attendance_status, c.registered_at)
        for c in exam.candidates.all()
    ]
    results = [
        Result(
            r.student_id,
            r.marks_obtained,
            r.percentage,
            r.grade,
            r.gpa,
            remarks=r.remarks,
            submitted_by=r.submitted_by_id,
            submitted_at=r.submitted_at,
            verified=r.verified,
            verified_by=r.verified_by_id,
            verified_at=r.verified_at,
            moderated=r.moderated,
            original_marks=r.original_marks,
            moderation_reason=r.moderation_reason,
            moderated_by=r.moderated_by_id,
            moderated_at=r.moderated_at,
        )
        for r in exam.results.all()
    ]
    return ExamRecord(
        id=exam.pk,
        exam_code=exam.exam_code,
        school_id=exam.school_id,
        session_id=exam.session_id,
        name=exam.name,
        subject_id=exam.subject_id,
        class_id=exam.classroom_id,
        section_id=exam.section_id,
        exam_type=exam.exam_type,
        schedule=Schedule(exam.start_at, exam.end_at, exam.duration_minutes),
        marks=MarksConfiguration(exam.full_marks, exam.pass_marks, exam.grading_scale, exam.grade_bands),
        status=exam.status,
        candidates=candidates,
        results=results,
        created_by=exam.created_by_id,
        published_by=exam.published_by_id,
        published_at=exam.published_at,
        version=exam.version,
    )


def exam_fields(record):
    return {
        'exam_code': record.exam_code,
        'school_id': record.school_id,
        'session_id': record.session_id,
        'name': record.name,
        'subject_id': record.subject_id,
        'classroom_id': record.class_id,
        'section_id': record.section_id,
        'exam_type': record.exam_type,
        'start_at': record.schedule.start,
        'end_at': record.schedule.end,
        'duration_minutes': record.schedule.duration_minutes,
        'full_marks': record.marks.full_marks,
        'pass_marks': record.marks.pass_marks,
        'grading_scale': record.marks.grading_scale,
        'grade_bands': [band.as_dict() for band in record.marks.bands],
        'status': record.status,
        'statistics': record.statistics.as_dict(),
        'created_by_id': record.created_by,
        'published_by_id': record.published_by,
        'published_at': record.published_at,
    }


class DjangoResultStore(ResultStore):

    def _queryset(self):
        return Examination.objects.prefetch_related('candidates', 'results')

    def find_exam(self, exam_id):
        try:
            exam = self._queryset().get(pk=exam_id)
        except Examination.DoesNotExist:
            raise ExamNotFoundError(exam_id=exam_id)
        return to_record(exam)

    def find_exams_by(self, exam_filter):
        qs = Examination.objects.filter(school_id=exam_filter.school_id)
        if exam_filter.class_id is not None:
            qs = qs.filter(classroom_id=exam_filter.class_id)
        if exam_filter.section_id is not None:
            qs = qs.filter(section_id=exam_filter.section_id)
        if exam_filter.exam_id is not None:
            qs = qs.filter(pk=exam_filter.exam_id)
        if exam_filter.session_id is not None:
            qs = qs.filter(session_id=exam_filter.session_id)
        if exam_filter.exam_type is not None:
            qs = qs.filter(exam_type=exam_filter.exam_type)
        if exam_filter.student_id is not None:
            qs = qs.filter(results__student_id=exam_filter.student_id).distinct()
        return [to_record(exam) for exam in qs.prefetch_related('candidates', 'results')]

    def save_exam(self, record):
        fields = exam_fields(record)
        created = record.id is None
        try:
            with transaction.atomic():
                if created:
                    exam = Examination.objects.create(version=1, **fields)
                    record.id = exam.pk
                else:
                    updated = Examination.objects.filter(pk=record.id, version=record.version).update(
                        version=F('version') + 1, updated_at=timezone.now(), **fields
                    )
                    if not updated:
                        if not Examination.objects.filter(pk=record.id).exists():
                            raise ExamNotFoundError(exam_id=record.id)
                        raise ConflictError(
                            f'Exam {record.id} changed since version {record.version}',
                            exam_id=record.id, value=record.version,
                        )
                self._sync_candidates(record)
                self._sync_results(record)
        except IntegrityError as exc:
            if created:
                record.id = None
            raise ConflictError(
                f'Could not save exam {record.exam_code}: {exc}',
                exam_id=record.id, value=record.exam_code,
            ) from exc

        record.version = 1 if created else record.version + 1
        logger.debug(f'Saved exam {record.id} ({record.exam_code}) at version {record.version}')
        return self.find_exam(record.id)

    def _sync_candidates(self, record):
        ExamCandidate.objects.filter(examination_id=record.id).exclude(
            student_id__in=list(record.candidates)
        ).delete()
        for candidate in record.candidates.values():
            ExamCandidate.objects.update_or_create(
                examination_id=record.id,
                student_id=candidate.student_id,
                defaults={
                    'roll_number': candidate.roll_number,
                    'attendance_status': candidate.attendance,
                    'registered_at': candidate.registered_at,
                },
            )

    def _sync_results(self, record):
        ExamResult.objects.filter(examination_id=record.id).exclude(
            student_id__in=list(record.results)
        ).delete()
        for result in record.results.values():
            ExamResult.objects.update_or_create(
                examination_id=record.id,
                student_id=result.student_id,
                defaults={
                    'marks_obtained': result.marks_obtained,
                    'percentage': result.percentage,
                    'grade': result.grade or '',
                    'gpa': result.gpa,
                    'remarks': result.remarks,
                    'submitted_by_id': result.submitted_by,
                    'submitted_at': result.submitted_at,
                    'verified': result.verified,
                    'verified_by_id': result.verified_by,
                    'verified_at': result.verified_at,
                    'moderated': result.moderated,
                    'original_marks': result.original_marks,
                    'moderation_reason': result.moderation_reason,
                    'moderated_by_id': result.moderated_by,
                    'moderated_at': result.moderated_at,
                },
            )

    @contextmanager
    def lock(self, exam_id):
        with _exam_locks.hold(exam_id):
            with transaction.atomic():
                # row lock for writers in other processes
                list(Examination.objects.select_for_update().filter(pk=exam_id).values_list('pk', flat=True))
                yield

    def subject_names(self, subject_ids):
        return dict(Subject.objects.filter(pk__in=subject_ids).values_list('id', 'name'))

    def class_names(self, class_ids):
        return dict(ClassRoom.objects.filter(pk__in=class_ids).values_list('id', 'name'))

    def student_directory(self, student_ids):
        students = StudentProfile.objects.filter(pk__in=student_ids).select_related('user')
        return {
            s.pk: StudentEntry(s.display_name, s.roll_number or '')
            for s in students
        }
