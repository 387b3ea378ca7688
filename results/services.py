"""
Service boundary for exam results.

Every mutation follows the same path: take the exam's lock, load the
record, apply one domain operation, save with the version check. The
caller is assumed to be authenticated and authorised already.
"""
import logging

from django.conf import settings

from .domain import new_exam
from .exceptions import ExamError, ExamPublishedError
from .transcripts import TranscriptAggregator

logger = logging.getLogger(__name__)


def _setting(name, default):
    return getattr(settings, name, default)


class ExamService:

    def __init__(self, store=None):
        if store is None:
            from .django_store import DjangoResultStore
            store = DjangoResultStore()
        self.store = store
        self.transcripts = TranscriptAggregator(store)

    def _mutate(self, exam_id, action, operation, **context):
        """Run ``operation(record)`` under the exam lock and persist the record"""
        with self.store.lock(exam_id):
            record = self.store.find_exam(exam_id)
            try:
                outcome = operation(record)
            except ExamError as exc:
                logger.warning(f'{action} rejected for exam {exam_id} {context}: {exc.message}')
                raise
            saved = self.store.save_exam(record)
        logger.info(f'{action} on exam {exam_id} {context} (version {saved.version})')
        return saved, outcome

    # exams

    def create_exam(self, exam_code, school_id, session_id, name, subject_id, class_id,
                    exam_type, start, end, duration_minutes, full_marks, pass_marks,
                    grading_scale=None, bands=None, section_id=None, created_by=None):
        record = new_exam(
            exam_code, school_id, session_id, name, subject_id, class_id, exam_type,
            start, end, duration_minutes, full_marks, pass_marks,
            grading_scale=grading_scale or _setting('RESULTS_DEFAULT_GRADING_SCALE', 'gpa_5'),
            bands=bands,
            section_id=section_id,
            created_by=created_by,
        )
        saved = self.store.save_exam(record)
        logger.info(f'Created exam {saved.id} ({saved.exam_code})')
        return saved

    def get_exam(self, exam_id):
        return self.store.find_exam(exam_id)

    def change_status(self, exam_id, new_status):
        saved, _ = self._mutate(
            exam_id, 'Status change', lambda record: record.transition(new_status),
            status=new_status,
        )
        return saved

    def publish_exam(self, exam_id, published_by=None, allow_early=False):
        early = allow_early and _setting('RESULTS_ALLOW_EARLY_PUBLICATION', False)
        require_verification = _setting('RESULTS_REQUIRE_VERIFICATION', False)
        saved, _ = self._mutate(
            exam_id, 'Publish',
            lambda record: record.publish(published_by, early, require_verification),
            published_by=published_by,
        )
        return saved

    # candidates

    def register_candidate(self, exam_id, student_id, roll_number=''):
        _, candidate = self._mutate(
            exam_id, 'Registration',
            lambda record: record.register(student_id, roll_number),
            student=student_id,
        )
        return candidate

    def set_attendance(self, exam_id, student_id, attendance):
        _, candidate = self._mutate(
            exam_id, 'Attendance',
            lambda record: record.set_attendance(student_id, attendance),
            student=student_id, attendance=attendance,
        )
        return candidate

    # results

    def submit_result(self, exam_id, student_id, marks_obtained, submitted_by=None, remarks=''):
        _, result = self._mutate(
            exam_id, 'Result submission',
            lambda record: record.submit_result(student_id, marks_obtained, submitted_by, remarks),
            student=student_id,
        )
        return result

    def bulk_submit_results(self, exam_id, entries, submitted_by=None):
        """
        Submit many results in one write. ``entries`` are dicts with
        ``student_id``, ``marks_obtained`` and optional ``remarks``. A bad
        entry is reported and skipped; the rest are still saved.
        """
        def apply(record):
            if record.is_published:
                raise ExamPublishedError(exam_id=record.id)
            saved = []
            errors = []
            for idx, entry in enumerate(entries):
                student_id = entry.get('student_id')
                try:
                    saved.append(record.submit_result(
                        student_id, entry.get('marks_obtained'), submitted_by, entry.get('remarks', ''),
                    ))
                except ExamError as exc:
                    errors.append({'index': idx, 'student_id': student_id, 'error': exc.message})
            return saved, errors

        _, (saved, errors) = self._mutate(
            exam_id, 'Bulk result submission', apply, count=len(entries),
        )
        if errors:
            logger.warning(f'Bulk submission on exam {exam_id} skipped {len(errors)} entries')
        return saved, errors

    def moderate_result(self, exam_id, student_id, new_marks, moderated_by=None, reason=''):
        _, result = self._mutate(
            exam_id, 'Moderation',
            lambda record: record.moderate_result(student_id, new_marks, moderated_by, reason),
            student=student_id,
        )
        return result

    def verify_result(self, exam_id, student_id, verified_by=None):
        _, result = self._mutate(
            exam_id, 'Verification',
            lambda record: record.verify_result(student_id, verified_by),
            student=student_id,
        )
        return result

    # statistics

    def get_statistics(self, exam_id):
        return self.store.find_exam(exam_id).statistics

    def recompute_statistics(self, exam_id):
        saved, _ = self._mutate(
            exam_id, 'Statistics recompute', lambda record: record.recompute_statistics(),
        )
        return saved.statistics

    def ranking(self, exam_id):
        return self.store.find_exam(exam_id).ranked_results()

    # cross-exam reports

    def student_transcript(self, school_id, student_id, session_id=None, exam_type=None):
        return self.transcripts.student_exam_results(school_id, student_id, session_id, exam_type)

    def student_gpa(self, school_id, student_id, session_id=None):
        return self.transcripts.student_gpa(school_id, student_id, session_id)

    def class_result_sheet(self, school_id, class_id, section_id=None, exam_id=None):
        return self.transcripts.class_exam_results(school_id, class_id, section_id, exam_id)

    def class_merit_list(self, school_id, class_id, session_id=None, exam_type=None, section_id=None):
        return self.transcripts.class_merit_list(school_id, class_id, session_id, exam_type, section_id)
