from datetime import datetime, timedelta, timezone
from decimal import Decimal

from django.test import SimpleTestCase

from results import domain
from results.domain import MarksConfiguration, Schedule, new_exam
from results.exceptions import (
    DuplicateRegistrationError,
    ExamPublishedError,
    InvalidMarksError,
    InvalidTransitionError,
    NotRegisteredError,
    ResultNotFoundError,
)

START = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_exam(**kwargs):
    options = {
        'exam_code': 'MATH-MID-8',
        'school_id': 1,
        'session_id': 1,
        'name': 'Midterm Mathematics',
        'subject_id': 10,
        'class_id': 20,
        'exam_type': 'midterm',
        'start': START,
        'end': START + timedelta(hours=3),
        'duration_minutes': 180,
        'full_marks': 100,
        'pass_marks': 40,
    }
    options.update(kwargs)
    return new_exam(**options)


def completed_exam(students=(1, 2, 3)):
    exam = make_exam()
    for sid in students:
        exam.register(sid, str(sid))
    exam.schedule_exam()
    exam.start()
    return exam


class ConfigurationTest(SimpleTestCase):

    def test_new_exam_is_empty_draft(self):
        exam = make_exam()
        self.assertEqual(exam.status, domain.DRAFT)
        self.assertIsNone(exam.id)
        self.assertEqual(exam.version, 0)
        self.assertEqual(exam.statistics.total_registered, 0)

    def test_marks_configuration_validation(self):
        with self.assertRaises(ValueError):
            MarksConfiguration(100, 120)
        with self.assertRaises(ValueError):
            MarksConfiguration(0, 0)
        with self.assertRaises(ValueError):
            MarksConfiguration(100, 33, 'letters')
        with self.assertRaises(ValueError):
            MarksConfiguration(100, 33, 'custom')
        with self.assertRaises(ValueError):
            MarksConfiguration('100.005', 33)

    def test_pass_percentage(self):
        self.assertEqual(MarksConfiguration(50, 17).pass_percentage, 34)

    def test_schedule(self):
        schedule = Schedule(START, START + timedelta(minutes=90), 90)
        self.assertEqual(schedule.duration_in_hours, Decimal('1.50'))
        self.assertTrue(schedule.is_active(START + timedelta(minutes=30)))
        self.assertFalse(schedule.is_active(START - timedelta(minutes=1)))
        with self.assertRaises(ValueError):
            Schedule(START, START - timedelta(hours=1), 60)

    def test_unknown_exam_type(self):
        with self.assertRaises(ValueError):
            make_exam(exam_type='olympiad')


class RegistrationTest(SimpleTestCase):

    def test_register_counts_toward_statistics(self):
        exam = make_exam()
        candidate = exam.register(7, '12')
        self.assertEqual(candidate.attendance, domain.PENDING)
        self.assertEqual(exam.statistics.total_registered, 1)

    def test_duplicate_registration(self):
        exam = make_exam()
        exam.register(7)
        with self.assertRaises(DuplicateRegistrationError) as ctx:
            exam.register(7)
        self.assertEqual(ctx.exception.student_id, 7)
        self.assertEqual(len(exam.candidates), 1)

    def test_set_attendance(self):
        exam = make_exam()
        exam.register(7)
        exam.set_attendance(7, domain.ABSENT)
        self.assertEqual(exam.candidates[7].attendance, domain.ABSENT)
        with self.assertRaises(NotRegisteredError):
            exam.set_attendance(8, domain.PRESENT)


class SubmitResultTest(SimpleTestCase):

    def test_submit_grades_and_marks_present(self):
        exam = completed_exam()
        result = exam.submit_result(1, 85, submitted_by=99, remarks='Well done')
        self.assertEqual(result.grade, 'A+')
        self.assertEqual(result.gpa, Decimal('5.00'))
        self.assertEqual(result.percentage, Decimal('85.00'))
        self.assertEqual(result.submitted_by, 99)
        self.assertEqual(exam.candidates[1].attendance, domain.PRESENT)
        self.assertEqual(exam.statistics.total_appeared, 1)

    def test_late_candidate_stays_late(self):
        exam = completed_exam()
        exam.set_attendance(2, domain.LATE)
        exam.submit_result(2, 50)
        self.assertEqual(exam.candidates[2].attendance, domain.LATE)

    def test_unregistered_student_leaves_state_unchanged(self):
        exam = completed_exam()
        exam.submit_result(1, 60)
        before = exam.statistics
        with self.assertRaises(NotRegisteredError):
            exam.submit_result(42, 60)
        self.assertNotIn(42, exam.results)
        self.assertEqual(exam.statistics, before)

    def test_invalid_marks_leave_state_unchanged(self):
        exam = completed_exam()
        with self.assertRaises(InvalidMarksError) as ctx:
            exam.submit_result(1, 101)
        self.assertEqual(ctx.exception.student_id, 1)
        self.assertEqual(exam.results, {})
        self.assertEqual(exam.candidates[1].attendance, domain.PENDING)

    def test_marks_beyond_two_places_rejected(self):
        exam = completed_exam()
        with self.assertRaises(InvalidMarksError) as ctx:
            exam.submit_result(1, '33.335')
        self.assertEqual(ctx.exception.student_id, 1)
        self.assertEqual(exam.results, {})

        result = exam.submit_result(1, '33.30')
        self.assertEqual(result.marks_obtained, Decimal('33.30'))
        with self.assertRaises(InvalidMarksError):
            exam.moderate_result(1, 40.125)
        self.assertEqual(exam.results[1].marks_obtained, Decimal('33.30'))

    def test_nan_marks_rejected(self):
        exam = completed_exam()
        for value in ('NaN', float('inf')):
            with self.assertRaises(InvalidMarksError):
                exam.submit_result(1, value)
        self.assertEqual(exam.results, {})

    def test_resubmission_replaces_result(self):
        exam = completed_exam()
        exam.submit_result(1, 85)
        once = exam.statistics.as_dict()
        exam.submit_result(1, 85)
        self.assertEqual(len(exam.results), 1)
        self.assertEqual(exam.statistics.as_dict(), once)

        exam.submit_result(1, 45)
        self.assertEqual(exam.results[1].grade, 'C')
        self.assertEqual(exam.statistics.highest_marks, Decimal('45'))

    def test_resubmission_clears_verification(self):
        exam = completed_exam()
        exam.submit_result(1, 85)
        exam.verify_result(1, verified_by=5)
        exam.submit_result(1, 80)
        self.assertFalse(exam.results[1].verified)


class ModerationTest(SimpleTestCase):

    def test_original_marks_kept_from_first_moderation(self):
        exam = completed_exam()
        exam.submit_result(1, 70)
        exam.moderate_result(1, 60, moderated_by=5, reason='Recount')
        result = exam.moderate_result(1, 50, moderated_by=6, reason='Second recount')

        self.assertTrue(result.moderated)
        self.assertEqual(result.original_marks, Decimal('70'))
        self.assertEqual(result.marks_obtained, Decimal('50'))
        self.assertEqual(result.grade, 'B')
        self.assertEqual(result.moderated_by, 6)
        self.assertEqual(result.moderation_reason, 'Second recount')
        self.assertEqual(exam.statistics.average_marks, Decimal('50.00'))

    def test_moderate_missing_result(self):
        exam = completed_exam()
        with self.assertRaises(ResultNotFoundError):
            exam.moderate_result(1, 50)

    def test_moderate_invalid_marks(self):
        exam = completed_exam()
        exam.submit_result(1, 70)
        with self.assertRaises(InvalidMarksError):
            exam.moderate_result(1, 150)
        self.assertFalse(exam.results[1].moderated)
        self.assertEqual(exam.results[1].marks_obtained, Decimal('70'))

    def test_verify(self):
        exam = completed_exam()
        exam.submit_result(1, 70)
        result = exam.verify_result(1, verified_by=5)
        self.assertTrue(result.verified)
        self.assertEqual(result.verified_by, 5)
        self.assertIsNotNone(result.verified_at)
        with self.assertRaises(ResultNotFoundError):
            exam.verify_result(2)


class LifecycleTest(SimpleTestCase):

    def test_publish_from_draft_fails(self):
        exam = make_exam()
        with self.assertRaises(InvalidTransitionError):
            exam.publish(published_by=1)
        self.assertEqual(exam.status, domain.DRAFT)

    def test_transition_cannot_publish(self):
        exam = completed_exam()
        exam.complete()
        with self.assertRaises(InvalidTransitionError):
            exam.transition(domain.PUBLISHED)

    def test_illegal_transition(self):
        exam = make_exam()
        with self.assertRaises(InvalidTransitionError):
            exam.transition(domain.COMPLETED)
        self.assertEqual(exam.status, domain.DRAFT)

    def test_cancelled_is_terminal(self):
        exam = make_exam()
        exam.cancel()
        with self.assertRaises(InvalidTransitionError):
            exam.schedule_exam()

    def test_publish_completed_exam(self):
        exam = completed_exam()
        exam.submit_result(1, 85)
        exam.complete()
        exam.publish(published_by=9)
        self.assertTrue(exam.is_published)
        self.assertEqual(exam.published_by, 9)
        self.assertIsNotNone(exam.published_at)

    def test_published_exam_rejects_changes(self):
        exam = completed_exam()
        exam.submit_result(1, 85)
        exam.complete()
        exam.publish(published_by=9)

        with self.assertRaises(ExamPublishedError):
            exam.submit_result(2, 50)
        with self.assertRaises(ExamPublishedError):
            exam.moderate_result(1, 50)
        with self.assertRaises(ExamPublishedError):
            exam.verify_result(1)
        with self.assertRaises(ExamPublishedError):
            exam.register(10)
        with self.assertRaises(InvalidTransitionError):
            exam.cancel()
        self.assertEqual(exam.results[1].marks_obtained, Decimal('85'))

    def test_early_publication(self):
        exam = completed_exam()
        with self.assertRaises(InvalidTransitionError):
            exam.publish(published_by=1)
        exam.publish(published_by=1, allow_early=True)
        self.assertEqual(exam.status, domain.PUBLISHED)

    def test_require_verification(self):
        exam = completed_exam()
        exam.submit_result(1, 85)
        exam.complete()
        with self.assertRaises(InvalidTransitionError):
            exam.publish(published_by=1, require_verification=True)
        exam.verify_result(1)
        exam.publish(published_by=1, require_verification=True)
        self.assertTrue(exam.is_published)


class RankingTest(SimpleTestCase):

    def test_competition_ranking(self):
        exam = completed_exam(students=(1, 2, 3, 4))
        for sid, marks in ((1, 70), (2, 80), (3, 90), (4, 80)):
            exam.submit_result(sid, marks)
        ranked = [(rank, result.student_id) for rank, result in exam.ranked_results()]
        self.assertEqual([rank for rank, _ in ranked], [1, 2, 2, 4])
        self.assertEqual(ranked[0][1], 3)
        self.assertEqual(ranked[-1][1], 1)
