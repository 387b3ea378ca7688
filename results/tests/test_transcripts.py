import csv
import io
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from django.test import SimpleTestCase

from results.services import ExamService
from results.store import InMemoryResultStore
from results.transcripts import CLASS_SHEET_HEADER, roll_sort_key, write_class_sheet_csv

MATH, ENGLISH, PHYSICS, UNKNOWN = 10, 11, 12, 99
CLASS_8 = 20
RAHIM, KARIM, NADIA, GHOST = 1, 2, 3, 4


class TranscriptTestCase(SimpleTestCase):

    def setUp(self):
        self.store = InMemoryResultStore(
            subjects={MATH: 'Mathematics', ENGLISH: 'English', PHYSICS: 'Physics'},
            classes={CLASS_8: 'Class 8'},
            students={
                RAHIM: ('Rahim Uddin', '2'),
                KARIM: ('Karim Ali', '10'),
                NADIA: ('Nadia Islam', '1'),
            },
        )
        self.service = ExamService(self.store)

    def graded_exam(self, code, subject_id, day, marks, scale='gpa_5', session_id=1, exam_type='midterm'):
        start = datetime(2025, 3, day, 9, 0, tzinfo=timezone.utc)
        exam = self.service.create_exam(
            exam_code=code,
            school_id=1,
            session_id=session_id,
            name=f'{code} exam',
            subject_id=subject_id,
            class_id=CLASS_8,
            exam_type=exam_type,
            start=start,
            end=start + timedelta(hours=2),
            duration_minutes=120,
            full_marks=100,
            pass_marks=33,
            grading_scale=scale,
        )
        for student_id, value in marks.items():
            self.service.register_candidate(exam.id, student_id, '')
            self.service.submit_result(exam.id, student_id, value)
        return exam.id


class StudentTranscriptTest(TranscriptTestCase):

    def setUp(self):
        super().setUp()
        self.graded_exam('MATH', MATH, 1, {RAHIM: 85})
        self.graded_exam('ENG', ENGLISH, 5, {RAHIM: 72})
        self.graded_exam('PHY', PHYSICS, 10, {RAHIM: 65}, scale='percentage')

    def test_newest_exam_first(self):
        rows = self.service.student_transcript(1, RAHIM)
        self.assertEqual([row['subject_name'] for row in rows], ['Physics', 'English', 'Mathematics'])
        self.assertEqual(rows[0]['class_name'], 'Class 8')
        self.assertEqual(rows[2]['grade'], 'A+')
        self.assertEqual(rows[2]['full_marks'], Decimal('100'))

    def test_gpa_skips_ungraded_points(self):
        summary = self.service.student_gpa(1, RAHIM)
        self.assertEqual(summary['total_gpa'], Decimal('9.00'))
        self.assertEqual(summary['average_gpa'], Decimal('4.50'))
        self.assertEqual(summary['total_subjects'], 3)
        self.assertEqual(summary['grade_distribution'], {'A+': 1, 'A': 1, 'Good': 1})

    def test_missing_subject_is_dropped(self):
        self.graded_exam('MYSTERY', UNKNOWN, 12, {RAHIM: 90})
        rows = self.service.student_transcript(1, RAHIM)
        self.assertEqual(len(rows), 3)

    def test_filters(self):
        self.graded_exam('MATH-S2', MATH, 20, {RAHIM: 50}, session_id=2, exam_type='final')
        self.assertEqual(len(self.service.student_transcript(1, RAHIM)), 4)
        self.assertEqual(len(self.service.student_transcript(1, RAHIM, session_id=1)), 3)
        self.assertEqual(len(self.service.student_transcript(1, RAHIM, exam_type='final')), 1)
        self.assertEqual(self.service.student_transcript(2, RAHIM), [])

    def test_student_without_results(self):
        summary = self.service.student_gpa(1, KARIM)
        self.assertEqual(summary['total_subjects'], 0)
        self.assertEqual(summary['average_gpa'], Decimal('0.00'))
        self.assertEqual(summary['grade_distribution'], {})


class ClassSheetTest(TranscriptTestCase):

    def setUp(self):
        super().setUp()
        self.math = self.graded_exam('MATH', MATH, 1, {RAHIM: 85, KARIM: 85, NADIA: 30, GHOST: 70})
        self.english = self.graded_exam('ENG', ENGLISH, 5, {RAHIM: 72, KARIM: 72, NADIA: 50})

    def test_rows_sorted_by_roll(self):
        rows = self.service.class_result_sheet(1, CLASS_8, exam_id=self.math)
        self.assertEqual([row['student_roll'] for row in rows], ['1', '2', '10'])
        self.assertEqual(rows[0]['student_name'], 'Nadia Islam')
        self.assertFalse(rows[0]['is_passed'])
        self.assertTrue(rows[1]['is_passed'])

    def test_unknown_students_are_dropped(self):
        rows = self.service.class_result_sheet(1, CLASS_8)
        self.assertEqual(len(rows), 6)
        self.assertNotIn(GHOST, {row['student_id'] for row in rows})

    def test_merit_list(self):
        merit = self.service.class_merit_list(1, CLASS_8)
        self.assertEqual([(m['student_id'], m['rank']) for m in merit], [(RAHIM, 1), (KARIM, 1), (NADIA, 3)])

        top = merit[0]
        self.assertEqual(top['cgpa'], Decimal('4.50'))
        self.assertEqual(top['grade'], 'A')
        self.assertEqual(top['percentage'], Decimal('78.50'))
        self.assertEqual(top['subjects'], 2)

        last = merit[-1]
        self.assertEqual(last['cgpa'], Decimal('1.50'))
        self.assertFalse(last['is_passed'])

    def test_csv_export(self):
        rows = self.service.class_result_sheet(1, CLASS_8, exam_id=self.math)
        buffer = write_class_sheet_csv(rows, io.StringIO())
        lines = list(csv.reader(io.StringIO(buffer.getvalue())))

        self.assertEqual(lines[0], CLASS_SHEET_HEADER)
        self.assertEqual(len(lines), 4)
        self.assertEqual(lines[1][:3], ['1', '1', 'Nadia Islam'])
        self.assertEqual(lines[1][-1], 'Failed')
        self.assertEqual(lines[3][-1], 'Passed')


class RollSortKeyTest(SimpleTestCase):

    def test_natural_order(self):
        rolls = ['10', 'B2', '', '2', 'A1', '1']
        self.assertEqual(sorted(rolls, key=roll_sort_key), ['1', '2', '10', 'A1', 'B2', ''])
