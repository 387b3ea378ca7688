"""
Cross-exam reports: a student's results and GPA over a session, and
class result sheets.

Everything here is read-only and built from ``ResultStore.find_exams_by``
plus the store's name lookups, so the joins run the same way against the
in-memory store and the database.
"""
import csv
import logging
from decimal import Decimal

from .grading import overall_grade, round2
from .store import ExamFilter

logger = logging.getLogger(__name__)

CLASS_SHEET_HEADER = [
    'Serial', 'Roll Number', 'Student Name', 'Exam', 'Subject', 'Marks',
    'Full Marks', 'Percentage', 'Grade', 'GPA', 'Status',
]


def roll_sort_key(roll_number):
    """Numeric rolls in numeric order, then anything else alphabetically"""
    if roll_number is None or roll_number == '':
        return (2, 0, '')
    roll = str(roll_number).strip()
    if roll.isdigit():
        return (0, int(roll), roll)
    return (1, 0, roll)


class TranscriptAggregator:

    def __init__(self, store):
        self.store = store

    def student_exam_results(self, school_id, student_id, session_id=None, exam_type=None):
        exams = self.store.find_exams_by(ExamFilter(
            school_id, student_id=student_id, session_id=session_id, exam_type=exam_type,
        ))
        subjects = self.store.subject_names({e.subject_id for e in exams})
        classes = self.store.class_names({e.class_id for e in exams})

        rows = []
        for exam in exams:
            result = exam.results.get(student_id)
            if result is None:
                continue
            if exam.subject_id not in subjects or exam.class_id not in classes:
                logger.debug(f'Skipping exam {exam.id}: subject or class missing')
                continue
            rows.append({
                'exam_id': exam.id,
                'exam_name': exam.name,
                'exam_type': exam.exam_type,
                'exam_code': exam.exam_code,
                'start_date': exam.schedule.start,
                'subject_name': subjects[exam.subject_id],
                'class_name': classes[exam.class_id],
                'marks_obtained': result.marks_obtained,
                'percentage': result.percentage,
                'grade': result.grade,
                'gpa': result.gpa,
                'remarks': result.remarks,
                'full_marks': exam.marks.full_marks,
                'pass_marks': exam.marks.pass_marks,
            })

        rows.sort(key=lambda row: row['start_date'], reverse=True)
        return rows

    def student_gpa(self, school_id, student_id, session_id=None):
        rows = self.student_exam_results(school_id, student_id, session_id)
        if not rows:
            return {
                'total_gpa': Decimal('0.00'),
                'average_gpa': Decimal('0.00'),
                'total_subjects': 0,
                'grade_distribution': {},
            }

        points = [Decimal(row['gpa']) for row in rows if row['gpa'] is not None]
        total_gpa = round2(sum(points, Decimal('0')))
        average_gpa = round2(total_gpa / len(points)) if points else Decimal('0.00')

        distribution = {}
        for row in rows:
            key = row['grade'] or 'N/A'
            distribution[key] = distribution.get(key, 0) + 1

        return {
            'total_gpa': total_gpa,
            'average_gpa': average_gpa,
            'total_subjects': len(rows),
            'grade_distribution': distribution,
        }

    def class_exam_results(self, school_id, class_id, section_id=None, exam_id=None):
        return self._class_rows(ExamFilter(
            school_id, class_id=class_id, section_id=section_id, exam_id=exam_id,
        ))

    def _class_rows(self, exam_filter):
        exams = self.store.find_exams_by(exam_filter)
        subjects = self.store.subject_names({e.subject_id for e in exams})
        students = self.store.student_directory(
            {sid for e in exams for sid in e.results}
        )

        rows = []
        for exam in exams:
            subject_name = subjects.get(exam.subject_id)
            if subject_name is None:
                continue
            for student_id, result in exam.results.items():
                entry = students.get(student_id)
                if entry is None:
                    continue
                candidate = exam.candidates.get(student_id)
                roll = entry.roll_number or (candidate.roll_number if candidate else '')
                rows.append({
                    'exam_id': exam.id,
                    'exam_name': exam.name,
                    'exam_type': exam.exam_type,
                    'exam_code': exam.exam_code,
                    'student_id': student_id,
                    'student_name': entry.name,
                    'student_roll': roll,
                    'subject_name': subject_name,
                    'marks_obtained': result.marks_obtained,
                    'percentage': result.percentage,
                    'grade': result.grade,
                    'gpa': result.gpa,
                    'remarks': result.remarks,
                    'full_marks': exam.marks.full_marks,
                    'pass_marks': exam.marks.pass_marks,
                    'is_passed': result.is_passed(exam.marks.pass_marks),
                })

        rows.sort(key=lambda row: (roll_sort_key(row['student_roll']), row['subject_name']))
        return rows

    def class_merit_list(self, school_id, class_id, session_id=None, exam_type=None,
                         section_id=None):
        """
        One line per student summing every matching exam of the class,
        ranked by average GPA then percentage. Equal keys share a rank.
        """
        rows = self._class_rows(ExamFilter(
            school_id, class_id=class_id, section_id=section_id,
            session_id=session_id, exam_type=exam_type,
        ))

        students = {}
        for row in rows:
            summary = students.setdefault(row['student_id'], {
                'student_id': row['student_id'],
                'student_name': row['student_name'],
                'student_roll': row['student_roll'],
                'total_marks_obtained': Decimal('0'),
                'total_marks_possible': Decimal('0'),
                'points': [],
                'subjects': 0,
                'is_passed': True,
            })
            summary['total_marks_obtained'] += row['marks_obtained']
            summary['total_marks_possible'] += row['full_marks']
            if row['gpa'] is not None:
                summary['points'].append(Decimal(row['gpa']))
            summary['subjects'] += 1
            summary['is_passed'] = summary['is_passed'] and row['is_passed']

        merit = []
        for summary in students.values():
            points = summary.pop('points')
            possible = summary['total_marks_possible']
            summary['percentage'] = round2(summary['total_marks_obtained'] / possible * 100) if possible else Decimal('0.00')
            if points:
                summary['cgpa'] = round2(sum(points) / len(points))
                summary['grade'] = overall_grade(summary['cgpa'])
            else:
                summary['cgpa'] = None
                summary['grade'] = None
            merit.append(summary)

        def sort_key(item):
            cgpa = item['cgpa'] if item['cgpa'] is not None else Decimal('-1')
            return (-cgpa, -item['percentage'])

        merit.sort(key=sort_key)
        previous = None
        for position, item in enumerate(merit, start=1):
            key = sort_key(item)
            if key != previous:
                rank = position
                previous = key
            item['rank'] = rank
        return merit


def write_class_sheet_csv(rows, fileobj):
    """Write class result rows (from ``class_exam_results``) as CSV"""
    writer = csv.writer(fileobj)
    writer.writerow(CLASS_SHEET_HEADER)
    for idx, row in enumerate(rows, start=1):
        writer.writerow([
            idx,
            row['student_roll'] or '',
            row['student_name'],
            row['exam_name'],
            row['subject_name'],
            row['marks_obtained'],
            row['full_marks'],
            row['percentage'],
            row['grade'],
            '' if row['gpa'] is None else row['gpa'],
            'Passed' if row['is_passed'] else 'Failed',
        ])
    return fileobj
