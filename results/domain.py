"""
Exam records and the values they own.

These classes hold no database state. Constructors reject invalid input,
and every operation that changes ``ExamRecord.results`` finishes by
calling ``recompute_statistics()``.
"""
from datetime import datetime, timezone
from decimal import Decimal

from . import grading
from .exceptions import (
    DuplicateRegistrationError,
    ExamPublishedError,
    InvalidMarksError,
    InvalidTransitionError,
    NotRegisteredError,
    ResultNotFoundError,
)
from .grading import GradeBand, round0, round2, to_decimal
from .statistics import compute_statistics

EXAM_TYPES = [
    ('midterm', 'Midterm'),
    ('final', 'Final'),
    ('weekly_test', 'Weekly Test'),
    ('assignment', 'Assignment'),
    ('practical', 'Practical'),
    ('quiz', 'Quiz'),
    ('project', 'Project'),
    ('comprehensive', 'Comprehensive'),
]

DRAFT = 'draft'
SCHEDULED = 'scheduled'
IN_PROGRESS = 'in_progress'
COMPLETED = 'completed'
CANCELLED = 'cancelled'
PUBLISHED = 'published'

EXAM_STATUSES = [
    (DRAFT, 'Draft'),
    (SCHEDULED, 'Scheduled'),
    (IN_PROGRESS, 'In Progress'),
    (COMPLETED, 'Completed'),
    (CANCELLED, 'Cancelled'),
    (PUBLISHED, 'Published'),
]

# publish() is the only way into PUBLISHED
TRANSITIONS = {
    DRAFT: {SCHEDULED, CANCELLED},
    SCHEDULED: {IN_PROGRESS, CANCELLED},
    IN_PROGRESS: {COMPLETED, CANCELLED},
    COMPLETED: {CANCELLED},
    CANCELLED: set(),
    PUBLISHED: set(),
}

PENDING = 'pending'
PRESENT = 'present'
ABSENT = 'absent'
LATE = 'late'
EXCUSED = 'excused'

ATTENDANCE_STATUSES = [
    (PENDING, 'Pending'),
    (PRESENT, 'Present'),
    (ABSENT, 'Absent'),
    (LATE, 'Late'),
    (EXCUSED, 'Excused'),
]

GRADING_SCALES = [
    (grading.GPA_5, 'GPA 5.00'),
    (grading.GPA_4, 'GPA 4.00'),
    (grading.PERCENTAGE, 'Percentage'),
    (grading.CUSTOM, 'Custom'),
]


def _choice_values(choices):
    return {value for value, _ in choices}


def utcnow():
    return datetime.now(timezone.utc)


class MarksConfiguration:
    def __init__(self, full_marks, pass_marks, grading_scale=grading.GPA_5, bands=None):
        self.full_marks = to_decimal(full_marks, 'full_marks')
        self.pass_marks = to_decimal(pass_marks, 'pass_marks')
        if self.full_marks <= 0:
            raise ValueError('full_marks must be greater than 0')
        if self.pass_marks < 0 or self.pass_marks > self.full_marks:
            raise ValueError('pass_marks must be between 0 and full_marks')
        if not (grading.has_two_places(self.full_marks) and grading.has_two_places(self.pass_marks)):
            raise ValueError('full_marks and pass_marks take at most two decimal places')
        if grading_scale not in grading.SCALES:
            raise ValueError(f'Unknown grading scale {grading_scale!r}')
        bands = [b if isinstance(b, GradeBand) else GradeBand.from_dict(b) for b in (bands or [])]
        if grading_scale == grading.CUSTOM and not bands:
            raise ValueError('A custom grading scale needs at least one band')
        self.grading_scale = grading_scale
        self.bands = bands

    @property
    def pass_percentage(self):
        return round0(self.pass_marks / self.full_marks * 100)

    def grade(self, marks_obtained):
        # marks are stored with two decimal places
        marks = to_decimal(marks_obtained, 'marks_obtained')
        if not grading.has_two_places(marks):
            raise InvalidMarksError(
                'marks_obtained takes at most two decimal places', value=marks_obtained
            )
        return grading.grade(marks, self.full_marks, self.grading_scale, self.bands)


class Schedule:
    def __init__(self, start, end, duration_minutes):
        if start is None or end is None:
            raise ValueError('Schedule needs a start and an end')
        if end < start:
            raise ValueError('Exam end must not be before its start')
        if int(duration_minutes) <= 0:
            raise ValueError('duration_minutes must be positive')
        self.start = start
        self.end = end
        self.duration_minutes = int(duration_minutes)

    @property
    def duration_in_hours(self):
        return round2(Decimal(self.duration_minutes) / 60)

    def is_active(self, now=None):
        now = now or utcnow()
        return self.start <= now <= self.end


class Candidate:
    def __init__(self, student_id, roll_number='', attendance=PENDING, registered_at=None):
        if attendance not in _choice_values(ATTENDANCE_STATUSES):
            raise ValueError(f'Unknown attendance status {attendance!r}')
        self.student_id = student_id
        self.roll_number = roll_number or ''
        self.attendance = attendance
        self.registered_at = registered_at or utcnow()

    def __repr__(self):
        return f'Candidate({self.student_id}, {self.attendance})'


class Result:
    """One student's outcome in one exam"""

    def __init__(self, student_id, marks_obtained, percentage, grade, gpa=None, remarks='',
                 submitted_by=None, submitted_at=None, verified=False, verified_by=None,
                 verified_at=None, moderated=False, original_marks=None,
                 moderation_reason='', moderated_by=None, moderated_at=None):
        self.student_id = student_id
        self.marks_obtained = None if marks_obtained is None else to_decimal(marks_obtained)
        self.percentage = percentage
        self.grade = grade
        self.gpa = gpa
        self.remarks = remarks or ''
        self.submitted_by = submitted_by
        self.submitted_at = submitted_at
        self.verified = verified
        self.verified_by = verified_by
        self.verified_at = verified_at
        self.moderated = moderated
        self.original_marks = original_marks
        self.moderation_reason = moderation_reason or ''
        self.moderated_by = moderated_by
        self.moderated_at = moderated_at

    def is_passed(self, pass_marks):
        return self.marks_obtained is not None and self.marks_obtained >= pass_marks

    def __repr__(self):
        return f'Result({self.student_id}, {self.marks_obtained}, {self.grade})'


class ExamRecord:
    """
    One exam: its configuration, registered candidates and results.

    ``version`` is the optimistic-concurrency token handed out by the
    store; ``id`` stays None until the record is first saved.
    """

    def __init__(self, exam_code, school_id, session_id, name, subject_id, class_id,
                 exam_type, schedule, marks, section_id=None, status=DRAFT, id=None,
                 candidates=None, results=None, statistics=None, created_by=None,
                 published_by=None, published_at=None, version=0):
        if not exam_code:
            raise ValueError('exam_code is required')
        if exam_type not in _choice_values(EXAM_TYPES):
            raise ValueError(f'Unknown exam type {exam_type!r}')
        if status not in TRANSITIONS:
            raise ValueError(f'Unknown exam status {status!r}')
        self.id = id
        self.exam_code = exam_code
        self.school_id = school_id
        self.session_id = session_id
        self.name = name
        self.subject_id = subject_id
        self.class_id = class_id
        self.section_id = section_id
        self.exam_type = exam_type
        self.schedule = schedule
        self.marks = marks
        self.status = status
        self.candidates = {c.student_id: c for c in (candidates or [])}
        self.results = {r.student_id: r for r in (results or [])}
        self.created_by = created_by
        self.published_by = published_by
        self.published_at = published_at
        self.version = version
        if statistics is None:
            self.recompute_statistics()
        else:
            self.statistics = statistics

    def __repr__(self):
        return f'ExamRecord({self.exam_code}, {self.status})'

    @property
    def is_published(self):
        return self.status == PUBLISHED

    def _ensure_mutable(self, student_id=None):
        if self.is_published:
            raise ExamPublishedError(exam_id=self.id, student_id=student_id)

    def _require_candidate(self, student_id):
        candidate = self.candidates.get(student_id)
        if candidate is None:
            raise NotRegisteredError(exam_id=self.id, student_id=student_id)
        return candidate

    def _require_result(self, student_id):
        result = self.results.get(student_id)
        if result is None:
            raise ResultNotFoundError(exam_id=self.id, student_id=student_id)
        return result

    def _grade(self, marks_obtained, student_id):
        try:
            return self.marks.grade(marks_obtained)
        except InvalidMarksError as exc:
            exc.exam_id = self.id
            exc.student_id = student_id
            raise

    # status machine

    def transition(self, new_status):
        if new_status == PUBLISHED:
            raise InvalidTransitionError(
                'Use publish() to publish results', exam_id=self.id, value=new_status
            )
        if new_status not in TRANSITIONS.get(self.status, set()):
            raise InvalidTransitionError(
                f'Cannot move exam from {self.status} to {new_status}',
                exam_id=self.id, value=new_status,
            )
        self.status = new_status

    def schedule_exam(self):
        self.transition(SCHEDULED)

    def start(self):
        self.transition(IN_PROGRESS)

    def complete(self):
        self.transition(COMPLETED)

    def cancel(self):
        self.transition(CANCELLED)

    def can_publish(self, allow_early=False):
        return self.status == COMPLETED or (allow_early and self.status == IN_PROGRESS)

    def publish(self, published_by, allow_early=False, require_verification=False, now=None):
        if not self.can_publish(allow_early):
            raise InvalidTransitionError(
                f'Cannot publish an exam in status {self.status}',
                exam_id=self.id, value=self.status,
            )
        if require_verification:
            pending = [sid for sid, r in self.results.items() if not r.verified]
            if pending:
                raise InvalidTransitionError(
                    f'{len(pending)} result(s) are not verified',
                    exam_id=self.id, value=len(pending),
                )
        self.status = PUBLISHED
        self.published_by = published_by
        self.published_at = now or utcnow()

    # candidates

    def register(self, student_id, roll_number='', now=None):
        self._ensure_mutable(student_id)
        if student_id in self.candidates:
            raise DuplicateRegistrationError(exam_id=self.id, student_id=student_id)
        candidate = Candidate(student_id, roll_number, PENDING, now or utcnow())
        self.candidates[student_id] = candidate
        self.recompute_statistics()
        return candidate

    def set_attendance(self, student_id, attendance):
        self._ensure_mutable(student_id)
        candidate = self._require_candidate(student_id)
        if attendance not in _choice_values(ATTENDANCE_STATUSES):
            raise ValueError(f'Unknown attendance status {attendance!r}')
        candidate.attendance = attendance
        return candidate

    # results

    def submit_result(self, student_id, marks_obtained, submitted_by=None, remarks='', now=None):
        self._ensure_mutable(student_id)
        candidate = self._require_candidate(student_id)
        outcome = self._grade(marks_obtained, student_id)

        result = Result(
            student_id,
            marks_obtained,
            outcome.percentage,
            outcome.grade,
            outcome.gpa,
            remarks=remarks,
            submitted_by=submitted_by,
            submitted_at=now or utcnow(),
        )
        self.results[student_id] = result
        # a late arrival still counts as late
        if candidate.attendance != LATE:
            candidate.attendance = PRESENT
        self.recompute_statistics()
        return result

    def moderate_result(self, student_id, new_marks, moderated_by=None, reason='', now=None):
        self._ensure_mutable(student_id)
        result = self._require_result(student_id)
        outcome = self._grade(new_marks, student_id)

        if not result.moderated:
            result.original_marks = result.marks_obtained
        result.marks_obtained = to_decimal(new_marks)
        result.percentage = outcome.percentage
        result.grade = outcome.grade
        result.gpa = outcome.gpa
        result.moderated = True
        result.moderation_reason = reason or ''
        result.moderated_by = moderated_by
        result.moderated_at = now or utcnow()
        self.recompute_statistics()
        return result

    def verify_result(self, student_id, verified_by=None, now=None):
        self._ensure_mutable(student_id)
        result = self._require_result(student_id)
        result.verified = True
        result.verified_by = verified_by
        result.verified_at = now or utcnow()
        self.recompute_statistics()
        return result

    def recompute_statistics(self):
        self.statistics = compute_statistics(
            self.results.values(), len(self.candidates), self.marks.pass_marks
        )
        return self.statistics

    def ranked_results(self):
        """
        (rank, result) pairs, best marks first. Equal marks share a rank
        and the next rank skips (1, 2, 2, 4).
        """
        ordered = sorted(
            (r for r in self.results.values() if r.marks_obtained is not None),
            key=lambda r: r.marks_obtained,
            reverse=True,
        )
        ranked = []
        previous = None
        rank = 0
        for position, result in enumerate(ordered, start=1):
            if result.marks_obtained != previous:
                rank = position
                previous = result.marks_obtained
            ranked.append((rank, result))
        return ranked


def new_exam(exam_code, school_id, session_id, name, subject_id, class_id, exam_type,
             start, end, duration_minutes, full_marks, pass_marks,
             grading_scale=grading.GPA_5, bands=None, section_id=None, created_by=None):
    """Build a validated draft ExamRecord"""
    return ExamRecord(
        exam_code=exam_code,
        school_id=school_id,
        session_id=session_id,
        name=name,
        subject_id=subject_id,
        class_id=class_id,
        section_id=section_id,
        exam_type=exam_type,
        schedule=Schedule(start, end, duration_minutes),
        marks=MarksConfiguration(full_marks, pass_marks, grading_scale, bands),
        status=DRAFT,
        created_by=created_by,
    )
