"""
Persistence contract for exam records, plus an in-memory implementation.

The engine only needs: load one exam, query many, save with an optimistic
version check, and serialize writers per exam. ``DjangoResultStore`` in
``django_store`` is the database-backed implementation.
"""
import copy
import logging
import threading
from collections import namedtuple
from contextlib import contextmanager

from .exceptions import ConflictError, ExamNotFoundError

logger = logging.getLogger(__name__)

StudentEntry = namedtuple('StudentEntry', ['name', 'roll_number'])


class ExamLocks:
    """Process-wide registry of one lock per exam id"""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    @contextmanager
    def hold(self, exam_id):
        with self._guard:
            exam_lock = self._locks.setdefault(exam_id, threading.Lock())
        with exam_lock:
            yield


class ExamFilter:
    """Query for ``find_exams_by``; None means "any"."""

    def __init__(self, school_id, class_id=None, section_id=None, exam_id=None,
                 student_id=None, session_id=None, exam_type=None):
        self.school_id = school_id
        self.class_id = class_id
        self.section_id = section_id
        self.exam_id = exam_id
        self.student_id = student_id
        self.session_id = session_id
        self.exam_type = exam_type

    def matches(self, record):
        checks = [
            (self.school_id, record.school_id),
            (self.class_id, record.class_id),
            (self.section_id, record.section_id),
            (self.exam_id, record.id),
            (self.session_id, record.session_id),
            (self.exam_type, record.exam_type),
        ]
        for wanted, actual in checks:
            if wanted is not None and wanted != actual:
                return False
        if self.student_id is not None and self.student_id not in record.results:
            return False
        return True


class ResultStore:
    """Abstract store; subclasses implement every method."""

    def find_exam(self, exam_id):
        raise NotImplementedError

    def find_exams_by(self, exam_filter):
        raise NotImplementedError

    def save_exam(self, record):
        raise NotImplementedError

    def lock(self, exam_id):
        """Context manager giving the caller exclusive write access to one exam"""
        raise NotImplementedError

    def subject_names(self, subject_ids):
        raise NotImplementedError

    def class_names(self, class_ids):
        raise NotImplementedError

    def student_directory(self, student_ids):
        """Map student id -> StudentEntry(name, roll_number)"""
        raise NotImplementedError


class InMemoryResultStore(ResultStore):
    """
    Dictionary-backed store. Records are copied in and out so callers
    never share state with the store, mirroring a real database.
    """

    def __init__(self, subjects=None, classes=None, students=None):
        self._exams = {}
        self._next_id = 1
        self._guard = threading.Lock()
        self._locks = ExamLocks()
        self.subjects = dict(subjects or {})
        self.classes = dict(classes or {})
        self.students = {
            key: value if isinstance(value, StudentEntry) else StudentEntry(*value)
            for key, value in (students or {}).items()
        }

    def find_exam(self, exam_id):
        with self._guard:
            record = self._exams.get(exam_id)
            if record is None:
                raise ExamNotFoundError(exam_id=exam_id)
            return copy.deepcopy(record)

    def find_exams_by(self, exam_filter):
        with self._guard:
            return [
                copy.deepcopy(record)
                for record in self._exams.values()
                if exam_filter.matches(record)
            ]

    def save_exam(self, record):
        with self._guard:
            for other in self._exams.values():
                if other.exam_code == record.exam_code and other.id != record.id:
                    raise ConflictError(
                        f'Exam code {record.exam_code} already exists',
                        exam_id=record.id, value=record.exam_code,
                    )
            if record.id is None:
                record.id = self._next_id
                self._next_id += 1
            else:
                stored = self._exams.get(record.id)
                if stored is None:
                    raise ExamNotFoundError(exam_id=record.id)
                if stored.version != record.version:
                    raise ConflictError(
                        f'Stale exam version {record.version}, current is {stored.version}',
                        exam_id=record.id, value=record.version,
                    )
            record.version += 1
            self._exams[record.id] = copy.deepcopy(record)
            logger.debug(f'Saved exam {record.id} at version {record.version}')
            return copy.deepcopy(record)

    def lock(self, exam_id):
        return self._locks.hold(exam_id)

    def subject_names(self, subject_ids):
        return {sid: self.subjects[sid] for sid in subject_ids if sid in self.subjects}

    def class_names(self, class_ids):
        return {cid: self.classes[cid] for cid in class_ids if cid in self.classes}

    def student_directory(self, student_ids):
        return {sid: self.students[sid] for sid in student_ids if sid in self.students}
