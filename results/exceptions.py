"""
Domain errors raised by the results engine.

Every error carries the exam / student it concerns and the offending
value (when there is one) so callers can report precisely. ``status_code``
is the HTTP status the API layer answers with.
"""


class ExamError(Exception):
    """Base class for result engine failures"""
    status_code = 400
    default_message = 'Exam operation failed'

    def __init__(self, message=None, exam_id=None, student_id=None, value=None):
        self.message = message or self.default_message
        self.exam_id = exam_id
        self.student_id = student_id
        self.value = value
        super().__init__(self.message)

    def as_dict(self):
        data = {'detail': self.message, 'code': self.code}
        if self.exam_id is not None:
            data['exam_id'] = self.exam_id
        if self.student_id is not None:
            data['student_id'] = self.student_id
        if self.value is not None:
            data['value'] = str(self.value)
        return data

    @property
    def code(self):
        return self.__class__.__name__


class InvalidMarksError(ExamError):
    default_message = 'Marks must be between 0 and full marks'


class DuplicateRegistrationError(ExamError):
    status_code = 409
    default_message = 'Student already registered for this exam'


class NotRegisteredError(ExamError):
    default_message = 'Student not registered for this exam'


class ResultNotFoundError(ExamError):
    status_code = 404
    default_message = 'No result found for this student'


class InvalidTransitionError(ExamError):
    default_message = 'Illegal exam status change'


class ExamPublishedError(ExamError):
    status_code = 409
    default_message = 'Exam results are already published'


class NoMatchingBandError(ExamError):
    default_message = 'No grade band matches this percentage'


class ConflictError(ExamError):
    status_code = 409
    default_message = 'Exam was modified concurrently'


class ExamNotFoundError(ExamError):
    status_code = 404
    default_message = 'Exam not found'
