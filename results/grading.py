"""
Grading policy: maps marks to (percentage, grade, grade point).

Pure functions only. Nothing here touches the database, so the same
policy is used by the domain model, the admin and the tests.
"""
from collections import namedtuple
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .exceptions import InvalidMarksError, NoMatchingBandError

GPA_5 = 'gpa_5'
GPA_4 = 'gpa_4'
PERCENTAGE = 'percentage'
CUSTOM = 'custom'

SCALES = (GPA_5, GPA_4, PERCENTAGE, CUSTOM)

GradeOutcome = namedtuple('GradeOutcome', ['percentage', 'grade', 'gpa'])

HUNDRED = Decimal('100')
TWO_PLACES = Decimal('0.01')


def to_decimal(value, field='value'):
    """Coerce ints, floats and numeric strings to a finite Decimal"""
    if value is None or isinstance(value, bool):
        raise InvalidMarksError(f'{field} must be a number', value=value)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise InvalidMarksError(f'{field} must be a number', value=value)
    # NaN and Infinity parse but cannot be compared or stored
    if not result.is_finite():
        raise InvalidMarksError(f'{field} must be a finite number', value=value)
    return result


def has_two_places(value):
    """True when ``value`` needs no more than two decimal places"""
    return value.normalize().as_tuple().exponent >= -2


def round2(value):
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def round0(value):
    return int(Decimal(value).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class GradeBand:
    """One row of a grading table, inclusive on both ends"""

    def __init__(self, min_percentage, max_percentage, grade, gpa=None, description=''):
        self.min_percentage = to_decimal(min_percentage, 'min_percentage')
        self.max_percentage = to_decimal(max_percentage, 'max_percentage')
        if not (0 <= self.min_percentage <= self.max_percentage <= HUNDRED):
            raise ValueError(
                f'Invalid band {grade}: {min_percentage}-{max_percentage}'
            )
        if not grade:
            raise ValueError('Band grade is required')
        self.grade = grade
        self.gpa = None if gpa is None else round2(to_decimal(gpa, 'gpa'))
        self.description = description

    def matches(self, percentage):
        return self.min_percentage <= percentage <= self.max_percentage

    def as_dict(self):
        return {
            'grade': self.grade,
            'min_percentage': str(self.min_percentage),
            'max_percentage': str(self.max_percentage),
            'gpa': None if self.gpa is None else str(self.gpa),
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            data['min_percentage'],
            data['max_percentage'],
            data['grade'],
            data.get('gpa'),
            data.get('description', ''),
        )

    def __eq__(self, other):
        return isinstance(other, GradeBand) and self.as_dict() == other.as_dict()

    def __repr__(self):
        return f'GradeBand({self.grade} {self.min_percentage}-{self.max_percentage})'


# (lower bound, grade, gpa), highest first
_THRESHOLDS = {
    GPA_5: [
        (80, 'A+', '5.00'),
        (70, 'A', '4.00'),
        (60, 'A-', '3.50'),
        (50, 'B', '3.00'),
        (40, 'C', '2.00'),
        (33, 'D', '1.00'),
        (0, 'F', '0.00'),
    ],
    GPA_4: [
        (90, 'A', '4.00'),
        (80, 'B', '3.00'),
        (70, 'C', '2.00'),
        (60, 'D', '1.00'),
        (0, 'F', '0.00'),
    ],
    PERCENTAGE: [
        (80, 'Excellent', None),
        (60, 'Good', None),
        (40, 'Average', None),
        (0, 'Poor', None),
    ],
}


def default_bands(scale):
    """Return the built-in table of a scale as GradeBand rows"""
    if scale not in _THRESHOLDS:
        raise ValueError(f'Scale {scale!r} has no built-in band table')
    bands = []
    upper = HUNDRED
    for lower, grade, gpa in _THRESHOLDS[scale]:
        bands.append(GradeBand(lower, upper, grade, gpa))
        # display bound only, lookup uses thresholds
        upper = Decimal(lower) - TWO_PLACES
    return bands


def _lookup_threshold(scale, percentage):
    for lower, grade, gpa in _THRESHOLDS[scale]:
        if percentage >= lower:
            return grade, None if gpa is None else Decimal(gpa)
    # unreachable for percentage >= 0
    raise NoMatchingBandError(value=percentage)


def _lookup_band(bands, percentage):
    for band in bands:
        if band.matches(percentage):
            return band.grade, band.gpa
    raise NoMatchingBandError(
        f'No grade band covers {round2(percentage)}%', value=round2(percentage)
    )


def grade(marks_obtained, full_marks, scale=GPA_5, bands=None):
    """
    Grade ``marks_obtained`` out of ``full_marks`` on ``scale``.

    The band is picked on the exact percentage; the returned percentage
    is rounded to two places.
    """
    marks = to_decimal(marks_obtained, 'marks_obtained')
    full = to_decimal(full_marks, 'full_marks')
    if full <= 0:
        raise InvalidMarksError('Full marks must be greater than 0', value=full_marks)
    if marks < 0 or marks > full:
        raise InvalidMarksError(
            f'Marks {marks_obtained} outside 0-{full_marks}', value=marks_obtained
        )

    percentage = marks / full * HUNDRED

    if scale == CUSTOM:
        if not bands:
            raise NoMatchingBandError('Custom scale requires a band table')
        letter, gpa = _lookup_band(bands, percentage)
    elif scale in _THRESHOLDS:
        letter, gpa = _lookup_threshold(scale, percentage)
    else:
        raise ValueError(f'Unknown grading scale {scale!r}')

    return GradeOutcome(round2(percentage), letter, gpa)


def overall_grade(gpa):
    """Letter for an averaged gpa_5 grade point (used for session summaries)"""
    gpa = to_decimal(gpa, 'gpa')
    if gpa >= 5:
        return 'A+'
    elif gpa >= 4:
        return 'A'
    elif gpa >= Decimal('3.5'):
        return 'A-'
    elif gpa >= 3:
        return 'B'
    elif gpa >= 2:
        return 'C'
    elif gpa >= 1:
        return 'D'
    return 'F'
