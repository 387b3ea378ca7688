"""Exam-wide statistics, always rebuilt from the full result set."""
from decimal import Decimal

from .grading import round0, round2


class Statistics:
    """Derived aggregate of one exam's results"""

    def __init__(self, total_registered=0, total_appeared=0, total_passed=0,
                 total_failed=0, average_marks=Decimal('0'), highest_marks=Decimal('0'),
                 lowest_marks=Decimal('0'), pass_percentage=0, grade_distribution=None):
        self.total_registered = total_registered
        self.total_appeared = total_appeared
        self.total_passed = total_passed
        self.total_failed = total_failed
        self.average_marks = Decimal(average_marks)
        self.highest_marks = Decimal(highest_marks)
        self.lowest_marks = Decimal(lowest_marks)
        self.pass_percentage = pass_percentage
        # list of {'grade', 'count', 'percentage'}
        self.grade_distribution = list(grade_distribution or [])

    @classmethod
    def empty(cls, total_registered=0):
        return cls(total_registered=total_registered)

    def as_dict(self):
        return {
            'total_registered': self.total_registered,
            'total_appeared': self.total_appeared,
            'total_passed': self.total_passed,
            'total_failed': self.total_failed,
            'average_marks': str(self.average_marks),
            'highest_marks': str(self.highest_marks),
            'lowest_marks': str(self.lowest_marks),
            'pass_percentage': self.pass_percentage,
            'grade_distribution': [dict(entry) for entry in self.grade_distribution],
        }

    def __eq__(self, other):
        return isinstance(other, Statistics) and self.as_dict() == other.as_dict()

    def __repr__(self):
        return (
            f'Statistics(appeared={self.total_appeared}, passed={self.total_passed}, '
            f'average={self.average_marks})'
        )


def compute_statistics(results, total_registered, pass_marks):
    """
    Build Statistics for ``results`` (objects with ``marks_obtained`` and
    ``grade``). Results without marks are ignored. An empty set gives the
    zero state rather than an error.
    """
    graded = [r for r in results if r.marks_obtained is not None]
    if not graded:
        return Statistics.empty(total_registered)

    marks = [Decimal(r.marks_obtained) for r in graded]
    appeared = len(graded)
    passed = sum(1 for m in marks if m >= pass_marks)

    counts = {}
    for result in graded:
        key = result.grade or 'N/A'
        counts[key] = counts.get(key, 0) + 1

    # most common grade first, ties by grade name
    distribution = [
        {
            'grade': key,
            'count': count,
            'percentage': round0(Decimal(count) / appeared * 100),
        }
        for key, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]

    return Statistics(
        total_registered=total_registered,
        total_appeared=appeared,
        total_passed=passed,
        total_failed=appeared - passed,
        average_marks=round2(sum(marks) / appeared),
        highest_marks=round2(max(marks)),
        lowest_marks=round2(min(marks)),
        pass_percentage=round0(Decimal(passed) / appeared * 100),
        grade_distribution=distribution,
    )
