from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List

from gradetrack.core.models import Semester, Subject, SubjectStatus


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _passed(subjects: Iterable[Subject]) -> List[Subject]:
    return [s for s in subjects if s.status == SubjectStatus.PASS]


def semester_gpa(subjects: Iterable[Subject]) -> float:
    """
    GPA = Σ(credits * grade_point) / Σ(credits) over PASS subjects only.
    Returns 0.0 when nothing passed or the passed credits sum to zero.
    """
    weighted_sum = 0
    total = 0

    for subject in _passed(subjects):
        weighted_sum += subject.credits * subject.grade_point
        total += subject.credits

    if total == 0:
        return 0.0

    return round2(weighted_sum / total)


def cumulative_gpa(semesters: Iterable[Semester]) -> float:
    """
    CGPA is the weighted average over every passed subject of every semester,
    not the mean of the per-semester GPAs.
    """
    return semester_gpa(s for sem in semesters for s in sem.subjects)


def total_credits(subjects: Iterable[Subject]) -> int:
    return sum(s.credits for s in _passed(subjects))
