import math
import uuid
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple, Union

from gradetrack.core.models import UNGRADED_LETTER, RawSubject, Subject, SubjectStatus


@dataclass(frozen=True)
class GradeDetails:
    grade_point: int
    letter_grade: str
    status: SubjectStatus


# (lower bound inclusive, grade point, letter); the upper bound is the next band's lower bound.
GRADE_BANDS: List[Tuple[float, int, str]] = [
    (90, 10, "A++"),
    (80, 9, "A+"),
    (70, 8, "B++"),
    (60, 7, "B+"),
    (50, 6, "C"),
]

FAIL_DETAILS = GradeDetails(grade_point=0, letter_grade="RA", status=SubjectStatus.RA)


def grade_for(marks: float) -> GradeDetails:
    if math.isnan(marks) or marks < 0 or marks > 100:
        raise ValueError(f"Marks must be between 0 and 100, got {marks}")

    for low, points, letter in GRADE_BANDS:
        if marks >= low:
            return GradeDetails(grade_point=points, letter_grade=letter, status=SubjectStatus.PASS)
    return FAIL_DETAILS


def _field(raw: Union[RawSubject, Mapping[str, Any]], name: str, default: Any = None) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name, default)
    return getattr(raw, name, default)


def process_subject(raw: Union[RawSubject, Mapping[str, Any]]) -> Subject:
    """
    Normalize a raw subject record into a canonical Subject.

    When marks are present the grade scale decides grade point, letter and
    status, overriding whatever status the caller sent. Without marks the
    caller's status is kept and the subject is ungraded. Any non-PASS subject
    carries zero grade points.
    """
    subject_id: Optional[str] = _field(raw, "id")
    marks = _field(raw, "marks")
    status = SubjectStatus(_field(raw, "status", SubjectStatus.PASS))

    grade_point = 0
    letter_grade = UNGRADED_LETTER

    if marks is not None:
        details = grade_for(marks)
        grade_point = details.grade_point
        letter_grade = details.letter_grade
        status = SubjectStatus.RA if details.status == SubjectStatus.RA else SubjectStatus.PASS

    if status != SubjectStatus.PASS:
        grade_point = 0

    return Subject(
        id=subject_id or uuid.uuid4().hex,
        name=_field(raw, "name"),
        credits=_field(raw, "credits"),
        marks=marks,
        status=status,
        grade_point=grade_point,
        letter_grade=letter_grade,
    )


def grade_scale_table() -> List[dict]:
    rows = []
    upper = 100.0
    for low, points, letter in GRADE_BANDS:
        rows.append({"min": low, "max": upper, "letter_grade": letter, "grade_point": points, "status": "PASS"})
        upper = low
    rows.append({"min": 0, "max": upper, "letter_grade": FAIL_DETAILS.letter_grade, "grade_point": 0, "status": "RA"})
    return rows
