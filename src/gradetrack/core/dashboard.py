import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from gradetrack.core.classification import NOT_AWARDED, Classification, classify
from gradetrack.core.gpa import cumulative_gpa, semester_gpa, total_credits
from gradetrack.core.grades import process_subject
from gradetrack.core.models import Semester, SemesterRecord, Subject

_DIGITS = re.compile(r"(\d+)")


@dataclass(frozen=True)
class StoreSnapshot:
    """A consistent read of one user's semester tree."""

    semesters: List[SemesterRecord] = field(default_factory=list)
    subjects_by_semester: Dict[str, List[Mapping[str, Any]]] = field(default_factory=dict)


@dataclass(frozen=True)
class DashboardState:
    semesters: List[Semester]
    cgpa: float
    all_subjects: List[Subject]
    classification: Classification

    @classmethod
    def empty(cls) -> "DashboardState":
        return cls(semesters=[], cgpa=0.0, all_subjects=[], classification=NOT_AWARDED)

    @property
    def credits_earned(self) -> int:
        return total_credits(self.all_subjects)

    def to_dict(self) -> dict:
        return {
            "semesters": [s.to_dict() for s in self.semesters],
            "cgpa": self.cgpa,
            "credits_earned": self.credits_earned,
            "subject_count": len(self.all_subjects),
            "classification": self.classification.classification,
            "awarded": self.classification.awarded,
        }


def natural_key(name: str) -> Tuple:
    # re.split with a capture group puts the digit runs at odd indices
    parts = _DIGITS.split(name.casefold())
    return tuple((0, int(part), "") if i % 2 else (1, 0, part) for i, part in enumerate(parts))


def apply_snapshot(state: DashboardState, snapshot: StoreSnapshot) -> DashboardState:
    """
    Fold a new store snapshot into the dashboard state.

    The snapshot must be a consistent view of the whole tree; every derived
    value is recomputed from it and the previous state is replaced. Subject
    lists keyed by semesters absent from the snapshot are ignored.
    """
    semesters: List[Semester] = []
    for record in snapshot.semesters:
        subjects = [process_subject(raw) for raw in snapshot.subjects_by_semester.get(record.id, [])]
        semesters.append(Semester(id=record.id, name=record.name, subjects=subjects, gpa=semester_gpa(subjects)))

    semesters.sort(key=lambda sem: natural_key(sem.name))
    cgpa = cumulative_gpa(semesters)

    return DashboardState(
        semesters=semesters,
        cgpa=cgpa,
        all_subjects=[s for sem in semesters for s in sem.subjects],
        classification=classify(cgpa),
    )
