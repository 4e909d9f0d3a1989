from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class SubjectStatus(str, Enum):
    PASS = "PASS"
    RA = "RA"
    AAA = "AAA"
    W = "W"
    ABS = "ABS"


UNGRADED_LETTER = "-"


@dataclass(frozen=True)
class RawSubject:
    name: str
    credits: int
    status: SubjectStatus = SubjectStatus.PASS
    marks: Optional[float] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class Subject:
    id: str
    name: str
    credits: int
    marks: Optional[float]
    status: SubjectStatus
    grade_point: int
    letter_grade: str

    def to_document(self) -> dict:
        """Firestore field layout for a subject document."""
        return {
            "name": self.name,
            "credits": self.credits,
            "status": self.status.value,
            "gradePoint": self.grade_point,
            "letterGrade": self.letter_grade,
            "marks": self.marks,
        }

    def to_dict(self) -> dict:
        data = self.to_document()
        data["id"] = self.id
        return data


@dataclass(frozen=True)
class SemesterRecord:
    id: str
    name: str


@dataclass(frozen=True)
class Semester:
    id: str
    name: str
    subjects: List[Subject] = field(default_factory=list)
    gpa: float = 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "gpa": self.gpa,
            "subjects": [s.to_dict() for s in self.subjects],
        }
