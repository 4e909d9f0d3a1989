import re
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from gradetrack.core.models import RawSubject, SubjectStatus

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>[A-Za-z0-9+/=\s]+)$")


class SubjectPayload(BaseModel):
    name: str = Field(min_length=1)
    credits: int = Field(ge=1)
    marks: Optional[float] = Field(default=None, ge=0, le=100)
    status: SubjectStatus = SubjectStatus.PASS

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("marks", mode="before")
    @classmethod
    def _blank_marks(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _marks_required_for_pass(self) -> "SubjectPayload":
        if self.status != SubjectStatus.PASS:
            # marks only count for passed subjects
            self.marks = None
        elif self.marks is None:
            raise ValueError("Marks are required when status is PASS.")
        return self

    def to_raw(self, subject_id: Optional[str] = None) -> RawSubject:
        return RawSubject(
            name=self.name,
            credits=self.credits,
            status=self.status,
            marks=self.marks,
            id=subject_id,
        )


class SemesterPayload(BaseModel):
    name: str = Field(min_length=1)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class ImportPayload(BaseModel):
    semester_name: str = Field(min_length=1)
    subjects: List[SubjectPayload]

    @field_validator("semester_name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class ExtractRequest(BaseModel):
    text: Optional[str] = None
    photo_data_uri: Optional[str] = None

    @field_validator("photo_data_uri")
    @classmethod
    def _check_data_uri(cls, value: Optional[str]) -> Optional[str]:
        if value and not DATA_URI_PATTERN.match(value):
            raise ValueError("Expected a base64 data URI: data:<mimetype>;base64,<encoded_data>")
        return value or None


class ExtractedSubject(BaseModel):
    """One subject row as returned by the extraction model."""

    name: str
    credits: float
    marks: Optional[float] = None
    status: SubjectStatus


class FeedbackPayload(BaseModel):
    type: Literal["bug", "feature", "general"]
    message: str = Field(min_length=10, max_length=5000)


class LoginPayload(BaseModel):
    email: str
    password: str = Field(min_length=1)


class SignUpPayload(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str
    password: str = Field(min_length=6)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        value = value.strip()
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("Please enter a valid email address.")
        return value


class PasswordResetPayload(BaseModel):
    email: str
