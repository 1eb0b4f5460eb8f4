"""Pydantic schemas to validate gateway payloads.

These schemas act as contracts at ingress points so we fail fast when
the admissions API changes shape. Loosely typed fields (``is_applied`` in
particular) are normalized here once instead of in every view.
"""
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TRUTHY = {"1", "true", "yes"}


def normalize_flag(value: Any) -> bool:
    """Canonical boolean for API flags sent as bool, int or string."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return False


class AdmissionStatus(str, Enum):
    ADMITTED = "ADMITTED"
    PENDING = "PENDING"
    NOT_ADMITTED = "NOT_ADMITTED"

    @classmethod
    def parse(cls, value: Any) -> "AdmissionStatus":
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.NOT_ADMITTED


class Applicant(BaseModel):
    """One row of the applicants table."""

    model_config = ConfigDict(extra="allow")

    id: int
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    reference: Optional[str] = None
    program: Optional[str] = None
    program_id: Optional[str] = None
    admission_status: Optional[str] = None
    is_applied: bool = False
    start_year: Optional[str] = None

    @field_validator("is_applied", mode="before")
    @classmethod
    def coerce_is_applied(cls, v: Any) -> bool:
        return normalize_flag(v)

    @field_validator("program_id", "start_year", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def application_status_label(self) -> str:
        return "APPLIED" if self.is_applied else "NOT APPLIED"

    @property
    def admission_status_label(self) -> str:
        return AdmissionStatus.parse(self.admission_status).value.replace("_", " ")


class ProgramItem(BaseModel):
    id: int
    name: str
    parent: int = 0
    sortorder: int = 0

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @property
    def value(self) -> str:
        return str(self.id)


class AcademicSession(BaseModel):
    id: str
    name: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    status: str = "INACTIVE"

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        return str(v)

    @property
    def is_active(self) -> bool:
        return self.status.upper() == "ACTIVE"


class Pagination(BaseModel):
    total: int = Field(default=0, ge=0)
    per_page: int = Field(default=25, ge=1)
    current_page: int = Field(default=1, ge=1)
    total_pages: int = Field(default=0, ge=0)


class ApproveApplication(BaseModel):
    application_id: str
    program: str
    program_id: str
    study_mode: Optional[str] = None
    academic_session: Optional[str] = None
    semester: Optional[str] = None

    @field_validator("application_id", "program_id", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> str:
        return str(v)


class RejectApplication(BaseModel):
    application_id: str
    reason: str

    @field_validator("application_id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("reason")
    @classmethod
    def reason_nonempty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("A reason for rejection is required")
        return v.strip()


class Teacher(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    email: str = ""
    specialization: Optional[str] = None
    employee_id: Optional[str] = Field(default=None, alias="employeeId")
    status: str = "active"

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        return str(v)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Course(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    code: str
    name: str
    description: str = ""
    class_name: Optional[str] = Field(default=None, alias="class")
    credit_unit: int = Field(default=0, ge=0, alias="creditUnit")
    term: Optional[str] = None
    academic_year: Optional[str] = Field(default=None, alias="academicYear")

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        return str(v)


class TeacherCourseAssignment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    teacher_id: str = Field(alias="teacherId")
    course_id: str = Field(alias="courseId")
    assigned_date: Optional[str] = Field(default=None, alias="assignedDate")
    status: str = "active"
    teacher: Optional[Teacher] = None
    course: Optional[Course] = None

    @field_validator("id", "teacher_id", "course_id", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> str:
        return str(v)


def parse_list(model: type, rows: List[dict]) -> list:
    """Validate a list of raw rows against ``model``."""
    return [model.model_validate(row) for row in rows]
