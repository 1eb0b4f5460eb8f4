"""Data schemas and validation."""
from .schemas import (
    AcademicSession,
    AdmissionStatus,
    Applicant,
    ApproveApplication,
    Course,
    Pagination,
    ProgramItem,
    RejectApplication,
    Teacher,
    TeacherCourseAssignment,
    normalize_flag,
)

__all__ = [
    "AcademicSession",
    "AdmissionStatus",
    "Applicant",
    "ApproveApplication",
    "Course",
    "Pagination",
    "ProgramItem",
    "RejectApplication",
    "Teacher",
    "TeacherCourseAssignment",
    "normalize_flag",
]
