from models.timeslot import Slot
from models.subject import PreferredTime, Subject
from models.course import Course
from models.teacher import Teacher, ContractType
from models.holiday import Holiday
from models.assignment import Requirement, Assignment, AssignmentSet
from models.snapshot import (
    SchoolSnapshot,
    FeasibilityReport,
    StructuralIssue,
    SnapshotValidationError,
)

__all__ = [
    "Slot",
    "Subject",
    "PreferredTime",
    "Course",
    "Teacher",
    "ContractType",
    "Holiday",
    "Requirement",
    "Assignment",
    "AssignmentSet",
    "SchoolSnapshot",
    "FeasibilityReport",
    "StructuralIssue",
    "SnapshotValidationError",
]
