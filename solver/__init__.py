"""Solver-Modul (Backtracking-Suche über einem Constraint-Index)."""

from .constraint_index import Candidate, ConstraintIndex, IndexCache, Occupancy
from .search import AssignmentSearch, SearchOutcome
from .reporting import (
    ConflictReporter,
    SolveResult,
    SolveStats,
    SolveStatus,
    UnmetReason,
    UnmetSessionUnit,
)
from .projection import DateRange, ScheduleProjector, SessionOccurrence
from .engine import TimetableEngine

__all__ = [
    "Candidate",
    "ConstraintIndex",
    "IndexCache",
    "Occupancy",
    "AssignmentSearch",
    "SearchOutcome",
    "ConflictReporter",
    "SolveResult",
    "SolveStats",
    "SolveStatus",
    "UnmetReason",
    "UnmetSessionUnit",
    "DateRange",
    "ScheduleProjector",
    "SessionOccurrence",
    "TimetableEngine",
]
